"""
Gesture interpreter for the frame editor.
Turns pointer, touch, wheel, slider and button input into TransformState
changes. Coordinates are viewport logical units from the viewport's top-left.
Every handler returns True when the transform changed so the host can redraw.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Hashable, Optional, Sequence

from editor_config import EditorConfig
from transform_state import TransformState
from viewport_renderer import compute_placement

logger = logging.getLogger(__name__)

# Wheel angle delta of one mouse notch
WHEEL_NOTCH = 120


class GestureMode(Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    PINCHING = "pinching"
    RESIZING = "resizing"


@dataclass(frozen=True)
class TouchPoint:
    id: Hashable
    x: float
    y: float


@dataclass
class InputSession:
    """Per-gesture data, discarded when the gesture ends or is cancelled."""

    mode: GestureMode
    start: TransformState
    pointer_id: Optional[Hashable] = None
    anchor_x: float = 0.0
    anchor_y: float = 0.0
    reference_distance: float = 0.0


def touch_distance(a: TouchPoint, b: TouchPoint) -> float:
    return math.hypot(b.x - a.x, b.y - a.y)


class GestureInterpreter:
    """Single writer of a TransformState during an editing session."""

    def __init__(self, state: TransformState, config: Optional[EditorConfig] = None):
        self.state = state
        self.config = config or EditorConfig()
        self.session: Optional[InputSession] = None

    @property
    def mode(self) -> GestureMode:
        return self.session.mode if self.session else GestureMode.IDLE

    @property
    def viewport_center(self):
        half = self.config.viewport_size / 2
        return half, half

    def _begin(self, mode: GestureMode, pointer_id=None, x: float = 0.0, y: float = 0.0) -> InputSession:
        self.session = InputSession(mode=mode, start=self.state.snapshot(),
                                    pointer_id=pointer_id, anchor_x=x, anchor_y=y)
        logger.debug("Gesture %s started (pointer=%r)", mode.value, pointer_id)
        return self.session

    def cancel(self):
        """Drop any in-flight gesture and return to Idle."""
        if self.session is not None:
            logger.debug("Gesture %s ended", self.session.mode.value)
        self.session = None

    def _rebase_drag(self, dx: float, dy: float):
        """Carry a translation made by another channel into the active drag."""
        if self.session is not None and self.session.mode is GestureMode.DRAGGING:
            self.session.start.translate_x += dx
            self.session.start.translate_y += dy

    def _translate(self, dx: float, dy: float) -> bool:
        if dx == 0 and dy == 0:
            return False
        self.state.translate_x += dx
        self.state.translate_y += dy
        self._rebase_drag(dx, dy)
        return True

    # Pointer (mouse / pen) -------------------------------------------------

    def pointer_down(self, pointer_id, x: float, y: float) -> bool:
        """Start dragging. Ignored while another gesture owns the session."""
        if self.session is not None:
            return False
        self._begin(GestureMode.DRAGGING, pointer_id, x, y)
        return False

    def begin_resize(self, pointer_id, x: float, y: float) -> bool:
        """Start a corner resize; replaces any drag in progress."""
        self.cancel()
        self._begin(GestureMode.RESIZING, pointer_id, x, y)
        return False

    def pointer_move(self, pointer_id, x: float, y: float) -> bool:
        session = self.session
        if session is None or session.pointer_id != pointer_id:
            return False
        if session.mode is GestureMode.DRAGGING:
            return self._drag_to(x, y)
        if session.mode is GestureMode.RESIZING:
            return self._resize_to(x, y)
        return False

    def pointer_up(self, pointer_id) -> bool:
        if self.session is not None and self.session.pointer_id == pointer_id:
            self.cancel()
        return False

    def _drag_to(self, x: float, y: float) -> bool:
        session = self.session
        new_x = session.start.translate_x + (x - session.anchor_x)
        new_y = session.start.translate_y + (y - session.anchor_y)
        if (new_x, new_y) == (self.state.translate_x, self.state.translate_y):
            return False
        self.state.translate_x = new_x
        self.state.translate_y = new_y
        return True

    def _resize_to(self, x: float, y: float) -> bool:
        """
        Resize the base size from the bottom-right corner with the aspect ratio
        captured at gesture start. The cursor delta is taken into the image's
        own axes, undoing rotation and scale. The dimension with the larger
        relative change wins, growing or shrinking (width on ties); the other
        is derived from the aspect.
        """
        start = self.session.start
        placement = compute_placement(start, self.viewport_center)
        anchor_x, anchor_y = placement.map_to_local(self.session.anchor_x, self.session.anchor_y)
        local_x, local_y = placement.map_to_local(x, y)

        floor = self.config.resize_min_size
        new_w = max(floor, start.base_width + (local_x - anchor_x))
        new_h = max(floor, start.base_height + (local_y - anchor_y))
        aspect = start.base_width / start.base_height

        if abs(new_w / start.base_width - 1) >= abs(new_h / start.base_height - 1):
            new_h = new_w / aspect
        else:
            new_w = new_h * aspect

        if (new_w, new_h) == (self.state.base_width, self.state.base_height):
            return False
        self.state.base_width = new_w
        self.state.base_height = new_h
        return True

    # Touch -----------------------------------------------------------------

    def touch_start(self, points: Sequence[TouchPoint]) -> bool:
        return self._sync_touches(points)

    def touch_end(self, points: Sequence[TouchPoint]) -> bool:
        """`points` are the touches still on the surface."""
        return self._sync_touches(points)

    def touch_cancel(self) -> bool:
        self.cancel()
        return False

    def touch_move(self, points: Sequence[TouchPoint]) -> bool:
        mode = self.mode
        if len(points) == 1 and mode is GestureMode.DRAGGING and self.session.pointer_id == points[0].id:
            return self._drag_to(points[0].x, points[0].y)
        if len(points) == 2 and mode is GestureMode.PINCHING:
            return self._pinch_to(touch_distance(points[0], points[1]))
        # Touch count changed without a start/end notification
        return self._sync_touches(points)

    def _sync_touches(self, points: Sequence[TouchPoint]) -> bool:
        count = len(points)
        if count == 1:
            touch = points[0]
            if self.mode is GestureMode.DRAGGING and self.session.pointer_id == touch.id:
                return False
            self.cancel()
            self._begin(GestureMode.DRAGGING, touch.id, touch.x, touch.y)
        elif count == 2:
            if self.mode is not GestureMode.PINCHING:
                self.cancel()
                self._begin(GestureMode.PINCHING)
            self.session.reference_distance = touch_distance(points[0], points[1])
        else:
            self.cancel()
        return False

    def _pinch_to(self, distance: float) -> bool:
        session = self.session
        reference = session.reference_distance
        session.reference_distance = distance
        if not (reference > 0 and math.isfinite(reference) and math.isfinite(distance)):
            # Nothing to compare against yet
            return False

        if self.config.pinch_mode == "ratio":
            candidate = self.state.scale * (distance / reference)
        else:
            candidate = self.state.scale + (distance - reference) * self.config.pinch_sensitivity

        previous = self.state.scale
        return self.state.set_scale(candidate) != previous

    # Zoom ------------------------------------------------------------------

    def wheel(self, delta: float, x: float, y: float) -> bool:
        """
        Zoom toward (delta > 0) or away from the viewer, keeping the image
        point under the cursor at (x, y) fixed on screen.

        `delta` is in wheel angle units. A full notch (WHEEL_NOTCH) or more is
        one zoom_factor step; smaller trackpad deltas apply a proportional part.
        """
        if delta == 0 or not math.isfinite(delta):
            return False

        prev_scale = self.state.scale
        notches = max(-1.0, min(1.0, delta / WHEEL_NOTCH))
        new_scale = self.state.set_scale(prev_scale * (1 + self.config.zoom_factor * notches))
        if new_scale == prev_scale:
            return False

        # Vector from the image center to the cursor
        center_x, center_y = self.viewport_center
        vx = x - center_x - self.state.translate_x
        vy = y - center_y - self.state.translate_y
        growth = new_scale / prev_scale - 1
        self._translate(-vx * growth, -vy * growth)
        return True

    def set_zoom(self, value: float) -> bool:
        """Absolute zoom from the slider, centered on the image."""
        previous = self.state.scale
        return self.state.set_scale(value) != previous

    # Discrete actions ------------------------------------------------------

    def rotate(self) -> bool:
        self.state.rotate_step()
        return True

    def nudge(self, dx: float, dy: float) -> bool:
        """Keyboard fine positioning, in multiples of the configured step."""
        step = self.config.nudge_step
        return self._translate(dx * step, dy * step)

    def reset(self, natural_width: float, natural_height: float) -> bool:
        self.cancel()
        self.state.reset(natural_width, natural_height, self.config.fit_bound)
        logger.debug("Transform reset for %sx%s image", natural_width, natural_height)
        return True
