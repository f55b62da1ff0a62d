"""
Transform state for the frame editor.
Holds the placement of the user's photo (translation, scale, rotation, base size)
shared by the gesture interpreter, the live preview and the exporter.
"""

import math
from dataclasses import dataclass, replace
from typing import Tuple

DEFAULT_FIT_BOUND = 800.0
DEFAULT_MIN_SCALE = 0.05
DEFAULT_MAX_SCALE = 8.0


@dataclass
class TransformState:
    """Placement of the image layer in viewport logical units."""

    translate_x: float = 0.0
    translate_y: float = 0.0
    scale: float = 1.0
    rotation_deg: int = 0
    # Drawn size before scaling (300x200 until an image is loaded)
    base_width: float = 300.0
    base_height: float = 200.0
    min_scale: float = DEFAULT_MIN_SCALE
    max_scale: float = DEFAULT_MAX_SCALE

    def __post_init__(self):
        if not (0 < self.min_scale <= self.max_scale):
            raise ValueError(f"Invalid scale bounds: [{self.min_scale}, {self.max_scale}]")
        if not (self.base_width > 0 and self.base_height > 0):
            raise ValueError(f"Base size must be positive, got {self.base_width}x{self.base_height}")
        if self.rotation_deg % 90 != 0:
            raise ValueError(f"Rotation must be a multiple of 90 degrees, got {self.rotation_deg}")
        self.rotation_deg = int(self.rotation_deg) % 360
        self.scale = self.clamp_scale(self.scale)

    @property
    def aspect_ratio(self) -> float:
        return self.base_width / self.base_height

    @property
    def displayed_size(self) -> Tuple[float, float]:
        """Size of the image layer after scaling (rotation not applied)."""
        return self.base_width * self.scale, self.base_height * self.scale

    def clamp_scale(self, value: float) -> float:
        """Bound a scale candidate to [min_scale, max_scale]. Never rejects."""
        if math.isnan(value):
            # Keep whatever was committed last
            return self.scale if self.min_scale <= self.scale <= self.max_scale else self.min_scale
        return max(self.min_scale, min(self.max_scale, value))

    def set_scale(self, value: float) -> float:
        self.scale = self.clamp_scale(value)
        return self.scale

    def rotate_step(self) -> int:
        """Advance rotation by a quarter turn clockwise."""
        self.rotation_deg = (self.rotation_deg + 90) % 360
        return self.rotation_deg

    def reset(self, natural_width: float, natural_height: float,
              fit_bound: float = DEFAULT_FIT_BOUND):
        """
        Fit the image inside fit_bound (uniformly, aspect preserved) and
        clear translation, scale and rotation.
        """
        if natural_width <= 0 or natural_height <= 0:
            raise ValueError(f"Image size must be positive, got {natural_width}x{natural_height}")
        if fit_bound <= 0:
            raise ValueError(f"fit_bound must be positive, got {fit_bound}")

        w, h = float(natural_width), float(natural_height)
        if w > fit_bound or h > fit_bound:
            fit = min(fit_bound / w, fit_bound / h)
            w *= fit
            h *= fit

        self.base_width = w
        self.base_height = h
        self.translate_x = 0.0
        self.translate_y = 0.0
        self.scale = self.clamp_scale(1.0)
        self.rotation_deg = 0

    def snapshot(self) -> "TransformState":
        """Independent copy, used as the start point of a gesture."""
        return replace(self)
