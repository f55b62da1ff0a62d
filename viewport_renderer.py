"""
Viewport placement for the live preview.
Projects a TransformState into the on-screen position of the image layer.
"""

import math
from dataclasses import dataclass
from typing import List, Tuple

from transform_state import TransformState

Point = Tuple[float, float]


@dataclass(frozen=True)
class Placement:
    """
    Where the image layer sits in the viewport.

    The image is drawn centered on (center_x, center_y) with size
    (width, height), scaled by `scale` and rotated clockwise by
    `rotation_deg` about that same center.
    """

    center_x: float
    center_y: float
    width: float
    height: float
    scale: float
    rotation_deg: int

    @property
    def displayed_size(self) -> Tuple[float, float]:
        return self.width * self.scale, self.height * self.scale

    def _cos_sin(self) -> Tuple[float, float]:
        rad = math.radians(self.rotation_deg)
        return math.cos(rad), math.sin(rad)

    def map_from_local(self, x: float, y: float) -> Point:
        """Image-local point (unscaled units, origin at image center) -> viewport."""
        cos, sin = self._cos_sin()
        sx, sy = x * self.scale, y * self.scale
        return (self.center_x + sx * cos - sy * sin,
                self.center_y + sx * sin + sy * cos)

    def map_to_local(self, x: float, y: float) -> Point:
        """Viewport point -> image-local point (inverse of map_from_local)."""
        cos, sin = self._cos_sin()
        dx, dy = x - self.center_x, y - self.center_y
        return ((dx * cos + dy * sin) / self.scale,
                (-dx * sin + dy * cos) / self.scale)

    def corners(self) -> List[Point]:
        """Rotated corners in viewport units: top-left, top-right, bottom-right, bottom-left."""
        hw, hh = self.width / 2, self.height / 2
        return [self.map_from_local(x, y) for x, y in ((-hw, -hh), (hw, -hh), (hw, hh), (-hw, hh))]

    def bounds(self) -> Tuple[float, float, float, float]:
        """Axis-aligned (left, top, right, bottom) around the rotated image."""
        xs, ys = zip(*self.corners())
        return min(xs), min(ys), max(xs), max(ys)

    def contains(self, x: float, y: float) -> bool:
        lx, ly = self.map_to_local(x, y)
        return abs(lx) <= self.width / 2 and abs(ly) <= self.height / 2


def compute_placement(state: TransformState, viewport_center: Point) -> Placement:
    """Pure projection of the transform state around the viewport's visual origin."""
    cx, cy = viewport_center
    return Placement(
        center_x=cx + state.translate_x,
        center_y=cy + state.translate_y,
        width=state.base_width,
        height=state.base_height,
        scale=state.scale,
        rotation_deg=state.rotation_deg,
    )
