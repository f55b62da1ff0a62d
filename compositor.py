"""
Export compositor.
Renders the fixed-size output (image layer + frame overlay) from the same
transform state the preview uses, independent of any on-screen layout.
"""

import io
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

from PIL import Image

from editor_config import EditorConfig
from image_assets import AssetNotReadyError, FrameAsset, ImageAsset
from transform_state import TransformState
from viewport_renderer import compute_placement

logger = logging.getLogger(__name__)

BACKGROUND_COLORS = {
    "white": (255, 255, 255, 255),
    "transparent": (0, 0, 0, 0),
}


@dataclass(frozen=True)
class DrawPlan:
    """Image draw parameters in export canvas pixels."""

    center_x: float
    center_y: float
    width: float  # Base size, before scale
    height: float
    scale: float
    rotation_deg: int

    @property
    def draw_size(self) -> Tuple[float, float]:
        return self.width * self.scale, self.height * self.scale


def draw_plan(state: TransformState, export_size: int, viewport_size: float) -> DrawPlan:
    """
    Placement of the image on the export canvas.

    Uses the viewport placement formula around the viewport center and maps it
    to export pixels with export_size / viewport_size. The ratio applies to the
    center and to the scale, never to the rotation.
    """
    ratio = export_size / viewport_size
    placement = compute_placement(state, (viewport_size / 2, viewport_size / 2))
    return DrawPlan(
        center_x=placement.center_x * ratio,
        center_y=placement.center_y * ratio,
        width=placement.width,
        height=placement.height,
        scale=placement.scale * ratio,
        rotation_deg=placement.rotation_deg,
    )


def _check_ready(image_asset: ImageAsset, frame_asset: FrameAsset):
    for label, asset in (("image", image_asset), ("frame", frame_asset)):
        if asset is None:
            raise AssetNotReadyError(f"No {label} selected")
        if not asset.is_ready:
            raise AssetNotReadyError(f"The {label} is {asset.state.value}, cannot export yet")


def _draw_image_layer(source: Image.Image, plan: DrawPlan, canvas_size: int,
                      high_quality: bool) -> Image.Image:
    """Draw source onto a transparent canvas with one affine transform."""
    draw_w, draw_h = plan.draw_size
    if draw_w <= 0 or draw_h <= 0:
        return Image.new("RGBA", (canvas_size, canvas_size), (0, 0, 0, 0))

    # Pre-reduce when shrinking; the affine sampler alone aliases badly
    if draw_w < source.width or draw_h < source.height:
        reduced = (max(1, round(draw_w)), max(1, round(draw_h)))
        resample = Image.LANCZOS if high_quality else Image.BILINEAR
        source = source.resize(reduced, resample)

    sx = draw_w / source.width
    sy = draw_h / source.height
    rad = math.radians(plan.rotation_deg)
    cos, sin = math.cos(rad), math.sin(rad)
    cx, cy = plan.center_x, plan.center_y
    half_w, half_h = source.width / 2, source.height / 2

    # Inverse mapping: canvas (x, y) -> source pixel
    data = (
        cos / sx, sin / sx, (-cos * cx - sin * cy) / sx + half_w,
        -sin / sy, cos / sy, (sin * cx - cos * cy) / sy + half_h,
    )
    resample = Image.BICUBIC if high_quality else Image.BILINEAR
    return source.transform((canvas_size, canvas_size), Image.Transform.AFFINE, data,
                            resample=resample, fillcolor=(0, 0, 0, 0))


def render(state: TransformState, image_asset: ImageAsset, frame_asset: FrameAsset,
           config: EditorConfig, high_quality: bool = True) -> Image.Image:
    """
    Composite the export image.

    Raises AssetNotReadyError if either asset is still loading or failed to decode.
    """
    _check_ready(image_asset, frame_asset)

    size = config.export_size
    plan = draw_plan(state, size, config.viewport_size)
    logger.debug("Draw plan: %s", plan)

    canvas = Image.new("RGBA", (size, size), BACKGROUND_COLORS[config.background])

    # Image first, frame last: the frame's transparent cutouts reveal the photo
    layer = _draw_image_layer(image_asset.image, plan, size, high_quality)
    canvas = Image.alpha_composite(canvas, layer)
    canvas = Image.alpha_composite(canvas, frame_asset.overlay(size, high_quality))
    return canvas


def encode_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, "PNG")
    return buffer.getvalue()


def export_png(state: TransformState, image_asset: ImageAsset, frame_asset: FrameAsset,
               config: EditorConfig) -> bytes:
    """Render and encode the export as PNG bytes."""
    return encode_png(render(state, image_asset, frame_asset, config))


def save_png(path: Path, state: TransformState, image_asset: ImageAsset,
             frame_asset: FrameAsset, config: EditorConfig) -> Path:
    """Render, encode and write the export. Nothing is written if rendering fails."""
    data = export_png(state, image_asset, frame_asset, config)
    path = Path(path)
    path.write_bytes(data)
    logger.info(
        "Exported %dx%d to %s (translate=(%.1f, %.1f), scale=%.3f, rotation=%d)",
        config.export_size, config.export_size, path,
        state.translate_x, state.translate_y, state.scale, state.rotation_deg,
    )
    return path
