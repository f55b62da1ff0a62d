"""
Image and frame assets.
Each asset carries a readiness future (Loading -> Ready | Failed) so the
exporter can refuse to draw anything that has not finished decoding.
"""

import io
import logging
from concurrent.futures import Future
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple, Union

from PIL import Image, ImageOps

logger = logging.getLogger(__name__)

ImageSource = Union[str, Path, bytes, io.IOBase]


class DecodeError(Exception):
    """The uploaded file could not be decoded as an image."""


class AssetNotReadyError(RuntimeError):
    """An asset was used before it finished decoding, or after decoding failed."""


class AssetState(Enum):
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


def decode_image(source: ImageSource) -> Image.Image:
    """Decode a path, bytes or file object into a fully loaded RGBA image."""
    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(source)
    try:
        with Image.open(source) as img:
            img = ImageOps.exif_transpose(img)
            rgba = img.convert("RGBA")
            rgba.load()
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise DecodeError(f"Cannot decode image: {e}") from e

    if rgba.width == 0 or rgba.height == 0:
        raise DecodeError("Image has no pixels")
    return rgba


class ImageAsset:
    """A decoded raster image owned by the host and referenced by the renderers."""

    def __init__(self, name: str = ""):
        self.name = name
        self._future: Future = Future()

    def __repr__(self):
        return f"{type(self).__name__}({self.name!r}, {self.state.value})"

    @classmethod
    def from_source(cls, source: ImageSource, name: Optional[str] = None) -> "ImageAsset":
        """Decode immediately. Decode problems leave the asset Failed instead of raising."""
        if name is None:
            name = Path(source).name if isinstance(source, (str, Path)) else ""
        asset = cls(name)
        try:
            asset.resolve(decode_image(source))
        except DecodeError as e:
            logger.warning("Failed to decode %s: %s", name or "image", e)
            asset.fail(e)
        return asset

    @property
    def state(self) -> AssetState:
        if not self._future.done():
            return AssetState.LOADING
        if self._future.exception() is not None:
            return AssetState.FAILED
        return AssetState.READY

    @property
    def is_ready(self) -> bool:
        return self.state is AssetState.READY

    @property
    def error(self) -> Optional[BaseException]:
        if not self._future.done():
            return None
        return self._future.exception()

    @property
    def image(self) -> Image.Image:
        if not self.is_ready:
            raise AssetNotReadyError(f"{self!r} is not ready")
        return self._future.result()

    @property
    def natural_size(self) -> Tuple[int, int]:
        return self.image.size

    def resolve(self, image: Image.Image):
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        self._future.set_result(image)
        logger.debug("%r ready (%dx%d)", self, image.width, image.height)

    def fail(self, error: BaseException):
        self._future.set_exception(error)

    def when_ready(self, callback: Callable[["ImageAsset"], None]):
        """Run callback(asset) once the asset settles; immediately if it already has."""
        self._future.add_done_callback(lambda _: callback(self))


class FrameAsset(ImageAsset):
    """The frame overlay. Keeps resized copies so preview redraws stay cheap."""

    def __init__(self, name: str = ""):
        super().__init__(name)
        self._overlay_cache: Dict[Tuple[int, bool], Image.Image] = {}

    def overlay(self, size: int, high_quality: bool = True) -> Image.Image:
        """Frame stretched to size x size."""
        key = (size, high_quality)
        if key not in self._overlay_cache:
            frame = self.image
            if frame.size != (size, size):
                resample = Image.LANCZOS if high_quality else Image.BILINEAR
                frame = frame.resize((size, size), resample)
            self._overlay_cache[key] = frame
        return self._overlay_cache[key]
