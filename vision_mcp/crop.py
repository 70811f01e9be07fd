"""Cropping of images by fractional regions."""

from __future__ import annotations

import io
import math
from dataclasses import dataclass

from PIL import Image

_DECODABLE_FORMATS = ("PNG", "JPEG", "GIF")
_PNG_MODES = frozenset({"1", "L", "LA", "I", "I;16", "P", "RGB", "RGBA"})
_BOUNDS_EPSILON = 1e-9


class CropError(ValueError):
    """Raised when a crop region is invalid or the image cannot be cropped."""


@dataclass(frozen=True)
class CropRegion:
    """A rectangle in fractions of the image size; (0, 0) is the top-left corner."""

    x: float
    y: float
    width: float
    height: float

    def validate(self) -> None:
        """Raise CropError unless the region is non-empty and inside the image."""
        if self.x < 0 or self.y < 0 or self.width <= 0 or self.height <= 0:
            raise CropError(
                "crop region coordinates must be non-negative and width/height must be positive"
            )
        if (
            self.x > 1
            or self.y > 1
            or self.x + self.width > 1 + _BOUNDS_EPSILON
            or self.y + self.height > 1 + _BOUNDS_EPSILON
        ):
            raise CropError(
                "crop region exceeds image bounds (all values must be in [0.0, 1.0] "
                "and x+width, y+height must not exceed 1.0)"
            )


def _round(value: float) -> int:
    """Round half away from zero."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def _decode(image_data: bytes) -> Image.Image:
    try:
        image = Image.open(io.BytesIO(image_data), formats=_DECODABLE_FORMATS)
        image.load()
    except (OSError, ValueError, SyntaxError, Image.DecompressionBombError) as exc:
        raise CropError(f"decoding image for crop: {exc}") from exc
    return image


def crop(image_data: bytes, region: CropRegion) -> bytes:
    """Cut ``region`` out of a PNG, JPEG or GIF image and return it PNG-encoded."""
    region.validate()

    with _decode(image_data) as image:
        width, height = image.size
        x0 = _round(region.x * width)
        y0 = _round(region.y * height)
        x1 = min(x0 + _round(region.width * width), width)
        y1 = min(y0 + _round(region.height * height), height)

        if x0 >= x1 or y0 >= y1:
            raise CropError("crop region results in empty image")

        cropped = image.crop((x0, y0, x1, y1))

    if cropped.mode not in _PNG_MODES:
        cropped = cropped.convert("RGBA")

    buffer = io.BytesIO()
    try:
        cropped.save(buffer, format="PNG")
    except (OSError, ValueError) as exc:
        raise CropError(f"encoding cropped image: {exc}") from exc
    return buffer.getvalue()