"""Bring a rendered source image down to a single-channel grid at target size."""

from __future__ import annotations

import io
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple, Union

from PIL import Image, UnidentifiedImageError

from .errors import ConversionError, DecodeError, DimensionError

Source = Union[Image.Image, bytes, bytearray, str, Path]

TARGET_WIDTH = 800
TARGET_HEIGHT = 480


@dataclass(frozen=True)
class RasterImage:
    """Row-major luminance pixels (0-255), one byte per pixel."""

    width: int
    height: int
    pixels: bytes

    def __post_init__(self) -> None:
        if len(self.pixels) != self.width * self.height:
            raise DimensionError(
                f"Pixel buffer holds {len(self.pixels)} values, "
                f"expected {self.width}x{self.height}"
            )

    def at(self, x: int, y: int) -> int:
        return self.pixels[y * self.width + x]


def open_source(source: Source) -> Image.Image:
    """Return a fully loaded Pillow image for ``source``."""

    if isinstance(source, Image.Image):
        return source

    try:
        if isinstance(source, (bytes, bytearray)):
            image = Image.open(io.BytesIO(bytes(source)))
        else:
            image = Image.open(Path(source))
        # Force pixel decoding now so truncated data fails here, not mid-pipeline.
        image.load()
    except FileNotFoundError as exc:
        raise DecodeError(f"Input file not found: {source}") from exc
    except (UnidentifiedImageError, OSError, SyntaxError, EOFError, ValueError) as exc:
        raise DecodeError(f"Failed to decode source image: {exc}") from exc
    return image


def _flatten_alpha(image: Image.Image) -> Image.Image:
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        canvas = Image.new("RGBA", rgba.size, (255, 255, 255, 255))
        canvas.alpha_composite(rgba)
        return canvas.convert("RGB")
    return image


WIDE_GRAY_MODES = ("I", "I;16", "I;16L", "I;16B", "I;16N")


def _to_eight_bit(image: Image.Image) -> Image.Image:
    """Rescale 16-bit grayscale sources to 0-255; ``convert("L")`` would clip them."""

    if image.mode not in WIDE_GRAY_MODES:
        return image
    return image.convert("I").point(lambda v: v * (1 / 257) + 0.5).convert("L")


def _clamp(value: float) -> int:
    return max(0, min(255, int(round(value))))


def _contrast_factor(contrast: float) -> float:
    return (259.0 * (contrast + 255.0)) / (255.0 * (259.0 - contrast))


def adjust_levels(
    image: Image.Image, brightness: float | None = None, contrast: float | None = None
) -> Image.Image:
    """Apply the brightness offset and contrast curve before luminance conversion.

    Both values use the -255..255 range. Brightness is added to every channel
    first, then contrast scales each channel around the 128 midpoint.
    """

    if brightness is None and contrast is None:
        return image

    if brightness is not None and not (-255 <= brightness <= 255):
        raise ConversionError("Brightness must be between -255 and 255")
    if contrast is not None and not (-255 <= contrast <= 255):
        raise ConversionError("Contrast must be between -255 and 255")

    offset = brightness or 0.0
    factor = _contrast_factor(contrast) if contrast is not None else 1.0
    lut = [
        _clamp(factor * (_clamp(value + offset) - 128) + 128) for value in range(256)
    ]
    image = image.convert("RGB")
    return image.point(lut * len(image.getbands()))


def scale_to_target(
    image: Image.Image, declared_size: Tuple[int, int], target: Tuple[int, int]
) -> Image.Image:
    declared_width, declared_height = declared_size
    target_width, target_height = target

    if declared_width == target_width and declared_height == target_height:
        return image

    if declared_width == target_width * 2 and declared_height == target_height * 2:
        # Nearest keeps single-pixel strokes from super-sampled text crisp.
        return image.resize(target, Image.NEAREST)

    raise DimensionError(
        f"Source is {declared_width}x{declared_height}; expected "
        f"{target_width}x{target_height} or {target_width * 2}x{target_height * 2}"
    )


def normalize(
    source: Source,
    declared_width: int | None = None,
    declared_height: int | None = None,
    target: Tuple[int, int] = (TARGET_WIDTH, TARGET_HEIGHT),
    brightness: float | None = None,
    contrast: float | None = None,
) -> RasterImage:
    """Decode ``source`` and return its luminance grid at ``target`` size.

    ``declared_width``/``declared_height`` default to the decoded image size.
    A declaration that disagrees with the decoded pixels is rejected rather
    than trusted.
    """

    image = open_source(source)
    width, height = image.size
    if declared_width is None:
        declared_width = width
    if declared_height is None:
        declared_height = height
    if (declared_width, declared_height) != (width, height):
        raise DimensionError(
            f"Declared size {declared_width}x{declared_height} does not match "
            f"decoded size {width}x{height}"
        )

    try:
        image = scale_to_target(image, (width, height), target)
        image = _to_eight_bit(image)
        image = _flatten_alpha(image)
        image = adjust_levels(image, brightness, contrast)
        gray = image.convert("L")
        pixels = gray.tobytes()
    except OSError as exc:
        raise DecodeError(f"Failed to read source pixels: {exc}") from exc

    return RasterImage(width=target[0], height=target[1], pixels=pixels)
