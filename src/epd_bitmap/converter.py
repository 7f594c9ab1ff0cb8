"""Core conversion pipeline: source image -> luminance -> 1-bit grid -> BMP bytes."""

from __future__ import annotations

import random
from dataclasses import dataclass
from pathlib import Path

from PIL import Image

from .bmp import encode, expected_length
from .dither import DEFAULT_PATTERN_SIZE, DEFAULT_THRESHOLD, DitherMethod
from .normalizer import TARGET_HEIGHT, TARGET_WIDTH, Source, normalize, open_source
from .tone import FinalBinaryGrid, tone_map

# 800x480 at 1 bpp; the firmware rejects anything else.
DISPLAY_BITMAP_LENGTH = expected_length(TARGET_WIDTH, TARGET_HEIGHT)


@dataclass
class ConvertOptions:
    """Options for tone mapping and the hardware target size."""

    dithering_method: DitherMethod | str = DitherMethod.FLOYD_STEINBERG
    inverted: bool = False
    width: int = TARGET_WIDTH
    height: int = TARGET_HEIGHT
    threshold: int = DEFAULT_THRESHOLD  # threshold method only
    pattern_size: int = DEFAULT_PATTERN_SIZE  # bayer method only
    brightness: float | None = None
    contrast: float | None = None
    rng: random.Random | None = None  # random method only


def render_grid(source: Source, options: ConvertOptions | None = None) -> FinalBinaryGrid:
    """Run the normalizer and tone mapper, stopping short of encoding."""

    options = options or ConvertOptions()
    method = DitherMethod.parse(options.dithering_method)
    image = normalize(
        source,
        target=(options.width, options.height),
        brightness=options.brightness,
        contrast=options.contrast,
    )
    return tone_map(
        image,
        method,
        inverted=options.inverted,
        threshold=options.threshold,
        pattern_size=options.pattern_size,
        rng=options.rng,
    )


def render_monochrome_bitmap(source: Source, options: ConvertOptions | None = None) -> bytes:
    """Convert ``source`` into the display's 1-bit BMP file.

    ``source`` may be a Pillow image, encoded image bytes, or a path. It must
    be exactly the target size or exactly double it in both axes. The result
    is always :func:`~epd_bitmap.bmp.expected_length` bytes long for the
    configured width and height.
    """

    options = options or ConvertOptions()
    grid = render_grid(source, options)
    return encode(grid, options.width, options.height)


def grid_to_image(grid: FinalBinaryGrid) -> Image.Image:
    preview = Image.new("1", (grid.width, grid.height))
    preview.putdata([0 if bit else 255 for bit in grid.bits])
    return preview


def render_preview(source: Source, options: ConvertOptions | None = None) -> Image.Image:
    """Return the final black/white pixels as a mode ``"1"`` image."""

    return grid_to_image(render_grid(source, options))


def load_grid(path: str | Path, options: ConvertOptions | None = None) -> FinalBinaryGrid:
    with open_source(Path(path)) as img:
        return render_grid(img, options)


def convert_file_to_bmp(path: str | Path, options: ConvertOptions | None = None) -> bytes:
    options = options or ConvertOptions()
    return encode(load_grid(path, options), options.width, options.height)
