"""Dithering strategies that reduce a luminance grid to black and white.

Every strategy takes a :class:`RasterImage` and returns a flat row-major list
of ``0`` (black) or ``255`` (white) values, the same size as the image. The
``inverted`` flag is applied as a final pass that swaps the two values.
"""

from __future__ import annotations

import random
import warnings
from enum import Enum
from typing import Callable, Dict, List

from .errors import ConversionError
from .normalizer import RasterImage

BLACK = 0
WHITE = 255
MIDPOINT = 128
DEFAULT_THRESHOLD = 128
DEFAULT_PATTERN_SIZE = 8

BAYER_MATRICES: Dict[int, List[List[int]]] = {
    2: [
        [0, 2],
        [3, 1],
    ],
    4: [
        [0, 8, 2, 10],
        [12, 4, 14, 6],
        [3, 11, 1, 9],
        [15, 7, 13, 5],
    ],
    8: [
        [0, 32, 8, 40, 2, 34, 10, 42],
        [48, 16, 56, 24, 50, 18, 58, 26],
        [12, 44, 4, 36, 14, 46, 6, 38],
        [60, 28, 52, 20, 62, 30, 54, 22],
        [3, 35, 11, 43, 1, 33, 9, 41],
        [51, 19, 59, 27, 49, 17, 57, 25],
        [15, 47, 7, 39, 13, 45, 5, 37],
        [63, 31, 55, 23, 61, 29, 53, 21],
    ],
}


class DitherMethod(str, Enum):
    FLOYD_STEINBERG = "floyd-steinberg"
    ATKINSON = "atkinson"
    BAYER = "bayer"
    RANDOM = "random"
    THRESHOLD = "threshold"

    @classmethod
    def parse(cls, value: "str | DitherMethod") -> "DitherMethod":
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower().replace("_", "-")
        for method in cls:
            if method.value == text:
                return method
        names = ", ".join(method.value for method in cls)
        raise ConversionError(f"Unknown dithering method: {value} (expected one of {names})")


def _invert(plane: List[int]) -> List[int]:
    return [WHITE - value for value in plane]


def threshold_dither(
    image: RasterImage, inverted: bool = False, cutoff: int = DEFAULT_THRESHOLD
) -> List[int]:
    if not (0 <= cutoff <= 255):
        raise ConversionError("Threshold must be between 0 and 255")
    plane = [BLACK if value < cutoff else WHITE for value in image.pixels]
    return _invert(plane) if inverted else plane


def floyd_steinberg(image: RasterImage, inverted: bool = False) -> List[int]:
    """Error diffusion with the classic 7/16, 3/16, 5/16, 1/16 weights."""

    width, height = image.width, image.height
    buffer = [float(value) for value in image.pixels]
    plane = [WHITE] * len(buffer)

    for y in range(height):
        row = y * width
        has_below = y + 1 < height
        for x in range(width):
            index = row + x
            old = buffer[index]
            new = BLACK if old < MIDPOINT else WHITE
            plane[index] = new
            error = old - new

            if x + 1 < width:
                buffer[index + 1] += error * 7 / 16
            if has_below:
                below = index + width
                if x > 0:
                    buffer[below - 1] += error * 3 / 16
                buffer[below] += error * 5 / 16
                if x + 1 < width:
                    buffer[below + 1] += error * 1 / 16

    return _invert(plane) if inverted else plane


def atkinson(image: RasterImage, inverted: bool = False) -> List[int]:
    """Error diffusion spreading ``floor(error / 8)`` to six neighbors.

    Only 6/8 of the error is passed on; the rest is dropped, which keeps
    highlights and shadows from bleeding as far as Floyd-Steinberg does.
    """

    width, height = image.width, image.height
    buffer = list(image.pixels)
    plane = [WHITE] * len(buffer)

    for y in range(height):
        row = y * width
        for x in range(width):
            index = row + x
            old = buffer[index]
            new = BLACK if old < MIDPOINT else WHITE
            plane[index] = new
            share = (old - new) // 8

            if x + 1 < width:
                buffer[index + 1] += share
            if x + 2 < width:
                buffer[index + 2] += share
            if y + 1 < height:
                below = index + width
                if x > 0:
                    buffer[below - 1] += share
                buffer[below] += share
                if x + 1 < width:
                    buffer[below + 1] += share
            if y + 2 < height:
                buffer[index + width * 2] += share

    return _invert(plane) if inverted else plane


def bayer_matrix_size(pattern_size: int) -> int:
    if pattern_size <= 2:
        size = 2
    elif pattern_size <= 4:
        size = 4
    else:
        size = 8
    if pattern_size != size:
        warnings.warn(f"Bayer pattern size {pattern_size} is not available; using {size}x{size}")
    return size


def normalized_bayer_matrix(size: int) -> List[List[int]]:
    matrix = BAYER_MATRICES[size]
    cells = size * size
    return [[(value * 255) // cells for value in row] for row in matrix]


def bayer(
    image: RasterImage, inverted: bool = False, pattern_size: int = DEFAULT_PATTERN_SIZE
) -> List[int]:
    size = bayer_matrix_size(pattern_size)
    matrix = normalized_bayer_matrix(size)
    width, height = image.width, image.height
    pixels = image.pixels
    plane = [WHITE] * len(pixels)

    for y in range(height):
        row = y * width
        thresholds = matrix[y % size]
        for x in range(width):
            if pixels[row + x] < thresholds[x % size]:
                plane[row + x] = BLACK

    return _invert(plane) if inverted else plane


def random_dither(
    image: RasterImage, inverted: bool = False, rng: random.Random | None = None
) -> List[int]:
    """Threshold every pixel against its own uniform draw in ``[0, 255)``."""

    rng = rng or random.Random()
    plane = [BLACK if value < rng.random() * 255 else WHITE for value in image.pixels]
    return _invert(plane) if inverted else plane


Strategy = Callable[..., List[int]]

STRATEGIES: Dict[DitherMethod, Strategy] = {
    DitherMethod.FLOYD_STEINBERG: floyd_steinberg,
    DitherMethod.ATKINSON: atkinson,
    DitherMethod.BAYER: bayer,
    DitherMethod.RANDOM: random_dither,
    DitherMethod.THRESHOLD: threshold_dither,
}


def apply_dither(
    image: RasterImage,
    method: "DitherMethod | str" = DitherMethod.FLOYD_STEINBERG,
    inverted: bool = False,
    threshold: int = DEFAULT_THRESHOLD,
    pattern_size: int = DEFAULT_PATTERN_SIZE,
    rng: random.Random | None = None,
) -> List[int]:
    """Run the strategy selected by ``method`` and return its plane."""

    method = DitherMethod.parse(method)
    strategy = STRATEGIES[method]

    if method is DitherMethod.THRESHOLD:
        return strategy(image, inverted, cutoff=threshold)
    if method is DitherMethod.BAYER:
        return strategy(image, inverted, pattern_size=pattern_size)
    if method is DitherMethod.RANDOM:
        return strategy(image, inverted, rng=rng)
    return strategy(image, inverted)
