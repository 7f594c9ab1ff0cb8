"""Merge luminance, edge detection and a dither plane into final 1-bit pixels."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import List

from .dither import (
    DEFAULT_PATTERN_SIZE,
    DEFAULT_THRESHOLD,
    MIDPOINT,
    WHITE,
    DitherMethod,
    apply_dither,
)
from .errors import EncodingInvariantError
from .normalizer import RasterImage

# Pixels within this distance of pure black or white count as "extreme".
EDGE_FUZZINESS = 20
PURE_BLACK_BELOW = 10
PURE_WHITE_ABOVE = 240

BIT_WHITE = 0
BIT_BLACK = 1


@dataclass(frozen=True)
class FinalBinaryGrid:
    """Row-major bits, ``1`` for black and ``0`` for white."""

    width: int
    height: int
    bits: List[int]

    def __post_init__(self) -> None:
        if len(self.bits) != self.width * self.height:
            raise EncodingInvariantError(
                f"Grid holds {len(self.bits)} bits, expected {self.width}x{self.height}"
            )

    def at(self, x: int, y: int) -> int:
        return self.bits[y * self.width + x]

    def inverted(self) -> "FinalBinaryGrid":
        return FinalBinaryGrid(self.width, self.height, [bit ^ 1 for bit in self.bits])


def _is_extreme(value: int) -> bool:
    return value < EDGE_FUZZINESS or value > 255 - EDGE_FUZZINESS


def detect_edges(image: RasterImage) -> List[bool]:
    """Mark interior pixels that touch a near-black or near-white value.

    A pixel is marked when it or any of its four direct neighbors lies within
    :data:`EDGE_FUZZINESS` of either extreme. Border pixels are never marked.
    """

    width, height = image.width, image.height
    extreme = [_is_extreme(value) for value in image.pixels]
    mask = [False] * len(extreme)

    for y in range(1, height - 1):
        row = y * width
        for x in range(1, width - 1):
            index = row + x
            mask[index] = (
                extreme[index]
                or extreme[index - 1]
                or extreme[index + 1]
                or extreme[index - width]
                or extreme[index + width]
            )

    return mask


def decide_bit(luminance: int, is_edge: bool, dithered: int) -> int:
    if luminance < PURE_BLACK_BELOW:
        return BIT_BLACK
    if luminance > PURE_WHITE_ABOVE:
        return BIT_WHITE
    if is_edge:
        # Strokes skip the dither pattern to stay legible.
        return BIT_BLACK if luminance < MIDPOINT else BIT_WHITE
    return BIT_WHITE if dithered == WHITE else BIT_BLACK


def merge(image: RasterImage, edges: List[bool], plane: List[int]) -> FinalBinaryGrid:
    if not (len(image.pixels) == len(edges) == len(plane)):
        raise EncodingInvariantError("Edge mask and dither plane must match the image size")
    bits = [
        decide_bit(luminance, is_edge, dithered)
        for luminance, is_edge, dithered in zip(image.pixels, edges, plane)
    ]
    return FinalBinaryGrid(image.width, image.height, bits)


def tone_map(
    image: RasterImage,
    method: "DitherMethod | str" = DitherMethod.FLOYD_STEINBERG,
    inverted: bool = False,
    threshold: int = DEFAULT_THRESHOLD,
    pattern_size: int = DEFAULT_PATTERN_SIZE,
    rng: random.Random | None = None,
) -> FinalBinaryGrid:
    """Reduce ``image`` to a :class:`FinalBinaryGrid`.

    The dither plane is computed upright and ``inverted`` is applied once to
    the merged grid, so an inverted result is the exact complement of the
    upright one for every deterministic method.
    """

    edges = detect_edges(image)
    plane = apply_dither(
        image,
        method,
        inverted=False,
        threshold=threshold,
        pattern_size=pattern_size,
        rng=rng,
    )
    grid = merge(image, edges, plane)
    return grid.inverted() if inverted else grid
