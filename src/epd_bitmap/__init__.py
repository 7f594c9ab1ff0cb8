"""Monochrome BMP converter for e-paper displays.

This package turns a rendered raster image into the fixed-size 1-bit BMP file
an e-paper controller's firmware expects. It can be invoked through the CLI
(``python -m epd_bitmap``) or imported to convert a single image into bytes.
"""

from .bmp import BitmapHeader, decode_bits, encode, expected_length, parse_header, row_bytes
from .converter import (
    DISPLAY_BITMAP_LENGTH,
    ConvertOptions,
    convert_file_to_bmp,
    render_grid,
    render_monochrome_bitmap,
    render_preview,
)
from .dither import DitherMethod, apply_dither
from .errors import ConversionError, DecodeError, DimensionError, EncodingInvariantError
from .normalizer import TARGET_HEIGHT, TARGET_WIDTH, RasterImage, normalize
from .tone import FinalBinaryGrid, detect_edges, tone_map

__all__ = [
    "BitmapHeader",
    "ConversionError",
    "ConvertOptions",
    "DISPLAY_BITMAP_LENGTH",
    "DecodeError",
    "DimensionError",
    "DitherMethod",
    "EncodingInvariantError",
    "FinalBinaryGrid",
    "RasterImage",
    "TARGET_HEIGHT",
    "TARGET_WIDTH",
    "apply_dither",
    "convert_file_to_bmp",
    "decode_bits",
    "detect_edges",
    "encode",
    "expected_length",
    "normalize",
    "parse_header",
    "render_grid",
    "render_monochrome_bitmap",
    "render_preview",
    "row_bytes",
    "tone_map",
]
