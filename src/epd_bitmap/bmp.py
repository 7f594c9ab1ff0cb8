"""1-bit BMP writer matching the e-paper firmware's decoder.

Reference: file layout for a W x H, 1 bpp bitmap
Offset | Size | Field              | Value
-------|------|--------------------|-----------------------------------------
0      | 2    | Signature          | "BM"
2      | 4    | File length        | 62 + row_bytes * H
6      | 4    | Reserved           | 0
10     | 4    | Pixel data offset  | 62 (14 + 40 + 8)
14     | 4    | Info header length | 40
18     | 4    | Width              | W (signed)
22     | 4    | Height             | H (signed, positive; rows bottom-up)
26     | 2    | Planes             | 1
28     | 2    | Bits per pixel     | 1
30     | 4    | Compression        | 0
34     | 4    | Pixel data length  | row_bytes * H
38     | 8    | X/Y resolution     | 0, 0
46     | 4    | Total colors       | 2
50     | 4    | Important colors   | 2
54     | 4    | Palette[0]         | white, BGR0
58     | 4    | Palette[1]         | black, BGR0
62     | ...  | Pixel data         | bottom-up rows, MSB first, 1 = black
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import List, Tuple

from .errors import DecodeError, EncodingInvariantError
from .tone import FinalBinaryGrid

SIGNATURE = b"BM"
FILE_HEADER_SIZE = 14
INFO_HEADER_SIZE = 40
BITS_PER_PIXEL = 1
PALETTE: Tuple[bytes, ...] = (
    bytes([0xFF, 0xFF, 0xFF, 0x00]),  # 0: white
    bytes([0x00, 0x00, 0x00, 0x00]),  # 1: black
)
PALETTE_SIZE = 4 * len(PALETTE)
PIXEL_DATA_OFFSET = FILE_HEADER_SIZE + INFO_HEADER_SIZE + PALETTE_SIZE

_FILE_HEADER = struct.Struct("<2sIII")
_INFO_HEADER = struct.Struct("<IiiHHIIiiII")


@dataclass(frozen=True)
class BitmapHeader:
    file_length: int
    pixel_offset: int
    width: int
    height: int
    planes: int
    bits_per_pixel: int
    compression: int
    image_size: int
    colors_used: int
    colors_important: int
    palette: Tuple[bytes, ...]


def row_bytes(width: int, bits_per_pixel: int = BITS_PER_PIXEL) -> int:
    """Bytes per stored row, padded to a 32-bit boundary."""

    return (width * bits_per_pixel + 31) // 32 * 4


def expected_length(width: int, height: int, bits_per_pixel: int = BITS_PER_PIXEL) -> int:
    colors = 1 << bits_per_pixel
    return FILE_HEADER_SIZE + INFO_HEADER_SIZE + 4 * colors + row_bytes(width, bits_per_pixel) * height


def _pack_row(bits: List[int], start: int, width: int, out: bytearray, offset: int) -> None:
    for x in range(0, width, 8):
        byte = 0
        for bit in range(min(8, width - x)):
            if bits[start + x + bit]:
                byte |= 0x80 >> bit
        out[offset + (x >> 3)] = byte


def encode(grid: FinalBinaryGrid, width: int, height: int) -> bytes:
    """Pack ``grid`` into a complete bitmap file of :func:`expected_length` bytes."""

    if grid.width != width or grid.height != height:
        raise EncodingInvariantError(
            f"Grid is {grid.width}x{grid.height} but the target is {width}x{height}"
        )

    stride = row_bytes(width)
    image_size = stride * height
    total = expected_length(width, height)
    buffer = bytearray(total)

    _FILE_HEADER.pack_into(buffer, 0, SIGNATURE, total, 0, PIXEL_DATA_OFFSET)
    _INFO_HEADER.pack_into(
        buffer,
        FILE_HEADER_SIZE,
        INFO_HEADER_SIZE,
        width,
        height,
        1,
        BITS_PER_PIXEL,
        0,
        image_size,
        0,
        0,
        len(PALETTE),
        len(PALETTE),
    )
    offset = FILE_HEADER_SIZE + INFO_HEADER_SIZE
    for entry in PALETTE:
        buffer[offset : offset + 4] = entry
        offset += 4

    for y in range(height):
        source_row = (height - 1 - y) * width
        _pack_row(grid.bits, source_row, width, buffer, PIXEL_DATA_OFFSET + y * stride)

    if len(buffer) != total:
        raise EncodingInvariantError(
            f"Encoded bitmap is {len(buffer)} bytes; the display expects {total}"
        )
    return bytes(buffer)


def parse_header(data: bytes) -> BitmapHeader:
    """Read the headers and palette of a bitmap produced by :func:`encode`."""

    if len(data) < PIXEL_DATA_OFFSET:
        raise DecodeError(f"Bitmap is truncated ({len(data)} bytes)")
    signature, file_length, _reserved, pixel_offset = _FILE_HEADER.unpack_from(data, 0)
    if signature != SIGNATURE:
        raise DecodeError(f"Invalid bitmap signature: {signature!r}")
    (
        info_size,
        width,
        height,
        planes,
        bits_per_pixel,
        compression,
        image_size,
        _x_ppm,
        _y_ppm,
        colors_used,
        colors_important,
    ) = _INFO_HEADER.unpack_from(data, FILE_HEADER_SIZE)
    if info_size != INFO_HEADER_SIZE:
        raise DecodeError(f"Unsupported info header size: {info_size}")

    # Only indexed depths carry a palette; 0 means "all colors of the depth".
    max_colors = 1 << bits_per_pixel if bits_per_pixel <= 8 else 0
    colors = colors_used or max_colors
    if colors > max_colors:
        raise DecodeError(
            f"Palette declares {colors_used} colors; {bits_per_pixel} bpp allows {max_colors}"
        )
    palette_start = FILE_HEADER_SIZE + INFO_HEADER_SIZE
    if palette_start + 4 * colors > len(data):
        raise DecodeError(f"Palette of {colors} entries is truncated")
    palette = tuple(
        bytes(data[palette_start + i * 4 : palette_start + i * 4 + 4]) for i in range(colors)
    )
    return BitmapHeader(
        file_length=file_length,
        pixel_offset=pixel_offset,
        width=width,
        height=height,
        planes=planes,
        bits_per_pixel=bits_per_pixel,
        compression=compression,
        image_size=image_size,
        colors_used=colors_used,
        colors_important=colors_important,
        palette=palette,
    )


def decode_bits(data: bytes) -> FinalBinaryGrid:
    """Unpack the pixel section of a 1 bpp bitmap into a top-down grid."""

    header = parse_header(data)
    if header.bits_per_pixel != BITS_PER_PIXEL:
        raise DecodeError(f"Only 1 bpp bitmaps are supported, got {header.bits_per_pixel}")
    width, height = header.width, header.height
    stride = row_bytes(width)
    if len(data) < header.pixel_offset + stride * height:
        raise DecodeError("Bitmap pixel data is truncated")

    bits = [0] * (width * height)
    for y in range(height):
        row_start = header.pixel_offset + (height - 1 - y) * stride
        for x in range(width):
            byte = data[row_start + (x >> 3)]
            bits[y * width + x] = (byte >> (7 - (x & 7))) & 1
    return FinalBinaryGrid(width, height, bits)
