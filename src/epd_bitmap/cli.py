"""Command line interface for the e-paper bitmap converter."""

from __future__ import annotations

import argparse
import random
import sys
import warnings
from pathlib import Path
from typing import Iterable, List, Set

from .bmp import decode_bits, encode, expected_length, parse_header
from .converter import ConvertOptions, grid_to_image, load_grid
from .dither import DEFAULT_PATTERN_SIZE, DEFAULT_THRESHOLD, DitherMethod
from .errors import ConversionError
from .normalizer import TARGET_HEIGHT, TARGET_WIDTH

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".bmp", ".gif", ".webp"}


def iter_images(paths: Iterable[str], suffixes: Set[str] = IMAGE_SUFFIXES) -> List[Path]:
    results: List[Path] = []
    for raw in paths:
        path = Path(raw)
        if path.is_file():
            if path.suffix.lower() not in suffixes:
                raise ConversionError(f"Unsupported file type: {path}")
            results.append(path)
        elif path.is_dir():
            for entry in sorted(path.iterdir()):
                if entry.is_file() and entry.suffix.lower() in suffixes:
                    results.append(entry)
        else:
            raise ConversionError(f"Input path does not exist: {path}")
    if not results:
        raise ConversionError("No image files were found in the provided inputs.")
    return results


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Convert rendered images into 1-bit BMP files for e-paper displays.\n"
            f"Inputs must be the target size ({TARGET_WIDTH}x{TARGET_HEIGHT} by default) "
            "or exactly double it; double-size inputs are downscaled with nearest-neighbor "
            "sampling to keep super-sampled text sharp.\n"
            f"Every output for a {TARGET_WIDTH}x{TARGET_HEIGHT} target is "
            f"{expected_length(TARGET_WIDTH, TARGET_HEIGHT)} bytes."
        ),
        formatter_class=argparse.RawTextHelpFormatter,
    )

    parser.add_argument(
        "inputs",
        nargs="+",
        help="Image files or folders containing images (non-recursive)",
    )
    parser.add_argument(
        "-o",
        "--output-dir",
        help="Destination directory for .bmp files (required unless --info)",
    )
    parser.add_argument("--prefix", default="", help="Optional prefix for output filenames")
    parser.add_argument("--suffix", default="", help="Optional suffix for output filenames")
    parser.add_argument(
        "--method",
        choices=[method.value for method in DitherMethod],
        default=DitherMethod.FLOYD_STEINBERG.value,
        help="Dithering method for areas that are not edges",
    )
    parser.add_argument("--invert", action="store_true", help="Swap black and white")
    parser.add_argument("--width", type=int, default=TARGET_WIDTH, help="Display width in pixels")
    parser.add_argument("--height", type=int, default=TARGET_HEIGHT, help="Display height in pixels")
    parser.add_argument(
        "--threshold",
        type=int,
        default=DEFAULT_THRESHOLD,
        help="Cutoff for --method threshold (0-255)",
    )
    parser.add_argument(
        "--pattern-size",
        type=int,
        default=DEFAULT_PATTERN_SIZE,
        help="Bayer matrix size for --method bayer (2, 4 or 8)",
    )
    parser.add_argument(
        "--brightness",
        type=float,
        help="Brightness offset applied before conversion (-255 to 255)",
    )
    parser.add_argument(
        "--contrast",
        type=float,
        help="Contrast adjustment applied before conversion (-255 to 255)",
    )
    parser.add_argument("--seed", type=int, help="Seed for --method random")
    parser.add_argument(
        "--preview",
        action="store_true",
        help="Also write a black/white .png preview next to each .bmp",
    )
    parser.add_argument(
        "--info",
        action="store_true",
        help="Print the header of existing .bmp inputs instead of converting",
    )
    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Overwrite existing files without prompting",
    )
    return parser


def ensure_unique_names(paths: List[Path], prefix: str, suffix: str, extension: str) -> List[str]:
    names: List[str] = []
    seen = set()
    for path in paths:
        name = f"{prefix}{path.stem}{suffix}.{extension}"
        if name in seen:
            raise ConversionError(f"Duplicate output name would occur: {name}")
        seen.add(name)
        names.append(name)
    return names


def write_outputs(
    inputs: List[Path],
    names: List[str],
    options: ConvertOptions,
    output_dir: Path,
    force: bool,
    preview: bool,
) -> None:
    targets = [output_dir / name for name in names]
    if preview:
        targets += [(output_dir / name).with_suffix(".png") for name in names]
    conflicts = [str(target) for target in targets if target.exists() and not force]
    if conflicts:
        raise ConversionError(
            "Output files already exist (use --force to overwrite):\n" + "\n".join(conflicts)
        )

    output_dir.mkdir(parents=True, exist_ok=True)

    for src, name in zip(inputs, names):
        grid = load_grid(src, options)
        target = output_dir / name
        target.write_bytes(encode(grid, options.width, options.height))
        print(f"wrote {target}")
        if preview:
            preview_target = target.with_suffix(".png")
            grid_to_image(grid).save(preview_target)
            print(f"wrote {preview_target}")


def _hex_color(entry: bytes) -> str:
    blue, green, red = entry[0], entry[1], entry[2]
    return f"#{red:02X}{green:02X}{blue:02X}"


def print_info(paths: List[Path]) -> bool:
    """Print header fields of each bitmap; return False if any length is off."""

    consistent = True
    for path in paths:
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise ConversionError(f"Failed to read {path}: {exc}") from exc
        header = parse_header(data)
        expected = expected_length(header.width, abs(header.height), header.bits_per_pixel)
        print(f"{path}:")
        print(f"  size: {header.width}x{header.height}")
        print(f"  bits per pixel: {header.bits_per_pixel}")
        print(f"  length: {len(data)} bytes (expected {expected})")
        print(f"  palette: {' '.join(_hex_color(entry) for entry in header.palette)}")
        if header.bits_per_pixel == 1:
            grid = decode_bits(data)
            print(f"  black pixels: {sum(grid.bits)}")
        if len(data) != expected or header.file_length != expected:
            print(f"  length mismatch in {path}", file=sys.stderr)
            consistent = False
    return consistent


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.info and not args.output_dir:
        parser.error("-o/--output-dir is required unless --info is given")

    if args.info:
        try:
            return 0 if print_info(iter_images(args.inputs, {".bmp"})) else 1
        except ConversionError as exc:
            print(exc, file=sys.stderr)
            return 1

    try:
        options = ConvertOptions()
        options.dithering_method = DitherMethod.parse(args.method)
        options.inverted = args.invert
        options.width = args.width
        options.height = args.height
        options.threshold = args.threshold
        options.pattern_size = args.pattern_size
        options.brightness = args.brightness
        options.contrast = args.contrast
        if args.seed is not None:
            options.rng = random.Random(args.seed)
        if options.width <= 0 or options.height <= 0:
            raise ConversionError("Width and height must be positive")

        inputs = iter_images(args.inputs)
        output_dir = Path(args.output_dir)
        names = ensure_unique_names(inputs, args.prefix, args.suffix, "bmp")
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            try:
                write_outputs(inputs, names, options, output_dir, args.force, args.preview)
            finally:
                for warning in caught:
                    print(f"Warning: {warning.message}")
        return 0
    except ConversionError as exc:
        print(exc, file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
