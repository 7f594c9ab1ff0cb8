import random

import pytest

from epd_bitmap.dither import (
    BLACK,
    WHITE,
    DitherMethod,
    apply_dither,
    atkinson,
    bayer,
    bayer_matrix_size,
    floyd_steinberg,
    normalized_bayer_matrix,
    random_dither,
    threshold_dither,
)
from epd_bitmap.errors import ConversionError
from epd_bitmap.normalizer import RasterImage

DETERMINISTIC = [
    DitherMethod.FLOYD_STEINBERG,
    DitherMethod.ATKINSON,
    DitherMethod.BAYER,
    DitherMethod.THRESHOLD,
]


def _flat(width: int, height: int, value: int) -> RasterImage:
    return RasterImage(width, height, bytes([value] * (width * height)))


def _gradient(width: int, height: int) -> RasterImage:
    pixels = bytes((x * 255) // (width - 1) for _y in range(height) for x in range(width))
    return RasterImage(width, height, pixels)


def test_parse_accepts_values_and_underscores():
    assert DitherMethod.parse("floyd-steinberg") is DitherMethod.FLOYD_STEINBERG
    assert DitherMethod.parse("Floyd_Steinberg") is DitherMethod.FLOYD_STEINBERG
    assert DitherMethod.parse(DitherMethod.BAYER) is DitherMethod.BAYER


def test_parse_rejects_unknown_method():
    with pytest.raises(ConversionError):
        DitherMethod.parse("halftone")


@pytest.mark.parametrize("method", DETERMINISTIC)
def test_planes_only_contain_black_and_white(method):
    plane = apply_dither(_gradient(32, 8), method)

    assert len(plane) == 32 * 8
    assert set(plane) <= {BLACK, WHITE}


@pytest.mark.parametrize("method", DETERMINISTIC)
def test_flat_white_stays_white(method):
    assert set(apply_dither(_flat(8, 8, 255), method)) == {WHITE}


@pytest.mark.parametrize(
    "method", [DitherMethod.FLOYD_STEINBERG, DitherMethod.ATKINSON, DitherMethod.THRESHOLD]
)
def test_flat_black_stays_black(method):
    assert set(apply_dither(_flat(8, 8, 0), method)) == {BLACK}


def test_bayer_zero_threshold_cell_leaves_black_as_white():
    # The matrix cell holding 0 never fires; the tone mapper clamps this later.
    plane = bayer(_flat(8, 8, 0))

    assert plane.count(WHITE) == 1
    assert plane[0] == WHITE


@pytest.mark.parametrize("method", DETERMINISTIC)
def test_deterministic_methods_repeat_exactly(method):
    image = _gradient(24, 6)

    assert apply_dither(image, method) == apply_dither(image, method)


@pytest.mark.parametrize("method", list(DitherMethod))
def test_inverted_flag_swaps_black_and_white(method):
    image = _gradient(16, 4)
    upright = apply_dither(image, method, rng=random.Random(3))
    flipped = apply_dither(image, method, inverted=True, rng=random.Random(3))

    assert flipped == [WHITE - value for value in upright]


def test_floyd_steinberg_pushes_error_to_the_right():
    # 100 -> black, +100 * 7/16 makes the next pixel 143.75 -> white.
    assert floyd_steinberg(RasterImage(2, 1, bytes([100, 100]))) == [BLACK, WHITE]


def test_floyd_steinberg_diffuses_below():
    # Error 100 from (0,0): 5/16 below gives 120 + 31.25 -> white.
    image = RasterImage(1, 2, bytes([100, 120]))

    assert floyd_steinberg(image) == [BLACK, WHITE]


def test_floyd_steinberg_mid_gray_is_roughly_half_black():
    plane = floyd_steinberg(_flat(32, 32, 128))
    ratio = plane.count(BLACK) / len(plane)

    assert 0.4 < ratio < 0.6


def test_atkinson_spreads_floored_eighths():
    # 120 -> black (+15 to the next two), 135 -> white (-15), 120 -> black.
    image = RasterImage(3, 1, bytes([120, 120, 120]))

    assert atkinson(image) == [BLACK, WHITE, BLACK]


def test_atkinson_reaches_two_rows_down():
    # 120 -> black sends +15 below and two below; 215 -> white sends -5 below.
    image = RasterImage(1, 3, bytes([120, 200, 120]))

    assert atkinson(image) == [BLACK, WHITE, WHITE]


def test_atkinson_floors_negative_error_toward_minus_infinity():
    # 200 -> white leaves -55; floor gives -7 (truncation would give -6), so 134 lands on 127.
    image = RasterImage(2, 1, bytes([200, 134]))

    assert atkinson(image) == [WHITE, BLACK]


def test_normalized_bayer_matrix_two_by_two():
    assert normalized_bayer_matrix(2) == [[0, 127], [191, 63]]


def test_bayer_matrix_size_selection():
    assert bayer_matrix_size(2) == 2
    assert bayer_matrix_size(4) == 4
    assert bayer_matrix_size(8) == 8
    with pytest.warns(UserWarning):
        assert bayer_matrix_size(1) == 2
    with pytest.warns(UserWarning):
        assert bayer_matrix_size(3) == 4
    with pytest.warns(UserWarning):
        assert bayer_matrix_size(16) == 8


def test_bayer_mid_gray_tiles_matrix_pattern():
    plane = bayer(_flat(8, 8, 128))

    # Normalized thresholds above 128 come from matrix values 33..63.
    assert plane.count(BLACK) == 31
    assert bayer(_flat(16, 16, 128)).count(BLACK) == 31 * 4


def test_bayer_two_by_two_pattern():
    plane = bayer(_flat(2, 2, 100), pattern_size=2)

    assert plane == [WHITE, BLACK, BLACK, WHITE]


def test_threshold_uses_cutoff():
    image = RasterImage(3, 1, bytes([49, 50, 51]))

    assert threshold_dither(image, cutoff=50) == [BLACK, WHITE, WHITE]
    assert apply_dither(image, "threshold", threshold=52) == [BLACK, BLACK, BLACK]


def test_threshold_rejects_out_of_range_cutoff():
    with pytest.raises(ConversionError):
        threshold_dither(_flat(2, 2, 10), cutoff=300)


def test_random_is_reproducible_with_seeded_generator():
    image = _gradient(32, 4)

    assert random_dither(image, rng=random.Random(7)) == random_dither(image, rng=random.Random(7))


def test_random_mid_gray_is_unbiased():
    plane = random_dither(_flat(64, 64, 128), rng=random.Random(1234))
    ratio = plane.count(BLACK) / len(plane)

    assert 0.45 < ratio < 0.55


def test_random_without_generator_follows_extremes():
    assert set(random_dither(_flat(8, 8, 255))) == {WHITE}
    assert random_dither(_flat(32, 32, 0)).count(BLACK) > 1000
