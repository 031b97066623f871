import numpy as np
import pytest

from pixel_abstraction.colour_convert import (
    lab_distance,
    lab_to_rgb,
    rgb_to_lab,
    rgb_to_lab_threaded,
)


def test_white_and_black():
    lab = rgb_to_lab(np.array([[255, 255, 255], [0, 0, 0]], dtype=np.uint8))
    assert lab[0, 0] == pytest.approx(100.0, abs=0.01)
    assert lab[0, 1:] == pytest.approx([0.0, 0.0], abs=0.01)
    assert lab[1] == pytest.approx([0.0, 0.0, 0.0], abs=1e-9)


def test_float_input_is_unit_range():
    as_u8 = rgb_to_lab(np.array([200, 30, 30], dtype=np.uint8))
    as_float = rgb_to_lab(np.array([200, 30, 30], dtype=np.float64) / 255.0)
    np.testing.assert_allclose(as_u8, as_float)


def test_round_trip_is_within_one_level():
    rng = np.random.default_rng(7)
    rgb = rng.integers(0, 256, size=(16, 16, 3), dtype=np.uint8)
    back = lab_to_rgb(rgb_to_lab(rgb))
    assert np.max(np.abs(back.astype(int) - rgb.astype(int))) <= 1


def test_non_finite_lab_renders_black():
    out = lab_to_rgb(np.array([[np.nan, 0.0, 0.0], [np.inf, np.inf, np.inf]]))
    np.testing.assert_array_equal(out, np.zeros((2, 3), dtype=np.uint8))


def test_threaded_matches_plain():
    rng = np.random.default_rng(3)
    rgb = rng.integers(0, 256, size=(300, 4, 3), dtype=np.uint8)
    np.testing.assert_allclose(rgb_to_lab_threaded(rgb, 4), rgb_to_lab(rgb))


def test_lab_distance_broadcasts():
    a = np.zeros((2, 1, 3))
    b = np.array([[3.0, 4.0, 0.0], [0.0, 0.0, 1.0]])
    d = lab_distance(a, b[None, :, :])
    assert d.shape == (2, 2)
    np.testing.assert_allclose(d[0], [5.0, 1.0])
