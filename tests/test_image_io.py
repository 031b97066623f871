import numpy as np
import pytest
from PIL import Image

from conftest import two_halves
from pixel_abstraction.core_types import Dimension
from pixel_abstraction.image_io import (
    LabImage,
    load_image_rgb,
    saturate_rgb,
    small_output_path,
    upsample_blocks,
    upsample_ratio,
    write_outputs,
)


def test_lab_image_rejects_bad_shapes():
    with pytest.raises(TypeError):
        LabImage(np.zeros((4, 4)))
    with pytest.raises(TypeError):
        LabImage(np.zeros((4, 4, 4)))
    with pytest.raises(ValueError):
        LabImage(np.zeros((0, 4, 3)))


def test_lab_image_is_read_only_copy():
    lab = two_halves()
    image = LabImage(lab)
    lab[0, 0] = 0.0
    assert image.colour_at(0, 0).l == 50.0
    with pytest.raises(ValueError):
        image.lab[0, 0, 0] = 1.0
    assert image.size == Dimension(8, 8)
    assert image.mean_colour().l == pytest.approx(60.0)


def test_upsample_blocks():
    raster = np.arange(4).reshape(2, 2)
    big = upsample_blocks(raster, 3)
    assert big.shape == (6, 6)
    assert np.all(big[:3, :3] == 0)
    assert np.all(big[3:, 3:] == 3)
    assert upsample_blocks(raster, 0) is raster


def test_upsample_ratio_uses_width():
    assert upsample_ratio(Dimension(100, 64), Dimension(10, 16)) == 4
    assert upsample_ratio(Dimension(10, 10), Dimension(10, 10)) == 1


def test_saturation_boost_is_clipped():
    red = np.array([[[255, 0, 0]]], dtype=np.uint8)
    np.testing.assert_array_equal(saturate_rgb(red), red)


def test_saturation_boost_increases_saturation():
    muted = np.array([[[150, 120, 120]]], dtype=np.uint8)
    boosted = saturate_rgb(muted)
    spread_before = int(muted.max()) - int(muted.min())
    spread_after = int(boosted.max()) - int(boosted.min())
    assert spread_after > spread_before
    assert boosted[0, 0, 0] >= boosted[0, 0, 1]


def test_write_outputs(tmp_path):
    raster = two_halves(2, 4)
    big_path, small_path = write_outputs(raster, tmp_path / "out" / "result.jpg", 3)

    assert big_path == tmp_path / "out" / "result.png"
    assert small_path == small_output_path(big_path)
    with Image.open(big_path) as big, Image.open(small_path) as small:
        assert big.size == (12, 6)
        assert small.size == (4, 2)


def test_non_finite_raster_renders(tmp_path):
    raster = np.full((2, 2, 3), np.nan)
    big_path, _ = write_outputs(raster, tmp_path / "nan.png", 1)
    with Image.open(big_path) as im:
        np.testing.assert_array_equal(np.array(im), np.zeros((2, 2, 3), dtype=np.uint8))


def test_load_round_trip(tmp_path):
    rgb = np.zeros((3, 5, 3), dtype=np.uint8)
    rgb[:, :2] = (200, 30, 30)
    path = tmp_path / "in.png"
    Image.fromarray(rgb).save(path)

    loaded = load_image_rgb(path)
    np.testing.assert_array_equal(loaded, rgb)
    image = LabImage.from_path(path)
    assert image.size == Dimension(3, 5)
