import numpy as np
import pytest

from conftest import LEFT, RIGHT
from pixel_abstraction.core_types import Dimension, LabColor, PaletteColor
from pixel_abstraction.engine.associate import associate, renormalise
from pixel_abstraction.palette import Palette
from pixel_abstraction.superpixels import SuperpixelGrid


def _palette(*colours, probability=None):
    palette = Palette()
    p = probability if probability is not None else 1.0 / len(colours)
    for colour in colours:
        palette.add(PaletteColor(colour, p))
    return palette


def _grid(lab, palette):
    return SuperpixelGrid.regular(lab, Dimension(4, 4), palette.keys())


def test_rows_and_marginals_sum_to_one(halves_lab):
    palette = _palette(LEFT, RIGHT, LabColor(60.0, 0.0, 0.0))
    grid = _grid(halves_lab, palette)

    assert associate(grid, palette, 40.0) is False

    for sp in grid:
        assert set(sp.palette_probabilities) == set(palette.keys())
        assert sum(sp.palette_probabilities.values()) == pytest.approx(1.0)
        best = max(sp.palette_probabilities.values())
        assert sp.palette_probabilities[sp.palette_key] == best
    assert palette.total_probability() == pytest.approx(1.0)


def test_chosen_key_follows_colour(halves_lab):
    palette = _palette(LEFT, RIGHT)
    grid = _grid(halves_lab, palette)
    associate(grid, palette, 5.0)
    keys = grid.palette_keys()
    assert np.all(keys[:, :2] == 0)
    assert np.all(keys[:, 2:] == 1)


def test_association_is_a_fixed_point(halves_lab):
    palette = _palette(LEFT, RIGHT)
    grid = _grid(halves_lab, palette)

    associate(grid, palette, 30.0)
    first = [dict(sp.palette_probabilities) for sp in grid]
    first_keys = grid.palette_keys()
    associate(grid, palette, 30.0)
    second = [dict(sp.palette_probabilities) for sp in grid]

    for a, b in zip(first, second):
        for key in a:
            assert a[key] == pytest.approx(b[key])
    np.testing.assert_array_equal(first_keys, grid.palette_keys())
    assert palette[0].probability == pytest.approx(0.5)


def test_nan_marginal_is_reported(halves_lab):
    palette = _palette(LEFT, RIGHT, probability=0.0)
    grid = _grid(halves_lab, palette)
    before = grid.palette_keys()

    assert associate(grid, palette, 10.0) is True

    assert any(np.isnan(palette[k].probability) for k in palette)
    # rows without a usable normaliser keep their previous choice
    np.testing.assert_array_equal(grid.palette_keys(), before)


def test_renormalise_ties_go_to_last_maximum():
    probs = np.array([[0.5, 0.5], [0.2, 0.8], [np.nan, np.nan]])
    normalised, choice = renormalise(probs)
    assert choice.tolist() == [1, 1, -1]
    np.testing.assert_allclose(normalised[:2].sum(axis=1), 1.0)
    assert np.all(np.isnan(normalised[2]))
