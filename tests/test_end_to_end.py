import numpy as np
import pytest

from conftest import LEFT, RIGHT, two_halves
from pixel_abstraction.core_types import Dimension
from pixel_abstraction.engine import Processor, RunConfig, pixelate, run_processor
from pixel_abstraction.image_io import LabImage


def test_two_halves_converge_to_two_colours():
    source = LabImage(two_halves())
    processor = Processor(source, RunConfig(Dimension(4, 4), 2))

    result = run_processor(processor)

    assert processor.converged
    assert result.iterations < 1000
    assert len(result.palette) == 2
    assert result.keys.shape == (4, 4)

    by_side = {}
    for key, colour in result.palette.items():
        if colour.distance(LEFT) < 1.0:
            by_side["left"] = key
        elif colour.distance(RIGHT) < 1.0:
            by_side["right"] = key
    assert set(by_side) == {"left", "right"}

    for sp in processor.grid:
        side = "left" if sp.location.column < 4 else "right"
        assert sp.palette_key == by_side[side]

    assert result.raster.shape == (4, 4, 3)
    assert np.all(np.isfinite(result.raster))


def test_pixelate_reports_iterations_and_frames(tmp_path):
    seen = []
    result = pixelate(
        LabImage(two_halves()),
        Dimension(4, 4),
        2,
        frames_dir=tmp_path,
        stem="halves",
        on_iteration=lambda p: seen.append(p.iteration),
    )
    assert seen == list(range(1, result.iterations + 1))
    for i in range(result.iterations):
        assert (tmp_path / f"intermediate_halves_{i}.png").exists()


def test_output_larger_than_input_is_rejected():
    with pytest.raises(ValueError):
        Processor(LabImage(two_halves(4, 4)), RunConfig(Dimension(8, 8), 2))


def test_invalid_colour_count_is_rejected():
    with pytest.raises(ValueError):
        pixelate(LabImage(two_halves()), Dimension(4, 4), 20)


def test_safety_threshold_stops_a_run_that_never_settles():
    config = RunConfig(Dimension(4, 4), 2, epsilon_palette=0.0, change_iterations_threshold=5)
    processor = Processor(LabImage(two_halves()), config)
    run_processor(processor)
    # converged while evaluating iteration 5, counter incremented afterwards
    assert processor.iteration == 6
    assert processor.state.last_change_iteration == 0


def test_nan_marginal_stops_after_association():
    processor = Processor(LabImage(two_halves()), RunConfig(Dimension(4, 4), 2))
    for key in processor.palette:
        processor.palette[key].probability = 0.0
    colours_before = processor.palette.colour_matrix()
    keys_before = processor.palette.keys()

    assert processor.step() is True

    assert processor.converged
    assert processor.iteration == 1
    assert processor.k == 1
    assert processor.palette.keys() == keys_before
    np.testing.assert_array_equal(processor.palette.colour_matrix(), colours_before)


def test_nan_run_still_rasterises():
    processor = Processor(LabImage(two_halves()), RunConfig(Dimension(4, 4), 2))
    for key in processor.palette:
        processor.palette[key].probability = 0.0

    result = run_processor(processor)

    assert result.iterations == 1
    assert result.raster.shape == (4, 4, 3)
    assert set(np.unique(result.keys)) <= set(result.palette)


def test_temperature_reductions_are_logged(capsys):
    processor = Processor(LabImage(two_halves()), RunConfig(Dimension(4, 4), 2), debug=True)
    start = processor.temperature

    while processor.temperature == start and not processor.converged:
        processor.step()

    assert processor.temperature < start
    assert "reduced temperature" in capsys.readouterr().out
