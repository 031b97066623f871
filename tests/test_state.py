import pytest

from pixel_abstraction.core_types import Dimension
from pixel_abstraction.engine.state import RunConfig, RunState, update_schedule


def _state(**overrides):
    values = dict(
        temperature=50.0,
        temperature_final=1.0,
        k=1,
        k_max=2,
        epsilon_palette=1.0,
        epsilon_cluster=0.125,
    )
    values.update(overrides)
    return RunState(**values)


def test_large_delta_changes_nothing():
    state = _state()
    assert update_schedule(state, 5.0) is False
    assert state.temperature == 50.0
    assert not state.converged


def test_stable_palette_anneals_and_expands():
    state = _state(iteration=7)
    assert update_schedule(state, 0.5) is True
    assert state.temperature == pytest.approx(35.0)
    assert state.last_change_iteration == 7
    assert not state.converged


def test_cold_and_full_palette_converges():
    state = _state(temperature=0.9, k=2)
    assert update_schedule(state, 0.1) is True
    assert state.converged
    assert state.temperature == 0.9


def test_cold_but_not_full_keeps_annealing():
    state = _state(temperature=0.9, k=1)
    update_schedule(state, 0.1)
    assert not state.converged
    assert state.temperature == pytest.approx(0.63)


def test_safety_threshold_converges_exactly_at_threshold():
    state = _state()
    while True:
        update_schedule(state, 10.0)
        if state.converged:
            break
        state.iteration += 1
        assert state.iteration <= 1000
    assert state.iteration == 1000
    assert state.iterations_since_change == 1000


def test_safety_threshold_counts_from_last_change():
    state = _state(change_iterations_threshold=10)
    state.iteration = 4
    update_schedule(state, 0.0)
    assert state.last_change_iteration == 4
    state.iteration = 13
    update_schedule(state, 10.0)
    assert not state.converged
    state.iteration = 14
    update_schedule(state, 10.0)
    assert state.converged


def test_from_config():
    config = RunConfig(Dimension(4, 4), 6)
    state = RunState.from_config(config, 12.0)
    assert state.k == 1 and state.k_max == 6
    assert state.temperature == 12.0
    assert state.can_expand


@pytest.mark.parametrize(
    "config",
    [
        RunConfig(Dimension(0, 4), 4),
        RunConfig(Dimension(4, 4), 1),
        RunConfig(Dimension(4, 4), 17),
        RunConfig(Dimension(4, 4), 4, temperature_decay=1.0),
        RunConfig(Dimension(4, 4), 4, temperature_final=0.0),
        RunConfig(Dimension(4, 4), 4, change_iterations_threshold=0),
    ],
)
def test_invalid_configs_are_rejected(config):
    with pytest.raises(ValueError):
        config.validate()


def test_valid_config_returns_itself():
    config = RunConfig(Dimension(4, 4), 16)
    assert config.validate() is config
