import numpy as np
import pytest

from pixel_abstraction.pca import critical_temperature, perturbation_delta, principal_axis


def test_axis_of_a_line():
    t = np.linspace(-10.0, 10.0, 21)
    points = np.stack([t, 2.0 * t, np.zeros_like(t)], axis=1)
    axis = principal_axis(points)
    assert axis is not None
    direction = np.array([1.0, 2.0, 0.0]) / np.sqrt(5.0)
    assert abs(float(axis.vector @ direction)) == pytest.approx(1.0)
    expected = 5.0 * np.var(t, ddof=1)
    assert axis.eigenvalue == pytest.approx(expected)
    assert perturbation_delta(axis) == pytest.approx(2.0 / np.sqrt(5.0))


@pytest.mark.parametrize(
    "points",
    [
        np.zeros((1, 3)),
        np.ones((5, 3)),
        np.array([[0.0, 0.0, 0.0], [np.nan, 1.0, 1.0]]),
    ],
)
def test_degenerate_clouds(points):
    axis = principal_axis(points)
    assert axis is None
    assert critical_temperature(axis) == pytest.approx(110.0)
    assert perturbation_delta(axis) == 0.0


def test_critical_temperature_scaling():
    rng = np.random.default_rng(1)
    big = rng.normal(scale=50.0, size=(200, 3))
    axis = principal_axis(big)
    assert axis is not None
    base = axis.eigenvalue / 100.0
    if base < 10.0:
        base *= 10.0
    assert critical_temperature(axis) == pytest.approx(1.1 * base)

    small = principal_axis(np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0]]))
    assert small is not None
    # eigenvalue 0.5 -> r = 0.005, lifted x10
    assert critical_temperature(small) == pytest.approx(1.1 * 0.05)
