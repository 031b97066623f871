from __future__ import annotations

import numpy as np
import pytest

from pixel_abstraction.core_types import LabColor

LEFT = LabColor(50.0, 40.0, 20.0)
RIGHT = LabColor(70.0, -30.0, -10.0)


def two_halves(height: int = 8, width: int = 8) -> np.ndarray:
    """Lab image: left half LEFT, right half RIGHT."""
    lab = np.empty((height, width, 3), dtype=np.float64)
    lab[:, : width // 2] = LEFT.as_array()
    lab[:, width // 2 :] = RIGHT.as_array()
    return lab


@pytest.fixture
def halves_lab() -> np.ndarray:
    return two_halves()
