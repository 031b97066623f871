"""
Global tunables used across the project.

- Superpixel refinement (M_SPATIAL, SIGMA_BILATERAL, LAPLACIAN_KEEP, neighbourhoods)
- Annealing schedule (TEMPERATURE_*, EPSILON_*, CHANGE_ITERATIONS_THRESHOLD)
- Palette limits and output post-processing
"""
from __future__ import annotations

from typing import List, Tuple

# =========================
# Superpixel refinement
# =========================
M_SPATIAL: float = 45.0
SIGMA_BILATERAL: float = 0.87
LAPLACIAN_KEEP: float = 0.6

# (d_row, d_column). Order is fixed; ties resolve to the earliest minimum.
REFINE_NEIGHBOURHOOD: List[Tuple[int, int]] = [
    (-1, -1),
    (-1, 0),
    (-1, 1),
    (0, -1),
    (0, 0),
    (0, 1),
    (1, -1),
    (1, 0),
    (1, 1),
]

LAPLACIAN_NEIGHBOURHOOD: List[Tuple[int, int]] = [
    (0, 1),
    (0, -1),
    (-1, 0),
    (1, 0),
]

BILATERAL_NEIGHBOURHOOD: List[Tuple[int, int]] = list(REFINE_NEIGHBOURHOOD)

# =========================
# Annealing
# =========================
TEMPERATURE_DECAY: float = 0.7
TEMPERATURE_FINAL: float = 1.0
TEMPERATURE_SCALE: float = 1.1
CRITICAL_EIGEN_DIVISOR: float = 100.0
CRITICAL_MIN: float = 10.0
CRITICAL_FALLBACK: float = 100.0

EPSILON_PALETTE: float = 1.0
EPSILON_CLUSTER: float = 0.125
CHANGE_ITERATIONS_THRESHOLD: int = 1000

# =========================
# Palette / output
# =========================
MAX_PALETTE_COLOURS: int = 16
MIN_PALETTE_COLOURS: int = 2
INITIAL_SPLIT_PROBABILITY: float = 0.5
SATURATION_BOOST: int = 26

__all__ = [
    "M_SPATIAL",
    "SIGMA_BILATERAL",
    "LAPLACIAN_KEEP",
    "REFINE_NEIGHBOURHOOD",
    "LAPLACIAN_NEIGHBOURHOOD",
    "BILATERAL_NEIGHBOURHOOD",
    "TEMPERATURE_DECAY",
    "TEMPERATURE_FINAL",
    "TEMPERATURE_SCALE",
    "CRITICAL_EIGEN_DIVISOR",
    "CRITICAL_MIN",
    "CRITICAL_FALLBACK",
    "EPSILON_PALETTE",
    "EPSILON_CLUSTER",
    "CHANGE_ITERATIONS_THRESHOLD",
    "MAX_PALETTE_COLOURS",
    "MIN_PALETTE_COLOURS",
    "INITIAL_SPLIT_PROBABILITY",
    "SATURATION_BOOST",
]
