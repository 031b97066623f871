from __future__ import annotations

"""
Principal component of a colour cloud, and the two quantities derived from it:
the starting (critical) temperature and the sub-colour perturbation delta.

principal_axis() returns None when the cloud is degenerate; callers branch on
that instead of catching failures.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .constants import (
    CRITICAL_EIGEN_DIVISOR,
    CRITICAL_FALLBACK,
    CRITICAL_MIN,
    TEMPERATURE_SCALE,
)


@dataclass(frozen=True)
class PrincipalAxis:
    """Leading eigenvalue and unit eigenvector of the sample covariance."""

    eigenvalue: float
    vector: np.ndarray  # shape (3,)


def principal_axis(points: np.ndarray) -> Optional[PrincipalAxis]:
    """
    PCA on an (N,3) matrix, centred, sample covariance (N-1).

    Returns None for fewer than two rows, non-finite data, or a non-positive
    leading eigenvalue (no variation to follow).
    """
    data = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    if data.shape[0] < 2 or not np.all(np.isfinite(data)):
        return None

    centred = data - data.mean(axis=0)
    cov = centred.T @ centred / (data.shape[0] - 1)
    eigenvalues, eigenvectors = np.linalg.eigh(cov)

    lead = int(np.argmax(eigenvalues))
    eigenvalue = float(eigenvalues[lead])
    if not np.isfinite(eigenvalue) or eigenvalue <= 0.0:
        return None
    return PrincipalAxis(eigenvalue=eigenvalue, vector=eigenvectors[:, lead].copy())


def critical_temperature(axis: Optional[PrincipalAxis]) -> float:
    """
    Starting temperature: 1.1 * |lambda| / 100, lifted x10 when below 10.
    Falls back to 1.1 * 100 for a degenerate cloud.
    """
    if axis is None:
        base = CRITICAL_FALLBACK
    else:
        base = abs(axis.eigenvalue) / CRITICAL_EIGEN_DIVISOR
        if base < CRITICAL_MIN:
            base *= 10.0
    return TEMPERATURE_SCALE * base


def perturbation_delta(axis: Optional[PrincipalAxis]) -> float:
    """|v[1]| of the leading eigenvector, applied to every channel; 0 if degenerate."""
    if axis is None:
        return 0.0
    return float(abs(axis.vector[1]))


__all__ = [
    "PrincipalAxis",
    "principal_axis",
    "critical_temperature",
    "perturbation_delta",
]
