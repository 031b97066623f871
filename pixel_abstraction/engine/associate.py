from __future__ import annotations

"""
Superpixel <-> palette association at temperature T.

P(k|s) = P(k) exp(-|m_s - c_k| / T) / sum_j P(j) exp(-|m_s - c_j| / T)
P(k)   = sum_s P(k|s) P(s)

Degenerate weights propagate as NaN instead of raising; associate() reports
whether any marginal came out NaN so the caller can stop the run.
"""

from typing import List

import numpy as np

from ..colour_convert import lab_distance
from ..core_types import Lab
from ..palette import Palette
from ..superpixels import SuperpixelGrid


def conditional_probabilities(
    colours: Lab, palette_colours: Lab, palette_probabilities: np.ndarray, temperature: float
) -> np.ndarray:
    """
    Gibbs distribution over palette entries for every superpixel colour.

    Args:
      colours: [N,3] smoothed superpixel colours
      palette_colours: [K,3]
      palette_probabilities: [K] marginals P(k)
    Returns:
      [N,K]; rows with a zero or non-finite normaliser are NaN/inf.
    """
    dist = lab_distance(colours[:, None, :], palette_colours[None, :, :])
    with np.errstate(divide="ignore", invalid="ignore", over="ignore", under="ignore"):
        weights = palette_probabilities[None, :] * np.exp(-dist / temperature)
        denom = weights.sum(axis=1, keepdims=True)
        return weights / denom


def renormalise(probabilities: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """
    Second normalisation pass plus argmax per row.

    Ties go to the last maximal column. Rows whose sum is zero or non-finite
    are returned unchanged with an argmax of -1.
    """
    with np.errstate(invalid="ignore", over="ignore"):
        sums = probabilities.sum(axis=1)
    ok = np.isfinite(sums) & (sums != 0.0)

    n_cols = probabilities.shape[1]
    last_max = n_cols - 1 - np.argmax(probabilities[:, ::-1], axis=1)
    choice = np.where(ok, last_max, -1)

    with np.errstate(invalid="ignore", divide="ignore"):
        normalised = np.where(ok[:, None], probabilities / np.where(ok, sums, 1.0)[:, None], probabilities)
    return normalised, choice


def associate(grid: SuperpixelGrid, palette: Palette, temperature: float) -> bool:
    """
    Recompute every superpixel's palette distribution and chosen key, then the
    palette marginals. Returns True if any marginal is NaN.
    """
    keys: List[int] = palette.keys()
    if not keys:
        return False

    superpixels = list(grid)
    colours = np.array([sp.color.as_array() for sp in superpixels], dtype=np.float64)
    probabilities = conditional_probabilities(
        colours.reshape(-1, 3),
        palette.colour_matrix(keys),
        palette.probability_vector(keys),
        temperature,
    )
    normalised, choice = renormalise(probabilities)

    for index, sp in enumerate(superpixels):
        row = normalised[index]
        sp.palette_probabilities = {k: float(row[j]) for j, k in enumerate(keys)}
        if choice[index] >= 0:
            sp.palette_key = keys[int(choice[index])]

    priors = grid.priors()
    with np.errstate(invalid="ignore", over="ignore"):
        marginals = (normalised * priors[:, None]).sum(axis=0)

    has_nan = False
    for j, k in enumerate(keys):
        palette[k].probability = float(marginals[j])
        if np.isnan(marginals[j]):
            has_nan = True
    return has_nan


__all__ = ["conditional_probabilities", "renormalise", "associate"]
