from __future__ import annotations

"""
Palette refinement and palette growth.

refine_palette : expectation update of every palette colour, returns total movement
expand_palette : split diverged pairs, condense once the palette is full,
                 otherwise perturb the second sub-colour of every pair
"""

import numpy as np

from ..colour_convert import lab_distance
from ..core_types import LabColor
from ..palette import Palette
from ..pca import perturbation_delta, principal_axis
from ..superpixels import SuperpixelGrid
from ..utils import debug_log
from .state import RunState


def refine_palette(grid: SuperpixelGrid, palette: Palette) -> float:
    """
    c_k = sum_s m_s P(k|s) P(s) / P(k) for every key; returns sum_k |c_k_old - c_k_new|.

    A zero P(k) yields a non-finite colour; the next association catches it.
    """
    keys = palette.keys()
    if not keys:
        return 0.0

    colours = grid.colour_array().reshape(-1, 3)
    weights = grid.palette_probability_matrix(keys) * grid.priors()[:, None]
    marginals = palette.probability_vector(keys)

    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        new_colours = (weights.T @ colours) / marginals[:, None]

    old_colours = palette.colour_matrix(keys)
    for j, k in enumerate(keys):
        palette[k].color = LabColor.from_array(new_colours[j])

    with np.errstate(invalid="ignore", over="ignore"):
        return float(np.sum(lab_distance(old_colours, new_colours)))


def perturb_pairs(palette: Palette, delta: float) -> int:
    """Shift the second sub-colour of every live pair; returns how many moved."""
    moved = 0
    for cluster in palette.live_pairs():
        if cluster.second is None:
            continue
        palette.perturb(cluster.second, delta)
        moved += 1
    return moved


def current_perturbation(grid: SuperpixelGrid) -> float:
    """Perturbation delta from the principal axis of the superpixel colours."""
    return perturbation_delta(principal_axis(grid.colour_array().reshape(-1, 3)))


def expand_palette(
    palette: Palette, state: RunState, grid: SuperpixelGrid, *, debug: bool = False
) -> None:
    """
    One expansion pass, only while K < Kmax.

    1. Every live pair whose sub-colours are further apart than epsilon_cluster
       is split into two logical colours (K += 1 each), until K reaches Kmax.
    2. If K reached Kmax, every live pair is condensed into a singleton.
    3. Otherwise the PCA delta is recomputed and the second sub-colour of every
       pair is perturbed.
    """
    if not state.can_expand:
        return

    for key in palette.keys():
        if not state.can_expand:
            break
        cluster = palette.cluster_for(key)
        if cluster is None or cluster.second is None or not palette.is_live(cluster):
            continue

        colour_error = palette[cluster.first].color.distance(palette[cluster.second].color)
        if debug:
            debug_log(f"cluster {cluster.first},{cluster.second} error={colour_error:.4f}")
        if colour_error > state.epsilon_cluster:
            state.k += 1
            left, right = palette.split(cluster)
            if debug:
                debug_log(
                    f"split {cluster.first},{cluster.second} -> "
                    f"{left.first},{left.second} + {right.first},{right.second}  K={state.k}"
                )

    if state.k >= state.k_max:
        if debug:
            debug_log(f"condensing palette at K={state.k}")
        for cluster in list(palette.clusters.values()):
            if cluster.is_pair and palette.is_live(cluster):
                new_key = palette.condense(cluster)
                if debug:
                    debug_log(f"condensed {cluster.first},{cluster.second} -> {new_key}")
    else:
        delta = current_perturbation(grid)
        moved = perturb_pairs(palette, delta)
        if debug:
            debug_log(f"perturbed {moved} pair(s) by {delta:.4f}")


__all__ = [
    "refine_palette",
    "perturb_pairs",
    "current_perturbation",
    "expand_palette",
]
