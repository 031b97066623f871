from __future__ import annotations

"""
Superpixel refinement: one SLIC-like reassignment pass followed by Laplacian
position smoothing and bilateral colour smoothing.

Both smoothing passes read a snapshot of the whole grid and return a separate
buffer; refine_superpixels() applies the buffers only after both are built.
"""

import math
from typing import List

import numpy as np

from ..colour_convert import lab_distance
from ..constants import (
    BILATERAL_NEIGHBOURHOOD,
    LAPLACIAN_KEEP,
    LAPLACIAN_NEIGHBOURHOOD,
    REFINE_NEIGHBOURHOOD,
    SIGMA_BILATERAL,
)
from ..core_types import Dimension, Lab, LabColor, LabGrid, PixelLocation
from ..superpixels import (
    SuperpixelGrid,
    centroid,
    group_pixels,
    mean_colour,
    naive_cell_indices,
)


def spatial_weight(m_spatial: float, input_size: Dimension, output_size: Dimension) -> float:
    """m * sqrt(N_out / N_in): converts pixel distance into colour-distance units."""
    return m_spatial * math.sqrt(output_size.area / input_size.area)


def gaussian(x: np.ndarray, sigma: float) -> np.ndarray:
    """Normalised Gaussian density with zero mean."""
    return np.exp(-(x * x) / (2.0 * sigma * sigma)) / (sigma * math.sqrt(2.0 * math.pi))


def assign_pixels(grid: SuperpixelGrid, lab: Lab, weight: float) -> np.ndarray:
    """
    Best superpixel for every input pixel among its naive cell and the 3x3 block
    around it. Cost = colour distance + weight * spatial distance. A candidate
    wins only on a strictly lower cost, so ties keep the earliest minimum.

    Returns [H_in, W_in] flat cell indices (row * W_out + column).
    """
    size = grid.size
    input_size = Dimension(int(lab.shape[0]), int(lab.shape[1]))
    rows, cols = naive_cell_indices(input_size, size)

    colours = grid.colour_array()
    locations = grid.location_array()
    pixel_rows = np.arange(input_size.height, dtype=np.float64)[:, None]
    pixel_cols = np.arange(input_size.width, dtype=np.float64)[None, :]

    def cost(cell_rows: np.ndarray, cell_cols: np.ndarray) -> np.ndarray:
        colour_cost = lab_distance(colours[cell_rows, cell_cols], lab)
        loc = locations[cell_rows, cell_cols]
        spatial_cost = np.hypot(loc[..., 0] - pixel_rows, loc[..., 1] - pixel_cols)
        return colour_cost + weight * spatial_cost

    best_rows = rows.copy()
    best_cols = cols.copy()
    best_cost = cost(rows, cols)

    for d_row, d_col in REFINE_NEIGHBOURHOOD:
        cand_rows = rows + d_row
        cand_cols = cols + d_col
        valid = (
            (cand_rows >= 0)
            & (cand_rows < size.height)
            & (cand_cols >= 0)
            & (cand_cols < size.width)
        )
        cand_cost = cost(
            np.clip(cand_rows, 0, size.height - 1), np.clip(cand_cols, 0, size.width - 1)
        )
        better = valid & (cand_cost < best_cost)
        best_cost = np.where(better, cand_cost, best_cost)
        best_rows = np.where(better, cand_rows, best_rows)
        best_cols = np.where(better, cand_cols, best_cols)

    return best_rows * size.width + best_cols


def laplacian_smooth(grid: SuperpixelGrid) -> List[List[PixelLocation]]:
    """
    New location per cell: 0.6 * own + 0.4 * mean of the 4-neighbours'
    locations, truncated. Cells with any 4-neighbour outside the grid keep
    their location.
    """
    size = grid.size
    locations = grid.location_array()
    pull = 1.0 - LAPLACIAN_KEEP

    out: List[List[PixelLocation]] = []
    for r in range(size.height):
        row: List[PixelLocation] = []
        for c in range(size.width):
            current = grid[r, c].location
            neighbours = [(r + dr, c + dc) for dr, dc in LAPLACIAN_NEIGHBOURHOOD]
            if not all(size.contains(nr, nc) for nr, nc in neighbours):
                row.append(current)
                continue
            mean = sum(locations[nr, nc] for nr, nc in neighbours) / len(neighbours)
            row.append(
                PixelLocation(
                    int(LAPLACIAN_KEEP * current.row + pull * mean[0]),
                    int(LAPLACIAN_KEEP * current.column + pull * mean[1]),
                )
            )
        out.append(row)
    return out


def bilateral_smooth(grid: SuperpixelGrid, sigma: float = SIGMA_BILATERAL) -> LabGrid:
    """
    Colour per cell as the weighted mean over its 3x3 block (itself included),
    weight = G(colour distance) * G(grid distance). Out-of-grid neighbours are
    left out. A cell whose weights sum to zero keeps its colour.
    """
    size = grid.size
    colours = grid.colour_array()
    weighted = np.zeros_like(colours)
    total = np.zeros(colours.shape[:2], dtype=np.float64)

    for d_row, d_col in BILATERAL_NEIGHBOURHOOD:
        # Target window [r0:r1, c0:c1] whose neighbour at (d_row, d_col) is in the grid.
        r0, r1 = max(0, -d_row), min(size.height, size.height - d_row)
        c0, c1 = max(0, -d_col), min(size.width, size.width - d_col)
        if r0 >= r1 or c0 >= c1:
            continue
        own = colours[r0:r1, c0:c1]
        other = colours[r0 + d_row : r1 + d_row, c0 + d_col : c1 + d_col]
        with np.errstate(invalid="ignore", over="ignore"):
            w = gaussian(lab_distance(own, other), sigma) * gaussian(
                np.asarray(math.hypot(d_row, d_col)), sigma
            )
            weighted[r0:r1, c0:c1] += other * w[..., None]
        total[r0:r1, c0:c1] += w

    ok = np.isfinite(total) & (total > 0.0)
    with np.errstate(invalid="ignore", divide="ignore"):
        smoothed = weighted / total[..., None]
    return np.where(ok[..., None], smoothed, colours)


def refine_superpixels(grid: SuperpixelGrid, lab: Lab, weight: float) -> None:
    """
    Reassign every input pixel, recompute centroids and mean colours of
    non-empty superpixels, then apply Laplacian and bilateral smoothing.
    Empty superpixels keep their previous location and colour.
    """
    for sp in grid:
        sp.pixels = np.zeros((0, 2), dtype=np.int64)

    labels = assign_pixels(grid, lab, weight)
    groups = group_pixels(labels, len(grid))

    for index, sp in enumerate(grid):
        pixels = groups[index]
        sp.pixels = pixels
        if pixels.shape[0] > 0:
            sp.location = centroid(pixels)
            sp.color = mean_colour(lab, pixels)

    new_locations = laplacian_smooth(grid)
    new_colours = bilateral_smooth(grid)

    for r, row in enumerate(grid.cells):
        for c, sp in enumerate(row):
            sp.location = new_locations[r][c]
            sp.color = LabColor.from_array(new_colours[r, c])


__all__ = [
    "spatial_weight",
    "gaussian",
    "assign_pixels",
    "laplacian_smooth",
    "bilateral_smooth",
    "refine_superpixels",
]
