from __future__ import annotations

"""
Superpixel grid: a fixed (H_out, W_out) array of Superpixel records.

Also holds the pixel-group helpers shared by construction and refinement:
naive cell lookup, grouping of a label map into per-cell coordinate lists,
mean colour and centroid of a pixel list.
"""

from typing import Iterator, List, Sequence

import numpy as np

from .core_types import (
    Dimension,
    KeyGrid,
    Lab,
    LabColor,
    LabGrid,
    PixelCoords,
    PixelLocation,
    Superpixel,
)


# Pixel-group helpers


def naive_cell_indices(input_size: Dimension, output_size: Dimension) -> tuple[np.ndarray, np.ndarray]:
    """
    Containing output cell of every input pixel by linear scaling.

    Returns (rows, cols), each int64 [H_in, W_in].
    """
    rows = (np.arange(input_size.height, dtype=np.int64) * output_size.height) // input_size.height
    cols = (np.arange(input_size.width, dtype=np.int64) * output_size.width) // input_size.width
    shape = (input_size.height, input_size.width)
    return (
        np.broadcast_to(rows[:, None], shape).copy(),
        np.broadcast_to(cols[None, :], shape).copy(),
    )


def group_pixels(labels: np.ndarray, n_cells: int) -> List[PixelCoords]:
    """
    Split a [H_in, W_in] map of flat cell indices into per-cell (row, column)
    lists. Pixels within a cell keep raster order.
    """
    width = labels.shape[1]
    flat = labels.ravel()
    order = np.argsort(flat, kind="stable")
    counts = np.bincount(flat, minlength=n_cells)
    coords = np.stack([order // width, order % width], axis=1).astype(np.int64)
    return np.split(coords, np.cumsum(counts)[:-1])


def mean_colour(lab: Lab, pixels: PixelCoords) -> LabColor:
    """Arithmetic mean of the input Lab values at the given pixels."""
    if pixels.shape[0] == 0:
        raise ValueError("mean colour of an empty pixel list")
    values = lab[pixels[:, 0], pixels[:, 1]]
    return LabColor.from_array(values.sum(axis=0) / pixels.shape[0])


def centroid(pixels: PixelCoords) -> PixelLocation:
    """Integer-truncated mean (row, column) of the given pixels."""
    if pixels.shape[0] == 0:
        raise ValueError("centroid of an empty pixel list")
    total = pixels.sum(axis=0)
    count = pixels.shape[0]
    return PixelLocation(int(total[0]) // count, int(total[1]) // count)


# Grid


class SuperpixelGrid:
    def __init__(self, size: Dimension, cells: List[List[Superpixel]]) -> None:
        self.size = size
        self.cells = cells

    @classmethod
    def regular(
        cls, lab: Lab, size: Dimension, palette_keys: Sequence[int]
    ) -> "SuperpixelGrid":
        """
        Regular grid over the input: each input pixel goes to its naive cell,
        each superpixel starts at the centroid and mean colour of its pixels.
        All superpixels share the uniform prior 1/N and a uniform distribution
        over the given palette keys.
        """
        input_size = Dimension(int(lab.shape[0]), int(lab.shape[1]))
        rows, cols = naive_cell_indices(input_size, size)
        groups = group_pixels(rows * size.width + cols, size.area)

        prior = 1.0 / size.area
        uniform = 1.0 / len(palette_keys) if palette_keys else 0.0

        cells: List[List[Superpixel]] = []
        for r in range(size.height):
            row: List[Superpixel] = []
            for c in range(size.width):
                pixels = groups[r * size.width + c]
                sp = Superpixel(
                    location=PixelLocation(r, c),
                    palette_key=palette_keys[0] if palette_keys else 0,
                    pixels=pixels,
                    probability=prior,
                    palette_probabilities={k: uniform for k in palette_keys},
                )
                if pixels.shape[0] > 0:
                    sp.location = centroid(pixels)
                    sp.color = mean_colour(lab, pixels)
                row.append(sp)
            cells.append(row)
        return cls(size, cells)

    def __getitem__(self, index: tuple[int, int]) -> Superpixel:
        r, c = index
        return self.cells[r][c]

    def __iter__(self) -> Iterator[Superpixel]:
        """Row-major iteration."""
        for row in self.cells:
            yield from row

    def __len__(self) -> int:
        return self.size.area

    def contains(self, row: int, column: int) -> bool:
        return self.size.contains(row, column)

    # Array views (copies; the records stay the source of truth)

    def colour_array(self) -> LabGrid:
        out = np.empty((self.size.height, self.size.width, 3), dtype=np.float64)
        for r, row in enumerate(self.cells):
            for c, sp in enumerate(row):
                out[r, c] = (sp.color.l, sp.color.a, sp.color.b)
        return out

    def location_array(self) -> np.ndarray:
        """[H_out, W_out, 2] float64 (row, column) locations."""
        out = np.empty((self.size.height, self.size.width, 2), dtype=np.float64)
        for r, row in enumerate(self.cells):
            for c, sp in enumerate(row):
                out[r, c] = (sp.location.row, sp.location.column)
        return out

    def palette_keys(self) -> KeyGrid:
        out = np.empty((self.size.height, self.size.width), dtype=np.int64)
        for r, row in enumerate(self.cells):
            for c, sp in enumerate(row):
                out[r, c] = sp.palette_key
        return out

    def palette_probability_matrix(self, keys: Sequence[int]) -> np.ndarray:
        """[N, K] conditional probabilities in row-major superpixel order."""
        return np.array(
            [[sp.palette_probabilities[k] for k in keys] for sp in self],
            dtype=np.float64,
        ).reshape(len(self), len(keys))

    def priors(self) -> np.ndarray:
        return np.array([sp.probability for sp in self], dtype=np.float64)


__all__ = [
    "naive_cell_indices",
    "group_pixels",
    "mean_colour",
    "centroid",
    "SuperpixelGrid",
]
