from __future__ import annotations

"""
Core type aliases, small value objects, and the mutable records the engine owns.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

# Basic aliases

U8Image = NDArray[np.uint8]  # (H, W, 3)
Lab = NDArray[np.float64]  # (..., 3) CIE Lab
LabGrid = NDArray[np.float64]  # (H, W, 3) one Lab row per cell
KeyGrid = NDArray[np.int64]  # (H, W) palette key per cell
PixelCoords = NDArray[np.int64]  # (N, 2) rows of (row, column)

# Geometry


@dataclass(frozen=True)
class PixelLocation:
    """Integer (row, column) position."""

    row: int
    column: int


@dataclass(frozen=True)
class Dimension:
    """Integer size; height first to match (row, column) ordering."""

    height: int
    width: int

    @property
    def area(self) -> int:
        return self.height * self.width

    def contains(self, row: int, column: int) -> bool:
        return 0 <= row < self.height and 0 <= column < self.width


# Colour


@dataclass(frozen=True)
class LabColor:
    """Immutable Lab triple with component-wise arithmetic."""

    l: float
    a: float
    b: float

    def __add__(self, other: "LabColor") -> "LabColor":
        return LabColor(self.l + other.l, self.a + other.a, self.b + other.b)

    def __sub__(self, other: "LabColor") -> "LabColor":
        return LabColor(self.l - other.l, self.a - other.a, self.b - other.b)

    def __mul__(self, factor: float) -> "LabColor":
        return LabColor(self.l * factor, self.a * factor, self.b * factor)

    __rmul__ = __mul__

    def __truediv__(self, divisor: float) -> "LabColor":
        return LabColor(self.l / divisor, self.a / divisor, self.b / divisor)

    def distance(self, other: "LabColor") -> float:
        """Euclidean distance in Lab."""
        return math.sqrt(
            (self.l - other.l) ** 2 + (self.a - other.a) ** 2 + (self.b - other.b) ** 2
        )

    def midpoint(self, other: "LabColor") -> "LabColor":
        return LabColor(
            (self.l + other.l) / 2, (self.a + other.a) / 2, (self.b + other.b) / 2
        )

    def shifted(self, delta: float) -> "LabColor":
        """Add the same scalar to all three channels."""
        return LabColor(self.l + delta, self.a + delta, self.b + delta)

    def is_finite(self) -> bool:
        return math.isfinite(self.l) and math.isfinite(self.a) and math.isfinite(self.b)

    def as_array(self) -> Lab:
        return np.array([self.l, self.a, self.b], dtype=np.float64)

    @classmethod
    def from_array(
        cls, values: Union[Sequence[float], NDArray[np.floating]]
    ) -> "LabColor":
        return cls(float(values[0]), float(values[1]), float(values[2]))


BLACK = LabColor(0.0, 0.0, 0.0)

# Palette records


@dataclass
class PaletteColor:
    """Palette entry: a colour with its marginal probability mass."""

    color: LabColor
    probability: float


@dataclass(frozen=True)
class PaletteCluster:
    """
    Ancestry record. A pair (first, second) is one logical colour with two
    sub-colours that may still diverge; a singleton has second=None.
    """

    first: int
    second: Optional[int] = None

    @property
    def is_pair(self) -> bool:
        return self.second is not None

    @property
    def keys(self) -> Tuple[int, ...]:
        if self.second is None:
            return (self.first,)
        return (self.first, self.second)


# Superpixel


def _empty_coords() -> PixelCoords:
    return np.zeros((0, 2), dtype=np.int64)


@dataclass
class Superpixel:
    """
    One output cell.

    location is the centroid of the assigned input pixels (input coordinates);
    pixels holds (row, column) rows of those input pixels.
    """

    location: PixelLocation
    palette_key: int = 0
    color: LabColor = BLACK
    pixels: PixelCoords = field(default_factory=_empty_coords)
    probability: float = 1.0
    palette_probabilities: Dict[int, float] = field(default_factory=dict)

    @property
    def pixel_count(self) -> int:
        return int(self.pixels.shape[0])


__all__ = [
    # aliases
    "U8Image",
    "Lab",
    "LabGrid",
    "KeyGrid",
    "PixelCoords",
    # value objects
    "PixelLocation",
    "Dimension",
    "LabColor",
    "BLACK",
    # records
    "PaletteColor",
    "PaletteCluster",
    "Superpixel",
]
