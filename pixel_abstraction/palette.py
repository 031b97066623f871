from __future__ import annotations

"""
Palette model: keyed palette colours plus the cluster (ancestry) table.

Keys come from a monotonically increasing counter and are never reused within a
run, so a cluster record that points at a removed key stays detectably stale.

Exports:
  Palette
    .initial(mean_colour)          -> Palette with one pair of identical sub-colours
    .add(colour) / .remove(key)
    .split(cluster)                -> two fresh pair clusters
    .condense(cluster)             -> key of the merged singleton
    .perturb(key, delta)
"""

from typing import Dict, Iterator, List, Mapping, Optional, Tuple

import numpy as np

from .constants import INITIAL_SPLIT_PROBABILITY
from .core_types import Lab, LabColor, PaletteCluster, PaletteColor


class Palette:
    def __init__(self) -> None:
        self._colours: Dict[int, PaletteColor] = {}
        self._clusters: Dict[int, PaletteCluster] = {}
        self._next_key = 0

    @classmethod
    def initial(cls, mean_colour: LabColor) -> "Palette":
        """Two copies of the mean colour at equal mass, paired as one logical colour."""
        palette = cls()
        first = palette.add(PaletteColor(mean_colour, INITIAL_SPLIT_PROBABILITY))
        second = palette.add(PaletteColor(mean_colour, INITIAL_SPLIT_PROBABILITY))
        palette.add_cluster(PaletteCluster(first, second))
        return palette

    # Colours

    def add(self, colour: PaletteColor) -> int:
        key = self._next_key
        self._colours[key] = colour
        self._next_key += 1
        return key

    def remove(self, key: int) -> PaletteColor:
        """Remove a colour and the cluster record anchored at it."""
        self._clusters.pop(key, None)
        return self._colours.pop(key)

    def __contains__(self, key: object) -> bool:
        return key in self._colours

    def __getitem__(self, key: int) -> PaletteColor:
        return self._colours[key]

    def __len__(self) -> int:
        return len(self._colours)

    def __iter__(self) -> Iterator[int]:
        return iter(self._colours)

    def keys(self) -> List[int]:
        return list(self._colours)

    def items(self) -> List[Tuple[int, PaletteColor]]:
        return list(self._colours.items())

    @property
    def next_key(self) -> int:
        return self._next_key

    @property
    def colours(self) -> Dict[int, LabColor]:
        return {k: pc.color for k, pc in self._colours.items()}

    def colour_matrix(self, keys: Optional[List[int]] = None) -> Lab:
        """(K,3) Lab rows in key order."""
        keys = self.keys() if keys is None else keys
        if not keys:
            return np.zeros((0, 3), dtype=np.float64)
        return np.array(
            [self._colours[k].color.as_array() for k in keys], dtype=np.float64
        )

    def probability_vector(self, keys: Optional[List[int]] = None) -> np.ndarray:
        keys = self.keys() if keys is None else keys
        return np.array([self._colours[k].probability for k in keys], dtype=np.float64)

    def total_probability(self) -> float:
        return float(sum(pc.probability for pc in self._colours.values()))

    def perturb(self, key: int, delta: float) -> None:
        """Shift all three channels of one colour by delta."""
        entry = self._colours[key]
        entry.color = entry.color.shifted(delta)

    # Clusters

    @property
    def clusters(self) -> Mapping[int, PaletteCluster]:
        return dict(self._clusters)

    def add_cluster(self, cluster: PaletteCluster) -> None:
        self._clusters[cluster.first] = cluster

    def cluster_for(self, key: int) -> Optional[PaletteCluster]:
        return self._clusters.get(key)

    def is_live(self, cluster: PaletteCluster) -> bool:
        """True when every key the record names is still in the palette."""
        return all(k in self._colours for k in cluster.keys)

    def live_pairs(self) -> List[PaletteCluster]:
        return [c for c in self._clusters.values() if c.is_pair and self.is_live(c)]

    @property
    def logical_size(self) -> int:
        """Number of logical colours (live cluster records)."""
        return sum(1 for c in self._clusters.values() if self.is_live(c))

    def split(self, cluster: PaletteCluster) -> Tuple[PaletteCluster, PaletteCluster]:
        """
        Promote both sub-colours of a pair to logical colours of their own.

        Each child is re-inserted as a fresh pair of identical sub-colours under
        new keys, each carrying half of the child's probability mass. The
        original keys and their cluster records are removed.
        """
        if cluster.second is None or not self.is_live(cluster):
            raise ValueError(f"cannot split cluster {cluster}")

        children = [self.remove(cluster.first), self.remove(cluster.second)]

        fresh: List[PaletteCluster] = []
        for child in children:
            half = child.probability / 2
            k1 = self.add(PaletteColor(child.color, half))
            k2 = self.add(PaletteColor(child.color, half))
            pair = PaletteCluster(k1, k2)
            self.add_cluster(pair)
            fresh.append(pair)
        return fresh[0], fresh[1]

    def condense(self, cluster: PaletteCluster) -> int:
        """Merge a live pair into one singleton at the midpoint with the summed mass."""
        if cluster.second is None or not self.is_live(cluster):
            raise ValueError(f"cannot condense cluster {cluster}")

        first = self._colours[cluster.first]
        second = self._colours[cluster.second]
        merged = PaletteColor(
            first.color.midpoint(second.color), first.probability + second.probability
        )
        new_key = self.add(merged)
        self.add_cluster(PaletteCluster(new_key))

        self.remove(cluster.first)
        self.remove(cluster.second)
        return new_key

    def __repr__(self) -> str:
        entries = ", ".join(
            f"{k}: ({pc.color.l:.2f}, {pc.color.a:.2f}, {pc.color.b:.2f}) p={pc.probability:.3f}"
            for k, pc in self._colours.items()
        )
        return f"Palette({entries})"


__all__ = ["Palette"]
