"""Region record: one superpixel and the merge history attached to it."""

from __future__ import annotations

import numpy as np
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

Coord = Tuple[int, int]   # (x, y)


@dataclass(eq=False)
class Region:
    tag:              int
    coords:           List[Coord] = field(default_factory=list)   # append order is stable
    merged_weights:   List[float] = field(default_factory=list)   # edge weights accepted as merges
    unmerged_weights: List[float] = field(default_factory=list)   # edge weights rejected
    all_same:         Optional[bool] = None                       # None = not computed yet

    @property
    def size(self) -> int:
        return len(self.coords)

    def __len__(self) -> int:
        return len(self.coords)

    def coord_array(self) -> np.ndarray:
        """(N, 2) int array of (x, y) columns."""
        if not self.coords:
            return np.empty((0, 2), dtype=np.int64)
        return np.asarray(self.coords, dtype=np.int64)

    def absorb(self, other: "Region") -> None:
        """Take over the pixels and weight histories of `other`, leaving it empty."""
        self.coords.extend(other.coords)
        other.coords = []
        self.merged_weights.extend(other.merged_weights)
        self.unmerged_weights.extend(other.unmerged_weights)

    def __repr__(self) -> str:
        return f"Region(tag={self.tag}, size={self.size})"
