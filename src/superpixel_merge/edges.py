"""
Edge-pixel classification.

The edge pixels of region A against region B are the pixels of A that
touch B in the 8-neighbourhood. They are found by dilating B's mask with a
3x3 kernel inside the bounding box of both regions.
"""

from __future__ import annotations

import numpy as np
import cv2
from typing import Iterable, List, Set, Tuple

from .region import Coord, Region

_KERNEL = np.ones((3, 3), dtype=np.uint8)


class EdgeClassifier:

    def __init__(self, shape: Tuple[int, int]):
        self.shape = shape   # (H, W)

    def _dilated_touch(self, region: Region, others: Iterable[Region]) -> np.ndarray:
        """Boolean per coord of `region`: touches any of `others`."""
        rxy    = region.coord_array()
        others = list(others)
        allxy  = np.concatenate([rxy] + [o.coord_array() for o in others], 0)

        H, W = self.shape
        x0 = max(int(allxy[:, 0].min()) - 1, 0)
        y0 = max(int(allxy[:, 1].min()) - 1, 0)
        x1 = min(int(allxy[:, 0].max()) + 2, W)
        y1 = min(int(allxy[:, 1].max()) + 2, H)

        mask = np.zeros((y1 - y0, x1 - x0), dtype=np.uint8)
        for o in others:
            oxy = o.coord_array()
            mask[oxy[:, 1] - y0, oxy[:, 0] - x0] = 1
        grown = cv2.dilate(mask, _KERNEL)
        return grown[rxy[:, 1] - y0, rxy[:, 0] - x0].astype(bool)

    def edge_coords(self, region: Region, other: Region) -> List[Coord]:
        """Coordinates of `region` 8-adjacent to `other`, in region order."""
        touch = self._dilated_touch(region, [other])
        return [c for c, t in zip(region.coords, touch) if t]

    def edge_set(self, region: Region, others: Iterable[Region]) -> Set[Coord]:
        """Union of edge coordinates of `region` against every region in `others`."""
        touch = self._dilated_touch(region, others)
        return {c for c, t in zip(region.coords, touch) if t}

    def edge_fraction(self, region: Region, others: Iterable[Region]) -> float:
        """Share of the region's pixels that lie on a boundary with `others`."""
        if not region.coords:
            return 0.0
        return len(self.edge_set(region, others)) / len(region.coords)
