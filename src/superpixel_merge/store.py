"""
Region store: the single owner of every Region.

Regions are addressed by integer tag. The store keeps a dict for O(1)
lookup and an ascending list of active tags maintained with bisect.
"""

from __future__ import annotations

import bisect
import logging
import numpy as np
from typing import Dict, Iterable, Iterator, List, Optional

from .bounds import mean_std
from .errors import InvariantViolation
from .labels import decode_labels
from .region import Region

logger = logging.getLogger(__name__)

MIN_SCAN_COUNT   = 10     # regions smaller than this are ignored by the size scan
LARGE_STDDEV_MIN = 100.0  # size spread below this means "no outliers"
LARGE_K          = 1.5    # outlier limit = mean + k * stddev


class RegionStore:

    def __init__(self, regions: Iterable[Region] = ()):
        self._regions: Dict[int, Region] = {}
        for r in regions:
            self._regions[r.tag] = r
        self._tags: List[int] = sorted(self._regions)

    @classmethod
    def parse(cls, labels: np.ndarray) -> "RegionStore":
        """Validate and decode a label image, then build one Region per label."""
        return cls.from_tags(decode_labels(labels))

    @classmethod
    def from_tags(cls, tags: np.ndarray) -> "RegionStore":
        """
        Build one Region per distinct tag of an already decoded (H, W) tag map.

        Pixels are visited in row-major order, so each region's coordinate
        list starts with its top-left-most pixel.
        """
        H, W = tags.shape
        flat = tags.ravel()

        # stable sort keeps row-major order within each label
        order  = np.argsort(flat, kind="stable")
        sorted_tags = flat[order]
        uniq, starts = np.unique(sorted_tags, return_index=True)
        ends = np.append(starts[1:], flat.size)

        xs = (order % W).tolist()
        ys = (order // W).tolist()
        regions = []
        for tag, s, e in zip(uniq.tolist(), starts.tolist(), ends.tolist()):
            regions.append(Region(tag=tag, coords=list(zip(xs[s:e], ys[s:e]))))

        store = cls(regions)
        logger.debug(f"Parsed {len(store)} regions from {W}x{H} label image")
        return store

    # Lookup

    def get(self, tag: int) -> Optional[Region]:
        return self._regions.get(tag)

    def __getitem__(self, tag: int) -> Region:
        return self._regions[tag]

    def __contains__(self, tag: int) -> bool:
        return tag in self._regions

    def __len__(self) -> int:
        return len(self._tags)

    def __iter__(self) -> Iterator[int]:
        return iter(list(self._tags))

    @property
    def tags(self) -> List[int]:
        """Active tags, ascending. A copy, safe to hold across merges."""
        return list(self._tags)

    def total_coords(self) -> int:
        return sum(len(r.coords) for r in self._regions.values())

    # Mutation

    def remove(self, tag: int) -> Region:
        i = bisect.bisect_left(self._tags, tag)
        if i == len(self._tags) or self._tags[i] != tag:
            raise InvariantViolation(f"Cannot remove tag {tag}: not an active region")
        del self._tags[i]
        return self._regions.pop(tag)

    # Size queries

    def sorted_by_size(self) -> List[int]:
        """Tags by descending pixel count, ties broken by ascending tag."""
        return sorted(self._tags, key=lambda t: (-len(self._regions[t].coords), t))

    def largest_unlocked(self, locked) -> Optional[int]:
        best, best_n = None, -1
        for t in self._tags:
            n = len(self._regions[t].coords)
            if t not in locked and n > best_n:
                best, best_n = t, n
        return best

    def smallest_unlocked(self, locked) -> Optional[int]:
        best, best_n = None, None
        for t in self._tags:
            n = len(self._regions[t].coords)
            if t not in locked and (best_n is None or n < best_n):
                best, best_n = t, n
        return best

    def scan_largest_by_size(self, min_count: int = MIN_SCAN_COUNT) -> List[int]:
        """
        Tags whose size is an outlier on the large side.

        Sizes below `min_count` are left out of the statistics. Returns an
        empty list when the spread of sizes is below LARGE_STDDEV_MIN, i.e.
        when all regions are roughly the same size.
        """
        sizes = {t: len(self._regions[t].coords) for t in self._tags}
        considered = [n for n in sizes.values() if n >= min_count]
        if not considered:
            return []

        mean, std = mean_std(considered)
        if std < LARGE_STDDEV_MIN:
            logger.debug(f"Size stddev {std:.1f} < {LARGE_STDDEV_MIN}, no large regions")
            return []

        limit = mean + LARGE_K * std
        large = [t for t in self.sorted_by_size() if sizes[t] > limit]
        logger.debug(
            f"Size scan: mean={mean:.1f} std={std:.1f} limit={limit:.1f} -> {len(large)} large"
        )
        return large
