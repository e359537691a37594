"""
Region adjacency graph and the merge operator.

RegionGraph ties a RegionStore (who exists, which pixels) to an
AdjacencyTable (who touches whom, cached edge weights). Every traversal
strategy mutates the graph through RegionGraph.merge and nothing else.

Merge rules
-----------
  * the region with more pixels survives; on a tie the first argument does
  * the survivor appends the consumed region's pixels and weight histories
  * every cached weight on an edge of either side is invalidated
  * the consumed tag is removed from the store and never reused
"""

from __future__ import annotations

import logging
import numpy as np
from typing import List, Optional, Tuple

from .adjacency import AdjacencyTable
from .errors import InvariantViolation
from .labels import decode_labels, TAG_OFFSET
from .observer import MergeObserver
from .region import Region
from .store import RegionStore

logger = logging.getLogger(__name__)


class RegionGraph:
    """
    Example
    -------
    graph = RegionGraph.from_label_image(labels)
    keep  = graph.merge(a, b)
    graph.check_invariants()
    """

    def __init__(
        self,
        store:     RegionStore,
        adjacency: AdjacencyTable,
        shape:     Tuple[int, int],
    ):
        self.store     = store
        self.adjacency = adjacency
        self.shape     = shape
        self.observers: List[MergeObserver] = []
        self._n_pixels = store.total_coords()

    @classmethod
    def from_label_image(cls, labels: np.ndarray, connectivity: int = 8) -> "RegionGraph":
        tags  = decode_labels(labels)
        store = RegionStore.from_tags(tags)
        adj   = AdjacencyTable.from_labels(tags, connectivity)
        graph = cls(store, adj, tags.shape)
        if len(store) == 1:
            logger.warning("Label image holds a single region, nothing to merge")
        logger.info(
            f"Region graph: {len(store)} regions, {len(adj.edges())} edges, "
            f"{graph.shape[1]}x{graph.shape[0]} px"
        )
        return graph

    def add_observer(self, observer: MergeObserver) -> None:
        self.observers.append(observer)

    # Accessors

    def __len__(self) -> int:
        return len(self.store)

    def __contains__(self, tag: int) -> bool:
        return tag in self.store

    def region(self, tag: int) -> Optional[Region]:
        return self.store.get(tag)

    def neighbors(self, tag: int):
        return self.adjacency.neighbors(tag)

    def size(self, tag: int) -> int:
        return len(self.store[tag].coords)

    # Merge

    def merge(self, a: int, b: int, keep_all_same: bool = False) -> int:
        """
        Merge regions `a` and `b`; returns the surviving tag.

        keep_all_same : the caller guarantees both regions hold one identical
                        colour, so the survivor keeps all_same=True.
        """
        if a == b:
            raise InvariantViolation(f"Cannot merge region {a} with itself")
        ra, rb = self.store.get(a), self.store.get(b)
        if ra is None or rb is None:
            missing = a if ra is None else b
            raise InvariantViolation(f"Cannot merge: region {missing} is not active")
        if b not in self.adjacency.neighbors(a):
            raise InvariantViolation(f"Cannot merge non-adjacent regions {a} and {b}")

        if len(ra.coords) >= len(rb.coords):
            dst, src = ra, rb
        else:
            dst, src = rb, ra

        n_src = len(src.coords)
        dst.absorb(src)
        self.store.remove(src.tag)
        self._repair_adjacency(dst.tag, src.tag)

        dst.all_same = True if (keep_all_same and dst.all_same and src.all_same) else None

        logger.debug(f"merge {src.tag} ({n_src} px) -> {dst.tag} ({len(dst.coords)} px)")
        for obs in self.observers:
            obs.on_merge(dst.tag, src.tag)
        return dst.tag

    def _repair_adjacency(self, dst: int, src: int) -> None:
        adj = self.adjacency
        dst_nbrs = adj.neighbors(dst)
        dst_nbrs.discard(src)
        for n in dst_nbrs:
            adj.invalidate(dst, n)

        for n in adj.neighbors(src):
            if n == dst:
                continue
            adj.invalidate(src, n)
            n_nbrs = adj.neighbors(n)
            n_nbrs.discard(src)
            n_nbrs.add(dst)
            dst_nbrs.add(n)

        adj.invalidate(src, dst)
        adj.remove_all(src)

    # Invariants

    def check_invariants(self) -> None:
        store, adj = self.store, self.adjacency
        tags = store.tags
        if tags != sorted(tags):
            raise InvariantViolation("Active tag list is not sorted")
        if set(tags) != set(adj.tags()):
            raise InvariantViolation("Store and adjacency table disagree on active tags")

        for t in tags:
            nbrs = adj.neighbors(t)
            if t in nbrs:
                raise InvariantViolation(f"Region {t} is adjacent to itself")
            for n in nbrs:
                if n not in store:
                    raise InvariantViolation(f"Region {t} lists dead neighbor {n}")
                if t not in adj.neighbors(n):
                    raise InvariantViolation(f"Adjacency {t} -> {n} is not symmetric")
            if not nbrs and len(tags) > 1:
                raise InvariantViolation(f"Region {t} has no neighbors")

        for a, b in adj.cached_edges():
            if a not in store or b not in store:
                raise InvariantViolation(f"Stale cached weight on edge ({a}, {b})")

        total = store.total_coords()
        if total != self._n_pixels:
            raise InvariantViolation(
                f"Pixel count changed: {total} != {self._n_pixels}"
            )

    # Output

    def to_label_image(self, offset: bool = True) -> np.ndarray:
        """
        (H, W) int64 tag map of the current regions.

        offset : keep the +1 parse offset (True) or return raw input labels.
        """
        out = np.zeros(self.shape, dtype=np.int64)
        shift = 0 if offset else TAG_OFFSET
        for t in self.store.tags:
            xy = self.store[t].coord_array()
            out[xy[:, 1], xy[:, 0]] = t - shift
        return out
