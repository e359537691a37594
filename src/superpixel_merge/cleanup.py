"""
Cleanup passes.

IdenticalRegionMerge — fuse neighboring regions that are one exact colour
EdgeDensityCleanup   — regions that are almost all boundary ("edgy") merge
                       only with other edgy regions
TinyRegionCleanup    — regions under a few pixels join their most alike
                       neighbor, ignoring neighbors that are much larger
"""

from __future__ import annotations

import logging
from typing import Dict, List

from .bounds import mean_std, should_merge_edge
from .edges import EdgeClassifier
from .graph import RegionGraph
from .traversal import STRATEGIES, TraversalStrategy, compare_neighbors

logger = logging.getLogger(__name__)

NEIGHBOR_MIN_STDDEV = 10.0   # neighbor sizes this close together are never filtered


def filter_large_neighbors(
    graph:   RegionGraph,
    tag:     int,
    k:       float = 0.5,
    min_std: float = NEIGHBOR_MIN_STDDEV,
) -> List[int]:
    """
    Neighbors of `tag` that are size outliers among its neighbors.

    Neighbors are taken largest first; the largest is excluded while its
    size exceeds mean + k * stddev of the sizes still in play. Filtering
    stops at one remaining neighbor or when the sizes are too close
    together (stddev below `min_std`).
    """
    sizes = sorted(
        ((graph.size(n), n) for n in graph.neighbors(tag)),
        key=lambda s: (-s[0], s[1]),
    )
    large = []
    while len(sizes) > 1:
        mean, std = mean_std([s for s, _ in sizes])
        if std < min_std:
            break
        if sizes[0][0] > mean + k * std:
            large.append(sizes.pop(0)[1])
        else:
            break
    return large


class IdenticalRegionMerge(TraversalStrategy):
    """Merge every pair of adjacent regions that hold one identical colour."""

    name = "identical"

    def _run(self) -> None:
        graph, ev = self.graph, self.evaluator
        identical = [t for t in graph.store.tags if ev.is_all_same(graph.region(t))]
        logger.debug(f"identical: {len(identical)} single-colour regions")

        for tag in identical:
            while tag in graph:
                merged = False
                region = graph.region(tag)
                for n in sorted(graph.neighbors(tag)):
                    other = graph.region(n)
                    if other is None or not ev.is_all_same(other):
                        continue
                    if not ev.same_colour(region, other):
                        continue
                    survivor = self._merge(tag, n, keep_all_same=True)
                    merged = True
                    if survivor != tag:
                        break
                if not merged:
                    break


class EdgeDensityCleanup(TraversalStrategy):
    """
    Merge edgy regions into each other.

    A region is edgy when more than `edgy_fraction` of its pixels touch a
    neighbor. Regions with a single neighbor are enclosed, not edgy, and the
    size outliers are skipped when `lock_large` is set. Each edgy region
    merges its edgy neighbors in increasing edge-weight order until
    should_merge_edge() refuses one.
    """

    name = "edgy"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.classifier = EdgeClassifier(self.graph.shape)

    def find_edgy(self) -> List[int]:
        graph = self.graph
        skip = set(graph.store.scan_largest_by_size()) if self.config.lock_large else set()

        edgy = []
        for tag in graph.store.tags:
            if tag in skip:
                continue
            nbrs = graph.neighbors(tag)
            if len(nbrs) == 1:
                continue
            region = graph.region(tag)
            per = self.classifier.edge_fraction(region, [graph.region(n) for n in nbrs])
            if per > self.config.edgy_fraction:
                edgy.append(tag)
        return edgy

    def _run(self) -> None:
        graph = self.graph
        table: Dict[int, bool] = dict.fromkeys(self.find_edgy(), True)
        logger.debug(f"edgy: {len(table)} edgy regions")

        while table:
            tag = next(iter(table))
            if tag not in graph:
                del table[tag]
                continue

            others = {n for n in graph.neighbors(tag) if n not in table}
            results = compare_neighbors(graph, self.evaluator, tag, others)
            if not results:
                del table[tag]
                continue

            n_merged = 0
            for w, _, n in results:
                if not should_merge_edge(graph.region(tag), w):
                    break
                self._merge(tag, n)
                n_merged += 1
                if tag not in graph:
                    del table[tag]
                    break
                table.pop(n, None)

            if n_merged == 0:
                table.pop(tag, None)


class TinyRegionCleanup(TraversalStrategy):
    """
    Merge regions smaller than `tiny_size` pixels into their most alike
    neighbor. Much larger neighbors are left out of the comparison; among
    equally alike neighbors the smallest wins.
    """

    name = "tiny"

    def _run(self) -> None:
        graph, cfg = self.graph, self.config
        tiny = [t for t in graph.store.tags if graph.size(t) < cfg.tiny_size]
        logger.debug(f"tiny: {len(tiny)} regions under {cfg.tiny_size} px")

        i = 0
        while i < len(tiny):
            tag = tiny[i]
            if tag not in graph or graph.size(tag) >= cfg.tiny_size:
                i += 1
                continue

            large   = filter_large_neighbors(graph, tag, cfg.large_neighbor_k)
            results = compare_neighbors(graph, self.evaluator, tag, set(large))
            if not results:
                i += 1
                continue

            best_w, _, best = results[0]
            for w, _, n in results[1:]:
                if w != best_w:
                    break
                best = n

            self._merge(tag, best)
            if tag not in graph or graph.size(tag) >= cfg.tiny_size:
                i += 1


STRATEGIES.update({
    IdenticalRegionMerge.name: IdenticalRegionMerge,
    EdgeDensityCleanup.name:   EdgeDensityCleanup,
    TinyRegionCleanup.name:    TinyRegionCleanup,
})
