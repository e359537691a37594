"""
Traversal strategies over the region graph.

Every strategy cycles through the same states

    selecting → evaluating neighbors → merging → locking → selecting

and differs only in which region it selects next, how neighbors are
scored, and when locks are cleared.

Strategies
----------
GreedyLargestFirst      — largest unlocked region absorbs its most alike
                          neighbor while the growth bound holds
BreadthFirstBackproject — size-ordered sweep merging neighbors that the
                          region's histogram back-projects onto, with a
                          dirty-region fixed point
DepthFirstFloodFill     — explicit-stack flood fill from the largest
                          unlocked seed, merged in one go
SmallestFirst           — smallest unlocked region is folded into its
                          best back-projection neighbor

Cleanup passes (identical colour, edgy regions, tiny regions) live in
cleanup.py and share the base class defined here.
"""

from __future__ import annotations

import logging
import time
from typing import Container, Dict, List, Optional, Tuple

from .bounds import SINGLE_MAX, should_merge_edge, within_bound
from .config import BackprojectRange, TraversalConfig
from .graph import RegionGraph
from .observer import MergeObserver
from .similarity import SimilarityEvaluator, edge_weight
from .workset import Workset

logger = logging.getLogger(__name__)

# (score, neighbor size, neighbor tag)
Candidate = Tuple[float, int, int]


# ── Neighbor ranking ──────────────────────────────────────────────────────────

def compare_neighbors(
    graph:     RegionGraph,
    evaluator: SimilarityEvaluator,
    tag:       int,
    locked:    Container[int] = (),
) -> List[Candidate]:
    """
    Edge weight against every unlocked neighbor.

    Sorted by ascending weight; ties go to the larger neighbor first.
    """
    results = []
    for n in graph.neighbors(tag):
        if n in locked:
            continue
        w = edge_weight(graph, evaluator, tag, n)
        results.append((w, graph.size(n), n))
    results.sort(key=lambda c: (c[0], -c[1], c[2]))
    return results


def backproject_neighbors(
    graph:         RegionGraph,
    evaluator:     SimilarityEvaluator,
    tag:           int,
    rng:           BackprojectRange,
    num_bins:      Optional[int] = None,
    round_percent: bool = False,
    strict:        bool = False,
    locked:        Container[int] = (),
) -> List[Candidate]:
    """
    Unlocked neighbors whose pixels are covered by `tag`'s histogram.

    A neighbor qualifies when its coverage reaches rng.threshold (exceeds it
    when `strict`). With `round_percent` the reported coverage is snapped
    to the nearest multiple of rng.slot so neighbors can be grouped.

    Sorted by descending coverage; ties go to the larger neighbor first.
    """
    unlocked = [n for n in graph.neighbors(tag) if n not in locked]
    if not unlocked:
        return []

    bins      = num_bins or rng.num_bins
    source    = graph.region(tag)
    threshold = rng.threshold
    results   = []
    for n in unlocked:
        per = evaluator.backproject_coverage(
            source, graph.region(n), rng.min_intensity, bins, strict=strict
        )
        ok = per > threshold if strict else per >= threshold
        if not ok:
            continue
        if round_percent:
            per = round(per / rng.slot) * rng.slot
        results.append((per, graph.size(n), n))
    results.sort(key=lambda c: (-c[0], -c[1], c[2]))
    return results


# ── Base ──────────────────────────────────────────────────────────────────────

class TraversalStrategy:
    """
    Parameters
    ----------
    graph     : RegionGraph mutated in place
    evaluator : SimilarityEvaluator for the same image
    config    : TraversalConfig; strategies fill unset fields with their own defaults
    observer  : optional MergeObserver (also registered on the graph for merges)
    """

    name:           str  = "base"
    default_preset: str  = "HIGH_FIVE"
    default_round:  bool = False

    def __init__(
        self,
        graph:     RegionGraph,
        evaluator: SimilarityEvaluator,
        config:    Optional[TraversalConfig] = None,
        observer:  Optional[MergeObserver]   = None,
    ):
        self.graph     = graph
        self.evaluator = evaluator
        self.config    = config or TraversalConfig()
        self.observer  = observer or MergeObserver()
        if observer is not None and all(o is not observer for o in graph.observers):
            graph.add_observer(observer)
        self.workset   = Workset(self.observer)
        self.n_merges  = 0

    @property
    def range(self) -> BackprojectRange:
        return self.config.backproject_range(self.default_preset)

    @property
    def num_bins(self) -> int:
        return self.config.num_bins or self.range.num_bins

    @property
    def round_percent(self) -> bool:
        if self.config.round_percent is None:
            return self.default_round
        return self.config.round_percent

    def run(self) -> int:
        """Run to completion; returns the number of merges performed."""
        n_before = len(self.graph)
        self.observer.on_pass_start(self.name, n_before)
        t0 = time.perf_counter()

        self._run()

        if self.config.check_invariants:
            self.graph.check_invariants()
        dt = time.perf_counter() - t0
        logger.info(
            f"[{self.name}] {self.n_merges} merges, {n_before} -> {len(self.graph)} regions "
            f"in {dt:.2f}s"
        )
        self.observer.on_pass_end(self.name, self.n_merges, len(self.graph))
        return self.n_merges

    def _run(self) -> None:
        raise NotImplementedError

    def _merge(self, a: int, b: int, **kwargs) -> int:
        survivor = self.graph.merge(a, b, **kwargs)
        consumed = b if survivor == a else a
        self.workset.forget(consumed)
        forget = getattr(self.evaluator, "forget", None)
        if forget is not None:
            forget(consumed)
        self.n_merges += 1
        return survivor

    def _backproject(self, tag: int, strict: bool = False) -> List[Candidate]:
        return backproject_neighbors(
            self.graph, self.evaluator, tag, self.range,
            num_bins=self.num_bins,
            round_percent=self.round_percent,
            strict=strict,
            locked=self.workset.locked,
        )


# ── Greedy ────────────────────────────────────────────────────────────────────

class GreedyLargestFirst(TraversalStrategy):
    """
    Grow the largest unlocked region one neighbor at a time.

    Each region keeps the weights of the merges it accepted during this run.
    The next best neighbor is merged only while within_bound() accepts its
    weight; a region's first merge must not cross a weight above SINGLE_MAX.
    A weight of 0.0 merges without being recorded.
    """

    name = "greedy_largest"

    def _run(self) -> None:
        store, ws = self.graph.store, self.workset
        history: Dict[int, List[float]] = {}

        while True:
            tag = store.largest_unlocked(ws.locked)
            if tag is None:
                break

            while tag not in ws:
                results = compare_neighbors(self.graph, self.evaluator, tag, ws.locked)
                if not results:
                    ws.lock(tag, permanent=True)
                    break

                w, _, best = results[0]
                weights = history.get(tag, [])
                if not weights and w > SINGLE_MAX:
                    accept = False
                else:
                    accept = within_bound(weights, w)

                if not accept:
                    logger.debug(f"greedy: lock {tag} at weight {w:.4f} ({len(weights)} merged)")
                    ws.lock(tag, permanent=True)
                    break

                survivor = self._merge(tag, best)
                weights = history.pop(tag, weights)
                history.pop(best, None)
                if w != 0.0:
                    weights = weights + [w]
                history[survivor] = weights
                tag = survivor


# ── Breadth first back-projection ─────────────────────────────────────────────

class BreadthFirstBackproject(TraversalStrategy):
    """
    Size-ordered sweep merging back-projection neighbors.

    With use_edge_weights (default) each region is expanded bin by bin:
    neighbors with the same rounded coverage are merged together in order of
    increasing edge weight, each guarded by should_merge_edge(), then the
    region is back-projected again. The first refused edge locks the region.
    Edge weights of neighbors that did not qualify are recorded as unmerged.

    Without edge weights every qualifying neighbor is merged at once and the
    sweep moves on.

    When the sweep reaches the end of the size order, regions that merged
    since the last clear are unlocked and the sweep restarts; the pass ends
    when a sweep merges nothing.
    """

    name           = "bfs_backproject"
    default_preset = "HIGH_50"
    default_round  = True

    def _run(self) -> None:
        ws = self.workset
        if self.config.lock_large:
            large = self.graph.store.scan_largest_by_size()
            ws.lock_all(large, permanent=True)
            logger.debug(f"bfs: pre-locked {len(large)} large regions")

        n_clears = 0
        while True:
            for tag in self.graph.store.sorted_by_size():
                if tag not in self.graph or tag in ws:
                    continue
                if self.config.use_edge_weights:
                    self._expand(tag)
                else:
                    self._merge_all(tag)

            if not ws.unlock_dirty():
                break
            n_clears += 1
        logger.debug(f"bfs: {n_clears} lock clears")

    def _merge_all(self, tag: int) -> None:
        results = self._backproject(tag)
        if not results:
            self.workset.lock(tag)
            return
        for _, _, n in results:
            if n not in self.graph or tag not in self.graph:
                continue
            tag = self._merge(tag, n)
        self.workset.mark_dirty(tag)

    def _neighbor_weights(self, tag: int) -> Dict[int, float]:
        return {
            n: edge_weight(self.graph, self.evaluator, tag, n)
            for n in sorted(self.graph.neighbors(tag))
        }

    def _expand(self, tag: int) -> None:
        ws = self.workset
        while tag not in ws:
            region  = self.graph.region(tag)
            weights = self._neighbor_weights(tag)
            results = self._backproject(tag)

            if not results:
                if not region.unmerged_weights:
                    region.unmerged_weights.extend(weights.values())
                ws.lock(tag)
                return

            qualifying = {n for _, _, n in results}
            region.unmerged_weights.extend(
                w for n, w in weights.items() if n not in qualifying
            )

            # only the top coverage bin is merged before projecting again
            top = results[0][0]
            in_bin = [(weights[n], size, n) for per, size, n in results if per == top]
            in_bin.sort(key=lambda c: (c[0], -c[1], c[2]))

            refused: List[float] = []
            for w, _, n in in_bin:
                if refused:
                    refused.append(w)
                    continue
                if not should_merge_edge(region, w):
                    logger.debug(f"bfs: hard edge {tag}-{n} at {w:.4f}, lock {tag}")
                    refused.append(w)
                    ws.lock(tag)
                    continue
                region.merged_weights.append(w)
                tag = self._merge(tag, n)
                region = self.graph.region(tag)
                ws.mark_dirty(tag)

            if refused:
                region.unmerged_weights.extend(refused)
                return


# ── Depth first flood fill ────────────────────────────────────────────────────

class DepthFirstFloodFill(TraversalStrategy):
    """
    Flood fill from the largest unlocked seed.

    Neighbors are explored with an explicit stack. A region joins the fill
    when its coverage by the seed's histogram is strictly above threshold,
    and then its own neighbors are pushed. The whole fill is merged into the
    seed and the seed is locked for good.
    """

    name           = "dfs_fill"
    default_preset = "HIGH_50"

    @property
    def num_bins(self) -> int:
        return self.config.num_bins or 16

    def _fill(self, seed: int) -> List[int]:
        graph, ws, rng = self.graph, self.workset, self.range
        source = graph.region(seed)

        first = sorted(graph.neighbors(seed))
        seen  = {seed, *first}
        stack = list(first)
        fill  = []
        while stack:
            tag = stack.pop()
            if tag in ws:
                continue
            per = self.evaluator.backproject_coverage(
                source, graph.region(tag), rng.min_intensity, self.num_bins, strict=True
            )
            if per <= rng.threshold:
                continue
            fill.append(tag)
            for n in sorted(graph.neighbors(tag)):
                if n not in seen:
                    seen.add(n)
                    stack.append(n)
        return fill

    def _run(self) -> None:
        store, ws = self.graph.store, self.workset
        while True:
            seed = store.largest_unlocked(ws.locked)
            if seed is None:
                break
            fill = self._fill(seed)
            for tag in fill:
                seed = self._merge(seed, tag)
            if fill:
                logger.debug(f"dfs: seed {seed} absorbed {len(fill)} regions")
            ws.lock(seed, permanent=True)


# ── Smallest first ────────────────────────────────────────────────────────────

class SmallestFirst(TraversalStrategy):
    """
    Fold the smallest unlocked region into its best back-projection neighbor.

    The largest region of the image is locked up front so it cannot absorb
    everything. The neighbor that receives a merge is marked dirty; regions
    with no qualifying neighbor are locked until the next dirty clear.
    """

    name = "smallest_first"

    @property
    def round_percent(self) -> bool:
        return bool(self.config.round_percent)

    def _run(self) -> None:
        store, ws = self.graph.store, self.workset
        order = store.sorted_by_size()
        if order:
            ws.lock(order[0], permanent=True)

        while True:
            tag = store.smallest_unlocked(ws.locked)
            if tag is None:
                if not ws.unlock_dirty():
                    break
                continue

            results = self._backproject(tag)
            if not results:
                ws.lock(tag)
                continue

            survivor = self._merge(tag, results[0][2])
            ws.mark_dirty(survivor)


STRATEGIES: Dict[str, type] = {
    GreedyLargestFirst.name:      GreedyLargestFirst,
    BreadthFirstBackproject.name: BreadthFirstBackproject,
    DepthFirstFloodFill.name:     DepthFirstFloodFill,
    SmallestFirst.name:           SmallestFirst,
}


def build_strategy(
    name:      str,
    graph:     RegionGraph,
    evaluator: SimilarityEvaluator,
    config:    Optional[TraversalConfig] = None,
    observer:  Optional[MergeObserver]   = None,
) -> TraversalStrategy:
    if name not in STRATEGIES:
        raise ValueError(f"Unknown strategy '{name}'. Choose from {sorted(STRATEGIES)}")
    return STRATEGIES[name](graph, evaluator, config, observer)
