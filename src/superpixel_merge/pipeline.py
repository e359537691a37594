"""
Region-merge pipeline.

Orchestrates:
  1. Initial labels (given, or SLIC over-segmentation)
  2. Region graph construction
  3. The configured merge passes, in order
  4. Rendering of the merged partition

Usage
-----
pipeline = MergePipeline(load_pipeline_config("pipeline"))
result   = pipeline.run(image)
result.save("output")
"""

from __future__ import annotations

import logging
import time
import numpy as np
import cv2
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from . import cleanup  # noqa: F401  registers the cleanup passes
from .config import PipelineConfig
from .graph import RegionGraph
from .labels import encode_labels
from .observer import MergeObserver
from .oversegment import SuperpixelExtractor
from .similarity import HistogramEvaluator
from .traversal import build_strategy
from .visualise import colour_table, render_boundaries, render_labels, render_mean

logger = logging.getLogger(__name__)


@dataclass
class MergeResult:
    """All outputs from one pipeline run."""
    image:      np.ndarray                  # Original BGR
    labels:     np.ndarray                  # (H, W) int64 merged labels (input numbering)
    graph:      RegionGraph                 # Final graph
    n_initial:  int                         # Regions before the first pass
    passes:     List[Tuple[str, int]] = field(default_factory=list)   # (strategy, merges)
    timing:     dict = field(default_factory=dict)

    @property
    def n_regions(self) -> int:
        return len(self.graph)

    @property
    def n_merges(self) -> int:
        return sum(n for _, n in self.passes)

    def show(self) -> None:
        """Display input / regions / mean colour (blocks until key press)."""
        panel = np.concatenate([
            self.image,
            render_labels(self.graph),
            render_mean(self.graph, self.image),
        ], axis=1)
        cv2.imshow("Input | Regions | Mean colour", panel)
        cv2.waitKey(0)
        cv2.destroyAllWindows()

    def save(self, prefix: str = "result") -> None:
        table = colour_table(self.graph)
        cv2.imwrite(f"{prefix}_tags.png",       encode_labels(self.graph.to_label_image()))
        cv2.imwrite(f"{prefix}_regions.png",    render_labels(self.graph, table))
        cv2.imwrite(f"{prefix}_mean.png",       render_mean(self.graph, self.image))
        cv2.imwrite(f"{prefix}_boundaries.png", render_boundaries(self.graph, self.image))
        print(f"Saved outputs with prefix: {prefix}")

    def as_dict(self) -> dict:
        return {
            "n_initial": self.n_initial,
            "n_regions": self.n_regions,
            "n_merges":  self.n_merges,
            "passes":    [{"strategy": s, "merges": n} for s, n in self.passes],
            "timing":    dict(self.timing),
        }


class MergePipeline:
    """
    Parameters
    ----------
    config    : PipelineConfig (default: identical → bfs_backproject(HIGH_FIVE8) → tiny)
    observer  : optional MergeObserver receiving merge / lock / pass events
    extractor : SuperpixelExtractor used when run() gets no labels
    """

    def __init__(
        self,
        config:    Optional[PipelineConfig]       = None,
        observer:  Optional[MergeObserver]        = None,
        extractor: Optional[SuperpixelExtractor]  = None,
    ):
        self.config    = config or PipelineConfig()
        self.observer  = observer
        self.extractor = extractor or SuperpixelExtractor()

    def run(self, image: np.ndarray, labels: Optional[np.ndarray] = None) -> MergeResult:
        """
        Parameters
        ----------
        image  : BGR uint8 (H, W, 3)
        labels : (H, W) integer labels or (H, W, 3) BGR tag image;
                 over-segmented with the extractor when None
        """
        cfg    = self.config
        timing = {}

        t0 = time.perf_counter()
        if labels is None:
            labels = self.extractor.compute(image)
            timing["oversegment"] = time.perf_counter() - t0
        if labels.shape[:2] != image.shape[:2]:
            raise ValueError(
                f"Label image {labels.shape[:2]} does not match image {image.shape[:2]}"
            )

        t0 = time.perf_counter()
        graph = RegionGraph.from_label_image(labels, cfg.connectivity)
        evaluator = HistogramEvaluator(image, cfg.colorspace, cfg.num_bins)
        timing["graph"] = time.perf_counter() - t0
        n_initial = len(graph)

        passes = []
        for i, p in enumerate(cfg.passes):
            t0 = time.perf_counter()
            strategy = build_strategy(p.strategy, graph, evaluator, p.options, self.observer)
            n = strategy.run()
            timing[f"{i}_{p.strategy}"] = time.perf_counter() - t0
            passes.append((p.strategy, n))

        logger.info(f"Pipeline: {n_initial} -> {len(graph)} regions over {len(passes)} passes")
        return MergeResult(
            image=image,
            labels=graph.to_label_image(offset=False),
            graph=graph,
            n_initial=n_initial,
            passes=passes,
            timing=timing,
        )
