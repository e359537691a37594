"""
superpixel-merge

Coarsen an over-segmented label image by merging adjacent superpixels that
are alike in colour, stopping at real visual edges. The core is a region
adjacency graph with one merge operator driven by several traversal
strategies.

"""

from .errors import InvariantViolation, InputValidation
from .labels import decode_labels, encode_labels
from .region import Region
from .store import RegionStore
from .adjacency import AdjacencyTable, edge_key
from .graph import RegionGraph
from .similarity import SimilarityEvaluator, HistogramEvaluator, edge_weight
from .edges import EdgeClassifier
from .bounds import within_bound, should_merge_edge
from .workset import Workset
from .observer import MergeObserver, MergeRecorder
from .config import (
    BackprojectRange, TraversalConfig, PassConfig, PipelineConfig,
    load_raw_config, create_config, load_pipeline_config,
)
from .traversal import (
    TraversalStrategy, GreedyLargestFirst, BreadthFirstBackproject,
    DepthFirstFloodFill, SmallestFirst, STRATEGIES, build_strategy,
)
from .cleanup import (
    IdenticalRegionMerge, EdgeDensityCleanup, TinyRegionCleanup,
    filter_large_neighbors,
)
from .oversegment import SuperpixelExtractor, OversegmentConfig
from .pipeline import MergePipeline, MergeResult
from .visualise import (
    colour_table, render_labels, render_mean, render_boundaries,
    plot_region_graph,
)

__version__ = "0.1.0"
__author__  = "Haniel Ulises Vásquez Morales"

__all__ = [
    "InvariantViolation", "InputValidation",
    "decode_labels", "encode_labels",

    "Region", "RegionStore", "AdjacencyTable", "edge_key", "RegionGraph",

    "SimilarityEvaluator", "HistogramEvaluator", "edge_weight", "EdgeClassifier",
    "within_bound", "should_merge_edge",
    "Workset", "MergeObserver", "MergeRecorder",

    "BackprojectRange", "TraversalConfig", "PassConfig", "PipelineConfig",
    "load_raw_config", "create_config", "load_pipeline_config",

    "TraversalStrategy", "GreedyLargestFirst", "BreadthFirstBackproject",
    "DepthFirstFloodFill", "SmallestFirst", "STRATEGIES", "build_strategy",
    "IdenticalRegionMerge", "EdgeDensityCleanup", "TinyRegionCleanup",
    "filter_large_neighbors",

    "SuperpixelExtractor", "OversegmentConfig",
    "MergePipeline", "MergeResult",

    "colour_table", "render_labels", "render_mean", "render_boundaries",
    "plot_region_graph",
]
