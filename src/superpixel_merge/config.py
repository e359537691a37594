"""
Configuration for merge passes and pipelines.

Dataclasses carry the defaults; YAML files under configs/ (or any explicit
path) override them. Example:

    cfg = load_pipeline_config("pipeline")
    cfg = load_pipeline_config("my_run.yaml")
"""

from __future__ import annotations

import yaml
from enum import Enum
from pathlib import Path
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional, Union


CONFIG_DIR = Path(__file__).resolve().parent / "configs"   # shipped as package data


class BackprojectRange(Enum):
    """
    Back-projection acceptance presets.

    value = (num_percent_ranges, num_top_percent, min_intensity, num_bins)

    Coverage is split into num_percent_ranges slots; a neighbor qualifies
    when its coverage lands in the top num_top_percent slots.
    """
    HIGH_FIVE  = (20,  1, 200, 16)
    HIGH_FIVE8 = (20,  2, 200,  8)
    HIGH_TEN   = (20,  2, 200, 16)
    HIGH_15    = (20,  3, 200, 16)
    HIGH_20    = (20,  4, 200, 16)
    HIGH_50    = (20, 10, 128,  8)

    @property
    def num_percent_ranges(self) -> int:
        return self.value[0]

    @property
    def num_top_percent(self) -> int:
        return self.value[1]

    @property
    def min_intensity(self) -> int:
        return self.value[2]

    @property
    def num_bins(self) -> int:
        return self.value[3]

    @property
    def slot(self) -> float:
        return 1.0 / self.num_percent_ranges

    @property
    def threshold(self) -> float:
        """Minimum coverage a neighbor needs to qualify."""
        return 1.0 - self.slot * self.num_top_percent

    @classmethod
    def from_name(cls, name: str) -> "BackprojectRange":
        try:
            return cls[name.upper()]
        except KeyError:
            raise ValueError(
                f"Unknown back-projection preset '{name}'. "
                f"Choose from {[p.name for p in cls]}"
            ) from None


@dataclass
class TraversalConfig:
    preset:           Optional[str]   = None    # BackprojectRange name; None = strategy default
    num_bins:         Optional[int]   = None    # overrides the preset's bins
    round_percent:    Optional[bool]  = None    # snap coverage to slot width; None = strategy default
    use_edge_weights: bool            = True    # guard BFS merges with should_merge_edge
    lock_large:       bool            = False   # pre-lock size outliers before BFS
    tiny_size:        int             = 10      # regions below this are "tiny"
    edgy_fraction:    float           = 0.90    # boundary share above which a region is edgy
    large_neighbor_k: float           = 0.5     # neighbor size outlier limit = mean + k * std
    check_invariants: bool            = False   # verify the graph after every pass

    def backproject_range(self, default: str) -> BackprojectRange:
        return BackprojectRange.from_name(self.preset or default)


@dataclass
class PassConfig:
    strategy: str
    options:  TraversalConfig = field(default_factory=TraversalConfig)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "PassConfig":
        raw = dict(raw)
        if "strategy" not in raw:
            raise ValueError(f"Pass entry needs a 'strategy' key: {raw}")
        strategy = raw.pop("strategy")
        known = {f.name for f in fields(TraversalConfig)}
        unknown = set(raw) - known
        if unknown:
            raise ValueError(f"Unknown options for pass '{strategy}': {sorted(unknown)}")
        return cls(strategy=strategy, options=TraversalConfig(**raw))


@dataclass
class PipelineConfig:
    colorspace:   str   = "bgr"
    num_bins:     int   = 16
    connectivity: int   = 8
    passes:       List[PassConfig] = field(default_factory=lambda: [
        PassConfig("identical"),
        PassConfig("bfs_backproject", TraversalConfig(preset="HIGH_FIVE8", use_edge_weights=False)),
        PassConfig("tiny"),
    ])

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "PipelineConfig":
        raw = dict(raw or {})
        passes = raw.pop("passes", None)
        cfg = cls(**raw)
        if passes is not None:
            cfg.passes = [PassConfig.from_dict(p) for p in passes]
        return cfg


def _resolve(name: Union[str, Path]) -> Path:
    path = Path(name)
    if path.suffix in (".yaml", ".yml"):
        return path
    return CONFIG_DIR / f"{name}.yaml"


def load_raw_config(name: Union[str, Path]) -> Dict[str, Any]:
    """
    Load raw yaml configuration without parsing into dataclasses.
    `name` is either a file in configs/ (without extension) or a path.
    """
    path = _resolve(name)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def create_config(name: Union[str, Path], cls):
    """
    Convert a YAML config into a typed dataclass.
    Example:
        opts = create_config("traversal", TraversalConfig)
    """
    raw = load_raw_config(name)
    if hasattr(cls, "from_dict"):
        return cls.from_dict(raw)
    return cls(**raw)


def load_pipeline_config(name: Union[str, Path] = "pipeline") -> PipelineConfig:
    return create_config(name, PipelineConfig)
