"""
Merge observers.

Strategies and the graph report what they do through an injected observer
instead of debug flags. The base class does nothing; MergeRecorder keeps an
in-memory log that tests and the CLI summary read back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple


class MergeObserver:
    """No-op hooks. Subclass and override what you need."""

    def on_merge(self, survivor: int, consumed: int) -> None:
        pass

    def on_lock(self, tag: int) -> None:
        pass

    def on_unlock(self, tags) -> None:
        pass

    def on_pass_start(self, name: str, n_regions: int) -> None:
        pass

    def on_pass_end(self, name: str, n_merges: int, n_regions: int) -> None:
        pass


@dataclass
class MergeRecorder(MergeObserver):
    merges:  List[Tuple[int, int]]      = field(default_factory=list)   # (survivor, consumed)
    locks:   List[int]                  = field(default_factory=list)
    unlocks: int                        = 0                             # number of lock clears
    passes:  List[Tuple[str, int, int]] = field(default_factory=list)   # (name, merges, regions left)

    def on_merge(self, survivor: int, consumed: int) -> None:
        self.merges.append((survivor, consumed))

    def on_lock(self, tag: int) -> None:
        self.locks.append(tag)

    def on_unlock(self, tags) -> None:
        self.unlocks += 1

    def on_pass_end(self, name: str, n_merges: int, n_regions: int) -> None:
        self.passes.append((name, n_merges, n_regions))
