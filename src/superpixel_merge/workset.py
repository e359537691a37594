"""Lock and dirty bookkeeping shared by the traversal strategies."""

from __future__ import annotations

from typing import Iterable, Optional, Set

from .observer import MergeObserver


class Workset:
    """
    locked    : regions a strategy must not select or merge into this round
    permanent : locks that survive unlock_dirty()
    dirty     : regions that changed since the last lock clear
    """

    def __init__(self, observer: Optional[MergeObserver] = None):
        self.locked:    Set[int] = set()
        self.permanent: Set[int] = set()
        self.dirty:     Set[int] = set()
        self.observer = observer or MergeObserver()

    def __contains__(self, tag: int) -> bool:
        return tag in self.locked

    def lock(self, tag: int, permanent: bool = False) -> None:
        self.locked.add(tag)
        if permanent:
            self.permanent.add(tag)
        self.observer.on_lock(tag)

    def lock_all(self, tags: Iterable[int], permanent: bool = False) -> None:
        for t in tags:
            self.lock(t, permanent)

    def mark_dirty(self, tag: int) -> None:
        self.dirty.add(tag)

    def forget(self, tag: int) -> None:
        """Drop every trace of a consumed region."""
        self.locked.discard(tag)
        self.permanent.discard(tag)
        self.dirty.discard(tag)

    def unlock_dirty(self) -> bool:
        """
        Unlock regions that changed since the last clear.

        Returns False when nothing was dirty, i.e. the traversal reached a
        fixed point.
        """
        if not self.dirty:
            return False
        released = self.dirty - self.permanent
        self.locked -= released
        self.observer.on_unlock(released)
        self.dirty.clear()
        return True
