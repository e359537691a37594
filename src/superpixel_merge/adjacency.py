"""
Region adjacency table.

Neighbors are kept as tag → set of tags, always symmetric. Edge weights
are opaque floats supplied by callers and cached per unordered pair; the
graph surgery invalidates them whenever either side changes.
"""

from __future__ import annotations

import numpy as np
import networkx as nx
from typing import Dict, Iterable, List, Optional, Set, Tuple

Edge = Tuple[int, int]


def edge_key(a: int, b: int) -> Edge:
    """Canonical (min, max) key for the unordered pair a–b."""
    return (a, b) if a < b else (b, a)


def adjacent_pairs(tags: np.ndarray, connectivity: int = 8) -> np.ndarray:
    """
    Unique undirected label pairs that touch in the (H, W) tag map.

    Returns an (E, 2) array with column 0 < column 1, lexicographically sorted.
    """
    pairs_h = np.stack([tags[:, :-1].ravel(), tags[:, 1:].ravel()], 1)
    pairs_v = np.stack([tags[:-1, :].ravel(), tags[1:, :].ravel()], 1)
    if connectivity == 8:
        pairs_d1 = np.stack([tags[:-1, :-1].ravel(), tags[1:, 1:].ravel()], 1)
        pairs_d2 = np.stack([tags[:-1,  1:].ravel(), tags[1:, :-1].ravel()], 1)
        all_pairs = np.concatenate([pairs_h, pairs_v, pairs_d1, pairs_d2], 0)
    elif connectivity == 4:
        all_pairs = np.concatenate([pairs_h, pairs_v], 0)
    else:
        raise ValueError(f"connectivity must be 4 or 8, got {connectivity}")

    all_pairs = all_pairs[all_pairs[:, 0] != all_pairs[:, 1]]
    if all_pairs.size == 0:
        return np.empty((0, 2), dtype=tags.dtype)
    return np.unique(np.sort(all_pairs, axis=1), axis=0)


class AdjacencyTable:

    def __init__(self):
        self._neighbors: Dict[int, Set[int]]   = {}
        self._weights:   Dict[Edge, float]     = {}

    @classmethod
    def from_labels(cls, tags: np.ndarray, connectivity: int = 8) -> "AdjacencyTable":
        """Build from an (H, W) tag map (already decoded, see labels.decode_labels)."""
        table = cls()
        for t in np.unique(tags).tolist():
            table._neighbors[t] = set()
        for a, b in adjacent_pairs(tags, connectivity).tolist():
            table._neighbors[a].add(b)
            table._neighbors[b].add(a)
        return table

    # Neighbors

    def neighbors(self, tag: int) -> Set[int]:
        """Live neighbor set. Copy it before merging while iterating."""
        return self._neighbors[tag]

    def set_neighbors(self, tag: int, neighbors: Iterable[int]) -> None:
        self._neighbors[tag] = set(neighbors)

    def remove_all(self, tag: int) -> None:
        """Drop the adjacency row of `tag`. Does not touch other rows."""
        self._neighbors.pop(tag, None)

    def __contains__(self, tag: int) -> bool:
        return tag in self._neighbors

    def tags(self) -> List[int]:
        return sorted(self._neighbors)

    def edges(self) -> List[Edge]:
        """Every undirected edge once, sorted."""
        return sorted(
            (a, b) for a, nbrs in self._neighbors.items() for b in nbrs if a < b
        )

    # Weight cache

    def weight(self, a: int, b: int) -> Optional[float]:
        return self._weights.get(edge_key(a, b))

    def set_weight(self, a: int, b: int, w: float) -> None:
        self._weights[edge_key(a, b)] = float(w)

    def invalidate(self, a: int, b: int) -> None:
        self._weights.pop(edge_key(a, b), None)

    def cached_edges(self) -> List[Edge]:
        return list(self._weights)

    # Export

    def to_networkx(self) -> nx.Graph:
        G = nx.Graph()
        G.add_nodes_from(self._neighbors)
        for a, b in self.edges():
            w = self._weights.get((a, b))
            if w is None:
                G.add_edge(a, b)
            else:
                G.add_edge(a, b, weight=w)
        return G
