"""
Rendering helpers for merged region graphs.

Functions
---------
colour_table      — random, reproducible BGR colour per region tag
render_labels     — paint every region with its table colour
render_mean       — paint every region with its mean image colour
render_boundaries — region boundaries over the input image
plot_region_graph — draw the adjacency graph over the image (matplotlib)
"""

from __future__ import annotations

import numpy as np
import cv2
from typing import Dict, Optional, Tuple

from skimage.segmentation import mark_boundaries

try:
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt
    _MPL = True
except ImportError:
    _MPL = False

Colour = Tuple[int, int, int]


def colour_table(graph, seed: int = 0) -> Dict[int, Colour]:
    """One distinct BGR colour per active tag. Same seed → same colours."""
    rng = np.random.default_rng(seed)
    table: Dict[int, Colour] = {}
    used = set()
    for tag in graph.store.tags:
        while True:
            c = tuple(int(v) for v in rng.integers(0, 256, 3))
            if c not in used:
                break
        used.add(c)
        table[tag] = c
    return table


def render_labels(graph, table: Optional[Dict[int, Colour]] = None) -> np.ndarray:
    """(H, W, 3) uint8 BGR image of the current partition."""
    table = table or colour_table(graph)
    out = np.zeros((*graph.shape, 3), dtype=np.uint8)
    for tag in graph.store.tags:
        xy = graph.region(tag).coord_array()
        out[xy[:, 1], xy[:, 0]] = table[tag]
    return out


def render_mean(graph, image: np.ndarray) -> np.ndarray:
    """Each region filled with its mean BGR colour."""
    out = np.zeros_like(image)
    for tag in graph.store.tags:
        xy = graph.region(tag).coord_array()
        pix = image[xy[:, 1], xy[:, 0]]
        out[xy[:, 1], xy[:, 0]] = pix.mean(0).round().astype(np.uint8)
    return out


def render_boundaries(graph, image: np.ndarray, colour=(1, 0.4, 0)) -> np.ndarray:
    """BGR uint8 image with region boundaries marked."""
    rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
    marked = mark_boundaries(rgb, graph.to_label_image(), color=colour)
    return cv2.cvtColor((marked * 255).astype(np.uint8), cv2.COLOR_RGB2BGR)


def plot_region_graph(
    graph,
    image:     np.ndarray,
    save_path: Optional[str] = None,
    show:      bool = False,
    max_edges: int = 3000,
) -> Optional["plt.Figure"]:
    """
    Draw the region adjacency graph over the image.
    Nodes sit at region centroids, sized by pixel count.

    Parameters
    ----------
    graph    : RegionGraph
    image    : BGR image the labels belong to
    max_edges: skip edge drawing past this many edges (performance)
    """
    if not _MPL:
        print("[visualise] matplotlib not installed, skipping plots.")
        return None

    import networkx as nx

    fig, axes = plt.subplots(1, 2, figsize=(14, 6))
    fig.suptitle("Region Adjacency Graph", fontsize=12)

    rgb = cv2.cvtColor(render_boundaries(graph, image), cv2.COLOR_BGR2RGB)
    axes[0].imshow(rgb); axes[0].set_title(f"Regions (N={len(graph)})"); axes[0].axis("off")

    G = graph.adjacency.to_networkx()
    pos, sizes = {}, []
    for tag in G.nodes:
        xy = graph.region(tag).coord_array()
        pos[tag] = (xy[:, 0].mean(), xy[:, 1].mean())
        sizes.append(len(xy))
    sizes = np.asarray(sizes, dtype=np.float32)
    node_size = 10 + 200 * sizes / max(float(sizes.max()), 1.0) if len(sizes) else 10

    axes[1].imshow(cv2.cvtColor(image, cv2.COLOR_BGR2RGB), alpha=0.4)
    edgelist = list(G.edges)[:max_edges]
    nx.draw_networkx_edges(G, pos, edgelist=edgelist, ax=axes[1], alpha=0.5, width=0.8)
    nx.draw_networkx_nodes(G, pos, ax=axes[1], node_size=node_size, node_color="tomato")
    axes[1].set_title(f"Adjacency (E={G.number_of_edges()})"); axes[1].axis("off")

    plt.tight_layout()
    if save_path:
        fig.savefig(save_path, dpi=120, bbox_inches="tight")
    if show:
        plt.show()
    return fig
