"""
Colour similarity between regions.

SimilarityEvaluator is the boundary the traversal strategies talk to.
HistogramEvaluator is the default implementation on OpenCV:

  compare              — Bhattacharyya distance between 3-D colour
                         histograms (0 = identical, 1 = disjoint)
  backproject_coverage — fraction of a candidate's pixels whose likelihood
                         under the source histogram reaches a threshold
  is_all_same          — every pixel of the region has one exact colour
"""

from __future__ import annotations

import abc
import logging
import numpy as np
import cv2
from typing import Dict, Tuple

from .region import Region

logger = logging.getLogger(__name__)

DEFAULT_BINS = 16

COLORSPACES = {
    "bgr":   None,
    "lab":   cv2.COLOR_BGR2Lab,
    "hsv":   cv2.COLOR_BGR2HSV,
    "ycrcb": cv2.COLOR_BGR2YCrCb,
}


class SimilarityEvaluator(abc.ABC):

    @abc.abstractmethod
    def compare(self, a: Region, b: Region) -> float:
        """Dissimilarity of two regions; lower means more alike."""

    @abc.abstractmethod
    def backproject_coverage(
        self,
        source:        Region,
        candidate:     Region,
        min_intensity: int,
        num_bins:      int,
        strict:        bool = False,
    ) -> float:
        """Fraction in [0, 1] of candidate pixels explained by the source colours."""

    @abc.abstractmethod
    def is_all_same(self, region: Region) -> bool:
        ...

    @abc.abstractmethod
    def same_colour(self, a: Region, b: Region) -> bool:
        """True when two all-same regions share their colour."""


class HistogramEvaluator(SimilarityEvaluator):
    """
    Parameters
    ----------
    image      : BGR uint8 (H, W, 3), same size as the label image
    colorspace : "bgr" | "lab" | "hsv" | "ycrcb"; histograms are built in this space
    num_bins   : bins per channel for compare()
    """

    def __init__(self, image: np.ndarray, colorspace: str = "bgr", num_bins: int = DEFAULT_BINS):
        if image.ndim != 3 or image.shape[2] != 3:
            raise ValueError(f"Expected a (H, W, 3) colour image, got shape {image.shape}")
        if colorspace not in COLORSPACES:
            raise ValueError(
                f"Unknown colorspace '{colorspace}'. Choose from {sorted(COLORSPACES)}"
            )
        self.bgr        = np.ascontiguousarray(image, dtype=np.uint8)
        self.colorspace = colorspace
        self.num_bins   = num_bins

        code = COLORSPACES[colorspace]
        self.pixels = self.bgr if code is None else cv2.cvtColor(self.bgr, code)
        # (tag, bins) → (n_coords, hist); coords only grow, so n_coords identifies the pixel set
        self._hist_cache: Dict[Tuple[int, int], Tuple[int, np.ndarray]] = {}

    def _region_pixels(self, region: Region, source: np.ndarray) -> np.ndarray:
        xy = region.coord_array()
        return np.ascontiguousarray(source[xy[:, 1], xy[:, 0]].reshape(-1, 1, 3))

    def histogram(self, region: Region, num_bins: int | None = None) -> np.ndarray:
        """Normalised 3-D histogram (largest bin = 1.0), cached per region size."""
        bins = num_bins or self.num_bins
        key  = (region.tag, bins)
        n    = len(region.coords)
        hit  = self._hist_cache.get(key)
        if hit is not None and hit[0] == n:
            return hit[1]

        pix  = self._region_pixels(region, self.pixels)
        hist = cv2.calcHist([pix], [0, 1, 2], None, [bins] * 3, [0, 256] * 3)
        peak = float(hist.max())
        if peak > 0:
            hist /= peak
        self._hist_cache[key] = (n, hist)
        return hist

    def compare(self, a: Region, b: Region) -> float:
        ha = self.histogram(a)
        hb = self.histogram(b)
        return float(cv2.compareHist(ha, hb, cv2.HISTCMP_BHATTACHARYYA))

    def backproject_coverage(
        self,
        source:        Region,
        candidate:     Region,
        min_intensity: int,
        num_bins:      int,
        strict:        bool = False,
    ) -> float:
        if not candidate.coords:
            return 0.0
        hist = self.histogram(source, num_bins)
        back = self.backproject(hist, candidate, num_bins)
        if strict:
            count = int(np.count_nonzero(back > min_intensity))
        else:
            count = int(np.count_nonzero(back >= min_intensity))
        return count / len(candidate.coords)

    def backproject(self, hist: np.ndarray, region: Region, num_bins: int) -> np.ndarray:
        """
        Likelihood (0-255) of each region pixel under `hist`.

        Looked up bin by bin in numpy: cv2.calcBackProject reads a 3-D numpy
        histogram as a multi-channel 2-D Mat and returns zeros.
        """
        pix = self._region_pixels(region, self.pixels).reshape(-1, 3).astype(np.int64)
        idx = pix * num_bins // 256
        back = hist[idx[:, 0], idx[:, 1], idx[:, 2]] * 255.0
        return np.clip(np.rint(back), 0, 255).astype(np.uint8)

    def is_all_same(self, region: Region) -> bool:
        if region.all_same is None:
            pix = self._region_pixels(region, self.bgr).reshape(-1, 3)
            region.all_same = bool((pix == pix[0]).all()) if len(pix) else False
        return region.all_same

    def same_colour(self, a: Region, b: Region) -> bool:
        xa, ya = a.coords[0]
        xb, yb = b.coords[0]
        return bool((self.bgr[ya, xa] == self.bgr[yb, xb]).all())

    def forget(self, tag: int) -> None:
        """Drop cached histograms of a consumed region."""
        for key in [k for k in self._hist_cache if k[0] == tag]:
            del self._hist_cache[key]


def edge_weight(graph, evaluator: SimilarityEvaluator, a: int, b: int) -> float:
    """Cached compare() of two adjacent regions, stored in the adjacency table."""
    w = graph.adjacency.weight(a, b)
    if w is None:
        w = evaluator.compare(graph.store[a], graph.store[b])
        graph.adjacency.set_weight(a, b, w)
    return w
