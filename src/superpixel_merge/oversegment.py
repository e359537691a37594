"""
Initial over-segmentation.

Produces the (H, W) label map the merge engine starts from, using
scikit-image SLIC or Felzenszwalb on a BGR image.
"""

from __future__ import annotations

import cv2
import numpy as np
from dataclasses import dataclass
from skimage.segmentation import felzenszwalb, slic


@dataclass
class OversegmentConfig:
    method:      str   = "slic"   # "slic" | "felzenszwalb"
    n_segments:  int   = 400      # SLIC target superpixel count
    compactness: float = 10.0     # SLIC spatial regularisation (higher = more square)
    sigma:       float = 1.0      # Gaussian pre-smoothing
    scale:       float = 100.0    # Felzenszwalb observation scale
    min_size:    int   = 20       # Felzenszwalb minimum component size


class SuperpixelExtractor:
    def __init__(self, config: OversegmentConfig | None = None):
        self.config = config or OversegmentConfig()
        if self.config.method not in ("slic", "felzenszwalb"):
            raise ValueError(f"Unknown over-segmentation method '{self.config.method}'")

    def compute(self, img_bgr: np.ndarray) -> np.ndarray:
        """BGR uint8 (H, W, 3) → (H, W) int32 labels starting at 0."""
        cfg = self.config
        rgb = cv2.cvtColor(img_bgr, cv2.COLOR_BGR2RGB)
        if cfg.method == "slic":
            seg = slic(
                rgb,
                n_segments=cfg.n_segments,
                compactness=cfg.compactness,
                sigma=cfg.sigma,
                start_label=0,
                channel_axis=-1,
            )
        else:
            seg = felzenszwalb(rgb, scale=cfg.scale, sigma=cfg.sigma, min_size=cfg.min_size)
        return seg.astype(np.int32)
