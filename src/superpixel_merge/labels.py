"""
Label image codec.

A label image is either

  * a 3-channel uint8 BGR raster where each pixel packs a 24-bit tag as
    (R << 16) | (G << 8) | B, or
  * a 2-D integer array with one label per pixel (e.g. SLIC output).

Tag 0xFFFFFF is reserved and rejected. Every decoded label is shifted by +1
so tag 0 never appears inside the graph.
"""

from __future__ import annotations

import numpy as np

from .errors import InputValidation

RESERVED_TAG = 0xFFFFFF
TAG_OFFSET   = 1


def pack_bgr(image: np.ndarray) -> np.ndarray:
    """(H, W, 3) uint8 BGR → (H, W) int64 packed 24-bit value."""
    b = image[..., 0].astype(np.int64)
    g = image[..., 1].astype(np.int64)
    r = image[..., 2].astype(np.int64)
    return (r << 16) | (g << 8) | b


def decode_labels(labels: np.ndarray) -> np.ndarray:
    """
    Validate a label image and return an (H, W) int64 tag map.

    Parameters
    ----------
    labels : (H, W, 3) uint8 BGR tag raster or (H, W) integer label array

    Raises
    ------
    InputValidation : wrong shape/dtype, empty image, negative labels or the
                      reserved 0xFFFFFF tag
    """
    labels = np.asarray(labels)
    if labels.size == 0:
        raise InputValidation("Label image is empty")

    if labels.ndim == 3:
        if labels.shape[2] != 3:
            raise InputValidation(
                f"Expected 3 channels in a colour label image, got {labels.shape[2]}"
            )
        if labels.dtype != np.uint8:
            raise InputValidation(
                f"Colour label image must be uint8, got {labels.dtype}"
            )
        tags = pack_bgr(labels)
    elif labels.ndim == 2:
        if not np.issubdtype(labels.dtype, np.integer):
            raise InputValidation(
                f"2-D label image must hold integers, got {labels.dtype}"
            )
        tags = labels.astype(np.int64)
        if tags.min() < 0:
            raise InputValidation(f"Negative label {int(tags.min())} in label image")
        if tags.max() > RESERVED_TAG:
            raise InputValidation(
                f"Label {int(tags.max())} does not fit in 24 bits (max {RESERVED_TAG - 1})"
            )
    else:
        raise InputValidation(
            f"Label image must be (H, W) or (H, W, 3), got shape {labels.shape}"
        )

    if (tags == RESERVED_TAG).any():
        ys, xs = np.nonzero(tags == RESERVED_TAG)
        raise InputValidation(
            f"Reserved tag 0xFFFFFF found at (x={int(xs[0])}, y={int(ys[0])})"
        )
    return tags + TAG_OFFSET


def encode_labels(tags: np.ndarray) -> np.ndarray:
    """Inverse of decode_labels for tag maps: (H, W) tags → (H, W, 3) uint8 BGR."""
    raw = np.asarray(tags, dtype=np.int64) - TAG_OFFSET
    if raw.min() < 0 or raw.max() >= RESERVED_TAG:
        raise ValueError("Tags out of the 24-bit range cannot be encoded")
    out = np.empty((*raw.shape, 3), dtype=np.uint8)
    out[..., 0] = raw & 0xFF
    out[..., 1] = (raw >> 8) & 0xFF
    out[..., 2] = (raw >> 16) & 0xFF
    return out
