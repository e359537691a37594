"""
Statistical merge bounds.

within_bound      — growth bound for a sequence of accepted merge weights:
                    reject a candidate that jumps far beyond the typical
                    step between previous weights.
should_merge_edge — hard-edge test for one region: compare a candidate edge
                    weight against the weights this region already merged
                    and already refused.
"""

from __future__ import annotations

import numpy as np
from typing import Sequence

SINGLE_MAX      = 0.5    # a lone first weight above this is already too far
MIN_STDDEV      = 0.01   # delta spread below this is treated as constant
OUTLIER_K       = 2.0    # reject above mean + k * stddev of deltas
MIN_INCREASING  = 3
EDGE_STD_FLOOR  = 0.01


def mean_std(values: Sequence[float]) -> tuple[float, float]:
    """Population mean and standard deviation."""
    arr = np.asarray(values, dtype=np.float64)
    return float(arr.mean()), float(arr.std())


def _increasing_run(history: Sequence[float]) -> list[float]:
    """Every weight after the first that rises above the running maximum."""
    run = []
    peak = history[0]
    for w in history[1:]:
        if w > peak:
            run.append(w)
            peak = w
    return run


def within_bound(history: Sequence[float], candidate: float) -> bool:
    """
    Decide whether `candidate` is a plausible next weight after `history`.

    Parameters
    ----------
    history   : weights accepted so far, in merge order
    candidate : weight of the next proposed merge
    """
    n = len(history)
    if n == 1 and history[0] > SINGLE_MAX:
        return False
    if n <= 2:
        return True

    weights = list(history)
    deltas  = np.diff(weights)

    if int((deltas > 0).sum()) >= MIN_INCREASING:
        run = _increasing_run(weights)
        if len(run) >= MIN_INCREASING:
            weights = run
            deltas  = np.diff(run)

    use = np.abs(deltas[deltas != 0])
    if use.size == 0:
        return True

    mean, std = float(use.mean()), float(use.std())
    delta = candidate - weights[-1]
    if std > MIN_STDDEV and delta > 0 and delta > mean + OUTLIER_K * std:
        return False
    return True


def should_merge_edge(region, weight: float) -> bool:
    """
    Hard-edge test against a region's merge history.

    A weight at or above the typical refused weight is an edge. A weight at
    or below the typical merged weight is not. In between, the weight goes
    to whichever distribution it is closer to in stddev units.
    """
    unmerged = region.unmerged_weights
    if not unmerged:
        return True
    u_mean, u_std = mean_std(unmerged)
    if weight >= u_mean:
        return False

    merged = region.merged_weights
    if not merged:
        return True
    m_mean, m_std = mean_std(merged)
    if weight <= m_mean:
        return True

    d_merged   = (weight - m_mean) / max(m_std, EDGE_STD_FLOOR)
    d_unmerged = (u_mean - weight) / max(u_std, EDGE_STD_FLOOR)
    return d_merged <= d_unmerged
