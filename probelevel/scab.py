"""Estimates of the PM/MM difference within a probeset.

These back the SCAB (Standardised Curve Adjusts Background) adjustment:
the probe-type effect between perfect match and mismatch probes is
estimated on the log2 scale, either from a joint linear model of PM and
MM intensities or directly from the per-pair log2 differences.
"""

from __future__ import annotations

import numpy as np


def _pair(pm, mm) -> tuple[np.ndarray, np.ndarray]:
    pm_arr = np.asarray(pm, dtype=float).ravel()
    mm_arr = np.asarray(mm, dtype=float).ravel()
    if pm_arr.shape != mm_arr.shape:
        raise ValueError("pm and mm must have the same length")
    if pm_arr.size == 0:
        raise ValueError("probeset holds no probe pairs")
    return pm_arr, mm_arr


def _least_squares_first(design: np.ndarray, response: np.ndarray) -> float:
    beta, *_ = np.linalg.lstsq(design, response, rcond=None)
    return float(beta[0])


def fit_probeset_model(pm, mm, probepair_effects):
    """Fit a joint model to log2 PM and MM and return the probe-type effect.

    The response is ``(log2 PM_1..PM_n, log2 MM_1..MM_n)``.  With
    ``probepair_effects`` the model holds a PM indicator plus one effect for
    each probe pair; otherwise it holds a single column coded +0.5 for PM
    and -0.5 for MM.  Least squares is used.
    """
    pm_arr, mm_arr = _pair(pm, mm)
    length = pm_arr.size
    y = np.concatenate([np.log2(pm_arr), np.log2(mm_arr)])
    if probepair_effects:
        design = np.zeros((2 * length, length + 1))
        design[:length, 0] = 1.0
        pairs = np.eye(length)
        design[:length, 1:] = pairs
        design[length:, 1:] = pairs
    else:
        design = np.concatenate([np.full(length, 0.5), np.full(length, -0.5)])
        design = design.reshape(-1, 1)
    return _least_squares_first(design, y)


def fit_difference_model(pm, mm):
    """Return the least squares average of ``log2 PM - log2 MM``."""
    pm_arr, mm_arr = _pair(pm, mm)
    y = np.log2(pm_arr) - np.log2(mm_arr)
    return _least_squares_first(np.ones((y.size, 1)), y)


def median_difference(pm, mm):
    """Return the median of ``log2 PM - log2 MM`` over the probe pairs."""
    pm_arr, mm_arr = _pair(pm, mm)
    return float(np.median(np.log2(pm_arr) - np.log2(mm_arr)))