"""Low End Signal is Noise (LESN) background adjustment.

Intensities are held as a probes-by-chips matrix; every chip (column) is
adjusted on its own.  Two families of adjustment are provided: *shifting*,
which moves the whole distribution down so its minimum reaches a baseline,
and *stretching*, which moves the lowest intensities the most and leaves
the highest almost untouched.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Callable

import numpy as np

Weighting = Callable[..., np.ndarray]


class LesnMethod(IntEnum):
    """Adjustment methods understood by :func:`lesn_correct`."""

    SHIFT = 0
    EXPONENTIAL = 1
    HALF_GAUSSIAN = 2


def bw_linear(x, pmin, pmax, theta):
    """Linear weight: 1 at the minimum intensity, 0 at the maximum."""
    return (np.asarray(x, dtype=float) - pmax) / (pmin - pmax)


def bw_exponential(x, pmin, pmax, theta):
    """Exponential decay weight with scale ``theta``."""
    return np.exp(-(np.asarray(x, dtype=float) - pmin) / theta)


def bw_gaussian(x, pmin, pmax, theta):
    """Half-gaussian weight; ``theta`` plays the part of ``2 * sigma**2``."""
    d = np.asarray(x, dtype=float) - pmin
    return np.exp(-(d * d) / theta)


def _prepare(data) -> tuple[np.ndarray, np.ndarray]:
    """Return a float copy of ``data`` and a 2-D view of it (probes x chips)."""
    arr = np.array(data, dtype=float)
    if arr.ndim == 1:
        matrix = arr.reshape(-1, 1)
    elif arr.ndim == 2:
        matrix = arr
    else:
        raise ValueError("data must be a vector or a probes-by-chips matrix")
    if matrix.shape[0] == 0:
        raise ValueError("data holds no probes")
    return arr, matrix


def shift_down(data, baseline):
    """Shift every chip down so that its minimum equals ``baseline``."""
    arr, matrix = _prepare(data)
    pmin = matrix.min(axis=0)
    matrix -= pmin - baseline
    return arr


def shift_down_log(data, baseline):
    """Shift every chip down on the log2 scale so its minimum is ``baseline``.

    A chip whose minimum already lies below the baseline is instead floored:
    values under the baseline are raised to it and the rest are left alone.
    """
    arr, matrix = _prepare(data)
    pmin = matrix.min(axis=0)
    with np.errstate(divide="ignore", invalid="ignore"):
        shifted = np.exp2(
            np.log2(matrix) - (np.log2(pmin) - np.log2(baseline))
        )
    floored = np.where(matrix < baseline, baseline, matrix)
    matrix[...] = np.where(pmin < baseline, floored, shifted)
    return arr


def stretch_down(data, baseline, theta, use_logs, weighting):
    """Stretch the low end of every chip down towards ``baseline``.

    Each intensity is lowered by ``weighting(x, pmin, pmax, theta)`` times
    the gap between the chip minimum and the baseline.  With ``use_logs``
    the work is done on the log2 scale, and a chip whose minimum lies below
    the baseline is floored at the baseline instead.
    """
    arr, matrix = _prepare(data)
    pmin = matrix.min(axis=0)
    pmax = matrix.max(axis=0)
    with np.errstate(divide="ignore", invalid="ignore"):
        if use_logs:
            lx = np.log2(matrix)
            lmin = np.log2(pmin)
            lmax = np.log2(pmax)
            lbase = np.log2(baseline)
            stretched = np.exp2(
                lx - weighting(lx, lmin, lmax, theta) * (lmin - lbase)
            )
            floored = np.where(matrix < baseline, baseline, matrix)
            matrix[...] = np.where(pmin < baseline, floored, stretched)
        else:
            matrix[...] = matrix - weighting(matrix, pmin, pmax, theta) * (
                pmin - baseline
            )
    return arr


_STRETCH_TYPES = {
    1: (False, bw_linear),
    2: (False, bw_exponential),
    3: (True, bw_linear),
    4: (True, bw_exponential),
    5: (True, bw_gaussian),
}


def stretch_down_by_type(data, baseline, kind, theta):
    """Stretch using a numbered combination of scale and weighting.

    1: linear, 2: exponential, 3: log2 linear, 4: log2 exponential,
    5: log2 half-gaussian.  Any other ``kind`` leaves the data unchanged.
    """
    choice = _STRETCH_TYPES.get(kind)
    if choice is None:
        arr, _ = _prepare(data)
        return arr
    use_logs, weighting = choice
    return stretch_down(data, baseline, theta, use_logs, weighting)


def lesn_correct(data, method, baseline, theta):
    """Apply one of the LESN adjustments and return the corrected data.

    ``HALF_GAUSSIAN`` and ``EXPONENTIAL`` stretch on the log2 scale;
    any other method value is a plain shift down to ``baseline``.
    """
    if method == LesnMethod.HALF_GAUSSIAN:
        return stretch_down(data, baseline, 2 * theta * theta, True, bw_gaussian)
    if method == LesnMethod.EXPONENTIAL:
        return stretch_down(data, baseline, theta, True, bw_exponential)
    return shift_down(data, baseline)