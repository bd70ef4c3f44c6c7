"""Log2 n-th largest PM summarisation of a probeset."""

from __future__ import annotations

import numpy as np

_DEFAULT_N = 2


def log_nth_largest(values, n):
    """Return log2 of the ``n``-th largest of ``values``.

    A single value is returned (in log2) whatever ``n`` is.
    """
    ordered = np.sort(np.asarray(values, dtype=float).ravel())
    if ordered.size == 0:
        raise ValueError("no values to summarise")
    if ordered.size == 1:
        chosen = ordered[0]
    else:
        if not 1 <= n <= ordered.size:
            raise ValueError(f"n must lie between 1 and {ordered.size}, got {n}")
        chosen = ordered[ordered.size - n]
    return float(np.log2(chosen))


def _probeset(data, rows) -> np.ndarray:
    matrix = np.asarray(data, dtype=float)
    if matrix.ndim != 2:
        raise ValueError("data must be a probes-by-chips matrix")
    block = matrix[list(rows), :]
    if block.shape[0] == 0:
        raise ValueError("probeset holds no probes")
    return block


def log_nth_largest_pm(data, rows):
    """Summarise the probeset ``rows`` of ``data`` on every chip.

    Returns ``(estimates, standard_errors)``; each chip's estimate is log2 of
    its second largest intensity and standard errors are not available (NaN).
    """
    block = _probeset(data, rows)
    estimates = np.array([log_nth_largest(col, _DEFAULT_N) for col in block.T])
    return estimates, np.full(estimates.shape, np.nan)


def log_nth_largest_pm_plm(data, rows):
    """As :func:`log_nth_largest_pm`, also returning log2 residuals.

    Returns ``(estimates, standard_errors, residuals)`` where residuals is a
    probes-by-chips matrix of ``log2(intensity) - estimate``.
    """
    block = _probeset(data, rows)
    estimates, standard_errors = log_nth_largest_pm(block, range(block.shape[0]))
    residuals = np.log2(block) - estimates
    return estimates, standard_errors, residuals