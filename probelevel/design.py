"""Building blocks of the probe-level model design matrix.

Observations are stacked in probes-within-arrays-within-probe-types order:
row ``k * n_arrays * n_probes + i * n_probes + j`` belongs to probe ``j`` on
array ``i`` for probe type ``k`` (PM first, then MM).  Each ``matrix_*``
function fills its block of columns of ``x``, a numpy array with one row per
observation, starting at ``start_column``.  It returns the number of
columns that block occupies.
"""

from __future__ import annotations

from enum import IntEnum
from itertools import product

import numpy as np


class Constraint(IntEnum):
    """How a set of effect parameters is made identifiable."""

    SUM_TO_ZERO = -1
    NONE = 0
    FIRST_IS_ZERO = 1


def _check_rows(x, n_arrays, n_probes, n_probetypes) -> int:
    n_row = n_arrays * n_probes * n_probetypes
    if not isinstance(x, np.ndarray) or x.ndim != 2:
        raise ValueError("x must be a two dimensional numpy array")
    if x.shape[0] != n_row:
        raise ValueError(f"x must have {n_row} rows, it has {x.shape[0]}")
    return n_row


def _observations(n_arrays, n_probes, n_probetypes):
    """Yield ``(row, probe_type, array, probe)`` in stacking order."""
    return (
        (row, k, i, j)
        for row, (k, i, j) in enumerate(
            product(range(n_probetypes), range(n_arrays), range(n_probes))
        )
    )


def _treatments(trt_cov, n_arrays) -> list[int]:
    if trt_cov is None:
        raise ValueError("a treatment factor is required for this strata")
    levels = [int(t) for t in trt_cov]
    if len(levels) != n_arrays:
        raise ValueError("the treatment factor needs one level per array")
    return levels


def matrix_intercept(x, n_arrays, n_probes, n_probetypes, start_column):
    """Put a column of ones at ``start_column``."""
    _check_rows(x, n_arrays, n_probes, n_probetypes)
    x[:, start_column] = 1.0
    return 1


def matrix_mm(x, n_arrays, n_probes, n_probetypes, start_column, mm):
    """Copy the covariate values ``mm`` (one per observation) into a column."""
    n_row = _check_rows(x, n_arrays, n_probes, n_probetypes)
    values = np.asarray(mm, dtype=float).ravel()
    if values.size != n_row:
        raise ValueError(f"mm must hold {n_row} values, it holds {values.size}")
    x[:, start_column] = values
    return 1


def matrix_sample_effect(x, n_arrays, n_probes, n_probetypes, start_column, constraint):
    """Add one indicator column per array, subject to ``constraint``."""
    _check_rows(x, n_arrays, n_probes, n_probetypes)
    if constraint == Constraint.NONE:
        for row, _, i, _ in _observations(n_arrays, n_probes, n_probetypes):
            x[row, start_column + i] = 1.0
        return n_arrays
    if constraint == Constraint.FIRST_IS_ZERO:
        for row, _, i, _ in _observations(n_arrays, n_probes, n_probetypes):
            if i != 0:
                x[row, start_column + i - 1] = 1.0
        return n_arrays - 1
    if constraint == Constraint.SUM_TO_ZERO:
        for row, _, i, _ in _observations(n_arrays, n_probes, n_probetypes):
            if i != n_arrays - 1:
                x[row, start_column + i] = 1.0
            else:
                x[row, start_column : start_column + n_arrays - 1] = -1.0
        return n_arrays - 1
    return 1


def matrix_probe_type_effect(
    x, n_arrays, n_probes, n_probetypes, start_column, constraint, strata, trt_cov, max_trt_cov
):
    """Add probe-type (PM versus MM) effect columns.

    ``strata`` 0 gives an overall effect, 1 an effect within each array and
    2 an effect within each level of the treatment factor ``trt_cov``.
    Nothing is added unless there are exactly two probe types.
    """
    _check_rows(x, n_arrays, n_probes, n_probetypes)
    if n_probetypes != 2:
        return 0
    half = n_arrays * n_probes

    def block(k, i):
        first = k * half + i * n_probes
        return slice(first, first + n_probes)

    if strata == 0:
        if constraint == Constraint.NONE:
            x[:half, start_column] = 1.0
            x[half:, start_column + 1] = 1.0
            return n_probetypes
        if constraint == Constraint.FIRST_IS_ZERO:
            x[half:, start_column] = 1.0
            return 1
        if constraint == Constraint.SUM_TO_ZERO:
            x[:half, start_column] = 1.0
            x[half:, start_column] = -1.0
            return 1
    elif strata == 1:
        if constraint == Constraint.NONE:
            for k, i in product(range(n_probetypes), range(n_arrays)):
                x[block(k, i), start_column + k + 2 * i] = 1.0
            return n_probetypes * n_arrays
        if constraint == Constraint.FIRST_IS_ZERO:
            for i in range(n_arrays):
                x[block(1, i), start_column + i] = 1.0
            return n_arrays
        if constraint == Constraint.SUM_TO_ZERO:
            for i in range(n_arrays):
                x[block(0, i), start_column + i] = 1.0
                x[block(1, i), start_column + i] = -1.0
            return n_arrays
    elif strata == 2:
        levels = _treatments(trt_cov, n_arrays)
        if constraint == Constraint.NONE:
            for i, t in enumerate(levels):
                x[block(0, i), start_column + 2 * t] = 1.0
                x[block(1, i), start_column + 2 * t + 1] = 1.0
            return n_probetypes * (max_trt_cov + 1)
        if constraint == Constraint.FIRST_IS_ZERO:
            for i, t in enumerate(levels):
                x[block(1, i), start_column + t] = 1.0
            return max_trt_cov + 1
        if constraint == Constraint.SUM_TO_ZERO:
            for i, t in enumerate(levels):
                x[block(0, i), start_column + t] = 1.0
                x[block(1, i), start_column + t] = -1.0
            return max_trt_cov + 1
    return 0


def matrix_probe_effect(
    x, n_arrays, n_probes, n_probetypes, start_column, constraint, strata, trt_cov, max_trt_cov
):
    """Add probe effect columns.

    ``strata`` 0 gives overall probe effects, 2 probe effects within each
    level of ``trt_cov``, 3 within each probe type and 4 within probe type
    and treatment level together.
    """
    _check_rows(x, n_arrays, n_probes, n_probetypes)
    if constraint == Constraint.NONE:
        width = n_probes
    elif constraint in (Constraint.FIRST_IS_ZERO, Constraint.SUM_TO_ZERO):
        width = n_probes - 1
    else:
        return 0

    if strata == 0:
        offset = lambda k, i: 0  # noqa: E731
        used = width
    elif strata == 2:
        levels = _treatments(trt_cov, n_arrays)
        offset = lambda k, i: levels[i] * width  # noqa: E731
        used = (max_trt_cov + 1) * width
    elif strata == 3:
        offset = lambda k, i: k * width  # noqa: E731
        used = n_probetypes * width
    elif strata == 4:
        levels = _treatments(trt_cov, n_arrays)
        offset = lambda k, i: levels[i] * width + k * (max_trt_cov + 1) * width  # noqa: E731
        used = (max_trt_cov + 1) * n_probetypes * width
    else:
        return 0

    for row, k, i, j in _observations(n_arrays, n_probes, n_probetypes):
        base = start_column + offset(k, i)
        if constraint == Constraint.NONE:
            x[row, base + j] = 1.0
        elif constraint == Constraint.FIRST_IS_ZERO:
            if j != 0:
                x[row, base + j - 1] = 1.0
        elif j != n_probes - 1:
            x[row, base + j] = 1.0
        else:
            x[row, base : base + n_probes - 1] = -1.0
    return used


def matrix_chiplevel(x, n_arrays, n_probes, n_probetypes, start_column, covariates):
    """Add chip-level covariate columns.

    ``covariates`` is an arrays-by-covariates matrix (or a vector for a
    single covariate); every observation takes its array's values.
    """
    _check_rows(x, n_arrays, n_probes, n_probetypes)
    values = np.asarray(covariates, dtype=float)
    if values.ndim == 1:
        values = values.reshape(-1, 1)
    if values.ndim != 2 or values.shape[0] != n_arrays:
        raise ValueError("covariates must hold one row per array")
    n_covariates = values.shape[1]
    for row, _, i, _ in _observations(n_arrays, n_probes, n_probetypes):
        x[row, start_column : start_column + n_covariates] = values[i]
    return n_covariates


def construct_test_matrix(
    n_arrays,
    n_probes,
    n_probetypes,
    has_intercept,
    has_sample_effects,
    has_probe_types,
    has_probe_effects,
    constraint,
):
    """Build a design matrix from the chosen overall effects.

    The first effect in the model is unconstrained; every later one uses
    ``constraint``.  Returns the matrix with exactly the columns used.
    """
    n_row = n_arrays * n_probes * n_probetypes
    x = np.zeros((n_row, 1 + n_arrays + 2 + n_probes))
    curcol = 0
    if has_intercept:
        curcol += matrix_intercept(x, n_arrays, n_probes, n_probetypes, curcol)
    if has_sample_effects:
        chosen = constraint if has_intercept else Constraint.NONE
        curcol += matrix_sample_effect(x, n_arrays, n_probes, n_probetypes, curcol, chosen)
    if has_probe_types:
        chosen = constraint if (has_intercept or has_sample_effects) else Constraint.NONE
        curcol += matrix_probe_type_effect(
            x, n_arrays, n_probes, n_probetypes, curcol, chosen, 0, None, 0
        )
    if has_probe_effects:
        earlier = has_intercept or has_sample_effects or has_probe_types
        chosen = constraint if earlier else Constraint.NONE
        curcol += matrix_probe_effect(
            x, n_arrays, n_probes, n_probetypes, curcol, chosen, 0, None, 0
        )
    return x[:, :curcol]