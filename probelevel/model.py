"""Probe-level model description and the per-probeset design matrix.

A model is described once by :class:`ModelParameters`.  The design matrix
for each probeset is then kept in a :class:`ModelFit`, which also holds the
space for the fitted quantities.  :func:`build_model_matrix` rebuilds that
matrix only when the number of probes changes.  When the model has a PM or
MM covariate and the probe count is unchanged, only the covariate column
is refreshed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from itertools import groupby
from typing import Callable, Optional, Sequence

import numpy as np

from probelevel.design import (
    matrix_chiplevel,
    matrix_intercept,
    matrix_mm,
    matrix_probe_effect,
    matrix_probe_type_effect,
    matrix_sample_effect,
)

_N_PARAMETER_TYPES = 5

INTERCEPT = 0
CHIP_LEVEL = 1
SAMPLES = 2
PROBE_TYPES = 3
PROBES = 4


def _five(values, name) -> tuple[int, ...]:
    result = tuple(int(v) for v in values)
    if len(result) != _N_PARAMETER_TYPES:
        raise ValueError(f"{name} must hold {_N_PARAMETER_TYPES} entries, got {len(result)}")
    return result


@dataclass
class ModelParameters:
    """Settings describing the model fitted to every probeset.

    ``which_parameter_types``, ``strata`` and ``constraints`` are indexed by
    parameter type: intercept, chip-level covariates, samples, probe types
    and probes.  ``response_variable`` is -1 for an MM response, 0 for PM
    and MM together and 1 for a PM response.  ``mmorpm_covariate`` is -1
    for an MM response with a PM covariate, 1 for a PM response with an MM
    covariate and 0 for neither.  ``chiplevelcovariates`` is an
    arrays-by-covariates matrix.
    """

    n_arrays: int
    which_parameter_types: Sequence[int] = (0, 0, 0, 0, 0)
    strata: Sequence[int] = (0, 0, 0, 0, 0)
    constraints: Sequence[int] = (0, 0, 0, 0, 0)
    response_variable: int = 1
    mmorpm_covariate: int = 0
    psi_code: int = 0
    psi_k: float = 1.345
    se_method: int = 4
    n_rlm_iterations: int = 20
    init_method: int = 0
    probe_type_treatment_factor: Optional[Sequence[int]] = None
    max_probe_type_treatment_factor: int = 0
    probe_treatment_factor: Optional[Sequence[int]] = None
    max_probe_treatment_factor: int = 0
    chiplevelcovariates: Optional[np.ndarray] = None
    input_chip_weights: Optional[np.ndarray] = None
    input_probe_weights: Optional[np.ndarray] = None
    trans_fn: Callable[[np.ndarray], np.ndarray] = np.log2

    def __post_init__(self) -> None:
        if self.n_arrays < 1:
            raise ValueError(f"n_arrays must be positive, got {self.n_arrays}")
        self.which_parameter_types = _five(self.which_parameter_types, "which_parameter_types")
        self.strata = _five(self.strata, "strata")
        self.constraints = _five(self.constraints, "constraints")
        if self.response_variable not in (-1, 0, 1):
            raise ValueError("response_variable must be -1, 0 or 1")
        if self.mmorpm_covariate not in (-1, 0, 1):
            raise ValueError("mmorpm_covariate must be -1, 0 or 1")
        if self.chiplevelcovariates is not None:
            values = np.asarray(self.chiplevelcovariates, dtype=float)
            if values.ndim == 1:
                values = values.reshape(-1, 1)
            if values.ndim != 2 or values.shape[0] != self.n_arrays:
                raise ValueError("chiplevelcovariates must hold one row per array")
            self.chiplevelcovariates = values

    @property
    def n_chiplevelcovariates(self) -> int:
        """Number of chip-level covariate columns."""
        if self.chiplevelcovariates is None:
            return 0
        return self.chiplevelcovariates.shape[1]


@dataclass
class DataGroup:
    """Probe intensities as probes-by-arrays matrices with probeset names."""

    pm: np.ndarray
    mm: Optional[np.ndarray] = None
    probe_names: Sequence[str] = ()

    def __post_init__(self) -> None:
        self.pm = np.asarray(self.pm, dtype=float)
        if self.pm.ndim != 2:
            raise ValueError("pm must be a probes-by-arrays matrix")
        if self.mm is not None:
            self.mm = np.asarray(self.mm, dtype=float)
            if self.mm.shape != self.pm.shape:
                raise ValueError("mm must have the same shape as pm")
        self.probe_names = tuple(self.probe_names)
        if self.probe_names and len(self.probe_names) != self.pm.shape[0]:
            raise ValueError("probe_names must give one name per probe")

    @property
    def n_probes(self) -> int:
        return self.pm.shape[0]

    @property
    def n_arrays(self) -> int:
        return self.pm.shape[1]

    @property
    def n_probesets(self) -> int:
        """Number of runs of consecutive probes sharing a probeset name."""
        return sum(1 for _ in groupby(self.probe_names))


@dataclass
class ModelFit:
    """Design matrix and result storage for the probeset being fitted."""

    params: np.ndarray = field(default_factory=lambda: np.zeros(1))
    se_estimates: np.ndarray = field(default_factory=lambda: np.zeros(1))
    weights: np.ndarray = field(default_factory=lambda: np.zeros(1))
    resids: np.ndarray = field(default_factory=lambda: np.zeros(1))
    varcov: np.ndarray = field(default_factory=lambda: np.zeros((1, 1)))
    resid_se: np.ndarray = field(default_factory=lambda: np.zeros(1))
    x: np.ndarray = field(default_factory=lambda: np.zeros((0, 0)))
    n: int = 0
    p: int = 0
    nprobes: int = 0

    def update_space(self, nprobes, n, p):
        """Reallocate storage for ``n`` observations and ``p`` parameters.

        The design matrix is reset to zeros.
        """
        if n < 0 or p < 0:
            raise ValueError("n and p must not be negative")
        self.x = np.zeros((n, p))
        self.params = np.zeros(p)
        self.se_estimates = np.zeros(p)
        self.weights = np.zeros(n)
        self.resids = np.zeros(n)
        self.varcov = np.zeros((p, p))
        self.resid_se = np.zeros(2)
        self.n = n
        self.p = p
        self.nprobes = nprobes


@dataclass
class OutputSettings:
    """Which optional results should be kept.

    ``varcov`` is 0 for none, 1 for the chip-level block only and 2 for the
    whole variance-covariance matrix.
    """

    weights: bool = False
    residuals: bool = False
    resid_se: bool = False
    varcov: int = 0


def compute_n_params(model, nprobes):
    """Return the number of parameters in ``model`` for ``nprobes`` probes."""
    which = model.which_parameter_types
    p = 0
    if which[INTERCEPT]:
        p += 1
    if model.mmorpm_covariate != 0:
        p += 1
    if which[CHIP_LEVEL]:
        p += model.n_chiplevelcovariates
    if which[SAMPLES]:
        p += model.n_arrays if model.constraints[SAMPLES] == 0 else model.n_arrays - 1
    if which[PROBE_TYPES]:
        strata = model.strata[PROBE_TYPES]
        levels = model.max_probe_type_treatment_factor + 1
        per = {0: 1, 1: model.n_arrays, 2: levels}.get(strata, 0)
        p += 2 * per if model.constraints[PROBE_TYPES] == 0 else per
    if which[PROBES]:
        width = nprobes if model.constraints[PROBES] == 0 else nprobes - 1
        levels = model.max_probe_treatment_factor + 1
        strata = model.strata[PROBES]
        p += {0: width, 2: width * levels, 3: 2 * width, 4: 2 * width * levels}.get(strata, 0)
    return p


def _stacked(matrix, rows, kind) -> np.ndarray:
    """Return the probeset rows of ``matrix`` stacked probes within arrays."""
    if matrix is None:
        raise ValueError(f"{kind} intensities are required for this model")
    return matrix[rows, :].T.ravel()


def build_model_matrix(model, data, current, current_rows):
    """Bring the design matrix in ``current`` up to date for a probeset.

    ``current_rows`` are the probe rows of ``data`` forming the probeset.
    Returns ``current``, which is updated in place.
    """
    rows = [int(r) for r in current_rows]
    nprobes = len(rows)
    if nprobes == 0:
        raise ValueError("probeset holds no probes")

    if model.mmorpm_covariate == 0 and nprobes == current.nprobes:
        return current

    n_arrays = data.n_arrays
    n_probetypes = 2 if model.response_variable == 0 else 1
    n = n_probetypes * nprobes * n_arrays
    single = nprobes * n_arrays

    if model.mmorpm_covariate != 0 and nprobes == current.nprobes:
        column = 1 if model.which_parameter_types[INTERCEPT] else 0
        if model.response_variable > 0:
            values = _stacked(data.mm, rows, "mismatch")
        else:
            values = _stacked(data.pm, rows, "perfect match")
        current.x[:single, column] = model.trans_fn(values)
        return current

    p = compute_n_params(model, nprobes)
    current.update_space(nprobes, n, p)
    x = current.x
    which = model.which_parameter_types
    curcol = 0

    if which[INTERCEPT]:
        curcol += matrix_intercept(x, n_arrays, nprobes, n_probetypes, curcol)
    if model.mmorpm_covariate != 0:
        covariates = np.zeros(n)
        if model.response_variable < 0:
            covariates[:single] = np.log2(_stacked(data.pm, rows, "perfect match"))
        else:
            covariates[:single] = np.log2(_stacked(data.mm, rows, "mismatch"))
        curcol += matrix_mm(x, n_arrays, nprobes, n_probetypes, curcol, covariates)
    if which[CHIP_LEVEL] and model.chiplevelcovariates is not None:
        curcol += matrix_chiplevel(
            x, n_arrays, nprobes, n_probetypes, curcol, model.chiplevelcovariates
        )
    if which[SAMPLES]:
        curcol += matrix_sample_effect(
            x, n_arrays, nprobes, n_probetypes, curcol, model.constraints[SAMPLES]
        )
    if which[PROBE_TYPES]:
        curcol += matrix_probe_type_effect(
            x,
            n_arrays,
            nprobes,
            n_probetypes,
            curcol,
            model.constraints[PROBE_TYPES],
            model.strata[PROBE_TYPES],
            model.probe_type_treatment_factor,
            model.max_probe_type_treatment_factor,
        )
    if which[PROBES]:
        curcol += matrix_probe_effect(
            x,
            n_arrays,
            nprobes,
            n_probetypes,
            curcol,
            model.constraints[PROBES],
            model.strata[PROBES],
            model.probe_treatment_factor,
            model.max_probe_treatment_factor,
        )
    return current