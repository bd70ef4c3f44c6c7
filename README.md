# probelevel

Tools for probe-level microarray intensities. The package covers
low-end signal adjustment, spatial background correction in the
Affymetrix style, a log2 n-th largest summary, PM/MM difference
estimates, matrix inverses, and design matrices for probe-level models.

All routines work on NumPy arrays. Intensity matrices have one row per
probe and one column per chip. Functions return new arrays and leave
their input unchanged. The exception is the `matrix_*` design
functions, which fill the array they are given.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Modules

### `probelevel.lesn`

Low End Signal is Noise adjustments. Each chip (column) is adjusted on
its own.

- `shift_down(data, baseline)` shifts every chip down so that its
  minimum equals `baseline`.
- `shift_down_log(data, baseline)` does the same shift on the log2
  scale. If a chip's minimum is already below the baseline, values
  under the baseline are raised to it and the other values stay as
  they are.
- `stretch_down(data, baseline, theta, use_logs, weighting)` lowers each
  value by `weighting(x, pmin, pmax, theta)` times the gap between the
  chip minimum and the baseline.
  - The available weightings are `bw_linear`, `bw_exponential` and
    `bw_gaussian`.
  - With `use_logs` the stretch works on the log2 scale, and flooring is
    used in the same case as in `shift_down_log`.
- `stretch_down_by_type(data, baseline, kind, theta)` picks the scale
  and weighting by number:
  - 1: linear
  - 2: exponential
  - 3: log2 linear
  - 4: log2 exponential
  - 5: log2 half-gaussian

  Any other `kind` returns the data unchanged.
- `lesn_correct(data, method, baseline, theta)` applies one `LesnMethod`:
  - `HALF_GAUSSIAN` runs a log2 gaussian stretch with `2 * theta**2` as
    its scale.
  - `EXPONENTIAL` runs a log2 exponential stretch.
  - Any other value does a plain shift down.

### `probelevel.nth_largest`

- `log_nth_largest(values, n)` returns log2 of the n-th largest value.
  When there is only one value, that value is used whatever `n` is.
- `log_nth_largest_pm(data, rows)` summarizes the probeset `rows` on
  every chip as log2 of its second largest intensity. It returns
  `(estimates, standard_errors)`, and the standard errors are all NaN.
- `log_nth_largest_pm_plm(data, rows)` returns the same values plus a
  probes-by-chips matrix of log2 residuals.

### `probelevel.background`

Grid-based background and noise correction.

- Probe locations run over `x = 1..rows` and `y = 1..cols`.
- `grid_dim` must be a square number.
- In each sector, the background is the mean of the lowest 2% of its
  intensities, and the noise is their standard deviation.

`affy_background_adjust(intensities, x, y, rows, cols, grid_dim)` turns
every probe into `max(I - background, 0.5 * noise)`. Here `background`
and `noise` are inverse-distance weighted mixes of the sector values.

The building blocks are also public: `get_centroids`, `get_gridpts`,
`compute_weights`, `compute_grids` and `compute_background_quadrant`.

### `probelevel.linalg`

- `choleski_inverse(x, upper_only)` inverts a symmetric positive
  definite matrix and reads only its upper triangle. It raises
  `NotPositiveDefiniteError` (a `ValueError`) when the matrix cannot be
  factored, or when the factor has a near-zero diagonal element.
- `svd_inverse(x)` returns the inverse of a square matrix, or a
  generalized inverse when the matrix is singular.

### `probelevel.scab`

Estimates of the PM versus MM effect on the log2 scale, all by least
squares or median:

- `fit_probeset_model(pm, mm, probepair_effects)`
- `fit_difference_model(pm, mm)`
- `median_difference(pm, mm)`

### `probelevel.design`

The column blocks of a probe-level design matrix:

- `matrix_intercept`
- `matrix_mm`
- `matrix_sample_effect`
- `matrix_probe_type_effect`
- `matrix_probe_effect`
- `matrix_chiplevel`

Each one fills its columns of a given array and returns how many
columns it used. Where identifiability applies, the block takes a
`Constraint`: `SUM_TO_ZERO`, `NONE` or `FIRST_IS_ZERO`.

`construct_test_matrix(...)` assembles a whole matrix from overall
intercept, sample, probe-type and probe effects.

### `probelevel.model`

- `ModelParameters` describes the model.
- `DataGroup` holds the PM and MM intensities and the probeset names.
- `ModelFit` holds the design matrix and storage for the current
  probeset; `ModelFit.update_space` resizes it.
- `OutputSettings` records which optional results to keep.
- `compute_n_params(model, nprobes)` counts the parameters of a model.
- `build_model_matrix(model, data, current, current_rows)` brings the
  design matrix in `current` up to date for one probeset.

## Example

```python
import numpy as np
from probelevel.lesn import LesnMethod, lesn_correct

data = np.array([[120.0, 80.0], [300.0, 260.0], [1500.0, 900.0]])
adjusted = lesn_correct(data, LesnMethod.EXPONENTIAL, baseline=0.25, theta=4.0)
```

## What this package does not do

- It builds design matrices and parameter counts, but it does not fit
  models to them. There is no robust or least-squares fitting of
  probe-level models, and no standard errors, weights or residuals
  from such fits.
- The PM/MM estimates in `probelevel.scab` use least squares or the
  median only.
- It has no command-line program.
- It does not read or write microarray files.