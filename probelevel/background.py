"""Chip background and noise correction over a grid of chip sectors.

The chip is divided into ``grid_dim`` rectangular sectors (a square number,
16 by default in practice).  In each sector the background is the mean of
the lowest 2% of intensities and the noise is their standard deviation.
Every probe is then corrected with a smooth, distance-weighted mix of the
sector backgrounds, and floored at half the matching mix of sector noises.

Probe cell locations run over ``x = 1..rows`` and ``y = 1..cols``.
"""

from __future__ import annotations

import math

import numpy as np

_SMOOTH = 100.0
_LOWER_FRACTION = 0.02


def _grid_side(grid_dim) -> int:
    if grid_dim < 1:
        raise ValueError(f"grid_dim must be positive, got {grid_dim}")
    side = math.isqrt(grid_dim)
    if side * side != grid_dim:
        raise ValueError(f"grid_dim must be a square number, got {grid_dim}")
    return side


def get_centroids(rows, cols, grid_dim_rows, grid_dim_cols):
    """Return the x and y locations of the centres of the grid sectors.

    Sector ``j * grid_dim_rows + i`` has its centre at the ``j``-th row cut
    and the ``i``-th column cut.  Both grid dimensions must be equal.
    """
    if grid_dim_rows < 1 or grid_dim_rows != grid_dim_cols:
        raise ValueError("the grid must have the same positive size in both directions")
    cuts_x = [
        ((i + 1) * float(rows)) / grid_dim_rows - float(rows) / (2.0 * grid_dim_rows)
        for i in range(grid_dim_rows)
    ]
    cuts_y = [
        ((j + 1) * float(cols)) / grid_dim_cols - float(cols) / (2.0 * grid_dim_cols)
        for j in range(grid_dim_cols)
    ]
    centroidx = np.array(
        [cuts_x[j] + 0.5 for j in range(grid_dim_cols) for _ in range(grid_dim_rows)]
    )
    centroidy = np.array(
        [cuts_y[i] + 0.5 for _ in range(grid_dim_cols) for i in range(grid_dim_rows)]
    )
    return centroidx, centroidy


def get_gridpts(rows, cols, grid_dim):
    """Return the interior sector boundaries as ``(gridpt_x, gridpt_y)``.

    For a 640 by 640 chip with 16 sectors both are ``[160, 320, 480]``.
    """
    side = _grid_side(grid_dim)
    gridpt_x = [((i + 1) * cols) // side for i in range(side - 1)]
    gridpt_y = [((i + 1) * rows) // side for i in range(side - 1)]
    return gridpt_x, gridpt_y


def compute_weights(x, y, centroidx, centroidy):
    """Return a probes-by-sectors matrix of inverse-distance weights."""
    xs = np.asarray(x, dtype=float).ravel()
    ys = np.asarray(y, dtype=float).ravel()
    cx = np.asarray(centroidx, dtype=float).ravel()
    cy = np.asarray(centroidy, dtype=float).ravel()
    if xs.shape != ys.shape:
        raise ValueError("x and y must have the same length")
    if cx.shape != cy.shape:
        raise ValueError("centroid coordinates must have the same length")
    distance = (xs[:, None] - cx[None, :]) ** 2 + (ys[:, None] - cy[None, :]) ** 2
    return 1.0 / (distance + _SMOOTH)


def _interval(edges, value, axis) -> int:
    for j, (low, high) in enumerate(zip(edges, edges[1:])):
        if low < value <= high:
            return j
    raise ValueError(f"{axis} location {value} lies outside the chip")


def compute_grids(x, y, rows, cols, grid_dim, gridpt_x, gridpt_y):
    """Return the 1-based sector number of every probe location."""
    side = _grid_side(grid_dim)
    if len(gridpt_x) != side - 1 or len(gridpt_y) != side - 1:
        raise ValueError("grid points do not match grid_dim")
    if len(x) != len(y):
        raise ValueError("x and y must have the same length")
    edges_x = [0, *gridpt_x, rows]
    edges_y = [0, *gridpt_y, cols]
    return np.array(
        [
            _interval(edges_x, xi, "x") * side + _interval(edges_y, yi, "y") + 1
            for xi, yi in zip(x, y)
        ],
        dtype=int,
    )


def compute_background_quadrant(intensities, grid_dim, whichgrid):
    """Return per-sector ``(background, noise)`` arrays for one chip.

    The background is the mean of the lowest 2% of a sector's intensities
    and the noise their sample standard deviation; a sector too small to
    supply enough values yields NaN.
    """
    values = np.asarray(intensities, dtype=float).ravel()
    sectors = np.asarray(whichgrid, dtype=int).ravel()
    if values.shape != sectors.shape:
        raise ValueError("intensities and whichgrid must have the same length")
    if sectors.size and (sectors.min() < 1 or sectors.max() > grid_dim):
        raise ValueError("sector numbers must lie between 1 and grid_dim")
    bg_q = np.empty(grid_dim)
    noise_q = np.empty(grid_dim)
    with np.errstate(divide="ignore", invalid="ignore"):
        for k in range(grid_dim):
            ordered = np.sort(values[sectors == k + 1])
            lower = int(_LOWER_FRACTION * ordered.size)
            lowest = ordered[:lower]
            mean = np.float64(lowest.sum()) / lower
            spread = np.float64(((lowest - mean) ** 2).sum())
            bg_q[k] = mean
            noise_q[k] = np.sqrt(spread / (lower - 1))
    return bg_q, noise_q


def affy_background_adjust(intensities, x, y, rows, cols, grid_dim):
    """Background correct a probes-by-chips matrix (or one chip's vector).

    Returns a new array of the same shape; each probe becomes
    ``max(I - background, 0.5 * noise)`` at its location.
    """
    side = _grid_side(grid_dim)
    arr = np.array(intensities, dtype=float)
    if arr.ndim == 1:
        matrix = arr.reshape(-1, 1)
    elif arr.ndim == 2:
        matrix = arr
    else:
        raise ValueError("intensities must be a vector or a probes-by-chips matrix")
    if matrix.shape[0] != len(x) or len(x) != len(y):
        raise ValueError("x and y must give one location per probe")

    centroidx, centroidy = get_centroids(rows, cols, side, side)
    gridpt_x, gridpt_y = get_gridpts(rows, cols, grid_dim)
    weights = compute_weights(x, y, centroidx, centroidy)
    whichgrid = compute_grids(x, y, rows, cols, grid_dim, gridpt_x, gridpt_y)
    total_weight = weights.sum(axis=1)

    for j in range(matrix.shape[1]):
        bg_q, noise_q = compute_background_quadrant(matrix[:, j], grid_dim, whichgrid)
        background = (weights * bg_q).sum(axis=1) / total_weight
        noise = (weights * noise_q).sum(axis=1) / total_weight
        corrected = matrix[:, j] - background
        floor = 0.5 * noise
        matrix[:, j] = np.where(corrected > floor, corrected, floor)
    return arr