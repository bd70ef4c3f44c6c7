"""Inverses of square matrices by Choleski and singular value decomposition."""

from __future__ import annotations

import numpy as np

_DIAGONAL_TOLERANCE = 1e-06
_SVD_TOLERANCE = 1e-7


class NotPositiveDefiniteError(ValueError):
    """Raised when a matrix cannot be inverted through its Choleski factor."""


def _square(x) -> np.ndarray:
    matrix = np.array(x, dtype=float)
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise ValueError("a square matrix is required")
    return matrix


def _choleski_upper(matrix: np.ndarray) -> np.ndarray:
    """Return the upper triangular factor U with ``U.T @ U == matrix``.

    Only the upper triangle of ``matrix`` is read.
    """
    upper = np.triu(matrix)
    symmetric = upper + np.triu(matrix, 1).T
    try:
        lower = np.linalg.cholesky(symmetric)
    except np.linalg.LinAlgError as exc:
        raise NotPositiveDefiniteError("matrix is not positive definite") from exc
    return lower.T


def choleski_inverse(x, upper_only):
    """Invert a symmetric positive definite matrix through its Choleski factor.

    Only the upper triangle of ``x`` is used.  With ``upper_only`` the
    result holds the upper triangle of the inverse and zeros below it;
    otherwise the full symmetric inverse is returned.
    """
    matrix = _square(x)
    n = matrix.shape[0]
    factor = _choleski_upper(matrix)
    if np.any(np.abs(np.diag(factor)) < _DIAGONAL_TOLERANCE):
        raise NotPositiveDefiniteError("Choleski factor has a near-zero diagonal element")
    factor_inv = np.linalg.solve(factor, np.eye(n))
    inverse = factor_inv @ factor_inv.T
    upper = np.triu(inverse)
    if upper_only:
        return upper
    return upper + np.triu(upper, 1).T


def svd_inverse(x):
    """Return the (generalised) inverse of a square matrix by SVD.

    Singular values below ``1e-7`` times the largest one, and all those
    after them, are treated as zero, so a singular matrix yields a
    generalised inverse rather than an error.
    """
    matrix = _square(x)
    n = matrix.shape[0]
    u, s, vt = np.linalg.svd(matrix)
    nonzero = n
    for i, value in enumerate(s):
        if value < _SVD_TOLERANCE * s[0]:
            nonzero = i
            break
    scaled = u[:, :nonzero] / s[:nonzero]
    return vt[:nonzero, :].T @ scaled.T