# Andy Zhao
"""
Rank correction for fundamental matrices.

A fundamental matrix has rank 2, but every linear estimator returns a
generic 3x3 matrix. The closest rank-deficient matrix in Frobenius norm
is obtained by zeroing the smallest singular value.
"""

from __future__ import annotations

import numpy as np

from ..linalg import lstsq, reordered_svd
from ..optimizer.types import FloatArray, Mat3x3, PointsHomog


def svd_rank_correction(matrix: FloatArray) -> FloatArray:
    """
    Zero the smallest singular value: U diag(s_0, ..., s_{n-2}, 0) V^T.
    """
    u, s, v = reordered_svd(matrix)
    s = s.copy()
    s[-1] = 0.0
    return (u * s) @ v.T


def epipoles(fmat: Mat3x3) -> tuple[PointsHomog, PointsHomog]:
    """
    Epipoles of F with the convention (x, y, f0) F (x', y', f0)^T = 0.

    Returns (e0, e1), unit homogeneous 3-vectors:
      - e0 in the first image:  F^T e0 = 0
      - e1 in the second image: F e1 = 0
    """
    fmat = np.asarray(fmat, dtype=np.float64)
    if fmat.shape != (3, 3):
        raise ValueError(f"Expected shape (3,3), got {fmat.shape}")
    return lstsq(fmat.T), lstsq(fmat)
