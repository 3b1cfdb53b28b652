# Andy Zhao
"""
Fundamental matrix model utilities.

For a correspondence (x, y) <-> (x', y') the epipolar constraint is

    (x, y, f0) F (x', y', f0)^T = 0

With theta = F flattened row-major (F11, F12, F13, F21, ..., F33) this is
linear in theta, using the Kronecker product of the homogeneous points:

    xi = (x, y, f0) (x) (x', y', f0)
       = (xx', xy', f0x, yx', yy', f0y, f0x', f0y', f0^2)

Observations are stored interleaved: [x_0, x'_0, x_1, x'_1, ...].
"""

from __future__ import annotations

import numpy as np

from ..optimizer.types import FloatArray, Mat3x3, Points2D, as_homogeneous


def interleave(pts0: Points2D, pts1: Points2D) -> Points2D:
    """
    (N,2) + (N,2) -> (2N,2) with rows [pts0[0], pts1[0], pts0[1], pts1[1], ...].
    """
    pts0 = np.asarray(pts0, dtype=np.float64)
    pts1 = np.asarray(pts1, dtype=np.float64)
    if pts0.shape != pts1.shape:
        raise ValueError(f"pts0 and pts1 must have same shape, got {pts0.shape} vs {pts1.shape}")
    if pts0.ndim != 2 or pts0.shape[1] != 2:
        raise ValueError(f"Expected pts shape (N,2), got {pts0.shape}")
    return np.stack([pts0, pts1], axis=1).reshape(-1, 2)


def fundamental_vectors(obs: FloatArray, f0: float = 1.0) -> FloatArray:
    """
    Embedding vectors for (N,4) observations [x, y, x', y']. Returns (N,9).
    """
    p = as_homogeneous(obs[:, 0:2], f0)
    q = as_homogeneous(obs[:, 2:4], f0)
    return np.einsum("ai,aj->aij", p, q).reshape(-1, 9)


def fundamental_jacobians(obs: FloatArray, f0: float = 1.0) -> FloatArray:
    """
    Derivative of xi with respect to (x, y, x', y'). Returns (N,9,4).

    d xi / dx  = e1 (x) q        d xi / dx' = p (x) e1
    d xi / dy  = e2 (x) q        d xi / dy' = p (x) e2
    """
    p = as_homogeneous(obs[:, 0:2], f0)
    q = as_homogeneous(obs[:, 2:4], f0)

    t = np.zeros((obs.shape[0], 9, 4), dtype=np.float64)
    t[:, 0:3, 0] = q
    t[:, 3:6, 1] = q
    t[:, 0::3, 2] = p
    t[:, 1::3, 3] = p
    return t


def epipolar_residuals(fmat: Mat3x3, pts0: Points2D, pts1: Points2D, f0: float = 1.0) -> FloatArray:
    """
    Algebraic epipolar residual p^T F q per correspondence. Shape (N,).
    """
    fmat = np.asarray(fmat, dtype=np.float64)
    if fmat.shape != (3, 3):
        raise ValueError(f"Expected F shape (3,3), got {fmat.shape}")
    p = as_homogeneous(np.asarray(pts0, dtype=np.float64), f0)
    q = as_homogeneous(np.asarray(pts1, dtype=np.float64), f0)
    return np.einsum("ai,ij,aj->a", p, fmat, q)
