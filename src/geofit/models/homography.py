# Andy Zhao
"""
Planar homography model utilities.

A homography maps (x, y) -> (x', y'):

    (x', y', f0)^T  ~  H (x, y, f0)^T

The projective equality is written as a cross product,

    (x', y', f0)^T  x  H (x, y, f0)^T  =  0

which gives three scalar equations, linear in theta = H flattened
row-major. Only two of them are independent.

    xi^(1) = (0, 0, 0, -f0x, -f0y, -f0^2, xy', yy', f0y')
    xi^(2) = (f0x, f0y, f0^2, 0, 0, 0, -xx', -yx', -f0x')
    xi^(3) = (-xy', -yy', -f0y', xx', yx', f0x', 0, 0, 0)
"""

from __future__ import annotations

import numpy as np

from ..optimizer.types import FloatArray, Mat3x3, Points2D, as_homogeneous


def homography_vectors(obs: FloatArray, f0: float = 1.0) -> FloatArray:
    """
    Embedding vectors for (N,4) observations [x, y, x', y']. Returns (N,3,9).
    """
    x, y, xh, yh = obs[:, 0], obs[:, 1], obs[:, 2], obs[:, 3]
    f = float(f0)
    zero = np.zeros_like(x)
    ff = np.full_like(x, f * f)

    xi1 = np.stack([zero, zero, zero, -f * x, -f * y, -ff, x * yh, y * yh, f * yh], axis=-1)
    xi2 = np.stack([f * x, f * y, ff, zero, zero, zero, -x * xh, -y * xh, -f * xh], axis=-1)
    xi3 = np.stack([-x * yh, -y * yh, -f * yh, x * xh, y * xh, f * xh, zero, zero, zero], axis=-1)
    return np.stack([xi1, xi2, xi3], axis=1)


def homography_jacobians(obs: FloatArray, f0: float = 1.0) -> FloatArray:
    """
    Derivative of each xi^(k) with respect to (x, y, x', y'). Returns (N,3,9,4).
    """
    x, y, xh, yh = obs[:, 0], obs[:, 1], obs[:, 2], obs[:, 3]
    f = float(f0)
    t = np.zeros((obs.shape[0], 3, 9, 4), dtype=np.float64)

    # xi^(1)
    t[:, 0, 3, 0] = -f
    t[:, 0, 4, 1] = -f
    t[:, 0, 6, 0] = yh
    t[:, 0, 6, 3] = x
    t[:, 0, 7, 1] = yh
    t[:, 0, 7, 3] = y
    t[:, 0, 8, 3] = f

    # xi^(2)
    t[:, 1, 0, 0] = f
    t[:, 1, 1, 1] = f
    t[:, 1, 6, 0] = -xh
    t[:, 1, 6, 2] = -x
    t[:, 1, 7, 1] = -xh
    t[:, 1, 7, 2] = -y
    t[:, 1, 8, 2] = -f

    # xi^(3)
    t[:, 2, 0, 0] = -yh
    t[:, 2, 0, 3] = -x
    t[:, 2, 1, 1] = -yh
    t[:, 2, 1, 3] = -y
    t[:, 2, 2, 3] = -f
    t[:, 2, 3, 0] = xh
    t[:, 2, 3, 2] = x
    t[:, 2, 4, 1] = xh
    t[:, 2, 4, 2] = y
    t[:, 2, 5, 2] = f
    return t


def apply_homography(hmat: Mat3x3, pts: Points2D, f0: float = 1.0) -> Points2D:
    """
    Map (N,2) points through H, dividing by the third coordinate.
    """
    hmat = np.asarray(hmat, dtype=np.float64)
    if hmat.shape != (3, 3):
        raise ValueError(f"Expected H shape (3,3), got {hmat.shape}")
    ph = as_homogeneous(np.asarray(pts, dtype=np.float64), f0) @ hmat.T
    return f0 * ph[:, :2] / ph[:, 2:3]


def transfer_error(hmat: Mat3x3, pts0: Points2D, pts1: Points2D, f0: float = 1.0) -> FloatArray:
    """
    Per-correspondence transfer distance || H(pts0) - pts1 ||. Shape (N,).
    """
    pts1 = np.asarray(pts1, dtype=np.float64)
    predicted = apply_homography(hmat, pts0, f0)
    return np.linalg.norm(predicted - pts1, axis=1)
