# Andy Zhao
"""
Conic (ellipse) model utilities.

A conic is written with the scale constant f0:

    A x^2 + 2B xy + C y^2 + 2f0 (D x + E y) + f0^2 F = 0

so that with

    xi    = (x^2, 2xy, y^2, 2f0 x, 2f0 y, f0^2)
    theta = (A, B, C, D, E, F)

the constraint is linear in theta:  (xi, theta) = 0.

f0 keeps the six components of xi at comparable magnitudes; for pixel data
a value close to the image size is typical, for normalized data 1.0.
"""

from __future__ import annotations

import numpy as np

from ..errors import LinearAlgebraFailure
from ..optimizer.types import FloatArray, Mat3x3, ParamVector, Points2D


def conic_vectors(pts: Points2D, f0: float = 1.0) -> FloatArray:
    """
    Embedding vectors for (N,2) points. Returns shape (N,6).
    """
    x = pts[:, 0]
    y = pts[:, 1]
    return np.stack(
        [
            x * x,
            2.0 * x * y,
            y * y,
            2.0 * f0 * x,
            2.0 * f0 * y,
            np.full_like(x, f0 * f0),
        ],
        axis=-1,
    )


def conic_jacobians(pts: Points2D, f0: float = 1.0) -> FloatArray:
    """
    Derivative of xi with respect to (x, y). Returns shape (N,6,2).

        T = [[2x,   0  ],
             [2y,   2x ],
             [0,    2y ],
             [2f0,  0  ],
             [0,    2f0],
             [0,    0  ]]
    """
    x = pts[:, 0]
    y = pts[:, 1]
    t = np.zeros((pts.shape[0], 6, 2), dtype=np.float64)
    t[:, 0, 0] = 2.0 * x
    t[:, 1, 0] = 2.0 * y
    t[:, 1, 1] = 2.0 * x
    t[:, 2, 1] = 2.0 * y
    t[:, 3, 0] = 2.0 * f0
    t[:, 4, 1] = 2.0 * f0
    return t


def conic_variance(x: float, y: float, f0: float = 1.0) -> FloatArray:
    """
    Closed form of the (normalized) covariance V0[xi] = T T^T of one point
    under isotropic Gaussian noise.
    """
    x, y, f = float(x), float(y), float(f0)
    return 4.0 * np.array(
        [
            [x * x, x * y, 0.0, f * x, 0.0, 0.0],
            [x * y, x * x + y * y, x * y, f * y, f * x, 0.0],
            [0.0, x * y, y * y, 0.0, f * y, 0.0],
            [f * x, f * y, 0.0, f * f, 0.0, 0.0],
            [0.0, f * x, f * y, 0.0, f * f, 0.0],
            [0.0, 0.0, 0.0, 0.0, 0.0, 0.0],
        ],
        dtype=np.float64,
    )


def conic_residuals(theta: ParamVector, pts: Points2D, f0: float = 1.0) -> FloatArray:
    """
    Algebraic residual (xi, theta) per point. Shape (N,).
    """
    theta = np.asarray(theta, dtype=np.float64)
    if theta.shape != (6,):
        raise ValueError(f"Expected a 6-vector, got shape {theta.shape}")
    return conic_vectors(np.asarray(pts, dtype=np.float64), f0) @ theta


def conic_matrix(theta: ParamVector) -> Mat3x3:
    """
    Symmetric 3x3 form Q with (x/f0, y/f0, 1) Q (x/f0, y/f0, 1)^T = 0:

        Q = [[A, B, D],
             [B, C, E],
             [D, E, F]]
    """
    a, b, c, d, e, f = map(float, np.asarray(theta, dtype=np.float64).tolist())
    return np.array(
        [
            [a, b, d],
            [b, c, e],
            [d, e, f],
        ],
        dtype=np.float64,
    )


def ellipse_center(theta: ParamVector, f0: float = 1.0) -> FloatArray:
    """
    Centre (x, y) of an ellipse given by theta.

    The gradient of the quadratic form vanishes at the centre:
        [[A, B], [B, C]] (x, y)^T = -f0 (D, E)^T
    """
    q = conic_matrix(theta)
    try:
        return np.linalg.solve(q[:2, :2], -f0 * q[:2, 2])
    except np.linalg.LinAlgError as exc:
        raise LinearAlgebraFailure("Conic has no unique centre (parabola or degenerate)") from exc


def ellipse_points(
        center: tuple[float, float],
        axes: tuple[float, float],
        angle: float = 0.0,
        *,
        angles: FloatArray | None = None,
        n: int = 100,
) -> Points2D:
    """
    Sample points on an ellipse.

    center: (cx, cy)
    axes:   (a, b) semi-axis lengths
    angle:  rotation of the major axis in radians
    angles: parametric angles; defaults to n evenly spaced values
    """
    if angles is None:
        angles = np.linspace(0.0, 2.0 * np.pi, int(n), endpoint=False)
    t = np.asarray(angles, dtype=np.float64)

    # Axis-aligned ellipse, then rotate and translate
    local = np.stack([axes[0] * np.cos(t), axes[1] * np.sin(t)], axis=-1)
    c, s = np.cos(angle), np.sin(angle)
    rot = np.array([[c, -s], [s, c]], dtype=np.float64)
    return local @ rot.T + np.asarray(center, dtype=np.float64)
