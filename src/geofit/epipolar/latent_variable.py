# Andy Zhao
"""
Latent variable method: Sampson error minimization on the rank-2 manifold.

A rank-2 fundamental matrix of unit Frobenius norm is parametrized as

    F = U diag(cos phi, sin phi, 0) V^T,      U, V rotations

Small updates are
    U <- R(dw) U,   V <- R(dw') V,   phi <- phi + dphi

so the first-order change of F (row-major 9-vector) is

    dF = F_U dw + F_V dw' + theta_phi dphi

with
    F_U[:, k]  = vec([e_k]_x F)
    F_V[:, k]  = vec(F [e_k]_x^T)
    theta_phi  = vec(U diag(-sin phi, cos phi, 0) V^T)

Levenberg-Marquardt on (dw, dw', dphi):
    gradient  g = 2 J^T (M - L) theta,      J = [F_U  F_V  theta_phi]   (9 x 7)
    Hessian   H = 2 J^T M J                 (Gauss-Newton)
    step      (H + c D[H]) d = -g

A step is accepted when the Sampson error does not increase; c shrinks
after an accepted step and grows after a rejected one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import cv2
import numpy as np

from ..errors import LinearAlgebraFailure
from ..linalg import reordered_svd, skew
from ..optimizer.fns import sampson_error, sampson_matrices
from ..optimizer.iteration import require_observations
from ..optimizer.types import FloatArray, Mat3x3, ObservedData

logger = logging.getLogger(__name__)

_BASIS = np.eye(3, dtype=np.float64)


@dataclass(frozen=True)
class LatentVariableParams:
    """
    max_iterations:
      - Upper bound on accepted LM steps.

    max_damping_retries:
      - Rejected steps tolerated per iteration before giving up.

    initial_damping, damping_factor:
      - c starts at initial_damping; divided by damping_factor after an
        accepted step, multiplied by it after a rejected one.

    tolerance:
      - Converged when |F_new - F| (Frobenius) < tolerance.
    """
    max_iterations: int = 100
    max_damping_retries: int = 30
    initial_damping: float = 1e-4
    damping_factor: float = 10.0
    tolerance: float = 1e-10

    def __post_init__(self) -> None:
        if self.max_iterations < 1:
            raise ValueError("LatentVariableParams.max_iterations must be >= 1")
        if self.max_damping_retries < 1:
            raise ValueError("LatentVariableParams.max_damping_retries must be >= 1")
        if self.initial_damping <= 0.0:
            raise ValueError("LatentVariableParams.initial_damping must be > 0")
        if self.damping_factor <= 1.0:
            raise ValueError("LatentVariableParams.damping_factor must be > 1")
        if self.tolerance <= 0.0:
            raise ValueError("LatentVariableParams.tolerance must be > 0")


@dataclass(frozen=True)
class LatentVariableResult:
    F: Mat3x3               # rank 2, unit Frobenius norm
    converged: bool
    iterations: int         # accepted steps
    error: float            # mean Sampson error of F


def _compose(u: FloatArray, phi: float, v: FloatArray) -> Mat3x3:
    return (u * np.array([np.cos(phi), np.sin(phi), 0.0])) @ v.T


def _rotation(omega: FloatArray) -> FloatArray:
    rot, _ = cv2.Rodrigues(np.asarray(omega, dtype=np.float64).reshape(3, 1))
    return rot


def _tangent(u: FloatArray, phi: float, v: FloatArray, fmat: Mat3x3) -> FloatArray:
    """J = [F_U  F_V  theta_phi], shape (9, 7)."""
    f_u = np.stack([(skew(e) @ fmat).reshape(9) for e in _BASIS], axis=1)
    f_v = np.stack([(fmat @ skew(e).T).reshape(9) for e in _BASIS], axis=1)
    theta_phi = ((u * np.array([-np.sin(phi), np.cos(phi), 0.0])) @ v.T).reshape(9, 1)
    return np.hstack([f_u, f_v, theta_phi])


def _damped_step(hess: FloatArray, grad: FloatArray, c: float) -> FloatArray:
    try:
        return np.linalg.solve(hess + c * np.diag(np.diag(hess)), -grad)
    except np.linalg.LinAlgError as e:
        raise LinearAlgebraFailure(f"damped Gauss-Newton system is singular: {e}") from e


def latent_variable_method(
        data: ObservedData,
        fmat: FloatArray,
        *,
        params: LatentVariableParams = LatentVariableParams(),
) -> LatentVariableResult:
    """
    Refine a fundamental matrix estimate (3x3 or row-major 9-vector) by
    minimizing the Sampson error of `data` over rank-2 matrices.

    The input is rank-corrected and normalized before the first step, so any
    linear estimate (least squares, Taubin, FNS, ...) is a valid start.
    """
    require_observations(data)
    if data.vec_size() != 9:
        raise ValueError(f"latent variable method needs a 9-parameter model, got {data.vec_size()}")

    f_in = np.asarray(fmat, dtype=np.float64)
    if f_in.size != 9:
        raise ValueError(f"Expected a 3x3 matrix or 9-vector, got shape {f_in.shape}")
    u, s, v = reordered_svd(f_in.reshape(3, 3))
    if s[0] == 0.0:
        raise ValueError("fundamental matrix estimate must be non-zero")

    phi = float(np.arctan2(s[1], s[0]))
    f = _compose(u, phi, v)
    j = sampson_error(data, f.reshape(9))

    c = params.initial_damping
    converged = False
    iterations = 0

    while iterations < params.max_iterations:
        theta = f.reshape(9)
        m, l = sampson_matrices(data, theta)
        jac = _tangent(u, phi, v, f)

        grad = 2.0 * jac.T @ ((m - l) @ theta)
        hess = 2.0 * jac.T @ m @ jac

        accepted = False
        for _ in range(params.max_damping_retries):
            d = _damped_step(hess, grad, c)
            u_new = _rotation(d[0:3]) @ u
            v_new = _rotation(d[3:6]) @ v
            phi_new = phi + float(d[6])
            f_new = _compose(u_new, phi_new, v_new)
            j_new = sampson_error(data, f_new.reshape(9))

            if j_new <= j:
                accepted = True
                break
            c *= params.damping_factor

        if not accepted:
            logger.info(
                "latent_variable: no decreasing step after %d damping retries (c=%.3e)",
                params.max_damping_retries, c,
            )
            break

        iterations += 1
        change = float(np.linalg.norm(f_new - f))
        u, v, phi, f, j = u_new, v_new, phi_new, f_new, j_new
        c /= params.damping_factor
        logger.debug("latent_variable: iteration %d, J=%.6e, |dF|=%.3e", iterations, j, change)

        if change < params.tolerance:
            converged = True
            break
    else:
        logger.info("latent_variable: no convergence after %d iterations", iterations)

    return LatentVariableResult(F=f, converged=converged, iterations=iterations, error=float(j))
