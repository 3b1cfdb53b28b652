# Andy Zhao
"""
FNS (Fundamental Numerical Scheme): minimization of the Sampson error

    J(theta) = 1/N sum_alpha e_alpha^T W_alpha e_alpha,     e_alpha^(k) = (xi_alpha^(k), theta)

Setting the gradient to zero gives (M - L) theta = 0 with

    M = 1/N sum W^(kl) xi^(k) xi^(l)^T
    L = 1/N sum v^(k) v^(l) V0^(kl),      v = W e

M and L depend on theta, so FNS iterates: compute M, L from the current
theta, take the eigenvector of M - L whose eigenvalue is closest to 0,
repeat. Starting from theta = 0 (uniform weights, L = 0), the first step is
plain least squares.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from ..linalg import lstsq
from .iteration import require_observations, reweight_loop
from .types import FitResult, FloatArray, IterationParams, ObservedData, ParamVector


def _errors(data: ObservedData, theta: ParamVector) -> tuple[FloatArray, FloatArray]:
    """(W, e) for the current theta. Shapes (N, neq, neq) and (N, neq)."""
    w = data.weights(theta)
    e = data.vectors() @ theta
    return w, e


def sampson_matrices(data: ObservedData, theta: ParamVector) -> tuple[FloatArray, FloatArray]:
    """(M, L) evaluated at theta. The gradient of the Sampson error is 2 (M - L) theta."""
    theta = np.asarray(theta, dtype=np.float64)
    w, e = _errors(data, theta)
    v = np.einsum("akl,al->ak", w, e)

    m = data.matrix(w)
    l = np.einsum("ak,al,aklnm->nm", v, v, data.variances()) / len(data)
    return m, l


def minimize_sampson_error(data: ObservedData, theta: ParamVector) -> ParamVector:
    """
    One FNS step: lstsq(M - L) with M, L evaluated at theta.
    """
    m, l = sampson_matrices(data, theta)
    return lstsq(m - l)


def sampson_residuals(data: ObservedData, theta: ParamVector) -> FloatArray:
    """
    Per-observation Sampson error e^T W e. Shape (N,).

    First-order approximation of the squared distance from the observation
    to the model (in point units squared).
    """
    w, e = _errors(data, np.asarray(theta, dtype=np.float64))
    return np.einsum("ak,akl,al->a", e, w, e)


def sampson_error(data: ObservedData, theta: ParamVector) -> float:
    """Mean Sampson error over all observations."""
    return float(np.mean(sampson_residuals(data, theta)))


def fns(
        data: ObservedData,
        *,
        params: IterationParams = IterationParams(),
        initial: Optional[ParamVector] = None,
) -> FitResult:
    """
    Iterate FNS steps until theta stops moving.

    initial:
      - None: start from theta = 0 (first step is least squares)
      - otherwise: warm start from the given estimate
    """
    require_observations(data)

    if initial is None:
        theta = minimize_sampson_error(data, np.zeros(data.vec_size(), dtype=np.float64))
    else:
        theta = np.asarray(initial, dtype=np.float64)
        if theta.shape != (data.vec_size(),):
            raise ValueError(f"initial must have shape ({data.vec_size()},), got {theta.shape}")

    def step(current: ParamVector) -> ParamVector:
        return minimize_sampson_error(data, current)

    return reweight_loop(data, theta, step, params=params, name="fns")
