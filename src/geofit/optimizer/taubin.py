# Andy Zhao
"""
Taubin's method and renormalization.

Both replace the unit-norm constraint of least squares with a constraint
built from the covariance of the embedding:

    minimize |M theta|   subject to   |N theta| = 1

    M = 1/N sum W^(kl) xi^(k) xi^(l)^T
    N = 1/N sum W^(kl) V0^(kl)

which removes the first-order bias of least squares.

- Taubin:           uniform weights, solved once.
- Renormalization:  weights recomputed from the previous theta each round.

N is typically singular (the f0^2 component of xi carries no noise), which
is why the solve goes through constrained_lstsq.
"""

from __future__ import annotations

import numpy as np

from ..linalg import constrained_lstsq
from .iteration import require_observations, reweight_loop, quadratic_residual
from .types import FitResult, IterationParams, ObservedData, ParamVector, Weights, normalize


def taubin_constraint(data: ObservedData, weights: Weights) -> np.ndarray:
    """
    N = 1/N sum_alpha sum_kl W_alpha^(kl) V0^(kl)[xi_alpha]
    """
    w = np.asarray(weights, dtype=np.float64).reshape(len(data), data.num_equation(), data.num_equation())
    return np.einsum("akl,aklnm->nm", w, data.variances()) / len(data)


def _solve(data: ObservedData, weights: Weights) -> np.ndarray:
    return normalize(constrained_lstsq(data.matrix(weights), taubin_constraint(data, weights)))


def taubin_with_weight(data: ObservedData, weights: Weights) -> FitResult:
    require_observations(data)
    theta = _solve(data, weights)
    residual = quadratic_residual(theta, data.matrix(data.uniform_weights()))
    return FitResult(theta=theta, converged=True, iterations=1, residual=residual)


def taubin(data: ObservedData) -> FitResult:
    """Taubin's method. Non-iterative."""
    return taubin_with_weight(data, data.uniform_weights())


def renormalization(
        data: ObservedData,
        *,
        params: IterationParams = IterationParams(),
) -> FitResult:
    """
    Taubin, then repeated reweighted Taubin solves until theta stops moving.
    """
    initial = taubin(data).theta

    def step(theta: ParamVector) -> ParamVector:
        return _solve(data, data.weights(theta))

    return reweight_loop(data, initial, step, params=params, name="renormalization")
