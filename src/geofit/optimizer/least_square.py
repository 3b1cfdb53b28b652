# Andy Zhao
"""
Least squares and iterative reweight.

Least squares:
    minimize  1/N sum (xi_alpha, theta)^2   subject to |theta| = 1
    -> eigenvector of M(uniform) for the smallest eigenvalue.

Iterative reweight:
    Each equation is weighted by the inverse of its variance,
        W_alpha = 1 / (theta, V0[xi_alpha] theta)
    computed from the previous estimate, and least squares is solved again.
"""

from __future__ import annotations

from ..linalg import lstsq
from .iteration import require_observations, reweight_loop, quadratic_residual
from .types import FitResult, IterationParams, ObservedData, ParamVector, Weights, normalize


def least_square_fitting_with_weight(data: ObservedData, weights: Weights) -> FitResult:
    """
    Minimize theta^T M(weights) theta subject to |theta| = 1.
    """
    require_observations(data)
    theta = normalize(lstsq(data.matrix(weights)))
    residual = quadratic_residual(theta, data.matrix(data.uniform_weights()))
    return FitResult(theta=theta, converged=True, iterations=1, residual=residual)


def least_square_fitting(data: ObservedData) -> FitResult:
    """Plain (uniformly weighted) least squares. Non-iterative."""
    return least_square_fitting_with_weight(data, data.uniform_weights())


def iterative_reweight(
        data: ObservedData,
        *,
        params: IterationParams = IterationParams(),
) -> FitResult:
    """
    Least squares, then repeated reweighting until theta stops moving.
    """
    initial = least_square_fitting(data).theta

    def step(theta: ParamVector) -> ParamVector:
        return lstsq(data.matrix(data.weights(theta)))

    return reweight_loop(data, initial, step, params=params, name="iterative_reweight")
