# Andy Zhao
"""
Iteration skeleton shared by the reweighting estimators.

Iterative reweight, renormalization and FNS all run the same loop:

    initial solve
    repeat:
        solve again with weights from the current theta
        align sign with the previous theta        (theta and -theta are the same model)
        divergence guard on theta^T M(uniform) theta
        stop when |theta - theta_prev| < tolerance

and differ only in the `step` that produces the next theta.

Sign rule:
    The NEW estimate is flipped when (theta, theta_prev) < 0, before it is
    stored and before the distance check. Every estimator uses this rule.
"""

from __future__ import annotations

import logging
from typing import Callable

import numpy as np

from ..errors import InsufficientData
from .types import FitResult, IterationParams, ObservedData, ParamVector, normalize

logger = logging.getLogger(__name__)

Step = Callable[[ParamVector], ParamVector]


def require_observations(data: ObservedData) -> None:
    """Raise InsufficientData before any matrix work."""
    if len(data) < data.min_observations:
        raise InsufficientData(data.min_observations, len(data), type(data).__name__)


def align_sign(theta: ParamVector, reference: ParamVector) -> ParamVector:
    """Flip theta if it points away from the reference."""
    if float(np.dot(theta, reference)) < 0.0:
        return -theta
    return theta


def quadratic_residual(theta: ParamVector, matrix: np.ndarray) -> float:
    """theta^T M theta"""
    return float(theta @ matrix @ theta)


def reweight_loop(
        data: ObservedData,
        theta: ParamVector,
        step: Step,
        *,
        params: IterationParams,
        name: str,
) -> FitResult:
    """
    Run `step` until convergence, divergence, or the iteration cap.

    theta is the result of the initial solve (counted as one iteration).
    Returns the last accepted estimate.
    """
    theta = normalize(theta)
    default_matrix = data.matrix(data.uniform_weights())
    residual = quadratic_residual(theta, default_matrix)
    # Exact data gives residuals at rounding level; jumps below this floor are noise.
    floor = 1e-10 * max(float(np.trace(default_matrix)), np.finfo(np.float64).eps)

    iterations = 1
    for _ in range(params.max_iterations):
        updated = align_sign(normalize(step(theta)), theta)
        iterations += 1

        res = quadratic_residual(updated, default_matrix)
        if res > params.divergence_factor * max(residual, floor):
            logger.warning(
                "%s: residual jumped from %.3e to %.3e at iteration %d; keeping previous estimate",
                name, residual, res, iterations,
            )
            return FitResult(theta=theta, converged=False, iterations=iterations,
                             diverged=True, residual=residual)

        change = float(np.linalg.norm(updated - theta))
        theta = updated
        residual = res
        logger.debug("%s: iteration %d, change=%.3e, residual=%.3e", name, iterations, change, residual)

        if change < params.tolerance:
            return FitResult(theta=theta, converged=True, iterations=iterations, residual=residual)

    logger.info("%s: no convergence after %d iterations", name, iterations)
    return FitResult(theta=theta, converged=False, iterations=iterations, residual=residual)
