# Andy Zhao
"""
Geometric distance minimization.

The Sampson error assumes the observations lie at their measured positions.
Geometric fitting estimates the "true" positions jointly with theta:

    1) delta = 0
    2) theta <- FNS on the corrected embedding xi* (warm started)
    3) delta <- correction towards the model given by theta
    4) stop when the total squared correction E stops changing,
       otherwise go to 2

The correction lives in a private copy of the data model, owned by a single
call. The caller's data object and point array are left untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from .fns import fns
from .iteration import require_observations
from .types import GeometricResult, IterationParams, ObservedData, ParamVector, normalize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeometricParams:
    """
    Parameters for geometric distance minimization.

    max_iterations:
      - Upper bound on correction rounds.

    tolerance:
      - Stop when |E - E_prev| < tolerance, E = total squared correction.
      - Point units squared, so much looser than the theta tolerances.

    inner:
      - Parameters of the FNS solve run in every round.
    """
    max_iterations: int = 100
    tolerance: float = 1e-4
    inner: IterationParams = field(default_factory=IterationParams)

    def __post_init__(self) -> None:
        if self.max_iterations < 1:
            raise ValueError("GeometricParams.max_iterations must be >= 1")
        if self.tolerance <= 0.0:
            raise ValueError("GeometricParams.tolerance must be > 0")


def _correction_loop(
        work: ObservedData,
        theta: Optional[ParamVector],
        *,
        params: GeometricParams,
        update_params: bool,
) -> GeometricResult:
    error_prev = np.inf
    error = 0.0
    converged = False

    iterations = 0
    for iterations in range(1, params.max_iterations + 1):
        if update_params:
            theta = fns(work, params=params.inner, initial=theta).theta

        error = work.update_delta(theta)
        logger.debug("geometric: round %d, squared correction=%.6e", iterations, error)

        if abs(error - error_prev) < params.tolerance:
            converged = True
            break
        error_prev = error

    if not converged:
        logger.info("geometric: correction did not settle after %d rounds", iterations)

    return GeometricResult(
        theta=normalize(theta),
        points=work.corrected_points(),
        converged=converged,
        iterations=iterations,
        error=float(error),
    )


def minimize_geometric_distance(
        data: ObservedData,
        *,
        params: GeometricParams = GeometricParams(),
) -> GeometricResult:
    """
    Jointly estimate theta and the corrected observations.

    Returns the parameter vector and the corrected points, in the same
    layout as the input observations.
    """
    require_observations(data)
    work = data.copy()
    return _correction_loop(work, None, params=params, update_params=True)


def optimal_correction(
        data: ObservedData,
        theta: ParamVector,
        *,
        params: GeometricParams = GeometricParams(),
) -> GeometricResult:
    """
    Move the observations onto a fixed model theta (e.g. correct point
    pairs to satisfy a known epipolar constraint before triangulation).
    """
    theta = np.asarray(theta, dtype=np.float64)
    if theta.shape != (data.vec_size(),):
        raise ValueError(f"theta must have shape ({data.vec_size()},), got {theta.shape}")
    if float(np.linalg.norm(theta)) == 0.0:
        raise ValueError("theta must be non-zero")

    work = data.copy()
    return _correction_loop(work, normalize(theta), params=params, update_params=False)
