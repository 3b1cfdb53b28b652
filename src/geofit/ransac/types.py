# Andy Zhao

"""
Typed primitives for the robust (RANSAC) wrapper.

Defines:
- The Estimator protocol: any fitting routine data -> FitResult
- Structured RANSAC result container (theta + inliers + stats)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import numpy as np

from ..optimizer.types import FitResult, Mask, ObservedData, ParamVector


class Estimator(Protocol):
    """
    Anything that fits a parameter vector to a data model, e.g.
    least_square_fitting, taubin, or functools.partial(fns, params=...).

    Raises LinearAlgebraFailure when the sample is degenerate.
    """

    def __call__(self, data: ObservedData) -> FitResult:
        ...


# ---------- RANSAC output container ----------
# frozen=True means "immutable" after construction
@dataclass(frozen=True)
class RansacResult:
    theta: ParamVector  # unit-norm parameter vector refit on the inliers
    inliers: Mask       # boolean mask of inliers under the best hypothesis
    num_inliers: int    # count of True values in inliers
    rms_error: float    # RMS Sampson distance of the inliers under theta
    iterations: int     # how many RANSAC iterations were actually run
    threshold: float    # the inlier threshold tau used


# ---------- Helper Function ----------
def is_valid_theta(theta: ParamVector, size: int) -> bool:
    """
    Verify a fitted parameter vector. Used for rejecting failed fits.
    """
    return (
        isinstance(theta, np.ndarray)
        and theta.shape == (size,)
        and bool(np.isfinite(theta).all())
        and float(np.linalg.norm(theta)) > 0.0
    )
