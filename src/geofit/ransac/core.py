# Andy Zhao
"""
Generic RANSAC loop over ObservedData.

RANSAC overview:
- Randomly sample a *minimal* subset of observations
- Fit a candidate theta from that subset with the chosen estimator
- Score all observations by their Sampson distance sqrt(e^T W e)
- Mark inliers where distance < tau
- Keep the hypothesis with the most inliers (ties: lower RMS)
- Refit using all inliers to get the final theta

Works with every data model (conic, fundamental matrix, homography) and
every estimator (least squares, Taubin, renormalization, FNS, ...).
"""
from __future__ import annotations

import logging
import os
from typing import Optional

import numpy as np

from ..errors import LinearAlgebraFailure
from ..optimizer.fns import sampson_residuals
from ..optimizer.least_square import least_square_fitting
from ..optimizer.types import FloatArray, Mask, ObservedData, ParamVector
from .types import Estimator, RansacResult, is_valid_theta

logger = logging.getLogger(__name__)
_RANSAC_DEBUG = os.environ.get("GEOFIT_RANSAC_DEBUG", "0") == "1"


def _required_iter_for_confidence(
        *,
        p_all_inliers: float,
        inlier_ratio: float,
        sample_size: int,
) -> int:
    """
    Number of iterations needed so that the probability of having drawn at
    least ONE all-inlier minimal sample is >= p_all_inliers.

    inlier ratio w = (# inliers) / N, minimal sample s = min_samples:
    - P(all-inliers) = w^s
    - P(not-all-inlier-for-k-times) = (1 - w^s)^k
    - P(at-least-once-all-inliers) = 1 - (1 - w^s)^k >= p

    Formula:
       k >= log(1 - p) / log(1 - w^s)

    Edge cases:
     - w == 0  -> impossible, return "infinite-ish" (capped by max_iters)
     - w == 1  -> 1 iteration is enough
    """
    # Clamp inputs to avoid log(0)
    p = float(np.clip(p_all_inliers, 1e-12, 1.0 - 1e-12))
    w = float(np.clip(inlier_ratio, 0.0, 1.0))
    s = int(sample_size)

    if s <= 0:
        raise ValueError("sample_size must be >= 1")

    if w >= 1.0:
        return 1

    if w <= 0.0:
        return int(1e9)

    # w^s is tiny for large minimal samples (fundamental matrix: s = 8)
    w_to_s = float(np.clip(w ** s, 1e-12, 1.0 - 1e-12))

    k = int(np.ceil(np.log(1 - p) / np.log(1 - w_to_s)))
    return max(1, k)


def sampson_distances(data: ObservedData, theta: ParamVector) -> FloatArray:
    """Per-observation Sampson distance sqrt(e^T W e). Shape (N,)."""
    return np.sqrt(np.maximum(sampson_residuals(data, theta), 0.0))


def _try_fit(estimator: Estimator, data: ObservedData) -> Optional[ParamVector]:
    """Fit, returning None for degenerate samples."""
    try:
        theta = estimator(data).theta
    except LinearAlgebraFailure:
        return None
    if not is_valid_theta(theta, data.vec_size()):
        return None
    return theta


def ransac(
        data: ObservedData,
        *,
        estimator: Estimator = least_square_fitting,
        min_samples: Optional[int] = None,
        tau: float = 3.0,
        max_iters: int = 2000,
        seed: int = 0,
        confidence: float = 0.99,
) -> Optional[RansacResult]:
    """
    Run RANSAC on a data model.

    Inputs:
    - data: any ObservedData (ConicData, FundamentalMatrixData, HomographyData)
    - estimator: fits a FitResult from a data model (default least squares)
    - min_samples: observations per hypothesis (default data.min_observations)
    - tau: inlier threshold on the Sampson distance, in point units
    - max_iters: upper bound of number of RANSAC iterations
    - seed: RNG seed for reproducibility
    - confidence: target probability of drawing one all-inlier sample

    Returns:
    - RansacResult with the refit theta + inlier mask, or None if it fails.
    """
    # ---------- Input validation ----------
    if min_samples is None:
        min_samples = data.min_observations
    if min_samples < data.min_observations:
        raise ValueError(
            f"min_samples must be >= {data.min_observations} for {type(data).__name__}, got {min_samples}"
        )
    if tau <= 0.0:
        raise ValueError(f"tau must be > 0, got {tau}")
    if max_iters < 1:
        raise ValueError(f"max_iters must be >= 1, got {max_iters}")

    n = len(data)
    if n < min_samples:
        # Not enough observations to fit the model
        return None

    rng = np.random.default_rng(seed)

    best_theta: Optional[ParamVector] = None
    best_inliers: Optional[Mask] = None
    best_num_inliers = -1
    best_rms = float("inf")

    all_idx = np.arange(n)

    target_iters = max_iters
    iters_run = 0

    # ---------- Main RANSAC Loop ----------
    i = 0
    while i < max_iters and i < target_iters:
        iters_run = i + 1
        i += 1

        # Minimal subset of observations (unique indices, no replacement)
        sample_idx = rng.choice(all_idx, size=min_samples, replace=False)

        theta = _try_fit(estimator, data.subset(sample_idx))
        if theta is None:
            continue

        err = sampson_distances(data, theta)
        inliers: Mask = (err < tau)

        num_inliers = int(np.count_nonzero(inliers))
        if num_inliers < min_samples:
            continue

        inlier_err = err[inliers]
        rms = float(np.sqrt(np.mean(inlier_err * inlier_err)))

        # Primary criterion: more inliers. If tie: lower RMS error
        is_better = (num_inliers > best_num_inliers) or (
                num_inliers == best_num_inliers and rms < best_rms
        )

        if is_better:
            best_theta = theta
            best_inliers = inliers
            best_num_inliers = num_inliers
            best_rms = rms

            w = best_num_inliers / float(n)
            iter_needed = _required_iter_for_confidence(
                p_all_inliers=confidence,
                inlier_ratio=w,
                sample_size=min_samples,
            )
            target_iters = min(target_iters, max(iter_needed, iters_run))
            if _RANSAC_DEBUG:
                logger.debug(
                    "[RANSAC] better model: inliers=%d/%d, w=%.3f, target_iters=%d",
                    best_num_inliers, n, w, target_iters,
                )

    if best_theta is None or best_inliers is None:
        logger.info("ransac: no hypothesis with at least %d inliers after %d iterations", min_samples, iters_run)
        return None

    # Refit on all inliers, falling back to the best minimal hypothesis
    refit = _try_fit(estimator, data.subset(np.flatnonzero(best_inliers)))
    final_theta = refit if refit is not None else best_theta

    final_err = sampson_distances(data, final_theta)[best_inliers]
    final_rms = float(np.sqrt(np.mean(final_err * final_err)))

    return RansacResult(
        theta=final_theta,
        inliers=best_inliers,
        num_inliers=int(np.count_nonzero(best_inliers)),
        rms_error=final_rms,
        iterations=iters_run,
        threshold=float(tau),
    )
