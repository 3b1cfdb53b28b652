from __future__ import annotations

import cv2
import numpy as np
import pytest

from geofit.epipolar import LatentVariableParams, latent_variable_method, svd_rank_correction
from geofit.linalg import skew
from geofit.models import FundamentalMatrixData
from geofit.optimizer import least_square_fitting, params_to_matrix, sampson_error


def _noisy_pairs(seed: int, n: int = 50, sigma: float = 1e-3):
    rng = np.random.default_rng(seed)
    R, _ = cv2.Rodrigues(rng.normal(0.0, 0.2, size=(3, 1)))
    t = np.array([1.0, 0.2, -0.1])

    X0 = rng.uniform([-3.0, -3.0, 4.0], [3.0, 3.0, 8.0], size=(n, 3))
    X1 = X0 @ R.T + t
    pts0 = X0[:, :2] / X0[:, 2:3] + rng.normal(0.0, sigma, size=(n, 2))
    pts1 = X1[:, :2] / X1[:, 2:3] + rng.normal(0.0, sigma, size=(n, 2))

    F_true = (skew(t) @ R).T
    return FundamentalMatrixData.from_pairs(pts0, pts1), F_true / np.linalg.norm(F_true)


def test_result_is_rank_two_and_not_worse_than_svd_correction() -> None:
    data, _ = _noisy_pairs(50)
    F_ls = params_to_matrix(least_square_fitting(data).theta)
    F_svd = svd_rank_correction(F_ls)

    res = latent_variable_method(data, F_ls)

    s = np.linalg.svd(res.F, compute_uv=False)
    assert s[-1] < 1e-10 * s[0]
    assert abs(np.linalg.norm(res.F) - 1.0) < 1e-10
    assert res.error <= sampson_error(data, F_svd.reshape(9)) + 1e-15
    assert abs(res.error - sampson_error(data, res.F.reshape(9))) < 1e-15


def test_refined_matrix_is_close_to_truth() -> None:
    data, F_true = _noisy_pairs(51, n=100, sigma=1e-4)
    res = latent_variable_method(data, least_square_fitting(data).theta)

    dist = min(np.linalg.norm(res.F - F_true), np.linalg.norm(res.F + F_true))
    assert dist < 1e-2
    assert res.iterations >= 1


def test_parameter_validation() -> None:
    with pytest.raises(ValueError):
        LatentVariableParams(max_iterations=0)
    with pytest.raises(ValueError):
        LatentVariableParams(damping_factor=1.0)
    with pytest.raises(ValueError):
        LatentVariableParams(tolerance=0.0)


def test_rejects_bad_input() -> None:
    data, _ = _noisy_pairs(52, n=10)
    with pytest.raises(ValueError):
        latent_variable_method(data, np.zeros((3, 3)))
    with pytest.raises(ValueError):
        latent_variable_method(data, np.ones(6))
