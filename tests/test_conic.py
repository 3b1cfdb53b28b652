from __future__ import annotations

import numpy as np
import pytest

from geofit.errors import InsufficientData
from geofit.models import (
    ConicData,
    conic_jacobians,
    conic_residuals,
    conic_variance,
    conic_vectors,
    ellipse_center,
    ellipse_points,
)
from geofit.optimizer import (
    GeometricParams,
    IterationParams,
    fns,
    iterative_reweight,
    least_square_fitting,
    minimize_geometric_distance,
    optimal_correction,
    renormalization,
    sampson_error,
    taubin,
)

# x^2 + 4y^2 - 4 = 0 in the embedding (x^2, 2xy, y^2, 2f0x, 2f0y, f0^2)
TRUE_THETA = np.array([1.0, 0.0, 4.0, 0.0, 0.0, -4.0]) / np.sqrt(33.0)

ANGLES_DEG = [0, 90, 180, 270, 45, 135, 225, 315, 30, 150, 210, 60, 300]


def _distance_up_to_sign(a: np.ndarray, b: np.ndarray) -> float:
    return float(min(np.linalg.norm(a - b), np.linalg.norm(a + b)))


def _exact_points() -> np.ndarray:
    return ellipse_points((0.0, 0.0), (2.0, 1.0), angles=np.deg2rad(ANGLES_DEG))


def _circle_theta(cx: float, cy: float, r: float, f0: float) -> np.ndarray:
    theta = np.array([1.0, 0.0, 1.0, -cx / f0, -cy / f0, (cx * cx + cy * cy - r * r) / (f0 * f0)])
    return theta / np.linalg.norm(theta)


def _noisy_circle(seed: int, n: int = 100, sigma: float = 0.5) -> np.ndarray:
    rng = np.random.default_rng(seed)
    pts = ellipse_points((50.0, -30.0), (100.0, 100.0), angles=rng.uniform(0.0, 2.0 * np.pi, size=n))
    return pts + rng.normal(0.0, sigma, size=pts.shape)


def test_true_conic_has_zero_residual() -> None:
    pts = _exact_points()
    assert pts.shape == (13, 2)
    assert np.abs(conic_residuals(TRUE_THETA, pts)).max() < 1e-12


@pytest.mark.parametrize(
    "estimator",
    [least_square_fitting, iterative_reweight, taubin, renormalization, fns],
)
def test_estimators_recover_exact_conic(estimator) -> None:
    data = ConicData(_exact_points())
    res = estimator(data)

    assert abs(np.linalg.norm(res.theta) - 1.0) < 1e-12
    assert _distance_up_to_sign(res.theta, TRUE_THETA) < 1e-5
    assert res.converged
    assert not res.diverged


def test_geometric_distance_leaves_exact_points_untouched() -> None:
    pts = _exact_points()
    data = ConicData(pts)
    res = minimize_geometric_distance(data)

    assert _distance_up_to_sign(res.theta, TRUE_THETA) < 1e-5
    assert res.converged
    assert res.error < 1e-20
    assert np.allclose(res.points, pts, atol=1e-10)


def test_conic_variance_matches_jacobian_product() -> None:
    pts = np.array([[0.3, -1.2], [2.0, 0.5], [-4.0, 3.0]])
    f0 = 2.5
    t = conic_jacobians(pts, f0)
    data = ConicData(pts, f0=f0)
    for i, (x, y) in enumerate(pts):
        assert np.allclose(t[i] @ t[i].T, conic_variance(x, y, f0), atol=1e-12)
        assert np.allclose(data.variance(i), conic_variance(x, y, f0), atol=1e-12)
        assert np.allclose(data.vector(i), conic_vectors(pts, f0)[i])


def test_weights_are_inverse_variances() -> None:
    pts = _exact_points()
    data = ConicData(pts)
    w = data.weights(TRUE_THETA)
    assert w.shape == (13, 1, 1)
    for i, (x, y) in enumerate(pts):
        var = TRUE_THETA @ conic_variance(x, y) @ TRUE_THETA
        assert abs(w[i, 0, 0] - 1.0 / var) < 1e-10

    assert np.allclose(data.weights(np.zeros(6)), 1.0)


@pytest.mark.parametrize(
    "estimator",
    [least_square_fitting, iterative_reweight, taubin, renormalization, fns],
)
def test_estimators_find_noisy_circle_centre(estimator) -> None:
    data = ConicData(_noisy_circle(seed=20), f0=100.0)
    res = estimator(data)
    center = ellipse_center(res.theta, f0=100.0)
    assert np.linalg.norm(center - np.array([50.0, -30.0])) < 1.0


def test_fns_does_not_increase_sampson_error() -> None:
    data = ConicData(_noisy_circle(seed=21), f0=100.0)
    ls = least_square_fitting(data).theta
    best = fns(data, params=IterationParams(tolerance=1e-10)).theta
    assert sampson_error(data, best) <= sampson_error(data, ls) + 1e-12


def test_geometric_distance_on_noisy_circle() -> None:
    pts = _noisy_circle(seed=22)
    original = pts.copy()
    data = ConicData(pts, f0=100.0)

    res = minimize_geometric_distance(data, params=GeometricParams(tolerance=1e-8))

    assert res.points.shape == pts.shape
    assert np.linalg.norm(ellipse_center(res.theta, f0=100.0) - np.array([50.0, -30.0])) < 1.0

    before = np.abs(conic_residuals(res.theta, pts, 100.0)).mean()
    after = np.abs(conic_residuals(res.theta, res.points, 100.0)).mean()
    assert after < 0.1 * before

    # The caller's data is not modified
    assert np.array_equal(pts, original)
    assert np.array_equal(data.points, original)
    assert not data.delta.any()


def test_optimal_correction_projects_onto_fixed_circle() -> None:
    f0 = 100.0
    pts = _noisy_circle(seed=23)
    theta = _circle_theta(50.0, -30.0, 100.0, f0)

    res = optimal_correction(ConicData(pts, f0=f0), theta, params=GeometricParams(tolerance=1e-10))

    assert np.allclose(res.theta, theta)
    radii = np.linalg.norm(res.points - np.array([50.0, -30.0]), axis=1)
    assert np.abs(radii - 100.0).max() < 1e-3
    # Each point moves roughly along the normal, by about the noise level
    assert np.abs(np.linalg.norm(res.points - pts, axis=1)).max() < 5.0


def test_optimal_correction_rejects_bad_theta() -> None:
    data = ConicData(_exact_points())
    with pytest.raises(ValueError):
        optimal_correction(data, np.zeros(6))
    with pytest.raises(ValueError):
        optimal_correction(data, np.ones(9))


def test_too_few_points_raise_insufficient_data() -> None:
    data = ConicData(_exact_points()[:4])
    for estimator in (least_square_fitting, taubin, fns, minimize_geometric_distance):
        with pytest.raises(InsufficientData):
            estimator(data)
    # Also usable as a plain ValueError
    with pytest.raises(ValueError):
        renormalization(data)


def test_bad_point_shape_raises_value_error() -> None:
    with pytest.raises(ValueError):
        ConicData(np.zeros((5, 3)))
    with pytest.raises(ValueError):
        ConicData(np.zeros((5, 2)), f0=0.0)


def test_subset_and_copy() -> None:
    pts = _exact_points()
    data = ConicData(pts)
    sub = data.subset([0, 2, 4, 6, 8])
    assert len(sub) == 5
    assert np.allclose(sub.points, pts[[0, 2, 4, 6, 8]])

    data.update_delta(np.array([1.0, 0.0, 1.0, 0.0, 0.0, -1.0]) / np.sqrt(3.0))
    assert data.delta.any()
    assert not data.copy().delta.any()
