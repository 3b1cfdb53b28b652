from __future__ import annotations

import numpy as np

from geofit.epipolar import epipoles, svd_rank_correction


def _random_rotation(rng: np.random.Generator) -> np.ndarray:
    q, r = np.linalg.qr(rng.normal(size=(3, 3)))
    return q * np.sign(np.diag(r))


def test_rank_correction_zeroes_smallest_singular_value() -> None:
    rng = np.random.default_rng(10)
    for _ in range(20):
        u = _random_rotation(rng)
        v = _random_rotation(rng)
        d = np.array([rng.uniform(2.0, 3.0), rng.uniform(1.0, 2.0), rng.uniform(0.0, 1.0)])
        m = (u * d) @ v.T

        corrected = svd_rank_correction(m)
        expected = (u * np.array([d[0], d[1], 0.0])) @ v.T

        assert np.allclose(corrected, expected, atol=1e-5)
        s = np.linalg.svd(corrected, compute_uv=False)
        assert s[-1] < 1e-12
        assert np.allclose(s[:2], d[:2], atol=1e-5)


def test_rank_correction_of_rank_deficient_matrix() -> None:
    m = np.array([[1.0, 2.0, 3.0], [2.0, 4.0, 6.0], [1.0, 0.0, 1.0]])
    corrected = svd_rank_correction(m)
    assert np.allclose(corrected, m, atol=1e-12)
    assert np.linalg.svd(corrected, compute_uv=False)[-1] < 1e-12


def test_epipoles_are_null_vectors() -> None:
    rng = np.random.default_rng(11)
    f = svd_rank_correction(rng.normal(size=(3, 3)))

    e0, e1 = epipoles(f)
    assert np.allclose(f.T @ e0, 0.0, atol=1e-12)
    assert np.allclose(f @ e1, 0.0, atol=1e-12)
    assert abs(np.linalg.norm(e0) - 1.0) < 1e-12
