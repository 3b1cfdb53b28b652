from __future__ import annotations

import numpy as np
import pytest

from geofit.errors import LinearAlgebraFailure
from geofit.linalg import (
    PINV_FLOOR,
    constrained_lstsq,
    le_lstsq,
    lstsq,
    pseudo_inverse,
    pseudo_inverse_with_rank,
    reordered_svd,
    skew,
)


def test_pseudo_inverse_of_invertible_matrix() -> None:
    a = np.array([[1.0, 3.0, 2.0], [-1.0, 0.0, 1.0], [2.0, 3.0, 0.0]])
    expected = np.array([[1.0, -2.0, -1.0], [-2.0 / 3.0, 4.0 / 3.0, 1.0], [1.0, -1.0, -1.0]])

    inv = pseudo_inverse(a)
    assert np.allclose(inv, expected, atol=1e-12)
    assert np.allclose(pseudo_inverse(inv), a, atol=1e-12)


def test_pseudo_inverse_twice_is_identity_map() -> None:
    rng = np.random.default_rng(1)
    a = rng.normal(size=(5, 5)) + 3.0 * np.eye(5)
    assert np.allclose(pseudo_inverse(pseudo_inverse(a)), a, atol=1e-10)


def test_pseudo_inverse_zeroes_tiny_singular_values() -> None:
    rng = np.random.default_rng(2)
    u, _ = np.linalg.qr(rng.normal(size=(4, 4)))
    v, _ = np.linalg.qr(rng.normal(size=(4, 4)))
    s = np.array([3.0, 2.0, 1.0, PINV_FLOOR * 1e-3])
    a = (u * s) @ v.T

    inv = pseudo_inverse(a)
    # No explosion: the near-null direction maps to exactly nothing.
    assert np.abs(inv).max() < 10.0
    assert np.allclose(inv @ u[:, 3], 0.0, atol=1e-12)
    assert np.allclose(inv @ u[:, 0], v[:, 0] / 3.0, atol=1e-12)


def test_pseudo_inverse_with_rank_keeps_largest_values() -> None:
    a = np.diag([4.0, 2.0, 1.0])
    assert np.allclose(pseudo_inverse_with_rank(a, 2), np.diag([0.25, 0.5, 0.0]))
    assert np.allclose(pseudo_inverse_with_rank(a, 3), np.diag([0.25, 0.5, 1.0]))

    with pytest.raises(ValueError):
        pseudo_inverse_with_rank(a, -1)


def test_le_lstsq_consistent_system() -> None:
    a = np.array([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0], [1.0, 1.0, 1.0]])
    b = np.array([2.0, 3.0, 4.0, 9.0])
    assert np.allclose(le_lstsq(a, b), [2.0, 3.0, 4.0], atol=1e-12)


def test_lstsq_returns_null_vector() -> None:
    a = np.array([[1.0, 0.0, -1.0], [0.0, 1.0, -1.0]])
    x = lstsq(a)
    assert x.shape == (3,)
    assert abs(np.linalg.norm(x) - 1.0) < 1e-12
    assert np.allclose(a @ x, 0.0, atol=1e-12)
    assert np.allclose(x, np.ones(3) / np.sqrt(3.0), atol=1e-12)


def test_lstsq_scale_invariant() -> None:
    rng = np.random.default_rng(3)
    a = rng.normal(size=(12, 6))
    x = lstsq(a)
    for k in (1e-3, 0.5, 7.0, 1e4):
        assert np.allclose(lstsq(k * a), x, atol=1e-12)


def test_constrained_lstsq_identity_constraint() -> None:
    a = np.diag([5.0, 4.0, 3.0, 2.0, 1.0])
    x = constrained_lstsq(a, np.eye(5))
    assert np.allclose(x, [0.0, 0.0, 0.0, 0.0, 1.0], atol=1e-10)


def test_constrained_lstsq_zero_diagonal_entry() -> None:
    a = np.diag([5.0, 4.0, 3.0, 2.0, 0.0])
    x = constrained_lstsq(a, np.eye(5))
    assert np.allclose(x, [0.0, 0.0, 0.0, 0.0, 1.0], atol=1e-10)


def test_constrained_lstsq_singular_constraint() -> None:
    a = np.diag([5.0, 4.0, 3.0, 2.0, 1.0])
    c = np.diag([0.0, 1.0, 1.0, 1.0, 1.0])
    x = constrained_lstsq(a, c)
    assert np.allclose(x, [0.0, 0.0, 0.0, 0.0, 1.0], atol=1e-10)


def test_constrained_lstsq_is_optimal_over_feasible_set() -> None:
    rng = np.random.default_rng(4)
    a = rng.normal(size=(10, 5))
    c = np.diag([1.0, 2.0, 0.5, 1.0, 0.0])

    x = constrained_lstsq(a, c)
    scale = np.linalg.norm(c @ x)
    assert scale > 0.0
    best = np.linalg.norm(a @ x) / scale

    for _ in range(200):
        cand = rng.normal(size=5)
        assert np.linalg.norm(a @ cand) / np.linalg.norm(c @ cand) >= best - 1e-10


def test_constrained_lstsq_rejects_bad_input() -> None:
    with pytest.raises(LinearAlgebraFailure):
        constrained_lstsq(np.eye(3), np.eye(4))
    with pytest.raises(LinearAlgebraFailure):
        constrained_lstsq(np.eye(3), np.zeros((3, 3)))
    with pytest.raises(LinearAlgebraFailure):
        lstsq(np.array([[1.0, np.nan], [0.0, 1.0]]))


def test_reordered_svd_reconstructs_and_sorts() -> None:
    rng = np.random.default_rng(5)
    a = rng.normal(size=(4, 3))
    u, s, v = reordered_svd(a)

    assert np.all(np.diff(s) <= 0.0)
    assert np.allclose((u * s) @ v.T, a, atol=1e-12)


def test_skew_matches_cross_product() -> None:
    v = np.array([1.0, -2.0, 0.5])
    w = np.array([0.3, 4.0, -1.0])
    assert np.allclose(skew(v) @ w, np.cross(v, w))
    assert np.allclose(skew(v), -skew(v).T)
