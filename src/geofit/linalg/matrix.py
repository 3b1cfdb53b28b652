# Andy Zhao
"""
Dense linear-algebra kernels shared by every estimator.

All of them are built on a single SVD call:

    A = U @ diag(s) @ Vt      (s sorted in descending order by NumPy)

Kernels:
- pseudo_inverse:        V diag(1/s) U^T, tiny singular values inverted to 0
- lstsq:                 minimize |A x| subject to |x| = 1
- constrained_lstsq:     minimize |A x| subject to |C x| = 1 (C may be singular)
- reordered_svd:         SVD with explicitly sorted singular triplets

Failure policy:
    Any decomposition failure raises LinearAlgebraFailure. There is no retry;
    estimators decide what to do with the error.
"""

from __future__ import annotations

import numpy as np

from ..errors import LinearAlgebraFailure

# Singular values below this are treated as exact zeros by the pseudo-inverse.
PINV_FLOOR = 1e-5


def _as_matrix(matrix: np.ndarray, name: str = "matrix") -> np.ndarray:
    a = np.asarray(matrix, dtype=np.float64)
    if a.ndim != 2:
        raise ValueError(f"{name} must be 2D, got shape {a.shape}")
    if a.size == 0:
        raise LinearAlgebraFailure(f"{name} is empty (shape {a.shape})")
    if not np.isfinite(a).all():
        raise LinearAlgebraFailure(f"{name} contains non-finite values")
    return a


def _svd(a: np.ndarray, *, full_matrices: bool = False):
    try:
        return np.linalg.svd(a, full_matrices=full_matrices)
    except np.linalg.LinAlgError as exc:
        raise LinearAlgebraFailure(f"SVD did not converge for matrix of shape {a.shape}") from exc


def _canonical_sign(vec: np.ndarray) -> np.ndarray:
    """
    Fix the sign ambiguity of a singular vector:
    the component with the largest magnitude is made positive.
    """
    idx = int(np.argmax(np.abs(vec)))
    if vec[idx] < 0.0:
        return -vec
    return vec


def pseudo_inverse(matrix: np.ndarray) -> np.ndarray:
    """
    Moore-Penrose pseudo-inverse through SVD.

    Singular values below PINV_FLOOR are inverted to exactly 0, so a
    near-singular direction contributes nothing instead of exploding.
    """
    a = _as_matrix(matrix)
    u, s, vt = _svd(a)

    s_inv = np.zeros_like(s)
    keep = s >= PINV_FLOOR
    s_inv[keep] = 1.0 / s[keep]

    # V @ diag(s_inv) @ U^T
    return (vt.T * s_inv) @ u.T


def pseudo_inverse_with_rank(matrix: np.ndarray, rank: int) -> np.ndarray:
    """
    Pseudo-inverse that keeps only the `rank` largest singular values.

    Used for the 3x3 weight matrices of three-equation models, where only
    two of the equations are independent.
    """
    if rank < 0:
        raise ValueError(f"rank must be >= 0, got {rank}")
    a = _as_matrix(matrix)
    u, s, vt = _svd(a)

    s_inv = np.zeros_like(s)
    keep = np.zeros(s.shape, dtype=bool)
    keep[: min(rank, s.size)] = True
    keep &= s >= PINV_FLOOR
    s_inv[keep] = 1.0 / s[keep]
    return (vt.T * s_inv) @ u.T


def le_lstsq(matrix: np.ndarray, rhs: np.ndarray) -> np.ndarray:
    """
    Least-squares solution of the linear equation A x = b:
        x = A^+ b
    """
    b = np.asarray(rhs, dtype=np.float64)
    a_inv = pseudo_inverse(matrix)
    if a_inv.shape[1] != b.shape[0]:
        raise ValueError(f"Incompatible shapes: A is {np.asarray(matrix).shape}, b is {b.shape}")
    return a_inv @ b


def lstsq(matrix: np.ndarray) -> np.ndarray:
    """
    Homogeneous least squares:

        minimize |A x|  subject to  |x| = 1

    The minimizer is the right singular vector of the smallest singular
    value. With full_matrices=True the last row of Vt is that vector, and it
    is a null vector when A has fewer rows than columns.

    Returns a unit vector with a canonical sign.
    """
    a = _as_matrix(matrix)
    _, _, vt = _svd(a, full_matrices=True)
    return _canonical_sign(vt[-1].copy())


def constrained_lstsq(matrix: np.ndarray, constrained: np.ndarray) -> np.ndarray:
    """
    Generalized homogeneous least squares:

        minimize |A x|  subject to  |C x| = 1

    Write C = U diag(d) V^T and x_hat = V^T x. Split the columns of
    A_hat = A V by whether d is non-zero (block 1) or zero (block 2):

        A x = A_hat1 x1 + A_hat2 x2,     |C x| = |D1 x1|

    For fixed x1 the best x2 is -A_hat2^+ A_hat1 x1, which leaves

        minimize |(A_hat2 A_hat2^+ - I) A_hat1 D1^-1 y|,   |y| = 1,   x1 = D1^-1 y

    With no zero singular value the problem is simply lstsq(A_hat1 D1^-1).
    """
    a = _as_matrix(matrix, "matrix")
    c = _as_matrix(constrained, "constrained")
    if a.shape[1] != c.shape[1]:
        raise LinearAlgebraFailure(
            f"Invalid matrix size: matrix has {a.shape[1]} columns, constraint has {c.shape[1]}"
        )

    n = c.shape[1]
    _, d, vt = _svd(c, full_matrices=True)

    # C may have fewer rows than columns: missing singular values are zeros.
    sing_vals = np.zeros(n, dtype=np.float64)
    sing_vals[: d.size] = d

    tol = max(c.shape) * np.finfo(np.float64).eps * float(sing_vals.max())
    nonsingular = sing_vals > tol
    if not nonsingular.any():
        raise LinearAlgebraFailure("Constraint matrix has no non-singular direction")

    a_hat = a @ vt.T
    a_hat1 = a_hat[:, nonsingular]
    a_hat2 = a_hat[:, ~nonsingular]
    d1_inv = np.diag(1.0 / sing_vals[nonsingular])

    x_hat = np.zeros(n, dtype=np.float64)
    if a_hat2.shape[1] == 0:
        y = lstsq(a_hat1 @ d1_inv)
        x_hat[nonsingular] = d1_inv @ y
    else:
        a_hat2_inv = pseudo_inverse(a_hat2)
        a_hhat = (a_hat2 @ a_hat2_inv - np.eye(a.shape[0])) @ a_hat1 @ d1_inv
        y = lstsq(a_hhat)
        x1 = d1_inv @ y
        x_hat[nonsingular] = x1
        x_hat[~nonsingular] = -a_hat2_inv @ a_hat1 @ x1

    return _canonical_sign(vt.T @ x_hat)


def reordered_svd(matrix: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    SVD with singular triplets sorted by descending singular value.

    Returns (U, s, V) with matrix == U @ diag(s) @ V.T, so that column i of
    U and V belongs to s[i]. Downstream code indexes triplets by position.
    """
    a = _as_matrix(matrix)
    u, s, vt = _svd(a)
    order = np.argsort(-s, kind="stable")
    return u[:, order], s[order], vt[order].T


def skew(vec: np.ndarray) -> np.ndarray:
    """
    Cross-product matrix [v]_x such that [v]_x @ w == cross(v, w).
    """
    v = np.asarray(vec, dtype=np.float64).reshape(3)
    return np.array(
        [
            [0.0, -v[2], v[1]],
            [v[2], 0.0, -v[0]],
            [-v[1], v[0], 0.0],
        ],
        dtype=np.float64,
    )
