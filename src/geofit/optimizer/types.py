# Andy Zhao

"""
Shared typed primitives for the fitting core.

Defines:
- Typed NumPy aliases for geometry
    - Points are (N,2) float arrays
    - Parameter / embedding vectors are (n,) float arrays
- The ObservedData protocol every fitting problem implements
- Iteration parameters shared by the iterative estimators
- Structured result containers (parameter vector + convergence info)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence, TypeAlias

import numpy as np
import numpy.typing as npt

# ---------- Numpy typing aliases ----------
# float64 everywhere: the estimators are numerically delicate.
FloatArray: TypeAlias = npt.NDArray[np.float64]
BoolArray: TypeAlias = npt.NDArray[np.bool_]

# Points in 2D image coordinates.
Points2D: TypeAlias = FloatArray      # shape: (N, 2)

# Homogeneous points [x, y, 1].
PointsHomog: TypeAlias = FloatArray   # shape: (N, 3)

# Parameter vector theta (6 for conics, 9 for fundamental matrix / homography).
ParamVector: TypeAlias = FloatArray   # shape: (n,)

# Per-observation weight matrices W_alpha (num_equation x num_equation).
Weights: TypeAlias = FloatArray       # shape: (N, neq, neq)

# Boolean inlier mask.
Mask: TypeAlias = BoolArray           # shape: (N,)

# 3x3 matrix (fundamental matrix, homography).
Mat3x3: TypeAlias = FloatArray        # shape: (3, 3)


class ObservedData(Protocol):
    """
    Interface that a fitting problem must implement to be usable by the
    generic estimators (least squares, Taubin, renormalization, FNS,
    geometric distance minimization).

    An observation alpha produces `num_equation()` embedding vectors
    xi^(k) (one per scalar equation), each paired with the covariance
    blocks V0^(kl) describing first-order noise propagation.

    The estimators only ever talk to this interface, so one estimator
    implementation serves every model.
    """

    # Fewer observations than this -> InsufficientData
    min_observations: int

    def __len__(self) -> int:
        """Number of observations."""
        ...

    def vector(self, index: int, k: int = 0) -> FloatArray:
        """Embedding vector xi^(k) of observation `index`. Shape: (n,)."""
        ...

    def vectors(self) -> FloatArray:
        """All embedding vectors. Shape: (N, neq, n)."""
        ...

    def matrix(self, weights: Weights) -> FloatArray:
        """
        Weighted scatter matrix

            M = 1/N sum_alpha sum_kl W_alpha^(kl) xi^(k) xi^(l)^T

        Shape: (n, n).
        """
        ...

    def variance(self, index: int, k: int = 0, l: int = 0) -> FloatArray:
        """Covariance block V0^(kl) of observation `index`. Shape: (n, n)."""
        ...

    def variances(self) -> FloatArray:
        """All covariance blocks. Shape: (N, neq, neq, n, n)."""
        ...

    def weights(self, theta: ParamVector) -> Weights:
        """
        Recompute the weights from the current estimate:

            W_alpha = ( (theta, V0^(kl) theta) )^-

        Returns uniform weights when theta is (near) zero.
        """
        ...

    def uniform_weights(self) -> Weights:
        """Identity weight matrices. Shape: (N, neq, neq)."""
        ...

    def update_delta(self, theta: ParamVector) -> float:
        """
        Geometric fitting only: move the stored (private) point positions
        toward the model given by theta. Returns the total squared correction.
        """
        ...

    def corrected_points(self) -> Points2D:
        """Observed points minus the accumulated correction (input layout)."""
        ...

    def subset(self, indices: Sequence[int] | npt.NDArray[np.integer]) -> "ObservedData":
        """New data object restricted to the selected observations."""
        ...

    def copy(self) -> "ObservedData":
        """Independent copy with no accumulated correction."""
        ...

    def vec_size(self) -> int:
        return int(self.vector(0).shape[0])

    def num_equation(self) -> int:
        return 1

    def is_empty(self) -> bool:
        return len(self) == 0


# ---------- Iteration parameters ----------
@dataclass(frozen=True)
class IterationParams:
    """
    Parameters shared by iterative reweight, renormalization and FNS.

    max_iterations:
      - Upper bound on reweighting rounds.

    tolerance:
      - Converged when |theta - theta_prev| < tolerance (after sign alignment).

    divergence_factor:
      - If the quadratic residual theta^T M theta grows by more than this
        factor in one round, the round is rejected and the loop stops.
    """
    max_iterations: int = 100
    tolerance: float = 1e-7
    divergence_factor: float = 10.0

    def __post_init__(self) -> None:
        if self.max_iterations < 1:
            raise ValueError("IterationParams.max_iterations must be >= 1")
        if self.tolerance <= 0.0:
            raise ValueError("IterationParams.tolerance must be > 0")
        if self.divergence_factor <= 1.0:
            raise ValueError("IterationParams.divergence_factor must be > 1")


# ---------- Output containers ----------
@dataclass(frozen=True)
class FitResult:
    theta: ParamVector      # unit-norm parameter vector (sign is arbitrary)
    converged: bool         # False if the iteration cap ran out or the loop diverged
    iterations: int         # number of solves performed
    diverged: bool = False  # True if the divergence guard stopped the loop
    residual: float = 0.0   # theta^T M(uniform) theta of the returned estimate


@dataclass(frozen=True)
class GeometricResult:
    theta: ParamVector      # unit-norm parameter vector
    points: Points2D        # corrected observations, same layout as the input
    converged: bool
    iterations: int
    error: float            # total squared correction of the last round


# ---------- Helper Functions ----------
def as_points(points: Points2D) -> Points2D:
    """
    Copy input into a float64 (N,2) array. Raises ValueError on bad shape.
    """
    pts = np.array(points, dtype=np.float64, copy=True)
    if pts.ndim != 2 or pts.shape[1] != 2:
        raise ValueError(f"Expected points shape (N, 2) but got {pts.shape}")
    return pts


def as_homogeneous(pts: Points2D, f0: float = 1.0) -> PointsHomog:
    """
    Convert (N,2) points -> (N,3) homogeneous points: [x, y, f0].
    """
    if pts.ndim != 2 or pts.shape[1] != 2:
        raise ValueError(f"Expected points shape (N, 2) but got {pts.shape}")

    col = np.full((pts.shape[0], 1), float(f0), dtype=np.float64)
    return np.hstack([pts.astype(np.float64), col])


def normalize(theta: ParamVector) -> ParamVector:
    """Scale to unit norm. The zero vector is returned unchanged."""
    theta = np.asarray(theta, dtype=np.float64)
    norm = float(np.linalg.norm(theta))
    if norm == 0.0:
        return theta.copy()
    return theta / norm


def params_to_matrix(theta: ParamVector) -> Mat3x3:
    """9-vector (row-major) -> 3x3 matrix."""
    theta = np.asarray(theta, dtype=np.float64)
    if theta.shape != (9,):
        raise ValueError(f"Expected a 9-vector, got shape {theta.shape}")
    return theta.reshape(3, 3).copy()


def matrix_to_params(mat: Mat3x3) -> ParamVector:
    """3x3 matrix -> 9-vector (row-major)."""
    mat = np.asarray(mat, dtype=np.float64)
    if mat.shape != (3, 3):
        raise ValueError(f"Expected shape (3,3), got {mat.shape}")
    return mat.reshape(9).copy()
