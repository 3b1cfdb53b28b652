# Andy Zhao
"""
Shared implementation of the ObservedData protocol.

A concrete model only has to say how one observation is embedded:

    _embed(obs)     -> xi^(k)            shape (N, neq, n)
    _jacobian(obs)  -> T^(k) = dxi/dobs  shape (N, neq, n, d)

where `obs` is an (N, d) array holding the coordinates of one observation
per row (d = 2 for a single image, d = 4 for a point pair).

Everything else is derived here, vectorized over all observations:

    V0^(kl)  = T^(k) T^(l)^T                      (first-order covariance)
    M        = 1/N sum W^(kl) xi^(k) xi^(l)^T     (scatter matrix)
    W        = ((theta, V0^(kl) theta))^-          (weights)

Geometric correction:
    The model keeps a private correction `delta` (N, d). Observations are
    evaluated at p_hat = p - delta, and the embedding is linearly extended:

        xi*^(k) = xi^(k)(p_hat) + T^(k)(p_hat) delta

    `update_delta(theta)` recomputes delta from the current theta.
    The caller's point array is never modified.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Optional, Sequence

import numpy as np

from ..linalg import pseudo_inverse_with_rank
from ..optimizer.types import (
    FloatArray, ObservedData, ParamVector, Points2D, Weights, as_points,
)

# |theta| below this is treated as "no estimate yet" -> uniform weights.
DEGENERATE_THETA = 1e-12


@dataclass(eq=False)
class EmbeddedData(ObservedData):
    points: Points2D
    f0: float = 1.0

    # Private correction for geometric fitting, one row per observation.
    delta: FloatArray = field(init=False, repr=False)
    _cache: Optional[tuple[FloatArray, FloatArray]] = field(init=False, repr=False, default=None)

    # ---------- Per-model constants ----------
    min_observations: ClassVar[int] = 1
    points_per_observation: ClassVar[int] = 1
    n_equations: ClassVar[int] = 1
    embedding_size: ClassVar[int] = 0
    # Rank kept when inverting the (neq x neq) weight matrices; None = full.
    weight_rank: ClassVar[Optional[int]] = None

    def __post_init__(self) -> None:
        self.points = as_points(self.points)
        self.f0 = float(self.f0)
        if not self.f0 > 0.0:
            raise ValueError(f"f0 must be > 0, got {self.f0}")

        ppo = self.points_per_observation
        if self.points.shape[0] % ppo != 0:
            raise ValueError(
                f"{type(self).__name__} expects points interleaved in groups of {ppo}, "
                f"got {self.points.shape[0]} points"
            )
        self.delta = np.zeros((self.points.shape[0] // ppo, 2 * ppo), dtype=np.float64)
        self._cache = None

    # ---------- Model hooks ----------
    def _embed(self, obs: FloatArray) -> FloatArray:
        raise NotImplementedError

    def _jacobian(self, obs: FloatArray) -> FloatArray:
        raise NotImplementedError

    # ---------- Internal state ----------
    def _observations(self) -> FloatArray:
        """(N, d) view of the observed points, one observation per row."""
        return self.points.reshape(len(self), -1)

    def _state(self) -> tuple[FloatArray, FloatArray]:
        """
        (xi*, T) evaluated at the corrected points. Cached until the next
        update_delta call.
        """
        if self._cache is None:
            hat = self._observations() - self.delta
            t = self._jacobian(hat)
            xi = self._embed(hat) + np.einsum("aknd,ad->akn", t, self.delta)
            self._cache = (xi, t)
        return self._cache

    def _check_index(self, index: int, k: int = 0, l: int = 0) -> None:
        if not 0 <= index < len(self):
            raise IndexError(f"observation index {index} out of range for {len(self)} observations")
        neq = self.n_equations
        if not (0 <= k < neq and 0 <= l < neq):
            raise IndexError(f"equation index ({k}, {l}) out of range for {neq} equations")

    def _as_weights(self, weights: FloatArray) -> Weights:
        """Accept (N,) weights for single-equation models, else (N, neq, neq)."""
        w = np.asarray(weights, dtype=np.float64)
        n, neq = len(self), self.n_equations
        if neq == 1 and w.shape == (n,):
            w = w.reshape(n, 1, 1)
        if w.shape != (n, neq, neq):
            raise ValueError(f"weights must have shape {(n, neq, neq)}, got {w.shape}")
        return w

    # ---------- ObservedData ----------
    def __len__(self) -> int:
        return self.points.shape[0] // self.points_per_observation

    def vec_size(self) -> int:
        return self.embedding_size

    def num_equation(self) -> int:
        return self.n_equations

    def vector(self, index: int, k: int = 0) -> FloatArray:
        self._check_index(index, k)
        xi, _ = self._state()
        return xi[index, k].copy()

    def vectors(self) -> FloatArray:
        xi, _ = self._state()
        return xi

    def variance(self, index: int, k: int = 0, l: int = 0) -> FloatArray:
        self._check_index(index, k, l)
        _, t = self._state()
        return t[index, k] @ t[index, l].T

    def variances(self) -> FloatArray:
        _, t = self._state()
        return np.einsum("aknd,almd->aklnm", t, t)

    def matrix(self, weights: FloatArray) -> FloatArray:
        w = self._as_weights(weights)
        xi, _ = self._state()
        return np.einsum("akl,akn,alm->nm", w, xi, xi) / len(self)

    def uniform_weights(self) -> Weights:
        neq = self.n_equations
        return np.broadcast_to(np.eye(neq), (len(self), neq, neq)).copy()

    def weights(self, theta: ParamVector) -> Weights:
        theta = np.asarray(theta, dtype=np.float64)
        if float(np.linalg.norm(theta)) < DEGENERATE_THETA:
            return self.uniform_weights()

        _, t = self._state()
        # (theta, V0^(kl) theta) = (T^(k)^T theta) . (T^(l)^T theta)
        tt = np.einsum("aknd,n->akd", t, theta)
        var = np.einsum("akd,ald->akl", tt, tt)

        if self.n_equations == 1:
            out = np.zeros_like(var)
            np.divide(1.0, var, out=out, where=var > 0.0)
            return out

        rank = self.weight_rank if self.weight_rank is not None else self.n_equations
        return np.stack([pseudo_inverse_with_rank(v, rank) for v in var])

    def update_delta(self, theta: ParamVector) -> float:
        """
        One correction step:

            delta <- sum_k v_k T^(k)^T theta,   v = W e,   e_l = (xi*^(l), theta)

        Returns sum |delta|^2 over all observations.
        """
        theta = np.asarray(theta, dtype=np.float64)
        w = self.weights(theta)
        xi, t = self._state()

        e = xi @ theta                                  # (N, neq)
        v = np.einsum("akl,al->ak", w, e)               # (N, neq)
        tt = np.einsum("aknd,n->akd", t, theta)         # (N, neq, d)

        self.delta = np.einsum("ak,akd->ad", v, tt)
        self._cache = None
        return float(np.sum(self.delta * self.delta))

    def corrected_points(self) -> Points2D:
        hat = self._observations() - self.delta
        return hat.reshape(-1, 2).copy()

    def subset(self, indices: Sequence[int] | np.ndarray) -> "EmbeddedData":
        idx = np.asarray(indices, dtype=np.intp).reshape(-1)
        obs = self._observations()[idx]
        return type(self)(obs.reshape(-1, 2), f0=self.f0)

    def copy(self) -> "EmbeddedData":
        """Independent copy over the same observations, with no correction."""
        return type(self)(self.points, f0=self.f0)
