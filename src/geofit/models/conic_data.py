# Andy Zhao
"""
Adapter: makes the conic functions conform to the ObservedData Protocol.

This keeps the estimators in geofit.optimizer generic and reusable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from ..optimizer.types import FloatArray
from .conic import conic_jacobians, conic_vectors
from .embedding import EmbeddedData


@dataclass(eq=False)
class ConicData(EmbeddedData):
    """
    Single-image observations: one (x, y) point per observation.

    - 6-parameter embedding, one equation per point
    - a conic is determined by 5 points
    """
    min_observations: ClassVar[int] = 5
    points_per_observation: ClassVar[int] = 1
    n_equations: ClassVar[int] = 1
    embedding_size: ClassVar[int] = 6

    def _embed(self, obs: FloatArray) -> FloatArray:
        return conic_vectors(obs, self.f0)[:, None, :]

    def _jacobian(self, obs: FloatArray) -> FloatArray:
        return conic_jacobians(obs, self.f0)[:, None, :, :]
