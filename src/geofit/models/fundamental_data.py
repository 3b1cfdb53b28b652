# Andy Zhao
"""
Adapter: fundamental matrix observations as ObservedData.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from ..optimizer.types import FloatArray, Points2D
from .embedding import EmbeddedData
from .fundamental import fundamental_jacobians, fundamental_vectors, interleave


@dataclass(eq=False)
class FundamentalMatrixData(EmbeddedData):
    """
    Two-view observations, interleaved [image0_pt_k, image1_pt_k].

    - 9-parameter bilinear embedding, one equation per pair
    - 8 pairs for the linear solution
    """
    min_observations: ClassVar[int] = 8
    points_per_observation: ClassVar[int] = 2
    n_equations: ClassVar[int] = 1
    embedding_size: ClassVar[int] = 9

    @classmethod
    def from_pairs(cls, pts0: Points2D, pts1: Points2D, f0: float = 1.0) -> "FundamentalMatrixData":
        return cls(interleave(pts0, pts1), f0=f0)

    def _embed(self, obs: FloatArray) -> FloatArray:
        return fundamental_vectors(obs, self.f0)[:, None, :]

    def _jacobian(self, obs: FloatArray) -> FloatArray:
        return fundamental_jacobians(obs, self.f0)[:, None, :, :]
