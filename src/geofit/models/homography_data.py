# Andy Zhao
"""
Adapter: homography observations as ObservedData.

Three equations per correspondence, of which two are independent, so the
(3x3) weight matrices are pseudo-inverted with rank 2.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Optional

from ..optimizer.types import FloatArray, Points2D
from .embedding import EmbeddedData
from .fundamental import interleave
from .homography import homography_jacobians, homography_vectors


@dataclass(eq=False)
class HomographyData(EmbeddedData):
    min_observations: ClassVar[int] = 4
    points_per_observation: ClassVar[int] = 2
    n_equations: ClassVar[int] = 3
    embedding_size: ClassVar[int] = 9
    weight_rank: ClassVar[Optional[int]] = 2

    @classmethod
    def from_pairs(cls, pts0: Points2D, pts1: Points2D, f0: float = 1.0) -> "HomographyData":
        return cls(interleave(pts0, pts1), f0=f0)

    def _embed(self, obs: FloatArray) -> FloatArray:
        return homography_vectors(obs, self.f0)

    def _jacobian(self, obs: FloatArray) -> FloatArray:
        return homography_jacobians(obs, self.f0)
