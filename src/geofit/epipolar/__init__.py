"""
Epipolar package: rank correction and rank-2 refinement of fundamental matrices
"""
from .rank_correction import svd_rank_correction, epipoles
from .latent_variable import LatentVariableParams, LatentVariableResult, latent_variable_method

__all__ = [
    "svd_rank_correction", "epipoles",
    "LatentVariableParams", "LatentVariableResult", "latent_variable_method",
]
