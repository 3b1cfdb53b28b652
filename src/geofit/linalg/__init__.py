"""
Linear algebra kernels (SVD based)
"""
from .matrix import (
    PINV_FLOOR, pseudo_inverse, pseudo_inverse_with_rank, le_lstsq,
    lstsq, constrained_lstsq, reordered_svd, skew,
)

__all__ = [
    "PINV_FLOOR", "pseudo_inverse", "pseudo_inverse_with_rank", "le_lstsq",
    "lstsq", "constrained_lstsq", "reordered_svd", "skew",
]
