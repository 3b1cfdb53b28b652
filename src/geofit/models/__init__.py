"""
Data models package

Each model turns raw point observations into embedding vectors, covariance
blocks and weights through the ObservedData protocol:
- ConicData:              ellipse / conic fitting (6 parameters)
- FundamentalMatrixData:  two-view epipolar geometry (9 parameters)
- HomographyData:         planar homography (9 parameters, 3 equations)
"""

from .embedding import EmbeddedData

from .conic import (
    conic_vectors, conic_jacobians, conic_variance, conic_residuals,
    conic_matrix, ellipse_center, ellipse_points,
)
from .conic_data import ConicData

from .fundamental import (
    interleave, fundamental_vectors, fundamental_jacobians, epipolar_residuals,
)
from .fundamental_data import FundamentalMatrixData

from .homography import (
    homography_vectors, homography_jacobians, apply_homography, transfer_error,
)
from .homography_data import HomographyData

__all__ = [
    "EmbeddedData",
    "conic_vectors", "conic_jacobians", "conic_variance", "conic_residuals",
    "conic_matrix", "ellipse_center", "ellipse_points",
    "ConicData",
    "interleave", "fundamental_vectors", "fundamental_jacobians", "epipolar_residuals",
    "FundamentalMatrixData",
    "homography_vectors", "homography_jacobians", "apply_homography", "transfer_error",
    "HomographyData",
]
