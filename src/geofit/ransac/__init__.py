# Andy Zhao
"""
RANSAC package

This module provides:
- A reusable RANSAC loop over any ObservedData model
- The Estimator interface definition
- Sampson-distance scoring of observations
"""

from .types import Estimator, RansacResult, is_valid_theta

from .core import ransac, sampson_distances

__all__ = [
    "Estimator", "RansacResult", "is_valid_theta",
    "ransac", "sampson_distances",
]
