# Andy Zhao
"""
Optimizer package

This module provides:
- The ObservedData protocol and typed primitives
- Least squares and iterative reweight
- Taubin's method and renormalization
- FNS (Sampson error minimization)
- Geometric distance minimization and optimal correction
"""

from .types import (
    FloatArray, BoolArray, Points2D, PointsHomog, ParamVector, Weights, Mask, Mat3x3,
    ObservedData, IterationParams, FitResult, GeometricResult,
    as_points, as_homogeneous, normalize, params_to_matrix, matrix_to_params,
)

from .iteration import require_observations, align_sign, quadratic_residual, reweight_loop

from .least_square import (
    least_square_fitting_with_weight, least_square_fitting, iterative_reweight,
)

from .taubin import taubin_constraint, taubin_with_weight, taubin, renormalization

from .fns import sampson_matrices, minimize_sampson_error, sampson_residuals, sampson_error, fns

from .geometric import GeometricParams, minimize_geometric_distance, optimal_correction

__all__ = [
    "FloatArray", "BoolArray", "Points2D", "PointsHomog", "ParamVector", "Weights", "Mask", "Mat3x3",
    "ObservedData", "IterationParams", "FitResult", "GeometricResult",
    "as_points", "as_homogeneous", "normalize", "params_to_matrix", "matrix_to_params",
    "require_observations", "align_sign", "quadratic_residual", "reweight_loop",
    "least_square_fitting_with_weight", "least_square_fitting", "iterative_reweight",
    "taubin_constraint", "taubin_with_weight", "taubin", "renormalization",
    "sampson_matrices", "minimize_sampson_error", "sampson_residuals", "sampson_error", "fns",
    "GeometricParams", "minimize_geometric_distance", "optimal_correction",
]
