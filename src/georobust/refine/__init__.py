"""
Refinement stage: non-linear least squares over consensus inliers,
optional suggestion terms and parameter covariance
"""

from .refiner import (
    DEFAULT_SUGGESTION_WEIGHT, RefinementParams, RefinementResult,
    refine, numerical_jacobian, estimate_covariance,
)

__all__ = [
    "DEFAULT_SUGGESTION_WEIGHT", "RefinementParams", "RefinementResult",
    "refine", "numerical_jacobian", "estimate_covariance",
]
