"""
Pluggable 2D transform models

Each model ships plain functions (minimal fit, least squares refit,
residuals) plus a small fitter class conforming to the ModelFitter protocol.
"""

from .affine import (
    AFFINE_SAMPLE_SIZE, fit_affine_minimal, fit_affine_least_squares,
    apply_transform, transfer_errors, transfer_error_vector,
    theta_to_mat3x3, mat3x3_to_theta, is_degenerate_triplet,
)
from .affine_fitter import AffineFitter

from .metric import METRIC_SAMPLE_SIZE, fit_metric_minimal, fit_metric_least_squares, scale_and_rotation
from .metric_fitter import MetricFitter

from .projective import (
    PROJECTIVE_SAMPLE_SIZE, fit_projective_minimal, fit_projective_least_squares,
    hartley_normalization,
)
from .projective_fitter import ProjectiveFitter

__all__ = [
    "AFFINE_SAMPLE_SIZE", "fit_affine_minimal", "fit_affine_least_squares",
    "apply_transform", "transfer_errors", "transfer_error_vector",
    "theta_to_mat3x3", "mat3x3_to_theta", "is_degenerate_triplet", "AffineFitter",
    "METRIC_SAMPLE_SIZE", "fit_metric_minimal", "fit_metric_least_squares",
    "scale_and_rotation", "MetricFitter",
    "PROJECTIVE_SAMPLE_SIZE", "fit_projective_minimal", "fit_projective_least_squares",
    "hartley_normalization", "ProjectiveFitter",
]
