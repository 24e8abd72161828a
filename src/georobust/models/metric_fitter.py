# Andy Zhao
"""
Adapter class for the 2D metric transform to match the ModelFitter protocol.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..consensus.types import Points2D, Mat3x3, FloatArray, ModelFitter
from .affine import transfer_errors, transfer_error_vector
from .metric import (
    METRIC_SAMPLE_SIZE,
    fit_metric_minimal,
    fit_metric_least_squares,
    params_to_mat3x3,
    mat3x3_to_params,
)


@dataclass(frozen=True)
class MetricFitter(ModelFitter[Mat3x3]):
    """
    Rotation + uniform scale + translation between two point sets.

    Residual is the transfer error in the target image.
    """
    eps: float = 1e-9
    sample_size: int = METRIC_SAMPLE_SIZE

    def fit_minimal(self, pts0: Points2D, pts1: Points2D) -> Optional[Mat3x3]:
        return fit_metric_minimal(pts0, pts1, eps=self.eps)

    def fit_least_squares(self, pts0: Points2D, pts1: Points2D) -> Optional[Mat3x3]:
        return fit_metric_least_squares(pts0, pts1)

    def residuals(self, model: Mat3x3, pts0: Points2D, pts1: Points2D) -> FloatArray:
        return transfer_errors(model, pts0, pts1)

    def residual_vector(self, model: Mat3x3, pts0: Points2D, pts1: Points2D) -> FloatArray:
        return transfer_error_vector(model, pts0, pts1)

    def to_params(self, model: Mat3x3) -> FloatArray:
        return mat3x3_to_params(model)

    def from_params(self, params: FloatArray) -> Mat3x3:
        return params_to_mat3x3(params)
