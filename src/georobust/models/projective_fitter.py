# Andy Zhao
"""
Adapter: homography functions conforming to the ModelFitter Protocol.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..consensus.types import Points2D, Mat3x3, FloatArray, ModelFitter
from .affine import transfer_errors, transfer_error_vector
from .projective import (
    PROJECTIVE_SAMPLE_SIZE, fit_projective_minimal, fit_projective_least_squares,
    mat3x3_to_params, params_to_mat3x3,
)


@dataclass(frozen=True)
class ProjectiveFitter(ModelFitter[Mat3x3]):
    eps_area: float = 1e-6
    sample_size: int = PROJECTIVE_SAMPLE_SIZE

    def fit_minimal(self, pts0: Points2D, pts1: Points2D) -> Optional[Mat3x3]:
        return fit_projective_minimal(pts0, pts1, eps_area=self.eps_area)

    def fit_least_squares(self, pts0: Points2D, pts1: Points2D) -> Optional[Mat3x3]:
        return fit_projective_least_squares(pts0, pts1)

    def residuals(self, model: Mat3x3, pts0: Points2D, pts1: Points2D) -> FloatArray:
        return transfer_errors(model, pts0, pts1)

    def residual_vector(self, model: Mat3x3, pts0: Points2D, pts1: Points2D) -> FloatArray:
        return transfer_error_vector(model, pts0, pts1)

    def to_params(self, model: Mat3x3) -> FloatArray:
        return mat3x3_to_params(model)

    def from_params(self, params: FloatArray) -> Mat3x3:
        return params_to_mat3x3(params)
