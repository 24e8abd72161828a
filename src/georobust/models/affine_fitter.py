# Andy Zhao
"""
Adapter: makes affine functions conform to the ModelFitter Protocol.

This keeps consensus/core.py and refine/refiner.py generic and reusable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..consensus.types import Points2D, Mat3x3, FloatArray, ModelFitter
from .affine import (
    AFFINE_SAMPLE_SIZE, fit_affine_minimal, fit_affine_least_squares,
    transfer_errors, transfer_error_vector, theta_to_mat3x3, mat3x3_to_theta,
)


@dataclass(frozen=True)
class AffineFitter(ModelFitter[Mat3x3]):
    eps_area: float = 1e-6
    sample_size: int = AFFINE_SAMPLE_SIZE

    def fit_minimal(self, pts0: Points2D, pts1: Points2D) -> Optional[Mat3x3]:
        return fit_affine_minimal(pts0, pts1, eps_area=self.eps_area)

    def fit_least_squares(self, pts0: Points2D, pts1: Points2D) -> Optional[Mat3x3]:
        return fit_affine_least_squares(pts0, pts1)

    def residuals(self, model: Mat3x3, pts0: Points2D, pts1: Points2D) -> FloatArray:
        return transfer_errors(model, pts0, pts1)

    def residual_vector(self, model: Mat3x3, pts0: Points2D, pts1: Points2D) -> FloatArray:
        return transfer_error_vector(model, pts0, pts1)

    def to_params(self, model: Mat3x3) -> FloatArray:
        return mat3x3_to_theta(model)

    def from_params(self, params: FloatArray) -> Mat3x3:
        return theta_to_mat3x3(params)
