# Andy Zhao
"""
Adapter: pinhole camera estimation conforming to the ModelFitter Protocol.

Correspondences are (points3d, points2d); the residual of a correspondence
is its reprojection error in pixels.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np

from ..consensus.types import Points2D, Points3D, FloatArray, ModelFitter
from ..exceptions import DegenerateSampleError
from .dlt import DLT_SAMPLE_SIZE, dlt_camera
from .pinhole import PinholeCamera

# [fx, fy, skew, cx, cy, rx, ry, rz, Cx, Cy, Cz]
NUM_CAMERA_PARAMS = 11


def reprojection_error_vector(camera: PinholeCamera, points3d: Points3D, points2d: Points2D) -> FloatArray:
    """Signed reprojection errors (du0, dv0, du1, dv1, ...)."""
    diff = camera.project(points3d) - points2d.astype(np.float64)
    return diff.reshape(-1)


def reprojection_errors(camera: PinholeCamera, points3d: Points3D, points2d: Points2D) -> FloatArray:
    """Per-point reprojection distance, shape (N,)."""
    if points3d.shape[0] != points2d.shape[0]:
        raise ValueError(
            f"points3d and points2d must have same length, got {points3d.shape[0]} vs {points2d.shape[0]}")
    diff = camera.project(points3d) - points2d.astype(np.float64)
    return np.linalg.norm(diff, axis=1).astype(np.float64)


def camera_to_params(camera: PinholeCamera) -> FloatArray:
    rvec, _ = cv2.Rodrigues(camera.R)
    K = camera.K
    return np.concatenate([
        [K[0, 0], K[1, 1], K[0, 1], K[0, 2], K[1, 2]],
        rvec.reshape(3),
        camera.C.reshape(3),
    ]).astype(np.float64)


def params_to_camera(params: np.ndarray) -> PinholeCamera:
    params = np.asarray(params, dtype=np.float64)
    if params.shape != (NUM_CAMERA_PARAMS,):
        raise ValueError(f"Expected {NUM_CAMERA_PARAMS} camera parameters, got shape {params.shape}")

    fx, fy, skew, cx, cy = params[:5]
    R, _ = cv2.Rodrigues(params[5:8].reshape(3, 1))
    return PinholeCamera.from_parameters(fx, fy, skew, cx, cy, R, params[8:11])


@dataclass(frozen=True)
class PinholeCameraFitter(ModelFitter[PinholeCamera]):
    sample_size: int = DLT_SAMPLE_SIZE

    def fit_minimal(self, pts0: Points3D, pts1: Points2D) -> Optional[PinholeCamera]:
        # DegenerateSampleError propagates to the consensus loop
        return dlt_camera(pts0, pts1)

    def fit_least_squares(self, pts0: Points3D, pts1: Points2D) -> Optional[PinholeCamera]:
        try:
            return dlt_camera(pts0, pts1)
        except DegenerateSampleError:
            return None

    def residuals(self, model: PinholeCamera, pts0: Points3D, pts1: Points2D) -> FloatArray:
        return reprojection_errors(model, pts0, pts1)

    def residual_vector(self, model: PinholeCamera, pts0: Points3D, pts1: Points2D) -> FloatArray:
        return reprojection_error_vector(model, pts0, pts1)

    def to_params(self, model: PinholeCamera) -> FloatArray:
        return camera_to_params(model)

    def from_params(self, params: FloatArray) -> PinholeCamera:
        return params_to_camera(params)
