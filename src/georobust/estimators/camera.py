# Andy Zhao
"""
Robust pinhole camera estimator from 3D -> 2D point correspondences.

Besides the common configuration it exposes the camera suggestions: soft
priors on intrinsics, rotation and center that are added to the refinement
cost when enabled. Suggestions only act during refinement; the consensus
stage is purely data driven.
"""

from __future__ import annotations

import dataclasses
from typing import Callable, Optional, Union

import numpy as np

from ..camera.camera_fitter import PinholeCameraFitter
from ..camera.pinhole import PinholeCamera
from ..camera.suggestions import (
    CameraSuggestions, default_center, default_principal_point, default_rotation,
)
from ..consensus.types import FloatArray, Mat3x3, RobustMethod
from .base import DEFAULT_METHOD, RobustEstimator
from .listener import EstimatorListener

ROTATION_TOLERANCE = 1e-6


def _as_rotation(value: np.ndarray) -> Mat3x3:
    R = np.array(value, dtype=np.float64)
    if R.shape != (3, 3):
        raise ValueError(f"Expected rotation shape (3,3), got {R.shape}")
    if not np.allclose(R.T @ R, np.eye(3), atol=ROTATION_TOLERANCE) or np.linalg.det(R) <= 0.0:
        raise ValueError("suggested rotation must be a proper rotation matrix")
    return R


def _as_vector(value: np.ndarray, size: int, name: str) -> FloatArray:
    v = np.array(value, dtype=np.float64).reshape(-1)
    if v.shape != (size,):
        raise ValueError(f"{name} must have {size} entries, got shape {np.shape(value)}")
    return v


class PinholeCameraRobustEstimator(RobustEstimator[PinholeCamera]):
    source_dim = 3
    target_dim = 2

    def __init__(
            self,
            method: Union[RobustMethod, str] = DEFAULT_METHOD,
            *,
            points3d: Optional[np.ndarray] = None,
            points2d: Optional[np.ndarray] = None,
            quality_scores: Optional[np.ndarray] = None,
            listener: Optional[EstimatorListener] = None,
            seed: Optional[int] = None,
            suggestions: Optional[CameraSuggestions] = None,
            model_fitter: Optional[PinholeCameraFitter] = None,
    ) -> None:
        self._suggestions = CameraSuggestions()
        super().__init__(
            model_fitter if model_fitter is not None else PinholeCameraFitter(),
            method,
            points0=points3d,
            points1=points2d,
            quality_scores=quality_scores,
            listener=listener,
            seed=seed,
        )
        if suggestions is not None:
            self.suggestions = suggestions

    # ---------- Input data ----------
    @property
    def points3d(self) -> Optional[FloatArray]:
        return self._pts0

    @property
    def points2d(self) -> Optional[FloatArray]:
        return self._pts1

    def set_points(self, points3d: np.ndarray, points2d: np.ndarray) -> None:
        self.set_correspondences(points3d, points2d)

    # ---------- Suggestions ----------
    @property
    def suggestions(self) -> CameraSuggestions:
        return self._suggestions

    @suggestions.setter
    def suggestions(self, value: CameraSuggestions) -> None:
        self._check_unlocked()
        if not isinstance(value, CameraSuggestions):
            raise ValueError(f"Expected CameraSuggestions, got {type(value).__name__}")
        self._suggestions = value

    def _update_suggestions(self, **changes) -> None:
        self._check_unlocked()
        self._suggestions = dataclasses.replace(self._suggestions, **changes)

    @property
    def suggest_skewness_enabled(self) -> bool:
        return self._suggestions.skewness_enabled

    @suggest_skewness_enabled.setter
    def suggest_skewness_enabled(self, value: bool) -> None:
        self._update_suggestions(skewness_enabled=bool(value))

    @property
    def suggested_skewness(self) -> float:
        return self._suggestions.skewness

    @suggested_skewness.setter
    def suggested_skewness(self, value: float) -> None:
        self._update_suggestions(skewness=float(value))

    @property
    def suggest_horizontal_focal_length_enabled(self) -> bool:
        return self._suggestions.horizontal_focal_length_enabled

    @suggest_horizontal_focal_length_enabled.setter
    def suggest_horizontal_focal_length_enabled(self, value: bool) -> None:
        self._update_suggestions(horizontal_focal_length_enabled=bool(value))

    @property
    def suggested_horizontal_focal_length(self) -> float:
        return self._suggestions.horizontal_focal_length

    @suggested_horizontal_focal_length.setter
    def suggested_horizontal_focal_length(self, value: float) -> None:
        self._update_suggestions(horizontal_focal_length=float(value))

    @property
    def suggest_vertical_focal_length_enabled(self) -> bool:
        return self._suggestions.vertical_focal_length_enabled

    @suggest_vertical_focal_length_enabled.setter
    def suggest_vertical_focal_length_enabled(self, value: bool) -> None:
        self._update_suggestions(vertical_focal_length_enabled=bool(value))

    @property
    def suggested_vertical_focal_length(self) -> float:
        return self._suggestions.vertical_focal_length

    @suggested_vertical_focal_length.setter
    def suggested_vertical_focal_length(self, value: float) -> None:
        self._update_suggestions(vertical_focal_length=float(value))

    @property
    def suggest_aspect_ratio_enabled(self) -> bool:
        return self._suggestions.aspect_ratio_enabled

    @suggest_aspect_ratio_enabled.setter
    def suggest_aspect_ratio_enabled(self, value: bool) -> None:
        self._update_suggestions(aspect_ratio_enabled=bool(value))

    @property
    def suggested_aspect_ratio(self) -> float:
        return self._suggestions.aspect_ratio

    @suggested_aspect_ratio.setter
    def suggested_aspect_ratio(self, value: float) -> None:
        self._update_suggestions(aspect_ratio=float(value))

    # Array valued suggestions get a default value when enabled without one
    @property
    def suggest_principal_point_enabled(self) -> bool:
        return self._suggestions.principal_point_enabled

    @suggest_principal_point_enabled.setter
    def suggest_principal_point_enabled(self, value: bool) -> None:
        changes = {"principal_point_enabled": bool(value)}
        if value and self._suggestions.principal_point is None:
            changes["principal_point"] = default_principal_point()
        self._update_suggestions(**changes)

    @property
    def suggested_principal_point(self) -> Optional[FloatArray]:
        return self._suggestions.principal_point

    @suggested_principal_point.setter
    def suggested_principal_point(self, value: Optional[np.ndarray]) -> None:
        self._check_unlocked()
        pp = None if value is None else _as_vector(value, 2, "principal point")
        self._update_suggestions(principal_point=pp)

    @property
    def suggest_rotation_enabled(self) -> bool:
        return self._suggestions.rotation_enabled

    @suggest_rotation_enabled.setter
    def suggest_rotation_enabled(self, value: bool) -> None:
        changes = {"rotation_enabled": bool(value)}
        if value and self._suggestions.rotation is None:
            changes["rotation"] = default_rotation()
        self._update_suggestions(**changes)

    @property
    def suggested_rotation(self) -> Optional[Mat3x3]:
        return self._suggestions.rotation

    @suggested_rotation.setter
    def suggested_rotation(self, value: Optional[np.ndarray]) -> None:
        self._check_unlocked()
        R = None if value is None else _as_rotation(value)
        self._update_suggestions(rotation=R)

    @property
    def suggest_center_enabled(self) -> bool:
        return self._suggestions.center_enabled

    @suggest_center_enabled.setter
    def suggest_center_enabled(self, value: bool) -> None:
        changes = {"center_enabled": bool(value)}
        if value and self._suggestions.center is None:
            changes["center"] = default_center()
        self._update_suggestions(**changes)

    @property
    def suggested_center(self) -> Optional[FloatArray]:
        return self._suggestions.center

    @suggested_center.setter
    def suggested_center(self, value: Optional[np.ndarray]) -> None:
        self._check_unlocked()
        c = None if value is None else _as_vector(value, 3, "center")
        self._update_suggestions(center=c)

    # ---------- Refinement ----------
    def _suggestion_terms(self) -> Optional[Callable[[PinholeCamera], FloatArray]]:
        if not self._suggestions.has_suggestions:
            return None
        return self._suggestions.residual_terms
