# Andy Zhao
"""
Robust estimators of 2D transforms (points0 -> points1), plus a factory
picking the estimator class matching a model fitter.
"""

from __future__ import annotations

from typing import Optional, Union

import numpy as np

from ..camera.camera_fitter import PinholeCameraFitter
from ..consensus.types import Mat3x3, ModelFitter, RobustMethod
from ..models.affine_fitter import AffineFitter
from ..models.metric_fitter import MetricFitter
from ..models.projective_fitter import ProjectiveFitter
from .base import DEFAULT_METHOD, RobustEstimator
from .camera import PinholeCameraRobustEstimator
from .listener import EstimatorListener


class _Transformation2DRobustEstimator(RobustEstimator[Mat3x3]):
    _fitter_type: type = AffineFitter

    def __init__(
            self,
            method: Union[RobustMethod, str] = DEFAULT_METHOD,
            *,
            points0: Optional[np.ndarray] = None,
            points1: Optional[np.ndarray] = None,
            quality_scores: Optional[np.ndarray] = None,
            listener: Optional[EstimatorListener] = None,
            seed: Optional[int] = None,
            model_fitter: Optional[ModelFitter[Mat3x3]] = None,
    ) -> None:
        super().__init__(
            model_fitter if model_fitter is not None else self._fitter_type(),
            method,
            points0=points0,
            points1=points1,
            quality_scores=quality_scores,
            listener=listener,
            seed=seed,
        )


class AffineTransformation2DRobustEstimator(_Transformation2DRobustEstimator):
    """6 dof affine transform, minimal sample of 3 non-collinear correspondences."""
    _fitter_type = AffineFitter


class MetricTransformation2DRobustEstimator(_Transformation2DRobustEstimator):
    """Rotation, uniform scale and translation (4 dof), minimal sample of 2."""
    _fitter_type = MetricFitter


class ProjectiveTransformation2DRobustEstimator(_Transformation2DRobustEstimator):
    """Homography (8 dof), minimal sample of 4 correspondences, no 3 collinear."""
    _fitter_type = ProjectiveFitter


_ESTIMATOR_BY_FITTER = {
    AffineFitter: AffineTransformation2DRobustEstimator,
    MetricFitter: MetricTransformation2DRobustEstimator,
    ProjectiveFitter: ProjectiveTransformation2DRobustEstimator,
}


def create_robust_estimator(
        model_fitter: ModelFitter,
        method: Union[RobustMethod, str] = DEFAULT_METHOD,
        **kwargs,
) -> RobustEstimator:
    """
    Build the estimator matching model_fitter.

    Unknown fitters get a generic RobustEstimator over 2D -> 2D correspondences.
    kwargs are forwarded to the estimator (points, quality_scores, listener, seed).
    """
    if isinstance(model_fitter, PinholeCameraFitter):
        kwargs.setdefault("points3d", kwargs.pop("points0", None))
        kwargs.setdefault("points2d", kwargs.pop("points1", None))
        return PinholeCameraRobustEstimator(method, model_fitter=model_fitter, **kwargs)

    cls = _ESTIMATOR_BY_FITTER.get(type(model_fitter))
    if cls is not None:
        return cls(method, model_fitter=model_fitter, **kwargs)
    return RobustEstimator(model_fitter, method, **kwargs)
