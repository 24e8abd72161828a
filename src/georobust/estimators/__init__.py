"""
Robust estimator facades (configuration, lock state, listener callbacks)
"""

from .listener import EstimatorListener
from .base import (
    RobustEstimator,
    DEFAULT_METHOD, DEFAULT_THRESHOLD, DEFAULT_STOP_THRESHOLD, MIN_THRESHOLD,
    DEFAULT_CONFIDENCE, MIN_CONFIDENCE, MAX_CONFIDENCE,
    DEFAULT_MAX_ITERATIONS, MIN_ITERATIONS,
    DEFAULT_PROGRESS_DELTA, MIN_PROGRESS_DELTA, MAX_PROGRESS_DELTA,
    DEFAULT_REFINE_RESULT, DEFAULT_KEEP_COVARIANCE, DEFAULT_USE_FAST_REFINEMENT,
)
from .camera import PinholeCameraRobustEstimator
from .transform import (
    AffineTransformation2DRobustEstimator,
    MetricTransformation2DRobustEstimator,
    ProjectiveTransformation2DRobustEstimator,
    create_robust_estimator,
)

__all__ = [
    "EstimatorListener", "RobustEstimator",
    "DEFAULT_METHOD", "DEFAULT_THRESHOLD", "DEFAULT_STOP_THRESHOLD", "MIN_THRESHOLD",
    "DEFAULT_CONFIDENCE", "MIN_CONFIDENCE", "MAX_CONFIDENCE",
    "DEFAULT_MAX_ITERATIONS", "MIN_ITERATIONS",
    "DEFAULT_PROGRESS_DELTA", "MIN_PROGRESS_DELTA", "MAX_PROGRESS_DELTA",
    "DEFAULT_REFINE_RESULT", "DEFAULT_KEEP_COVARIANCE", "DEFAULT_USE_FAST_REFINEMENT",
    "PinholeCameraRobustEstimator",
    "AffineTransformation2DRobustEstimator", "MetricTransformation2DRobustEstimator",
    "ProjectiveTransformation2DRobustEstimator", "create_robust_estimator",
]
