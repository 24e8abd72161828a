"""
georobust: robust geometric estimation.

Sample consensus (RANSAC, LMedS, MSAC, PROSAC, PROMedS) over pluggable
models, followed by non-linear refinement with optional soft suggestions
and parameter covariance.
"""

from .exceptions import (
    GeoRobustError, LockedError, NotReadyError, RobustEstimatorError,
    DegenerateSampleError, RefinementError,
)
from .log import setup_logger, get_logger
from .consensus import (
    RobustMethod, InliersData, ConsensusResult, ModelFitter,
    ConsensusParams, ConsensusHooks, run_consensus, required_iterations,
)
from .models import AffineFitter, MetricFitter, ProjectiveFitter, apply_transform
from .camera import PinholeCamera, PinholeCameraFitter, CameraSuggestions, dlt_camera
from .refine import RefinementParams, RefinementResult, refine
from .estimators import (
    EstimatorListener, RobustEstimator,
    AffineTransformation2DRobustEstimator, MetricTransformation2DRobustEstimator,
    ProjectiveTransformation2DRobustEstimator, PinholeCameraRobustEstimator,
    create_robust_estimator,
)

__version__ = "0.1.0"

__all__ = [
    "GeoRobustError", "LockedError", "NotReadyError", "RobustEstimatorError",
    "DegenerateSampleError", "RefinementError",
    "setup_logger", "get_logger",
    "RobustMethod", "InliersData", "ConsensusResult", "ModelFitter",
    "ConsensusParams", "ConsensusHooks", "run_consensus", "required_iterations",
    "AffineFitter", "MetricFitter", "ProjectiveFitter", "apply_transform",
    "PinholeCamera", "PinholeCameraFitter", "CameraSuggestions", "dlt_camera",
    "RefinementParams", "RefinementResult", "refine",
    "EstimatorListener", "RobustEstimator",
    "AffineTransformation2DRobustEstimator", "MetricTransformation2DRobustEstimator",
    "ProjectiveTransformation2DRobustEstimator", "PinholeCameraRobustEstimator",
    "create_robust_estimator",
]
