# Andy Zhao
"""
Sample consensus package

This module provides:
- A reusable, model-agnostic consensus loop (RANSAC, LMedS, MSAC, PROSAC, PROMedS)
- The adaptive stopping criterion
- Uniform and PROSAC growing-window samplers
- Typed primitives and the model fitter protocol
"""

from .types import (
    FloatArray, BoolArray, IndexArray, Points2D, Points3D, PointsHomog, Mask,
    Mat3x3, Mat3x4, ModelFitter, RobustMethod, InliersData, ConsensusResult,
    as_homogeneous, is_valid_matrix,
)

from .stopping import required_iterations

from .sampling import (
    uniform_sample, sort_by_quality, prosac_schedule, prosac_window_size,
    sample_from_prefix, UniformSampler, ProsacSampler,
)

from .scoring import CandidateScore, score_candidate, is_better, lmeds_threshold

from .core import ConsensusParams, ConsensusHooks, run_consensus

__all__ = [
    "FloatArray", "BoolArray", "IndexArray", "Points2D", "Points3D", "PointsHomog", "Mask",
    "Mat3x3", "Mat3x4", "ModelFitter", "RobustMethod", "InliersData", "ConsensusResult",
    "as_homogeneous", "is_valid_matrix",
    "required_iterations",
    "uniform_sample", "sort_by_quality", "prosac_schedule", "prosac_window_size",
    "sample_from_prefix", "UniformSampler", "ProsacSampler",
    "CandidateScore", "score_candidate", "is_better", "lmeds_threshold",
    "ConsensusParams", "ConsensusHooks", "run_consensus",
]
