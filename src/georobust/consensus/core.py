# Andy Zhao
"""
Generic sample consensus loop (model-agnostic).

Overview:
- Draw a *minimal* subset of correspondences (uniformly, or from a growing
  window of quality-sorted correspondences for PROSAC / PROMedS)
- Fit a candidate model from that subset
- Score all correspondences by computing residual errors
- Keep the best candidate according to the method's scoring policy
- Shrink the number of required iterations every time the best candidate
  improves (adaptive stopping)
- Recompute the canonical inlier mask / residuals for the winning model

Uses the ModelFitter Protocol from types.py, so the same loop serves affine,
metric and projective transforms as well as pinhole cameras.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, TypeVar, Union

import numpy as np

from ..exceptions import DegenerateSampleError, RobustEstimatorError
from ..log import get_logger
from .sampling import DEFAULT_GROWTH_MAX_SAMPLES, ProsacSampler, UniformSampler
from .scoring import DEFAULT_INLIER_FACTOR, CandidateScore, is_better, score_candidate
from .stopping import required_iterations
from .types import (
    ConsensusResult, FloatArray, InliersData, ModelFitter, RobustMethod,
)

M = TypeVar("M")
logger = get_logger(__name__)

DEFAULT_MAX_DEGENERATE_ATTEMPTS = 100

# Median based scores only guarantee half of the data fits the model
MEDIAN_BREAKDOWN_RATIO = 0.5


@dataclass(frozen=True)
class ConsensusParams:
    """Tunables of one consensus run (validated by the estimator facade)."""
    method: RobustMethod = RobustMethod.RANSAC
    threshold: float = 1.0                  # RANSAC / MSAC / PROSAC inlier threshold
    stop_threshold: float = 1.0             # LMedS / PROMedS early stop + inlier floor
    confidence: float = 0.99
    max_iterations: int = 5000
    progress_delta: float = 0.05
    inlier_factor: float = DEFAULT_INLIER_FACTOR
    max_degenerate_attempts: int = DEFAULT_MAX_DEGENERATE_ATTEMPTS
    prosac_growth_max_samples: int = DEFAULT_GROWTH_MAX_SAMPLES


@dataclass(frozen=True)
class ConsensusHooks:
    """Callbacks fired synchronously from inside the loop."""
    on_next_iteration: Optional[Callable[[int], None]] = None
    on_progress: Optional[Callable[[float], None]] = None


def _fit_or_none(model_fitter: ModelFitter[M], s0: FloatArray, s1: FloatArray) -> Optional[M]:
    """Minimal fit; a degenerate sample (None or DegenerateSampleError) becomes None."""
    try:
        return model_fitter.fit_minimal(s0, s1)
    except (DegenerateSampleError, np.linalg.LinAlgError):
        return None


def run_consensus(
        model_fitter: ModelFitter[M],
        pts0: FloatArray,
        pts1: FloatArray,
        params: ConsensusParams,
        *,
        rng: np.random.Generator,
        quality_scores: Optional[FloatArray] = None,
        hooks: Optional[ConsensusHooks] = None,
) -> ConsensusResult[M]:
    """
    Run the consensus loop for pts0 -> pts1.

    Inputs:
    - model_fitter: provides fit_minimal and residuals (sample_size is the minimal subset size)
    - pts0, pts1: index aligned correspondences (same N)
    - params: method, thresholds, confidence and iteration budget
    - rng: private random source of the calling estimator
    - quality_scores: (N,) required by PROSAC / PROMedS

    Returns:
    - ConsensusResult with the best model and canonical InliersData

    Raises:
    - RobustEstimatorError if inputs are unusable or no model was ever found
    """
    # ---------- Input validation ----------
    if pts0.shape[0] != pts1.shape[0]:
        raise RobustEstimatorError(
            f"pts0 and pts1 must have same length, got {pts0.shape[0]} vs {pts1.shape[0]}")

    n = int(pts0.shape[0])
    s = int(model_fitter.sample_size)
    if n < s:
        raise RobustEstimatorError(f"Need at least {s} correspondences, got {n}")

    method = params.method
    hooks = hooks or ConsensusHooks()

    # ---------- Sampling strategy ----------
    if method.uses_quality_scores:
        if quality_scores is None or quality_scores.shape[0] != n:
            raise RobustEstimatorError(f"{method.name} requires one quality score per correspondence")
        q = np.asarray(quality_scores, dtype=np.float64)
        sampler: Union[UniformSampler, ProsacSampler] = ProsacSampler(
            rng=rng, quality_scores=q, sample_size=s,
            growth_max_samples=params.prosac_growth_max_samples)
    else:
        q = None
        sampler = UniformSampler(rng=rng, n=n, sample_size=s)

    # Track the best hypothesis
    best_model: Optional[M] = None
    best: Optional[CandidateScore] = None

    # ---------- Adaptive Stopping ----------
    # Worst case inlier ratio (0) -> no shortcut yet
    max_iters = int(params.max_iterations)
    target_iters = required_iterations(0.0, s, params.confidence, max_iters)

    iters_run = 0
    draws = 0
    consecutive_degenerate = 0
    total_degenerate = 0
    last_progress = 0.0

    # ---------- Main Loop ----------
    while iters_run < target_iters and iters_run < max_iters:
        draws += 1
        sample_idx = sampler.draw(iters_run + 1)

        model = _fit_or_none(model_fitter, pts0[sample_idx], pts1[sample_idx])
        if model is None:
            # Degenerate draws are retried without counting as an iteration
            consecutive_degenerate += 1
            total_degenerate += 1
            if (consecutive_degenerate > params.max_degenerate_attempts
                    or total_degenerate > max_iters):
                logger.debug("Giving up after %d degenerate samples (%d consecutive)",
                             total_degenerate, consecutive_degenerate)
                break
            continue
        consecutive_degenerate = 0
        iters_run += 1

        if hooks.on_next_iteration is not None:
            hooks.on_next_iteration(iters_run)

        # Residuals for all correspondences (shape: (N,))
        err = model_fitter.residuals(model, pts0, pts1)
        if not np.all(np.isfinite(err)):
            err = np.where(np.isfinite(err), err, np.inf)

        candidate = score_candidate(
            method, err,
            threshold=params.threshold,
            stop_threshold=params.stop_threshold,
            sample_size=s,
            inlier_factor=params.inlier_factor,
            quality_scores=q,
        )

        if is_better(method, candidate, best):
            best_model = model
            best = candidate

            w = candidate.inlier_ratio
            if method.uses_median:
                w = min(w, MEDIAN_BREAKDOWN_RATIO)
            iter_needed = required_iterations(w, s, params.confidence, max_iters)
            target_iters = min(target_iters, max(iter_needed, iters_run))
            logger.debug(
                "[%s] better model: score=%.6g, inliers=%d/%d, w=%.3f, target_iters=%d",
                method.name, candidate.value, candidate.num_inliers, n,
                w, target_iters)

            # Median methods stop as soon as the requested accuracy is reached
            if method.uses_median and candidate.median is not None \
                    and candidate.median < params.stop_threshold:
                target_iters = iters_run

        if hooks.on_progress is not None:
            progress = min(1.0, iters_run / float(min(target_iters, max_iters)))
            if progress - last_progress >= params.progress_delta and progress > last_progress:
                last_progress = progress
                hooks.on_progress(progress)

    # If valid model not found, fail
    if best_model is None or best is None:
        raise RobustEstimatorError(
            f"{method.name} could not find a valid model "
            f"({draws} draws, {total_degenerate} degenerate)")

    # ---------- Canonical inliers for the winning model ----------
    final_err = model_fitter.residuals(best_model, pts0, pts1)
    final = score_candidate(
        method, final_err,
        threshold=params.threshold,
        stop_threshold=params.stop_threshold,
        sample_size=s,
        inlier_factor=params.inlier_factor,
    )
    if final.num_inliers < s:
        raise RobustEstimatorError(
            f"{method.name} best model only explains {final.num_inliers} correspondences "
            f"(minimum {s})")

    inliers_data = InliersData(
        inliers=final.inliers,
        residuals=np.asarray(final_err, dtype=np.float64),
        num_inliers=final.num_inliers,
        threshold=final.threshold,
        score=best.value,
        iterations=iters_run,
        median_residual=final.median,
        estimated_threshold=final.estimated_threshold,
    )
    return ConsensusResult(model=best_model, inliers_data=inliers_data)
