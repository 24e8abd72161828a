# Andy Zhao
"""
Robust estimator facade.

Wraps the consensus loop and the refinement stage behind a validated
configuration surface and a lock state:

    Idle --estimate()--> Locked --(return or raise)--> Idle

While locked, every setter (and a nested estimate()) raises LockedError.
Listener callbacks fire while locked, so a callback can observe the
estimator but never reconfigure it.
"""

from __future__ import annotations

import numbers
from contextlib import contextmanager
from typing import Callable, Generic, Iterator, Optional, TypeVar, Union

import numpy as np

from ..consensus.core import ConsensusHooks, ConsensusParams, run_consensus
from ..consensus.types import FloatArray, InliersData, ModelFitter, RobustMethod
from ..exceptions import (
    DegenerateSampleError, LockedError, NotReadyError, RefinementError, RobustEstimatorError,
)
from ..log import get_logger
from ..refine.refiner import DEFAULT_SUGGESTION_WEIGHT, RefinementParams, refine
from .listener import EstimatorListener

M = TypeVar("M")
logger = get_logger(__name__)

# ---------- Configuration defaults and bounds ----------
DEFAULT_METHOD = RobustMethod.PROMEDS

DEFAULT_THRESHOLD = 1.0
DEFAULT_STOP_THRESHOLD = 1.0
MIN_THRESHOLD = 0.0             # exclusive

DEFAULT_CONFIDENCE = 0.99
MIN_CONFIDENCE = 0.0            # exclusive
MAX_CONFIDENCE = 1.0            # exclusive

DEFAULT_MAX_ITERATIONS = 5000
MIN_ITERATIONS = 1

DEFAULT_PROGRESS_DELTA = 0.05
MIN_PROGRESS_DELTA = 0.0
MAX_PROGRESS_DELTA = 1.0

DEFAULT_REFINE_RESULT = True
DEFAULT_KEEP_COVARIANCE = False
DEFAULT_USE_FAST_REFINEMENT = False


class RobustEstimator(Generic[M]):
    """
    Robust estimator of a model M from correspondences pts0[i] <-> pts1[i].

    The model itself (minimal solver, residuals, parameterization) is provided
    by a ModelFitter; the robust method only selects the sampling and scoring
    policy of the shared consensus loop.
    """

    # Expected point dimensions of the two correspondence sets
    source_dim: int = 2
    target_dim: int = 2

    def __init__(
            self,
            model_fitter: ModelFitter[M],
            method: Union[RobustMethod, str] = DEFAULT_METHOD,
            *,
            points0: Optional[np.ndarray] = None,
            points1: Optional[np.ndarray] = None,
            quality_scores: Optional[np.ndarray] = None,
            listener: Optional[EstimatorListener] = None,
            seed: Optional[int] = None,
    ) -> None:
        self._fitter = model_fitter
        self._locked = False

        self._method = RobustMethod(method)
        self._threshold = DEFAULT_THRESHOLD
        self._stop_threshold = DEFAULT_STOP_THRESHOLD
        self._confidence = DEFAULT_CONFIDENCE
        self._max_iterations = DEFAULT_MAX_ITERATIONS
        self._progress_delta = DEFAULT_PROGRESS_DELTA
        self._refine_result = DEFAULT_REFINE_RESULT
        self._keep_covariance = DEFAULT_KEEP_COVARIANCE
        self._use_fast_refinement = DEFAULT_USE_FAST_REFINEMENT
        self._suggestion_weight = DEFAULT_SUGGESTION_WEIGHT
        self._listener: Optional[EstimatorListener] = None

        self._pts0: Optional[FloatArray] = None
        self._pts1: Optional[FloatArray] = None
        self._quality_scores: Optional[FloatArray] = None

        self._seed = seed
        self._rng = np.random.default_rng(seed)

        self._inliers_data: Optional[InliersData] = None
        self._covariance: Optional[FloatArray] = None

        if points0 is not None or points1 is not None:
            self.set_correspondences(points0, points1)
        if quality_scores is not None:
            self.quality_scores = quality_scores
        if listener is not None:
            self.listener = listener

    # ---------- Lock state ----------
    @property
    def is_locked(self) -> bool:
        return self._locked

    def _check_unlocked(self) -> None:
        if self._locked:
            raise LockedError()

    @contextmanager
    def _locked_scope(self) -> Iterator[None]:
        """Hold the lock for the duration of the block, released on every exit path."""
        self._check_unlocked()
        self._locked = True
        try:
            yield
        finally:
            self._locked = False

    # ---------- Model ----------
    @property
    def model_fitter(self) -> ModelFitter[M]:
        return self._fitter

    @property
    def sample_size(self) -> int:
        """Minimum number of correspondences to estimate a model."""
        return int(self._fitter.sample_size)

    # ---------- Configuration ----------
    @property
    def method(self) -> RobustMethod:
        return self._method

    @method.setter
    def method(self, value: Union[RobustMethod, str]) -> None:
        self._check_unlocked()
        self._method = RobustMethod(value)

    @property
    def threshold(self) -> float:
        """Inlier threshold of RANSAC / MSAC / PROSAC (same units as the residuals)."""
        return self._threshold

    @threshold.setter
    def threshold(self, value: float) -> None:
        self._check_unlocked()
        if not value > MIN_THRESHOLD:
            raise ValueError(f"threshold must be > {MIN_THRESHOLD}, got {value}")
        self._threshold = float(value)

    @property
    def stop_threshold(self) -> float:
        """LMedS / PROMedS stop as soon as the median residual drops below this value."""
        return self._stop_threshold

    @stop_threshold.setter
    def stop_threshold(self, value: float) -> None:
        self._check_unlocked()
        if not value > MIN_THRESHOLD:
            raise ValueError(f"stop_threshold must be > {MIN_THRESHOLD}, got {value}")
        self._stop_threshold = float(value)

    @property
    def confidence(self) -> float:
        return self._confidence

    @confidence.setter
    def confidence(self, value: float) -> None:
        self._check_unlocked()
        if not MIN_CONFIDENCE < value < MAX_CONFIDENCE:
            raise ValueError(f"confidence must be in ({MIN_CONFIDENCE}, {MAX_CONFIDENCE}), got {value}")
        self._confidence = float(value)

    @property
    def max_iterations(self) -> int:
        return self._max_iterations

    @max_iterations.setter
    def max_iterations(self, value: int) -> None:
        self._check_unlocked()
        if not isinstance(value, numbers.Integral) or isinstance(value, bool) or value < MIN_ITERATIONS:
            raise ValueError(f"max_iterations must be an integer >= {MIN_ITERATIONS}, got {value}")
        self._max_iterations = int(value)

    @property
    def progress_delta(self) -> float:
        """Minimum progress increase between two progress notifications."""
        return self._progress_delta

    @progress_delta.setter
    def progress_delta(self, value: float) -> None:
        self._check_unlocked()
        if not MIN_PROGRESS_DELTA <= value <= MAX_PROGRESS_DELTA:
            raise ValueError(
                f"progress_delta must be in [{MIN_PROGRESS_DELTA}, {MAX_PROGRESS_DELTA}], got {value}")
        self._progress_delta = float(value)

    @property
    def result_refined(self) -> bool:
        return self._refine_result

    @result_refined.setter
    def result_refined(self, value: bool) -> None:
        self._check_unlocked()
        self._refine_result = bool(value)

    @property
    def covariance_kept(self) -> bool:
        return self._keep_covariance

    @covariance_kept.setter
    def covariance_kept(self, value: bool) -> None:
        self._check_unlocked()
        self._keep_covariance = bool(value)

    @property
    def fast_refinement_used(self) -> bool:
        return self._use_fast_refinement

    @fast_refinement_used.setter
    def fast_refinement_used(self, value: bool) -> None:
        self._check_unlocked()
        self._use_fast_refinement = bool(value)

    @property
    def suggestion_weight(self) -> float:
        return self._suggestion_weight

    @suggestion_weight.setter
    def suggestion_weight(self, value: float) -> None:
        self._check_unlocked()
        if not value > 0.0:
            raise ValueError(f"suggestion_weight must be > 0, got {value}")
        self._suggestion_weight = float(value)

    @property
    def listener(self) -> Optional[EstimatorListener]:
        return self._listener

    @listener.setter
    def listener(self, value: Optional[EstimatorListener]) -> None:
        self._check_unlocked()
        if value is not None and not isinstance(value, EstimatorListener):
            raise ValueError(f"listener must be an EstimatorListener or None, got {type(value).__name__}")
        self._listener = value

    @property
    def seed(self) -> Optional[int]:
        return self._seed

    @seed.setter
    def seed(self, value: Optional[int]) -> None:
        """Reset the private random source (None seeds from the OS)."""
        self._check_unlocked()
        self._seed = value
        self._rng = np.random.default_rng(value)

    # ---------- Input data ----------
    @property
    def points0(self) -> Optional[FloatArray]:
        return self._pts0

    @property
    def points1(self) -> Optional[FloatArray]:
        return self._pts1

    def set_correspondences(self, pts0: np.ndarray, pts1: np.ndarray) -> None:
        """
        Replace both correspondence sets at once (copied as float64).

        Raises:
        - LockedError while estimating
        - ValueError if shapes mismatch or there are fewer than sample_size points
        """
        self._check_unlocked()
        if pts0 is None or pts1 is None:
            raise ValueError("both correspondence sets are required")

        p0 = np.array(pts0, dtype=np.float64)
        p1 = np.array(pts1, dtype=np.float64)
        if p0.ndim != 2 or p0.shape[1] != self.source_dim:
            raise ValueError(f"Expected source points shape (N,{self.source_dim}), got {p0.shape}")
        if p1.ndim != 2 or p1.shape[1] != self.target_dim:
            raise ValueError(f"Expected target points shape (N,{self.target_dim}), got {p1.shape}")
        if p0.shape[0] != p1.shape[0]:
            raise ValueError(f"Correspondence sets must have same length, got {p0.shape[0]} vs {p1.shape[0]}")
        if p0.shape[0] < self.sample_size:
            raise ValueError(f"Need at least {self.sample_size} correspondences, got {p0.shape[0]}")

        self._pts0 = p0
        self._pts1 = p1

    @property
    def quality_scores(self) -> Optional[FloatArray]:
        """One score per correspondence, higher is better. Used by PROSAC / PROMedS."""
        return self._quality_scores

    @quality_scores.setter
    def quality_scores(self, value: Optional[np.ndarray]) -> None:
        self._check_unlocked()
        if value is None:
            self._quality_scores = None
            return

        q = np.array(value, dtype=np.float64)
        if q.ndim != 1:
            raise ValueError(f"quality scores must be one-dimensional, got shape {q.shape}")
        if q.shape[0] < self.sample_size:
            raise ValueError(f"Need at least {self.sample_size} quality scores, got {q.shape[0]}")
        self._quality_scores = q

    def is_ready(self) -> bool:
        if self._pts0 is None or self._pts1 is None:
            return False
        if self._method.uses_quality_scores:
            return self._quality_scores is not None and self._quality_scores.shape[0] == self._pts0.shape[0]
        return True

    # ---------- Results ----------
    @property
    def inliers_data(self) -> Optional[InliersData]:
        """Inliers of the last successful estimate() (None before)."""
        return self._inliers_data

    @property
    def covariance(self) -> Optional[FloatArray]:
        """Covariance of the model parameters, only when refined with covariance_kept."""
        return self._covariance

    @property
    def refinement_standard_deviation(self) -> Optional[float]:
        """Expected residual standard deviation used to weight the refinement."""
        if self._inliers_data is None:
            return None
        return self._standard_deviation_for(self._inliers_data)

    def _standard_deviation_for(self, inliers_data: InliersData) -> float:
        if self._method in (RobustMethod.RANSAC, RobustMethod.MSAC, RobustMethod.PROSAC):
            return self._threshold

        # LMedS / PROMedS: estimated threshold, never below the stop threshold
        estimated = inliers_data.estimated_threshold or 0.0
        return max(estimated, self._stop_threshold)

    # ---------- Estimation ----------
    def estimate(self) -> M:
        """
        Run the robust estimation and return the (refined) model.

        Raises:
        - LockedError if already estimating
        - NotReadyError if inputs are missing
        - RobustEstimatorError if no valid model could be found
        """
        self._check_unlocked()
        if not self.is_ready():
            raise NotReadyError()

        self._inliers_data = None
        self._covariance = None

        with self._locked_scope():
            if self._listener is not None and self._listener.on_estimate_start is not None:
                self._listener.on_estimate_start(self)

            try:
                result = run_consensus(
                    self._fitter,
                    self._pts0,
                    self._pts1,
                    self._consensus_params(),
                    rng=self._rng,
                    quality_scores=self._quality_scores if self._method.uses_quality_scores else None,
                    hooks=self._consensus_hooks(),
                )
            except (ValueError, np.linalg.LinAlgError, DegenerateSampleError) as e:
                raise RobustEstimatorError(f"{self._method.name} estimation failed: {e}") from e

            self._inliers_data = result.inliers_data
            model = self._attempt_refine(result.model, result.inliers_data)

            if self._listener is not None and self._listener.on_estimate_end is not None:
                self._listener.on_estimate_end(self)

        return model

    def _consensus_params(self) -> ConsensusParams:
        return ConsensusParams(
            method=self._method,
            threshold=self._threshold,
            stop_threshold=self._stop_threshold,
            confidence=self._confidence,
            max_iterations=self._max_iterations,
            progress_delta=self._progress_delta,
        )

    def _consensus_hooks(self) -> ConsensusHooks:
        listener = self._listener
        if listener is None:
            return ConsensusHooks()

        on_next = None
        if listener.on_estimate_next_iteration is not None:
            def on_next(iteration: int) -> None:
                listener.on_estimate_next_iteration(self, iteration)

        on_progress = None
        if listener.on_estimate_progress_change is not None:
            def on_progress(progress: float) -> None:
                listener.on_estimate_progress_change(self, progress)

        return ConsensusHooks(on_next_iteration=on_next, on_progress=on_progress)

    def _suggestion_terms(self) -> Optional[Callable[[M], FloatArray]]:
        """Extra refinement residuals (soft priors); none for plain transforms."""
        return None

    def _attempt_refine(self, model: M, inliers_data: InliersData) -> M:
        """
        Refine the consensus model if requested.

        Any refinement failure keeps the consensus model and leaves the
        covariance unset.
        """
        if not self._refine_result:
            return model

        params = RefinementParams(
            fast=self._use_fast_refinement,
            keep_covariance=self._keep_covariance,
            suggestion_weight=self._suggestion_weight,
            standard_deviation=self._standard_deviation_for(inliers_data),
        )
        try:
            result = refine(
                self._fitter, model, inliers_data.inliers, self._pts0, self._pts1,
                params, suggestion_terms=self._suggestion_terms())
        except RefinementError as e:
            logger.debug("Refinement skipped: %s", e)
            return model

        self._covariance = result.covariance
        return result.model
