"""Tests for the robust estimator facades."""

from dataclasses import dataclass

import numpy as np
import pytest

from georobust.camera.camera_fitter import PinholeCameraFitter
from georobust.consensus.types import RobustMethod
from georobust.estimators import (
    DEFAULT_CONFIDENCE, DEFAULT_MAX_ITERATIONS, DEFAULT_METHOD, DEFAULT_PROGRESS_DELTA,
    DEFAULT_STOP_THRESHOLD, DEFAULT_THRESHOLD,
    AffineTransformation2DRobustEstimator, EstimatorListener, MetricTransformation2DRobustEstimator,
    PinholeCameraRobustEstimator, ProjectiveTransformation2DRobustEstimator, RobustEstimator,
    create_robust_estimator,
)
from georobust.exceptions import LockedError, NotReadyError, RobustEstimatorError
from georobust.models.affine import apply_transform
from georobust.models.affine_fitter import AffineFitter
from georobust.models.metric_fitter import MetricFitter
from georobust.models.projective_fitter import ProjectiveFitter

ALL_METHODS = list(RobustMethod)


def _affine_estimator(data, method, **kwargs):
    return AffineTransformation2DRobustEstimator(
        method, points0=data.pts0, points1=data.pts1, quality_scores=data.quality, seed=7, **kwargs)


class TestConfiguration:

    def test_defaults(self):
        est = AffineTransformation2DRobustEstimator()
        assert est.method == DEFAULT_METHOD == RobustMethod.PROMEDS
        assert est.threshold == DEFAULT_THRESHOLD
        assert est.stop_threshold == DEFAULT_STOP_THRESHOLD
        assert est.confidence == DEFAULT_CONFIDENCE
        assert est.max_iterations == DEFAULT_MAX_ITERATIONS
        assert est.progress_delta == DEFAULT_PROGRESS_DELTA
        assert est.result_refined
        assert not est.covariance_kept
        assert not est.fast_refinement_used
        assert est.listener is None
        assert not est.is_locked
        assert not est.is_ready()
        assert est.inliers_data is None
        assert est.covariance is None
        assert est.refinement_standard_deviation is None
        assert est.sample_size == 3

    def test_setters_round_trip(self):
        est = AffineTransformation2DRobustEstimator(RobustMethod.RANSAC)
        listener = EstimatorListener()
        est.threshold = 2.5
        est.stop_threshold = 0.5
        est.confidence = 0.95
        est.max_iterations = 100
        est.progress_delta = 0.25
        est.result_refined = False
        est.covariance_kept = True
        est.fast_refinement_used = True
        est.listener = listener
        est.method = "msac"

        assert (est.threshold, est.stop_threshold, est.confidence) == (2.5, 0.5, 0.95)
        assert (est.max_iterations, est.progress_delta) == (100, 0.25)
        assert not est.result_refined
        assert est.covariance_kept and est.fast_refinement_used
        assert est.listener is listener
        assert est.method == RobustMethod.MSAC

    @pytest.mark.parametrize("name, value", [
        ("threshold", 0.0),
        ("threshold", -1.0),
        ("stop_threshold", 0.0),
        ("confidence", 0.0),
        ("confidence", 1.0),
        ("max_iterations", 0),
        ("max_iterations", 2.5),
        ("max_iterations", float("inf")),
        ("max_iterations", True),
        ("progress_delta", -0.1),
        ("progress_delta", 1.1),
        ("method", "ransack"),
    ])
    def test_rejects_out_of_range_values(self, name, value):
        est = AffineTransformation2DRobustEstimator()
        before = getattr(est, name)
        with pytest.raises(ValueError):
            setattr(est, name, value)
        assert getattr(est, name) == before

    def test_progress_delta_bounds_are_inclusive(self):
        est = AffineTransformation2DRobustEstimator()
        est.progress_delta = 0.0
        est.progress_delta = 1.0
        assert est.progress_delta == 1.0

    def test_correspondence_validation(self):
        est = AffineTransformation2DRobustEstimator()
        with pytest.raises(ValueError):
            est.set_correspondences(np.zeros((5, 2)), np.zeros((6, 2)))
        with pytest.raises(ValueError):
            est.set_correspondences(np.zeros((2, 2)), np.zeros((2, 2)))
        with pytest.raises(ValueError):
            est.set_correspondences(np.zeros((5, 3)), np.zeros((5, 2)))
        assert est.points0 is None

    def test_caller_arrays_are_not_shared(self):
        pts = np.zeros((5, 2))
        est = AffineTransformation2DRobustEstimator(RobustMethod.RANSAC, points0=pts, points1=pts)
        pts[0, 0] = 42.0
        assert est.points0[0, 0] == 0.0

    def test_quality_scores_validation(self):
        est = AffineTransformation2DRobustEstimator()
        with pytest.raises(ValueError):
            est.quality_scores = np.ones(2)
        with pytest.raises(ValueError):
            est.quality_scores = np.ones((4, 2))
        est.quality_scores = np.ones(4)
        est.quality_scores = None
        assert est.quality_scores is None


class TestReadiness:

    def test_ransac_ready_with_points(self, rng, affine_T, make_transform_data):
        data = make_transform_data(rng, affine_T, n_in=10, n_out=0)
        est = AffineTransformation2DRobustEstimator(RobustMethod.RANSAC)
        assert not est.is_ready()
        est.set_correspondences(data.pts0, data.pts1)
        assert est.is_ready()

    @pytest.mark.parametrize("method", [RobustMethod.PROSAC, RobustMethod.PROMEDS])
    def test_priority_methods_need_matching_quality_scores(self, method, rng, affine_T, make_transform_data):
        data = make_transform_data(rng, affine_T, n_in=10, n_out=0)
        est = AffineTransformation2DRobustEstimator(method, points0=data.pts0, points1=data.pts1)
        assert not est.is_ready()
        with pytest.raises(NotReadyError):
            est.estimate()

        est.quality_scores = np.ones(9)
        assert not est.is_ready()
        est.quality_scores = np.ones(10)
        assert est.is_ready()

    def test_switching_method_changes_readiness(self, rng, affine_T, make_transform_data):
        data = make_transform_data(rng, affine_T, n_in=10, n_out=0)
        est = AffineTransformation2DRobustEstimator(RobustMethod.LMEDS, points0=data.pts0, points1=data.pts1)
        assert est.is_ready()
        est.method = RobustMethod.PROMEDS
        assert not est.is_ready()


@dataclass
class _Recorder:
    estimator: RobustEstimator
    starts: int = 0
    ends: int = 0
    iterations: int = 0
    progress: list = None
    locked_errors: int = 0

    def listener(self) -> EstimatorListener:
        self.progress = []
        return EstimatorListener(
            on_estimate_start=self._start,
            on_estimate_end=self._end,
            on_estimate_next_iteration=self._next,
            on_estimate_progress_change=self._progress,
        )

    def _try_mutations(self, est):
        attempts = [
            lambda: setattr(est, "threshold", 2.0),
            lambda: setattr(est, "confidence", 0.5),
            lambda: setattr(est, "listener", None),
            lambda: setattr(est, "quality_scores", None),
            lambda: est.set_correspondences(est.points0, est.points1),
            est.estimate,
        ]
        for attempt in attempts:
            try:
                attempt()
            except LockedError:
                self.locked_errors += 1

    def _start(self, est):
        assert est is self.estimator and est.is_locked
        self.starts += 1
        self._try_mutations(est)

    def _end(self, est):
        assert est.is_locked
        self.ends += 1

    def _next(self, est, iteration):
        assert est.is_locked
        self.iterations += 1
        if iteration == 1:
            self._try_mutations(est)

    def _progress(self, est, value):
        assert est.is_locked
        self.progress.append(value)


class TestLockAndCallbacks:

    def test_callbacks_and_reentrancy(self, rng, affine_T, make_transform_data):
        data = make_transform_data(rng, affine_T, n_in=60, n_out=40, noise=0.3)
        est = _affine_estimator(data, RobustMethod.RANSAC)
        est.threshold = 2.0
        est.progress_delta = 0.1
        recorder = _Recorder(est)
        est.listener = recorder.listener()

        est.estimate()

        assert recorder.starts == 1
        assert recorder.ends == 1
        assert recorder.iterations == est.inliers_data.iterations
        assert recorder.locked_errors == 12
        assert all(b > a for a, b in zip(recorder.progress, recorder.progress[1:]))
        assert not est.is_locked
        # Configuration untouched by the reentrant attempts
        assert est.threshold == 2.0
        assert est.confidence == DEFAULT_CONFIDENCE

    def test_lock_released_on_failure(self):
        x = np.linspace(0.0, 100.0, 20)
        line = np.column_stack([x, 0.5 * x])
        recorder = _Recorder(None)
        est = AffineTransformation2DRobustEstimator(RobustMethod.RANSAC, points0=line, points1=line)
        recorder.estimator = est
        est.listener = recorder.listener()

        with pytest.raises(RobustEstimatorError):
            est.estimate()

        assert not est.is_locked
        assert recorder.starts == 1
        assert recorder.ends == 0
        assert est.inliers_data is None
        est.threshold = 3.0

    def test_results_replaced_on_each_run(self, rng, affine_T, make_transform_data):
        data = make_transform_data(rng, affine_T, n_in=40, n_out=10)
        est = _affine_estimator(data, RobustMethod.LMEDS)
        est.estimate()
        first = est.inliers_data
        est.estimate()
        assert est.inliers_data is not first


class TestTransformEstimation:

    @pytest.mark.parametrize("method", ALL_METHODS)
    def test_affine_exact(self, method, rng, affine_T, make_transform_data):
        data = make_transform_data(rng, affine_T, n_in=80, n_out=20)
        T = _affine_estimator(data, method).estimate()
        assert np.allclose(apply_transform(T, data.pts0[data.is_inlier]),
                           data.pts1[data.is_inlier], atol=1e-6)

    @pytest.mark.parametrize("method", ALL_METHODS)
    def test_metric_with_noise(self, method, rng, metric_T, make_transform_data):
        data = make_transform_data(rng, metric_T, n_in=100, n_out=30, noise=0.2)
        est = MetricTransformation2DRobustEstimator(
            method, points0=data.pts0, points1=data.pts1, quality_scores=data.quality, seed=3)
        est.threshold = 1.5
        T = est.estimate()
        pts = np.array([[0.0, 0.0], [640.0, 480.0]])
        assert np.allclose(apply_transform(T, pts), apply_transform(metric_T, pts), atol=1.0)
        assert est.inliers_data.num_inliers >= 90

    @pytest.mark.parametrize("method", ALL_METHODS)
    def test_projective_exact(self, method, rng, homography, make_transform_data):
        data = make_transform_data(rng, homography, n_in=60, n_out=15)
        est = ProjectiveTransformation2DRobustEstimator(
            method, points0=data.pts0, points1=data.pts1, quality_scores=data.quality, seed=11)
        H = est.estimate()
        assert np.allclose(H / H[2, 2], homography, atol=1e-6)

    def test_covariance_only_when_refined_and_kept(self, rng, affine_T, make_transform_data):
        data = make_transform_data(rng, affine_T, n_in=100, n_out=20, noise=0.5)
        est = _affine_estimator(data, RobustMethod.MSAC)
        est.threshold = 3.0

        est.estimate()
        assert est.covariance is None

        est.covariance_kept = True
        est.estimate()
        assert est.covariance.shape == (6, 6)

        est.result_refined = False
        est.estimate()
        assert est.covariance is None

    def test_refinement_standard_deviation(self, rng, affine_T, make_transform_data):
        data = make_transform_data(rng, affine_T, n_in=50, n_out=10)
        est = _affine_estimator(data, RobustMethod.RANSAC)
        est.threshold = 2.0
        est.estimate()
        assert est.refinement_standard_deviation == 2.0

        est.method = RobustMethod.LMEDS
        est.stop_threshold = 0.5
        est.estimate()
        inl = est.inliers_data
        assert est.refinement_standard_deviation == max(inl.estimated_threshold, 0.5)

    def test_refinement_failure_keeps_consensus_model(self, rng, affine_T, make_transform_data):
        @dataclass(frozen=True)
        class UnparameterizedFitter(AffineFitter):
            def to_params(self, model):
                raise ValueError("no parameterization")

        data = make_transform_data(rng, affine_T, n_in=50, n_out=10, noise=0.5)
        est = RobustEstimator(UnparameterizedFitter(), RobustMethod.RANSAC,
                              points0=data.pts0, points1=data.pts1, seed=5)
        est.threshold = 3.0
        est.covariance_kept = True

        T = est.estimate()
        assert T is not None
        assert est.covariance is None
        assert est.inliers_data.num_inliers >= 45


class TestCameraEstimation:

    @pytest.mark.parametrize("method", ALL_METHODS)
    def test_exact_camera(self, method, rng, camera, make_camera_data):
        data = make_camera_data(rng, camera, n_in=80, n_out=16)
        est = PinholeCameraRobustEstimator(
            method, points3d=data.pts0, points2d=data.pts1, quality_scores=data.quality, seed=1)
        cam = est.estimate()

        X = data.pts0[data.is_inlier]
        assert np.allclose(cam.project(X), camera.project(X), atol=1e-4)
        assert est.inliers_data.num_inliers == 80

    @pytest.mark.parametrize("seed", [0, 5, 15])
    @pytest.mark.parametrize("method", ALL_METHODS)
    def test_strict_thresholds_with_gaussian_outliers(self, method, seed, camera, make_camera_data):
        """20% of the projections shifted by N(0, 100), exact inliers, no refinement."""
        rng = np.random.default_rng(seed)
        data = make_camera_data(rng, camera, n_in=400, n_out=100, outlier_sigma=100.0)
        est = PinholeCameraRobustEstimator(
            method, points3d=data.pts0, points2d=data.pts1, quality_scores=data.quality, seed=seed)
        est.threshold = 5e-6
        est.stop_threshold = 5e-6
        est.result_refined = False

        cam = est.estimate()

        assert cam.horizontal_focal_length == pytest.approx(800.0, abs=1e-2)
        assert cam.vertical_focal_length == pytest.approx(780.0, abs=1e-2)
        assert cam.skewness == pytest.approx(0.0, abs=1e-2)
        assert np.allclose(cam.principal_point, [320.0, 240.0], atol=1e-2)
        X = data.pts0[data.is_inlier]
        assert np.allclose(cam.project(X), data.pts1[data.is_inlier], atol=1e-5)
        assert est.inliers_data.inliers.tolist() == data.is_inlier.tolist()

    @pytest.mark.parametrize("seed", [0, 1, 8, 10, 18])
    def test_median_methods_with_uninformative_scores(self, seed, camera, make_camera_data):
        rng = np.random.default_rng(seed)
        data = make_camera_data(rng, camera, n_in=400, n_out=100, outlier_sigma=100.0)
        flat = np.ones(data.pts0.shape[0])
        for method in (RobustMethod.LMEDS, RobustMethod.PROMEDS):
            est = PinholeCameraRobustEstimator(
                method, points3d=data.pts0, points2d=data.pts1, quality_scores=flat, seed=seed)
            est.stop_threshold = 5e-6
            est.result_refined = False

            cam = est.estimate()

            assert cam.horizontal_focal_length == pytest.approx(800.0, abs=1e-2)
            assert est.inliers_data.median_residual < 5e-6

    def test_points_accessors_and_dimensions(self, rng, camera, make_camera_data):
        data = make_camera_data(rng, camera, n_in=10, n_out=0)
        est = PinholeCameraRobustEstimator(RobustMethod.RANSAC)
        with pytest.raises(ValueError):
            est.set_points(data.pts1, data.pts1)
        est.set_points(data.pts0, data.pts1)
        assert est.points3d.shape == (10, 3)
        assert est.points2d.shape == (10, 2)
        assert est.sample_size == 6

    def test_suggestion_defaults(self):
        est = PinholeCameraRobustEstimator()
        assert not est.suggest_skewness_enabled and est.suggested_skewness == 0.0
        assert not est.suggest_horizontal_focal_length_enabled
        assert est.suggested_horizontal_focal_length == 0.0
        assert not est.suggest_vertical_focal_length_enabled
        assert est.suggested_vertical_focal_length == 0.0
        assert not est.suggest_aspect_ratio_enabled and est.suggested_aspect_ratio == 1.0
        assert est.suggested_principal_point is None
        assert est.suggested_rotation is None
        assert est.suggested_center is None

    def test_enabling_array_suggestions_sets_defaults(self):
        est = PinholeCameraRobustEstimator()
        est.suggest_principal_point_enabled = True
        est.suggest_rotation_enabled = True
        est.suggest_center_enabled = True
        assert est.suggested_principal_point.tolist() == [0.0, 0.0]
        assert np.array_equal(est.suggested_rotation, np.eye(3))
        assert est.suggested_center.tolist() == [0.0, 0.0, 0.0]
        assert est.suggestions.has_suggestions

    def test_suggestion_value_validation(self):
        est = PinholeCameraRobustEstimator()
        with pytest.raises(ValueError):
            est.suggested_principal_point = np.zeros(3)
        with pytest.raises(ValueError):
            est.suggested_rotation = 2.0 * np.eye(3)
        with pytest.raises(ValueError):
            est.suggested_center = np.zeros(2)
        assert est.suggested_center is None

    def test_suggestion_setters_locked_during_estimate(self, rng, camera, make_camera_data):
        data = make_camera_data(rng, camera, n_in=30, n_out=0)
        est = PinholeCameraRobustEstimator(RobustMethod.LMEDS, points3d=data.pts0, points2d=data.pts1)
        failures = []

        def on_start(e):
            for name, value in [("suggest_skewness_enabled", True), ("suggested_aspect_ratio", 2.0),
                                ("suggested_center", np.zeros(3)), ("suggest_rotation_enabled", True)]:
                try:
                    setattr(e, name, value)
                except LockedError:
                    failures.append(name)

        est.listener = EstimatorListener(on_estimate_start=on_start)
        est.estimate()
        assert len(failures) == 4
        assert not est.suggest_skewness_enabled

    def test_skewness_suggestion_converges(self, camera, make_camera_data):
        """Over repeated trials the suggested skewness is matched at least as well."""
        closer = 0
        trials = 5
        for seed in range(trials):
            data = make_camera_data(np.random.default_rng(100 + seed), camera, n_in=60, n_out=10, noise=1.0)
            skews = []
            for enabled in (False, True):
                est = PinholeCameraRobustEstimator(
                    RobustMethod.RANSAC, points3d=data.pts0, points2d=data.pts1, seed=seed)
                est.threshold = 4.0
                est.suggest_skewness_enabled = enabled
                est.suggested_skewness = 0.0
                skews.append(abs(est.estimate().skewness))
            if skews[1] <= skews[0]:
                closer += 1
        assert closer >= trials - 1


class TestFactory:

    @pytest.mark.parametrize("fitter, cls", [
        (AffineFitter(), AffineTransformation2DRobustEstimator),
        (MetricFitter(), MetricTransformation2DRobustEstimator),
        (ProjectiveFitter(), ProjectiveTransformation2DRobustEstimator),
        (PinholeCameraFitter(), PinholeCameraRobustEstimator),
    ])
    def test_estimator_class_by_fitter(self, fitter, cls):
        est = create_robust_estimator(fitter, RobustMethod.MSAC)
        assert type(est) is cls
        assert est.model_fitter is fitter
        assert est.method == RobustMethod.MSAC

    def test_camera_points_forwarded(self, rng, camera, make_camera_data):
        data = make_camera_data(rng, camera, n_in=10, n_out=0)
        est = create_robust_estimator(PinholeCameraFitter(), points0=data.pts0, points1=data.pts1)
        assert est.points3d.shape == (10, 3)
