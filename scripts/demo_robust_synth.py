import numpy as np

from georobust import (
    AffineTransformation2DRobustEstimator, RobustEstimatorError, RobustMethod, apply_transform,
    setup_logger,
)


def main() -> None:
    setup_logger(level="INFO")
    rng = np.random.default_rng(0)

    # True affine transform
    T_true = np.array(
        [[1.05, 0.02, 15.0],
         [-0.01, 0.98, -8.0],
         [0.0,  0.0,  1.0]],
        dtype=np.float64,
    )

    # Generate inlier points
    n_in = 200
    pts0 = rng.uniform([0, 0], [640, 480], size=(n_in, 2))
    pts1 = apply_transform(T_true, pts0)

    # Add Gaussian noise (pixel noise)
    pts1 += rng.normal(0.0, 0.8, size=pts1.shape)

    # Add outliers (wrong matches)
    n_out = 80
    o0 = rng.uniform([0, 0], [640, 480], size=(n_out, 2))
    o1 = rng.uniform([0, 0], [640, 480], size=(n_out, 2))

    pts0_all = np.vstack([pts0, o0])
    pts1_all = np.vstack([pts1, o1])

    # Match quality: inliers tend to score higher (e.g. descriptor distance)
    quality = np.concatenate([rng.uniform(0.4, 1.0, n_in), rng.uniform(0.0, 0.7, n_out)])

    print("T_true:\n", T_true)
    for method in RobustMethod:
        est = AffineTransformation2DRobustEstimator(
            method, points0=pts0_all, points1=pts1_all, quality_scores=quality, seed=42)
        est.threshold = 3.0
        est.covariance_kept = True

        try:
            T = est.estimate()
        except RobustEstimatorError as e:
            print(f"{method.name}: failed ({e})")
            continue

        inl = est.inliers_data
        print(f"\n{method.name}")
        print("T_est:\n", T)
        print("num_inliers:", inl.num_inliers, "/", pts0_all.shape[0])
        print("iterations:", inl.iterations)
        if est.covariance is not None:
            print("param std:", np.sqrt(np.diag(est.covariance)))


if __name__ == "__main__":
    main()
