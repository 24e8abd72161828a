"""
Synthetic data shared by the test suite.

Everything is generated from seeded numpy Generators so failures are
reproducible.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from georobust.camera.pinhole import PinholeCamera
from georobust.models.affine import apply_transform

IMAGE_SIZE = (640.0, 480.0)


@dataclass
class Correspondences:
    pts0: np.ndarray
    pts1: np.ndarray
    is_inlier: np.ndarray       # ground truth mask
    quality: np.ndarray         # higher for inliers, used by PROSAC / PROMedS


def _quality(rng: np.random.Generator, is_inlier: np.ndarray) -> np.ndarray:
    # Noisy but informative: inliers mostly rank above outliers
    q = rng.uniform(0.0, 0.6, size=is_inlier.shape[0])
    q[is_inlier] += 0.4
    return q


def _shuffle(rng: np.random.Generator, *arrays: np.ndarray) -> tuple[np.ndarray, ...]:
    perm = rng.permutation(arrays[0].shape[0])
    return tuple(a[perm] for a in arrays)


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(1234)


@pytest.fixture
def affine_T() -> np.ndarray:
    return np.array(
        [[1.05, 0.02, 15.0],
         [-0.01, 0.98, -8.0],
         [0.0, 0.0, 1.0]],
        dtype=np.float64,
    )


@pytest.fixture
def metric_T() -> np.ndarray:
    s, theta = 1.2, np.deg2rad(10.0)
    return np.array(
        [[s * np.cos(theta), -s * np.sin(theta), 12.0],
         [s * np.sin(theta), s * np.cos(theta), -5.0],
         [0.0, 0.0, 1.0]],
        dtype=np.float64,
    )


@pytest.fixture
def homography() -> np.ndarray:
    return np.array(
        [[0.95, 0.05, 20.0],
         [-0.03, 1.02, -10.0],
         [1e-4, -5e-5, 1.0]],
        dtype=np.float64,
    )


@pytest.fixture
def make_transform_data():
    """Factory: (rng, T, n_in, n_out, noise) -> Correspondences for a 3x3 transform."""

    def make(rng: np.random.Generator, T: np.ndarray, n_in: int = 100, n_out: int = 25,
             noise: float = 0.0) -> Correspondences:
        w, h = IMAGE_SIZE
        p0 = rng.uniform([0, 0], [w, h], size=(n_in, 2))
        p1 = apply_transform(T, p0)
        if noise > 0.0:
            p1 = p1 + rng.normal(0.0, noise, size=p1.shape)

        o0 = rng.uniform([0, 0], [w, h], size=(n_out, 2))
        o1 = rng.uniform([0, 0], [w, h], size=(n_out, 2))

        pts0 = np.vstack([p0, o0])
        pts1 = np.vstack([p1, o1])
        is_inlier = np.r_[np.ones(n_in, dtype=bool), np.zeros(n_out, dtype=bool)]
        quality = _quality(rng, is_inlier)
        pts0, pts1, is_inlier, quality = _shuffle(rng, pts0, pts1, is_inlier, quality)
        return Correspondences(pts0, pts1, is_inlier, quality)

    return make


@pytest.fixture
def camera() -> PinholeCamera:
    R = Rotation.from_rotvec([0.1, -0.2, 0.05]).as_matrix()
    t = np.array([0.2, -0.1, 8.0])
    C = -R.T @ t
    return PinholeCamera.from_parameters(800.0, 780.0, 0.0, 320.0, 240.0, R, C)


@pytest.fixture
def make_camera_data():
    """
    Factory: (rng, camera, n_in, n_out, noise, outlier_sigma) -> Correspondences points3d -> points2d.

    Outliers are uniform image points, or true projections shifted by
    N(0, outlier_sigma) when outlier_sigma is given.
    """

    def make(rng: np.random.Generator, cam: PinholeCamera, n_in: int = 100, n_out: int = 20,
             noise: float = 0.0, outlier_sigma: Optional[float] = None) -> Correspondences:
        w, h = IMAGE_SIZE
        X = rng.uniform(-2.0, 2.0, size=(n_in + n_out, 3))
        x = cam.project(X[:n_in])
        if noise > 0.0:
            x = x + rng.normal(0.0, noise, size=x.shape)
        if outlier_sigma is None:
            o = rng.uniform([0, 0], [w, h], size=(n_out, 2))
        else:
            o = cam.project(X[n_in:]) + rng.normal(0.0, outlier_sigma, size=(n_out, 2))

        pts1 = np.vstack([x, o])
        is_inlier = np.r_[np.ones(n_in, dtype=bool), np.zeros(n_out, dtype=bool)]
        quality = _quality(rng, is_inlier)
        pts0, pts1, is_inlier, quality = _shuffle(rng, X, pts1, is_inlier, quality)
        return Correspondences(pts0, pts1, is_inlier, quality)

    return make
