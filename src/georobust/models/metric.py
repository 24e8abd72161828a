# Andy Zhao
"""
2D metric (similarity) transformation: rotation + uniform scale + translation.

    pts1 ≈ s * R(theta) @ pts0 + t

In homogeneous form, with p = s*cos(theta) and q = s*sin(theta):

    [ p  -q  tx ]
    [ q   p  ty ]
    [ 0   0   1 ]

This model has 4 degrees of freedom (p, q, tx, ty), so 2 correspondences
are enough. Treating points as complex numbers z = x + iy the model is

    z' = a*z + b,   a = p + iq,   b = tx + i*ty
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from ..consensus.types import Points2D, Mat3x3, FloatArray, is_valid_matrix

METRIC_SAMPLE_SIZE = 2


def params_to_mat3x3(params: np.ndarray) -> Mat3x3:
    """
    Construct the 3x3 homogeneous matrix from [p, q, tx, ty].
    """
    p, q, tx, ty = map(float, np.asarray(params).tolist())
    return np.array(
        [
            [p, -q, tx],
            [q, p, ty],
            [0.0, 0.0, 1.0],
        ],
        dtype=np.float64,
    )


def mat3x3_to_params(T: Mat3x3) -> FloatArray:
    return np.array([T[0, 0], T[1, 0], T[0, 2], T[1, 2]], dtype=np.float64)


def scale_and_rotation(T: Mat3x3) -> tuple[float, float]:
    """Return (scale, rotation angle in radians) of a metric transform."""
    p, q = float(T[0, 0]), float(T[1, 0])
    return float(np.hypot(p, q)), float(np.arctan2(q, p))


def _as_complex(pts: Points2D) -> np.ndarray:
    return pts[:, 0].astype(np.float64) + 1j * pts[:, 1].astype(np.float64)


# Minimal fit (used inside the consensus hypothesis step)
def fit_metric_minimal(pts0: Points2D, pts1: Points2D, eps: float = 1e-9) -> Optional[Mat3x3]:
    """
    Minimal sample estimator for a metric transform from 2 correspondences.

        a = (z1' - z0') / (z1 - z0)
        b = z0' - a*z0

    Returns None when the two source points (or the two targets) coincide.
    """
    if pts0.shape != (2, 2) or pts1.shape != (2, 2):
        raise ValueError(f"fit_metric_minimal expects (2,2) inputs, got {pts0.shape} and {pts1.shape}")

    z0 = _as_complex(pts0)
    z1 = _as_complex(pts1)

    dz0 = z0[1] - z0[0]
    dz1 = z1[1] - z1[0]
    if abs(dz0) < eps or abs(dz1) < eps:
        return None

    a = dz1 / dz0
    b = z1[0] - a * z0[0]

    T = params_to_mat3x3(np.array([a.real, a.imag, b.real, b.imag]))
    return T if is_valid_matrix(T) else None


# Least squares refit (used after inliers found)
def fit_metric_least_squares(pts0: Points2D, pts1: Points2D) -> Optional[Mat3x3]:
    """
    Least-squares estimator for the metric transform.

    Each correspondence gives two linear equations in (p, q, tx, ty):
        x' = p*x - q*y + tx
        y' = q*x + p*y + ty
    """
    if pts0.shape != pts1.shape:
        raise ValueError(f"pts0 and pts1 must have same shape, got {pts0.shape} vs {pts1.shape}")
    if pts0.shape[0] < METRIC_SAMPLE_SIZE:
        return None

    n = pts0.shape[0]
    A = np.zeros((2 * n, 4), dtype=np.float64)
    b = np.empty((2 * n,), dtype=np.float64)

    x, y = pts0[:, 0], pts0[:, 1]
    A[0::2, 0] = x
    A[0::2, 1] = -y
    A[0::2, 2] = 1.0
    A[1::2, 0] = y
    A[1::2, 1] = x
    A[1::2, 3] = 1.0
    b[0::2] = pts1[:, 0]
    b[1::2] = pts1[:, 1]

    try:
        theta, _, rank, _ = np.linalg.lstsq(A, b, rcond=None)
    except np.linalg.LinAlgError:
        return None
    if rank < 4:
        return None

    T = params_to_mat3x3(theta)
    return T if is_valid_matrix(T) else None
