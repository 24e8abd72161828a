# Andy Zhao
"""
2D affine transformation utilities (3x3 homogeneous form).

We estimate an affine transform T such that:

    [x', y', 1]^T  ≈  T @ [x, y, 1]^T

where:

    T = [[a, b, tx],
         [c, d, ty],
         [0, 0,  1]]

Unknowns are 6 parameters: a, b, tx, c, d, ty, so the minimal sample is
3 non-collinear correspondences.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from ..consensus.types import (
    Points2D, PointsHomog, Mat3x3, FloatArray,
    as_homogeneous, is_valid_matrix)

AFFINE_SAMPLE_SIZE = 3


# ---------- Degeneracy Check Helpers ----------
def triangle_area2(p1: np.ndarray, p2: np.ndarray, p3: np.ndarray) -> float:
    """
    Return 2x the triangle area formed by (p1, p2, p3):

        area2 = |(p2 - p1) x (p3 - p1)|

    Near 0 means the three points are collinear.
    """
    u = p2 - p1
    v = p3 - p1
    return float(abs(u[0] * v[1] - u[1] * v[0]))


def is_degenerate_triplet(pts: Points2D, eps_area: float = 1e-6) -> bool:
    """Check whether 3 points (shape (3,2)) are nearly collinear."""
    if pts.shape != (3, 2):
        raise ValueError(f"Expected (3,2) triplet, got {pts.shape}")
    return triangle_area2(pts[0], pts[1], pts[2]) < eps_area


# ---------- Linear system ----------
def _design_matrix(pts0: Points2D, pts1: Points2D) -> tuple[FloatArray, FloatArray]:
    """
    Build A theta = b for theta = [a, b, tx, c, d, ty].

    Each correspondence (x, y) -> (x', y') gives two rows:
        [x, y, 1, 0, 0, 0] . theta = x'
        [0, 0, 0, x, y, 1] . theta = y'
    """
    n = pts0.shape[0]
    A = np.zeros((2 * n, 6), dtype=np.float64)
    b = np.empty((2 * n,), dtype=np.float64)

    A[0::2, 0:2] = pts0
    A[0::2, 2] = 1.0
    A[1::2, 3:5] = pts0
    A[1::2, 5] = 1.0
    b[0::2] = pts1[:, 0]
    b[1::2] = pts1[:, 1]
    return A, b


def theta_to_mat3x3(theta: np.ndarray) -> Mat3x3:
    """Convert theta = [a, b, tx, c, d, ty] into a 3x3 affine matrix."""
    a, b, tx, c, d, ty = map(float, np.asarray(theta).tolist())
    return np.array(
        [
            [a, b, tx],
            [c, d, ty],
            [0.0, 0.0, 1.0],
        ],
        dtype=np.float64,
    )


def mat3x3_to_theta(T: Mat3x3) -> FloatArray:
    return np.array([T[0, 0], T[0, 1], T[0, 2], T[1, 0], T[1, 1], T[1, 2]], dtype=np.float64)


# ---------- Affine Fitting ----------
def fit_affine_minimal(pts0: Points2D, pts1: Points2D, eps_area: float = 1e-6) -> Optional[Mat3x3]:
    """
    Fit affine transform from exactly 3 point correspondences.

    Returns the 3x3 affine matrix, or None if degenerate / solve fails.
    """
    if pts0.shape != (3, 2) or pts1.shape != (3, 2):
        raise ValueError(f"fit_affine_minimal expects (3,2) inputs, got {pts0.shape} and {pts1.shape}")

    # Collinear triplets do not determine the affine map uniquely
    if is_degenerate_triplet(pts0, eps_area) or is_degenerate_triplet(pts1, eps_area):
        return None

    A, b = _design_matrix(pts0, pts1)
    try:
        theta = np.linalg.solve(A, b)
    except np.linalg.LinAlgError:
        return None

    T = theta_to_mat3x3(theta)
    return T if is_valid_matrix(T) else None


def fit_affine_least_squares(pts0: Points2D, pts1: Points2D) -> Optional[Mat3x3]:
    """
    Fit affine transform from N >= 3 correspondences minimizing ||A theta - b||^2.
    """
    if pts0.shape != pts1.shape:
        raise ValueError(f"pts0 and pts1 must have same shape, got {pts0.shape} vs {pts1.shape}")
    if pts0.ndim != 2 or pts0.shape[1] != 2:
        raise ValueError(f"Expected pts shape (N,2), got {pts0.shape}")
    if pts0.shape[0] < AFFINE_SAMPLE_SIZE:
        return None

    A, b = _design_matrix(pts0, pts1)
    try:
        theta, _, rank, _ = np.linalg.lstsq(A, b, rcond=None)
    except np.linalg.LinAlgError:
        return None

    # All points on a line (or repeated) -> the 6 unknowns are not constrained
    if rank < 6:
        return None

    T = theta_to_mat3x3(theta)
    return T if is_valid_matrix(T) else None


# ---------- Apply transform + residuals ----------
def apply_transform(T: Mat3x3, pts: Points2D) -> Points2D:
    """
    Apply a 3x3 transform to (N,2) points, returning (N,2) points.

    Divides by w, so the same function serves affine (w == 1) and projective
    transforms.
    """
    if pts.ndim != 2 or pts.shape[1] != 2:
        raise ValueError(f"Expected pts shape (N,2), got {pts.shape}")
    if T.shape != (3, 3):
        raise ValueError(f"Expected T shape (3,3), got {T.shape}")

    ph: PointsHomog = as_homogeneous(pts)

    # Each point is a row, so multiply by T^T
    ph_t = ph @ T.T
    with np.errstate(divide="ignore", invalid="ignore"):
        out = ph_t[:, :2] / ph_t[:, 2:3]
    return out.astype(np.float64)


def transfer_error_vector(T: Mat3x3, pts0: Points2D, pts1: Points2D) -> FloatArray:
    """Signed transfer errors (dx0, dy0, dx1, dy1, ...)."""
    if pts0.shape != pts1.shape:
        raise ValueError(f"pts0 and pts1 must have same shape, got {pts0.shape} vs {pts1.shape}")
    diff = apply_transform(T, pts0) - pts1.astype(np.float64)
    return diff.reshape(-1)


def transfer_errors(T: Mat3x3, pts0: Points2D, pts1: Points2D) -> FloatArray:
    """
    Per-point L2 transfer error in pixels:

        e_i = || apply_transform(T, pts0[i]) - pts1[i] ||_2

    Returns shape (N,)
    """
    if pts0.shape != pts1.shape:
        raise ValueError(f"pts0 and pts1 must have same shape, got {pts0.shape} vs {pts1.shape}")
    diff = apply_transform(T, pts0) - pts1.astype(np.float64)
    return np.linalg.norm(diff, axis=1).astype(np.float64)
