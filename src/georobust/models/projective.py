# Andy Zhao
"""
2D projective transformation (homography) utilities.

    [x', y', w']^T  ~  H @ [x, y, 1]^T

H has 8 degrees of freedom (9 entries up to scale); each correspondence
gives 2 equations, so the minimal sample is 4 correspondences with no
3 points collinear.

Estimation uses the normalized DLT (Hartley & Zisserman, alg. 4.2):
points are translated to their centroid and scaled so the average distance
to the origin is sqrt(D) before building the linear system.
"""

from __future__ import annotations

from itertools import combinations
from typing import Optional

import numpy as np

from ..consensus.types import Points2D, Mat3x3, FloatArray, as_homogeneous, is_valid_matrix
from .affine import triangle_area2

PROJECTIVE_SAMPLE_SIZE = 4


# ---------- Normalization ----------
def hartley_normalization(pts: FloatArray) -> tuple[FloatArray, FloatArray]:
    """
    Similarity T (shape (D+1, D+1)) moving pts (N,D) to zero centroid and
    mean distance sqrt(D). Returns (normalized points, T).
    """
    if pts.ndim != 2:
        raise ValueError(f"Expected points shape (N, D) but got {pts.shape}")

    d = pts.shape[1]
    centroid = pts.mean(axis=0)
    centered = pts - centroid
    mean_dist = float(np.mean(np.linalg.norm(centered, axis=1)))
    if mean_dist <= np.finfo(np.float64).eps:
        raise np.linalg.LinAlgError("points are coincident")

    scale = np.sqrt(d) / mean_dist
    T = np.eye(d + 1, dtype=np.float64)
    T[:d, :d] *= scale
    T[:d, d] = -scale * centroid
    return centered * scale, T


def _has_collinear_triplet(pts: Points2D, eps_area: float) -> bool:
    return any(
        triangle_area2(pts[i], pts[j], pts[k]) < eps_area
        for i, j, k in combinations(range(pts.shape[0]), 3)
    )


def _dlt(pts0: Points2D, pts1: Points2D) -> Optional[Mat3x3]:
    """Normalized DLT for N >= 4 correspondences."""
    try:
        n0, T0 = hartley_normalization(pts0)
        n1, T1 = hartley_normalization(pts1)
    except np.linalg.LinAlgError:
        return None

    n = pts0.shape[0]
    h0 = as_homogeneous(n0)
    A = np.zeros((2 * n, 9), dtype=np.float64)

    # Two rows per correspondence of the cross product x' x (H x) = 0
    xp, yp = n1[:, 0:1], n1[:, 1:2]
    A[0::2, 3:6] = -h0
    A[0::2, 6:9] = yp * h0
    A[1::2, 0:3] = h0
    A[1::2, 6:9] = -xp * h0

    try:
        _, sv, vt = np.linalg.svd(A)
    except np.linalg.LinAlgError:
        return None

    # Null space must be one-dimensional
    if sv.shape[0] >= 8 and sv[7] <= 1e-12 * max(1.0, float(sv[0])):
        return None

    Hn = vt[-1].reshape(3, 3)
    H = np.linalg.inv(T1) @ Hn @ T0
    if abs(H[2, 2]) > np.finfo(np.float64).eps:
        H = H / H[2, 2]
    else:
        H = H / np.linalg.norm(H)
    return H if is_valid_matrix(H) else None


def fit_projective_minimal(pts0: Points2D, pts1: Points2D, eps_area: float = 1e-6) -> Optional[Mat3x3]:
    """
    Homography from exactly 4 correspondences, or None if degenerate.
    """
    if pts0.shape != (4, 2) or pts1.shape != (4, 2):
        raise ValueError(f"fit_projective_minimal expects (4,2) inputs, got {pts0.shape} and {pts1.shape}")

    if _has_collinear_triplet(pts0, eps_area) or _has_collinear_triplet(pts1, eps_area):
        return None
    return _dlt(pts0, pts1)


def fit_projective_least_squares(pts0: Points2D, pts1: Points2D) -> Optional[Mat3x3]:
    """Homography from N >= 4 correspondences (algebraic least squares)."""
    if pts0.shape != pts1.shape:
        raise ValueError(f"pts0 and pts1 must have same shape, got {pts0.shape} vs {pts1.shape}")
    if pts0.shape[0] < PROJECTIVE_SAMPLE_SIZE:
        return None
    return _dlt(pts0, pts1)


def mat3x3_to_params(H: Mat3x3) -> FloatArray:
    """8 free parameters: entries of H scaled so that H[2,2] == 1."""
    if abs(H[2, 2]) <= np.finfo(np.float64).eps:
        raise ValueError("homography with H[2,2] == 0 cannot be parameterized")
    return (H / H[2, 2]).reshape(-1)[:8].astype(np.float64)


def params_to_mat3x3(params: np.ndarray) -> Mat3x3:
    return np.append(np.asarray(params, dtype=np.float64), 1.0).reshape(3, 3)
