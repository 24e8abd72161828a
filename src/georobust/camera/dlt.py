# Andy Zhao
"""
Normalized DLT for a pinhole camera from 3D -> 2D point correspondences.

Each correspondence X <-> x = (u, v) gives two linear equations in the 12
entries of P:

    [ X^T   0    -u X^T ] p = 0
    [  0   X^T   -v X^T ] p = 0

P has 11 degrees of freedom, so at least 6 correspondences are required.
Both point sets are Hartley normalized before solving (Hartley & Zisserman,
alg. 7.1), then P is de-normalized: P = T2^-1 P_n T3.
"""

from __future__ import annotations

import numpy as np

from ..consensus.types import Points2D, Points3D, Mat3x4, as_homogeneous, is_valid_matrix
from ..exceptions import DegenerateSampleError
from ..models.projective import hartley_normalization
from .pinhole import PinholeCamera

DLT_SAMPLE_SIZE = 6

# Relative size of the second smallest singular value below which the null
# space is considered more than one-dimensional
RANK_TOLERANCE = 1e-10


def dlt_matrix(points3d: Points3D, points2d: Points2D) -> Mat3x4:
    """
    Estimate the 3x4 projection matrix (unit Frobenius norm).

    Raises:
    - ValueError on shape mismatch
    - DegenerateSampleError if the configuration does not determine P
    """
    if points3d.ndim != 2 or points3d.shape[1] != 3:
        raise ValueError(f"Expected points3d shape (N,3), got {points3d.shape}")
    if points2d.ndim != 2 or points2d.shape[1] != 2:
        raise ValueError(f"Expected points2d shape (N,2), got {points2d.shape}")
    if points3d.shape[0] != points2d.shape[0]:
        raise ValueError(
            f"points3d and points2d must have same length, got {points3d.shape[0]} vs {points2d.shape[0]}")

    n = points3d.shape[0]
    if n < DLT_SAMPLE_SIZE:
        raise DegenerateSampleError(f"DLT needs at least {DLT_SAMPLE_SIZE} correspondences, got {n}")

    try:
        n3, T3 = hartley_normalization(points3d.astype(np.float64))
        n2, T2 = hartley_normalization(points2d.astype(np.float64))
    except np.linalg.LinAlgError as e:
        raise DegenerateSampleError(str(e)) from e

    X = as_homogeneous(n3)
    u, v = n2[:, 0:1], n2[:, 1:2]

    A = np.zeros((2 * n, 12), dtype=np.float64)
    A[0::2, 0:4] = X
    A[0::2, 8:12] = -u * X
    A[1::2, 4:8] = X
    A[1::2, 8:12] = -v * X

    _, sv, vt = np.linalg.svd(A)
    if sv[10] <= RANK_TOLERANCE * max(1.0, float(sv[0])):
        raise DegenerateSampleError("point configuration does not determine the camera")

    Pn = vt[-1].reshape(3, 4)
    P = np.linalg.solve(T2, Pn @ T3)
    P = P / np.linalg.norm(P)
    if not is_valid_matrix(P, shape=(3, 4)):
        raise DegenerateSampleError("DLT produced a non-finite camera")
    return P


def dlt_camera(points3d: Points3D, points2d: Points2D) -> PinholeCamera:
    """DLT camera estimate, decomposed into K, R, C."""
    P = dlt_matrix(points3d, points2d)
    try:
        return PinholeCamera.from_matrix(P)
    except np.linalg.LinAlgError as e:
        raise DegenerateSampleError(str(e)) from e
