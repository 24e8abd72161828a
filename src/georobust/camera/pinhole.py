# Andy Zhao
"""
Pinhole camera model.

    x ~ P X,    P = K [R | -R C]

K is the upper triangular intrinsic matrix

    K = [[fx, skew, cx],
         [ 0,   fy, cy],
         [ 0,    0,  1]]

R is the world -> camera rotation and C the camera center in world
coordinates.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy.linalg import rq
from scipy.spatial.transform import Rotation

from ..consensus.types import Points2D, Points3D, Mat3x3, Mat3x4, FloatArray, as_homogeneous


def intrinsic_matrix(fx: float, fy: float, skew: float, cx: float, cy: float) -> Mat3x3:
    return np.array(
        [
            [fx, skew, cx],
            [0.0, fy, cy],
            [0.0, 0.0, 1.0],
        ],
        dtype=np.float64,
    )


@dataclass(frozen=True)
class PinholeCamera:
    K: Mat3x3
    R: Mat3x3
    C: FloatArray       # shape (3,)

    # ---------- Construction ----------
    @classmethod
    def from_parameters(
            cls,
            fx: float,
            fy: float,
            skew: float,
            cx: float,
            cy: float,
            R: Mat3x3,
            C: FloatArray,
    ) -> "PinholeCamera":
        return cls(
            K=intrinsic_matrix(fx, fy, skew, cx, cy),
            R=np.asarray(R, dtype=np.float64),
            C=np.asarray(C, dtype=np.float64).reshape(3),
        )

    @classmethod
    def from_matrix(cls, P: Mat3x4) -> "PinholeCamera":
        """
        Decompose a 3x4 projection matrix (defined up to scale).

        The left 3x3 block is split as M = K R by RQ decomposition; signs are
        fixed so that K has a positive diagonal and R is a proper rotation.

        Raises:
        - np.linalg.LinAlgError if the left 3x3 block is singular
        """
        P = np.asarray(P, dtype=np.float64)
        if P.shape != (3, 4):
            raise ValueError(f"Expected P shape (3,4), got {P.shape}")

        M = P[:, :3]
        det = float(np.linalg.det(M))
        if not np.isfinite(det) or abs(det) <= np.finfo(np.float64).tiny:
            raise np.linalg.LinAlgError("left 3x3 block of P is singular")

        # P ~ -P: pick the sign giving det(R) = +1
        if det < 0.0:
            P = -P
            M = -M

        K, R = rq(M)
        D = np.diag(np.sign(np.diag(K)))
        K = K @ D
        R = D @ R
        K = K / K[2, 2]

        C = -np.linalg.solve(M, P[:, 3])
        return cls(K=K, R=R, C=C)

    # ---------- Projection ----------
    @property
    def matrix(self) -> Mat3x4:
        """P = K [R | -R C]"""
        Rt = np.hstack([self.R, (-self.R @ self.C).reshape(3, 1)])
        return self.K @ Rt

    def project(self, points3d: Points3D) -> Points2D:
        """Project (N,3) world points to (N,2) pixels."""
        if points3d.ndim != 2 or points3d.shape[1] != 3:
            raise ValueError(f"Expected points shape (N,3), got {points3d.shape}")

        ph = as_homogeneous(points3d) @ self.matrix.T
        with np.errstate(divide="ignore", invalid="ignore"):
            out = ph[:, :2] / ph[:, 2:3]
        return out.astype(np.float64)

    # ---------- Intrinsics ----------
    @property
    def horizontal_focal_length(self) -> float:
        return float(self.K[0, 0])

    @property
    def vertical_focal_length(self) -> float:
        return float(self.K[1, 1])

    @property
    def skewness(self) -> float:
        return float(self.K[0, 1])

    @property
    def principal_point(self) -> FloatArray:
        return np.array([self.K[0, 2], self.K[1, 2]], dtype=np.float64)

    @property
    def aspect_ratio(self) -> float:
        """fy / fx"""
        return float(self.K[1, 1] / self.K[0, 0])

    # ---------- Extrinsics ----------
    @property
    def quaternion(self) -> FloatArray:
        """Unit quaternion of R in scalar-last order [x, y, z, w]."""
        return Rotation.from_matrix(self.R).as_quat()

    @property
    def center(self) -> FloatArray:
        return np.asarray(self.C, dtype=np.float64).copy()
