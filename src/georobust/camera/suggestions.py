# Andy Zhao
"""
Soft prior ("suggestion") terms for camera refinement.

Each enabled suggestion adds residuals (current value - suggested value)
to the refinement cost. Disabled suggestions contribute nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
from scipy.spatial.transform import Rotation

from ..consensus.types import FloatArray, Mat3x3
from .pinhole import PinholeCamera

DEFAULT_SUGGESTED_SKEWNESS = 0.0
DEFAULT_SUGGESTED_FOCAL_LENGTH = 0.0
DEFAULT_SUGGESTED_ASPECT_RATIO = 1.0


def default_principal_point() -> FloatArray:
    return np.zeros(2, dtype=np.float64)


def default_rotation() -> Mat3x3:
    return np.eye(3, dtype=np.float64)


def default_center() -> FloatArray:
    return np.zeros(3, dtype=np.float64)


def quaternion_difference(R: Mat3x3, R_ref: Mat3x3) -> FloatArray:
    """
    q(R) - q(R_ref) for unit quaternions, with the sign of q(R_ref) chosen
    so the two lie on the same hemisphere (q and -q are the same rotation).
    """
    q = Rotation.from_matrix(R).as_quat()
    q_ref = Rotation.from_matrix(R_ref).as_quat()
    if float(np.dot(q, q_ref)) < 0.0:
        q_ref = -q_ref
    return q - q_ref


@dataclass(frozen=True)
class CameraSuggestions:
    skewness_enabled: bool = False
    skewness: float = DEFAULT_SUGGESTED_SKEWNESS

    horizontal_focal_length_enabled: bool = False
    horizontal_focal_length: float = DEFAULT_SUGGESTED_FOCAL_LENGTH

    vertical_focal_length_enabled: bool = False
    vertical_focal_length: float = DEFAULT_SUGGESTED_FOCAL_LENGTH

    aspect_ratio_enabled: bool = False
    aspect_ratio: float = DEFAULT_SUGGESTED_ASPECT_RATIO

    principal_point_enabled: bool = False
    principal_point: Optional[FloatArray] = None   # (2,)

    rotation_enabled: bool = False
    rotation: Optional[Mat3x3] = None              # (3,3)

    center_enabled: bool = False
    center: Optional[FloatArray] = None            # (3,)

    @property
    def has_suggestions(self) -> bool:
        return (self.skewness_enabled
                or self.horizontal_focal_length_enabled
                or self.vertical_focal_length_enabled
                or self.aspect_ratio_enabled
                or self.principal_point_enabled
                or self.rotation_enabled
                or self.center_enabled)

    def residual_terms(self, camera: PinholeCamera) -> FloatArray:
        """Stacked suggestion residuals for the enabled suggestions, shape (K,)."""
        terms: list[np.ndarray] = []

        if self.skewness_enabled:
            terms.append(np.array([camera.skewness - self.skewness]))
        if self.horizontal_focal_length_enabled:
            terms.append(np.array([camera.horizontal_focal_length - self.horizontal_focal_length]))
        if self.vertical_focal_length_enabled:
            terms.append(np.array([camera.vertical_focal_length - self.vertical_focal_length]))
        if self.aspect_ratio_enabled:
            terms.append(np.array([camera.aspect_ratio - self.aspect_ratio]))
        if self.principal_point_enabled:
            pp = self.principal_point if self.principal_point is not None else default_principal_point()
            terms.append(camera.principal_point - pp)
        if self.rotation_enabled:
            R_ref = self.rotation if self.rotation is not None else default_rotation()
            terms.append(quaternion_difference(camera.R, R_ref))
        if self.center_enabled:
            c = self.center if self.center is not None else default_center()
            terms.append(camera.center - c)

        if not terms:
            return np.zeros(0, dtype=np.float64)
        return np.concatenate(terms).astype(np.float64)
