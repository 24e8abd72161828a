"""
Pinhole camera model, DLT solver and refinement suggestions
"""

from .pinhole import PinholeCamera, intrinsic_matrix
from .dlt import DLT_SAMPLE_SIZE, dlt_matrix, dlt_camera
from .camera_fitter import (
    NUM_CAMERA_PARAMS, PinholeCameraFitter, reprojection_errors, reprojection_error_vector,
    camera_to_params, params_to_camera,
)
from .suggestions import (
    CameraSuggestions, quaternion_difference,
    DEFAULT_SUGGESTED_SKEWNESS, DEFAULT_SUGGESTED_FOCAL_LENGTH, DEFAULT_SUGGESTED_ASPECT_RATIO,
    default_principal_point, default_rotation, default_center,
)

__all__ = [
    "PinholeCamera", "intrinsic_matrix",
    "DLT_SAMPLE_SIZE", "dlt_matrix", "dlt_camera",
    "NUM_CAMERA_PARAMS", "PinholeCameraFitter", "reprojection_errors", "reprojection_error_vector",
    "camera_to_params", "params_to_camera",
    "CameraSuggestions", "quaternion_difference",
    "DEFAULT_SUGGESTED_SKEWNESS", "DEFAULT_SUGGESTED_FOCAL_LENGTH", "DEFAULT_SUGGESTED_ASPECT_RATIO",
    "default_principal_point", "default_rotation", "default_center",
]
