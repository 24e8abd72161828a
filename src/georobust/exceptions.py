# Andy Zhao
"""
Error taxonomy for georobust.

Invalid arguments (bad ranges, mismatched shapes) are reported with the
built-in ValueError, like the rest of the codebase does for shape checks.
"""

from __future__ import annotations


class GeoRobustError(Exception):
    """Base class for every error raised by georobust."""


class LockedError(GeoRobustError):
    """An estimator was modified (or re-run) while an estimation is in progress."""

    def __init__(self, message: str = "estimator is locked while an estimation is in progress") -> None:
        super().__init__(message)


class NotReadyError(GeoRobustError):
    """estimate() was called before all required inputs were provided."""

    def __init__(self, message: str = "estimator is not ready: missing or insufficient input data") -> None:
        super().__init__(message)


class RobustEstimatorError(GeoRobustError):
    """The consensus stage could not produce a usable model."""


class DegenerateSampleError(GeoRobustError):
    """A minimal solver received a rank deficient / singular sample."""


class RefinementError(GeoRobustError):
    """Non-linear refinement failed. Absorbed by the estimators."""
