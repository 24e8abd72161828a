# Andy Zhao
"""
Shared typed primitives for the robust estimation engine.

Defines:
- Typed NumPy aliases for geometry
    - Points are (N,2) or (N,3) float arrays
    - Transforms are 3x3 homogeneous matrices, cameras 3x4
- Generic model protocol (minimal solver + residual evaluator) used by the
  consensus loop and the refinement stage
- The robust method tag (RANSAC / LMedS / MSAC / PROSAC / PROMedS)
- Structured result containers (inliers data + best model)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol, TypeVar, Generic, Optional, TypeAlias

import numpy as np
import numpy.typing as npt

# ---------- Numpy typing aliases ----------
# float64 for geometry / matrices (more stable for linear algebra)
# bool_ for masks

FloatArray: TypeAlias = npt.NDArray[np.float64]
BoolArray: TypeAlias = npt.NDArray[np.bool_]
IndexArray: TypeAlias = npt.NDArray[np.intp]

Points2D: TypeAlias = FloatArray      # shape: (N, 2)
Points3D: TypeAlias = FloatArray      # shape: (N, 3)
PointsHomog: TypeAlias = FloatArray   # shape: (N, 3) or (N, 4)

# Boolean inlier mask: True as inlier, False as outlier
Mask: TypeAlias = BoolArray           # shape: (N,)

Mat3x3: TypeAlias = FloatArray        # shape: (3, 3)
Mat3x4: TypeAlias = FloatArray        # shape: (3, 4)

M = TypeVar("M")


class RobustMethod(str, Enum):
    """Consensus policy: how hypotheses are sampled and scored."""

    RANSAC = "ransac"
    LMEDS = "lmeds"
    MSAC = "msac"
    PROSAC = "prosac"
    PROMEDS = "promeds"

    @property
    def uses_quality_scores(self) -> bool:
        """PROSAC and PROMedS sample from quality-sorted correspondences."""
        return self in (RobustMethod.PROSAC, RobustMethod.PROMEDS)

    @property
    def uses_median(self) -> bool:
        """LMedS and PROMedS score by the median residual (no threshold needed)."""
        return self in (RobustMethod.LMEDS, RobustMethod.PROMEDS)


class ModelFitter(Protocol[M]):
    """
    Interface a model must implement to be usable by the consensus loop and
    the refinement stage.

    Consensus steps:
    1) Fit a model from a minimal sample
    2) Score all correspondences with a per-point residual error

    Refinement steps:
    3) Refit linearly from all inliers (fast refinement)
    4) Map the model to / from a free parameter vector and expose signed
       residual components for non-linear least squares
    """

    sample_size: int

    def fit_minimal(self, pts0: FloatArray, pts1: FloatArray) -> Optional[M]:
        """
        Fit from exactly sample_size correspondences.
        Return None (or raise DegenerateSampleError) if the sample is degenerate.
        """
        ...

    def fit_least_squares(self, pts0: FloatArray, pts1: FloatArray) -> Optional[M]:
        """
        Refit the model using all inliers.
        Return None if the set is degenerate or the solve fails.
        """
        ...

    def residuals(self, model: M, pts0: FloatArray, pts1: FloatArray) -> FloatArray:
        """
        Return a vector of non-negative residual errors, one per correspondence.
        Shape: (N,). Smaller = better.
        """
        ...

    def residual_vector(self, model: M, pts0: FloatArray, pts1: FloatArray) -> FloatArray:
        """
        Signed residual components stacked into one vector, e.g. (dx0, dy0, dx1, ...).
        Its squared norm equals the sum of squared residuals.
        """
        ...

    def to_params(self, model: M) -> FloatArray:
        """Free parameters of the model, shape (P,)."""
        ...

    def from_params(self, params: FloatArray) -> M:
        """Inverse of to_params."""
        ...


# ---------- Consensus output containers ----------
@dataclass(frozen=True)
class InliersData:
    """
    Canonical result of a consensus run, recomputed against the winning model.

    median_residual and estimated_threshold are only filled by the median based
    methods (LMedS / PROMedS).
    """
    inliers: Mask                   # boolean mask of inliers under the best model
    residuals: FloatArray           # residual of every correspondence under the best model
    num_inliers: int                # count of True values in inliers
    threshold: float                # effective threshold used to build the mask
    score: float                    # winning score (inlier count, MSAC cost or median)
    iterations: int                 # how many iterations were actually run
    median_residual: Optional[float] = None
    estimated_threshold: Optional[float] = None

    @property
    def inlier_ratio(self) -> float:
        n = int(self.inliers.shape[0])
        return self.num_inliers / float(n) if n > 0 else 0.0


@dataclass(frozen=True)
class ConsensusResult(Generic[M]):
    model: M                    # best model found by the consensus stage
    inliers_data: InliersData


# ---------- Helper Functions ----------
def as_homogeneous(pts: FloatArray) -> PointsHomog:
    """
    Convert (N,D) points -> (N,D+1) homogeneous points: [x, y, (z,) 1].
    """
    if pts.ndim != 2:
        raise ValueError(f"Expected points shape (N, D) but got {pts.shape}")

    ones = np.ones((pts.shape[0], 1), dtype=np.float64)
    return np.hstack([pts.astype(np.float64), ones])


def is_valid_matrix(T: FloatArray, shape: tuple[int, int] = (3, 3)) -> bool:
    """
    Verify a transform / camera matrix.
    Used for rejecting failed fits.
    """
    return isinstance(T, np.ndarray) and T.shape == shape and bool(np.isfinite(T).all())
