# Andy Zhao
"""
Hypothesis scoring policies.

Every method shares the consensus loop; only the way a candidate model is
scored (and compared against the best one so far) differs:

- RANSAC / PROSAC: number of residuals below the threshold (higher is better)
- MSAC:            sum_i min(r_i^2, t^2)                     (lower is better)
- LMedS / PROMedS: median of all residuals                   (lower is better)

LMedS does not need a threshold while scoring. Inliers are derived from a
robust estimate of the residual standard deviation (Rousseeuw & Leroy):

    sigma = 1.4826 * (1 + 5 / (N - s)) * median(r)
    estimated threshold = inlier_factor * sigma
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .types import FloatArray, Mask, RobustMethod

# Consistency constant of the median absolute deviation for Gaussian noise
MAD_CONSISTENCY = 1.4826
DEFAULT_INLIER_FACTOR = 1.5


@dataclass(frozen=True)
class CandidateScore:
    value: float                # raw score of the method
    inliers: Mask               # inlier mask implied by this candidate
    num_inliers: int
    inlier_ratio: float         # drives the adaptive stopping criterion
    threshold: float            # threshold used to build the mask
    median: Optional[float] = None
    estimated_threshold: Optional[float] = None
    quality: float = 0.0        # sum of quality scores of the inliers (tie breaker)


def lmeds_threshold(
        median_residual: float,
        n: int,
        sample_size: int,
        inlier_factor: float = DEFAULT_INLIER_FACTOR,
) -> float:
    """Inlier threshold estimated from the median residual."""
    dof = max(1, n - sample_size)
    sigma = MAD_CONSISTENCY * (1.0 + 5.0 / dof) * float(median_residual)
    return float(inlier_factor * sigma)


def score_candidate(
        method: RobustMethod,
        residuals: FloatArray,
        *,
        threshold: float,
        stop_threshold: float,
        sample_size: int,
        inlier_factor: float = DEFAULT_INLIER_FACTOR,
        quality_scores: Optional[FloatArray] = None,
) -> CandidateScore:
    """Score one hypothesis from the residuals of all N correspondences."""
    r = np.asarray(residuals, dtype=np.float64)
    n = int(r.shape[0])

    median = None
    estimated = None
    if method.uses_median:
        median = float(np.median(r))
        estimated = lmeds_threshold(median, n, sample_size, inlier_factor)

        # avoid a threshold too strict when residuals are (almost) exact
        thr = max(estimated, float(stop_threshold))
        inliers = r <= thr
        value = median
    else:
        thr = float(threshold)
        inliers = r < thr
        if method == RobustMethod.MSAC:
            value = float(np.sum(np.minimum(r * r, thr * thr)))
        else:
            value = float(np.count_nonzero(inliers))

    num_inliers = int(np.count_nonzero(inliers))
    quality = float(np.sum(quality_scores[inliers])) if quality_scores is not None else 0.0

    return CandidateScore(
        value=value,
        inliers=inliers,
        num_inliers=num_inliers,
        inlier_ratio=num_inliers / float(n) if n > 0 else 0.0,
        threshold=thr,
        median=median,
        estimated_threshold=estimated,
        quality=quality,
    )


def is_better(method: RobustMethod, candidate: CandidateScore, best: Optional[CandidateScore]) -> bool:
    """
    Strict improvement test.

    On exact ties the earlier hypothesis is kept, except for the priority
    methods, where a candidate whose inliers carry strictly more quality wins.
    """
    if best is None:
        return True

    if method in (RobustMethod.RANSAC, RobustMethod.PROSAC):
        if candidate.value != best.value:
            return candidate.value > best.value
    else:
        if candidate.value != best.value:
            return candidate.value < best.value

    if method.uses_quality_scores:
        return candidate.quality > best.quality
    return False

