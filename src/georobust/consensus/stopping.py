# Andy Zhao
"""
Adaptive stopping criterion for sample consensus.

The consensus loop keeps drawing minimal samples until, with probability
`confidence`, at least one of them contained only inliers.

    inlier ratio w = (# inliers) / N, minimal sample s = sample_size
    - P(all-inliers) = w^s
    - P(not-all-inliers-for-k-times) = (1 - w^s)^k
    - P(at-least-once-all-inliers) = 1 - (1 - w^s)^k >= confidence
    - k >= log(1 - confidence) / log(1 - w^s)
"""

from __future__ import annotations

import math

import numpy as np


def required_iterations(
        inlier_ratio: float,
        sample_size: int,
        confidence: float,
        max_iterations: int,
) -> int:
    """
    Number of iterations needed to reach `confidence` for the observed
    inlier ratio, always within [1, max_iterations].

    Edge cases:
     - w <= 0 -> no adaptive shortcut possible, return max_iterations
     - w >= 1 -> one sample is enough
    """
    s = int(sample_size)
    if s < 1:
        raise ValueError("sample_size must be >= 1")
    if max_iterations < 1:
        raise ValueError("max_iterations must be >= 1")

    # Clamp inputs to avoid log(0)
    p = float(np.clip(confidence, 1e-12, 1.0 - 1e-12))
    w = float(np.clip(inlier_ratio, 0.0, 1.0))

    if w >= 1.0:
        return 1
    if w <= 0.0:
        return int(max_iterations)

    # If w^s is extremely tiny, log(1 - w^s) is close to 0
    w_to_s = float(np.clip(w ** s, 1e-12, 1.0 - 1e-12))

    k = math.ceil(math.log(1.0 - p) / math.log(1.0 - w_to_s))
    return int(min(max(1, k), max_iterations))
