# Andy Zhao
"""
Minimal sample selection.

Two strategies:

- Uniform: every minimal sample is drawn uniformly without replacement from
  all N correspondences (RANSAC / LMedS / MSAC).

- PROSAC growing window (PROSAC / PROMedS): correspondences are sorted once by
  descending quality score, and at iteration t samples are only drawn from the
  first n(t) sorted correspondences. The window n(t) grows with t following
  the schedule of Chum & Matas ("Matching with PROSAC", CVPR 2005):

      T_m       = T_N * prod_{i=0}^{m-1} (m - i) / (N - i)
      T_{n+1}   = T_n * (n + 1) / (n + 1 - m)
      T'_{n+1}  = T'_n + ceil(T_{n+1} - T_n),   T'_m = 1

  The window is enlarged to n+1 once t > T'_n. When the window reaches N the
  sampler is equivalent to uniform sampling.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from .types import FloatArray, IndexArray

DEFAULT_GROWTH_MAX_SAMPLES = 200000


def uniform_sample(rng: np.random.Generator, n: int, sample_size: int) -> IndexArray:
    """Unique indices in [0, n), no replacement."""
    if sample_size > n:
        raise ValueError(f"Cannot draw {sample_size} samples from {n} correspondences")
    return rng.choice(n, size=sample_size, replace=False)


def sort_by_quality(quality_scores: FloatArray) -> IndexArray:
    """
    Indices of correspondences sorted by descending quality.
    Stable: equal scores keep their original order.
    """
    q = np.asarray(quality_scores, dtype=np.float64).reshape(-1)
    return np.argsort(-q, kind="stable")


def prosac_schedule(
        n: int,
        sample_size: int,
        growth_max_samples: int = DEFAULT_GROWTH_MAX_SAMPLES,
) -> np.ndarray:
    """
    Growth function T'_k for window sizes k = sample_size .. n.

    Returns an int64 array `sched` with sched[k - sample_size] = T'_k.
    Non-decreasing, sched[0] == 1.
    """
    m = int(sample_size)
    if m < 1:
        raise ValueError("sample_size must be >= 1")
    if n < m:
        raise ValueError(f"Need at least {m} correspondences, got {n}")

    # T_m = T_N * prod_{i<m} (m - i) / (N - i), computed in log space
    log_tn = math.log(float(growth_max_samples))
    for i in range(m):
        log_tn += math.log(float(m - i)) - math.log(float(n - i))
    t_n = math.exp(log_tn)

    sched = np.empty((n - m + 1,), dtype=np.int64)
    t_prime = 1
    sched[0] = t_prime
    for k in range(m, n):
        t_next = t_n * (k + 1) / float(k + 1 - m)
        t_prime += int(math.ceil(t_next - t_n))
        sched[k - m + 1] = t_prime
        t_n = t_next
    return sched


def prosac_window_size(
        iteration: int,
        n: int,
        sample_size: int,
        growth_max_samples: int = DEFAULT_GROWTH_MAX_SAMPLES,
        *,
        schedule: Optional[np.ndarray] = None,
) -> int:
    """
    Size of the sampling window at a given (1-based) iteration.

    Grows monotonically with the iteration, starts at sample_size and
    saturates at n.
    """
    m = int(sample_size)
    if schedule is None:
        schedule = prosac_schedule(n, m, growth_max_samples)

    # Window k is in use while iteration <= T'_k; enlarge once t > T'_k.
    # First k with T'_k >= iteration:
    pos = int(np.searchsorted(schedule, max(1, int(iteration)), side="left"))
    return int(min(m + pos, n))


def sample_from_prefix(
        rng: np.random.Generator,
        sorted_indices: IndexArray,
        window_size: int,
        sample_size: int,
        *,
        include_last: bool = False,
) -> IndexArray:
    """
    Draw sample_size distinct indices among the first window_size entries of
    sorted_indices.

    include_last=True forces the newest element of the window into the sample
    and draws the remaining sample_size - 1 from the rest of the window
    (the PROSAC rule while the window has just grown).
    """
    window = int(min(window_size, sorted_indices.shape[0]))
    if sample_size > window:
        raise ValueError(f"Window of {window} cannot hold a sample of {sample_size}")

    if include_last and sample_size > 1 and window > sample_size:
        rest = rng.choice(window - 1, size=sample_size - 1, replace=False)
        picks = np.append(rest, window - 1)
    else:
        picks = rng.choice(window, size=sample_size, replace=False)
    return sorted_indices[picks]


# ---------- Samplers used by the consensus loop ----------
@dataclass
class UniformSampler:
    """Uniform minimal samples over all correspondences."""
    rng: np.random.Generator
    n: int
    sample_size: int

    def draw(self, iteration: int) -> IndexArray:
        return uniform_sample(self.rng, self.n, self.sample_size)


@dataclass
class ProsacSampler:
    """
    Quality-biased growing-window sampler.

    iteration is the 1-based index of the hypothesis being generated; the
    quality ordering and growth schedule are computed once per run.
    """
    rng: np.random.Generator
    quality_scores: FloatArray
    sample_size: int
    growth_max_samples: int = DEFAULT_GROWTH_MAX_SAMPLES

    _order: IndexArray = field(init=False)
    _schedule: np.ndarray = field(init=False)

    def __post_init__(self) -> None:
        self._order = sort_by_quality(self.quality_scores)
        self._schedule = prosac_schedule(
            int(self._order.shape[0]), self.sample_size, self.growth_max_samples)

    @property
    def order(self) -> IndexArray:
        return self._order

    def window_size(self, iteration: int) -> int:
        return prosac_window_size(
            iteration, int(self._order.shape[0]), self.sample_size,
            schedule=self._schedule)

    def draw(self, iteration: int) -> IndexArray:
        window = self.window_size(iteration)

        # While t <= T'_n the newest correspondence of the window is always tried.
        # Past the end of the schedule the sampler degrades to uniform sampling.
        newest = window > self.sample_size and (
            int(self._schedule[window - self.sample_size]) >= iteration)
        return sample_from_prefix(
            self.rng, self._order, window, self.sample_size, include_last=newest)
