# Andy Zhao
"""
Estimation event callbacks.

All callbacks run synchronously on the thread calling estimate(), while the
estimator is locked: any setter called from inside a callback raises
LockedError.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional


@dataclass
class EstimatorListener:
    on_estimate_start: Optional[Callable[[Any], None]] = None
    on_estimate_end: Optional[Callable[[Any], None]] = None
    on_estimate_next_iteration: Optional[Callable[[Any, int], None]] = None     # (estimator, iteration)
    on_estimate_progress_change: Optional[Callable[[Any, float], None]] = None  # (estimator, progress in [0, 1])
