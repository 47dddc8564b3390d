"""Milestone detection against a call's baseline price."""

import math
from typing import Iterable, Sequence

from call_bot.tracking.models import MilestoneConvention

MILESTONES: tuple[float, ...] = (2, 3, 4, 5, 10, 20, 50)


def performance(
    baseline: float,
    current: float,
    convention: MilestoneConvention = MilestoneConvention.MULTIPLIER,
) -> float | None:
    """Multiplier (``4.5`` = 4.5x) or percent change (``350.0`` = +350%).

    None when the baseline can't be divided by.
    """
    if not math.isfinite(baseline) or not math.isfinite(current) or baseline <= 0:
        return None
    if convention is MilestoneConvention.PERCENT:
        return (current - baseline) / baseline * 100.0
    return current / baseline


def evaluate(
    baseline: float,
    current: float,
    achieved: Iterable[float],
    thresholds: Sequence[float] = MILESTONES,
    convention: MilestoneConvention = MilestoneConvention.MULTIPLIER,
) -> list[float]:
    """Thresholds crossed by *current* and not yet in *achieved*, ascending."""
    perf = performance(baseline, current, convention)
    if perf is None:
        return []
    done = set(achieved)
    crossed = []
    for m in thresholds:
        if perf < m:
            break
        if m not in done:
            crossed.append(m)
    return crossed
