from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional, Sequence

from ...core.constants import DEFAULT_STANDARD_DAY_HOURS
from .base import ZERO, BreakInterval, WorkDurations, WorkTimeCalculator


class StandardWorkTimeCalculator(WorkTimeCalculator):
    """Standard rule: net = (out - in) - closed breaks, overtime past the standard day.

    Break intervals are clipped to [punch_in, punch_out] so break time never
    exceeds total time. Clock skew (out before in) and any clipping zero out
    the affected span and set ``needs_review`` instead of raising.
    """

    def __init__(self, standard_day: timedelta = timedelta(hours=DEFAULT_STANDARD_DAY_HOURS)):
        self._standard_day = standard_day

    def compute_durations(
        self,
        punch_in: datetime,
        punch_out: Optional[datetime],
        breaks: Sequence[BreakInterval],
    ) -> WorkDurations:
        if punch_out is None:
            return WorkDurations(total=ZERO, break_time=ZERO, net=ZERO, overtime=ZERO)

        if punch_out < punch_in:
            return WorkDurations(total=ZERO, break_time=ZERO, net=ZERO, overtime=ZERO, needs_review=True)

        total = punch_out - punch_in
        break_time = ZERO
        needs_review = False

        for b in breaks:
            if b.ended_at is None:
                # Open break contributes nothing until closed.
                continue
            start = max(b.started_at, punch_in)
            end = min(b.ended_at, punch_out)
            if start != b.started_at or end != b.ended_at:
                needs_review = True
            if end > start:
                break_time += end - start

        break_time = min(break_time, total)
        net = max(total - break_time, ZERO)
        overtime = max(net - self._standard_day, ZERO)
        return WorkDurations(
            total=total,
            break_time=break_time,
            net=net,
            overtime=overtime,
            needs_review=needs_review,
        )


def compute_durations(
    punch_in: datetime,
    punch_out: Optional[datetime],
    breaks: Sequence[BreakInterval],
    *,
    standard_day: timedelta = timedelta(hours=DEFAULT_STANDARD_DAY_HOURS),
) -> WorkDurations:
    return StandardWorkTimeCalculator(standard_day).compute_durations(punch_in, punch_out, breaks)
