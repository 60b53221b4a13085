from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Protocol, Sequence


class BreakInterval(Protocol):
    started_at: datetime
    ended_at: Optional[datetime]


@dataclass(frozen=True)
class WorkDurations:
    total: timedelta
    break_time: timedelta
    net: timedelta
    overtime: timedelta
    needs_review: bool = False


ZERO = timedelta(0)


class WorkTimeCalculator(ABC):
    """Calculator interface (Strategy Pattern for work time)."""

    @abstractmethod
    def compute_durations(
        self,
        punch_in: datetime,
        punch_out: Optional[datetime],
        breaks: Sequence[BreakInterval],
    ) -> WorkDurations:
        raise NotImplementedError
