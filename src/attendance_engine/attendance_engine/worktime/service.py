from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta

from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import to_hours
from ..common.validators import require_date_range
from ..core.enums import SessionState
from .calculator.base import ZERO


@dataclass(frozen=True)
class EmployeeStats:
    employee_id: int
    start: date
    end: date
    days_attended: int
    total_net_hours: float
    average_net_hours: float
    total_overtime_hours: float
    flagged_for_review: int


class AttendanceStatsService:
    """Aggregates stored durations; only completed sessions count toward hours."""

    def __init__(self, attendance: AttendanceRepository):
        self._attendance = attendance

    def employee_stats(self, employee_id: int, start: date, end: date) -> EmployeeStats:
        require_date_range(start, end)
        sessions = self._attendance.get_range_for_employee(int(employee_id), start, end)

        completed = [s for s in sessions if s.state is SessionState.COMPLETED]
        net = sum((s.durations.net for s in completed), timedelta())
        overtime = sum((s.durations.overtime for s in completed), timedelta())
        average = net / len(completed) if completed else ZERO

        return EmployeeStats(
            employee_id=int(employee_id),
            start=start,
            end=end,
            days_attended=len({s.work_date for s in sessions}),
            total_net_hours=to_hours(net),
            average_net_hours=to_hours(average),
            total_overtime_hours=to_hours(overtime),
            flagged_for_review=sum(1 for s in sessions if s.needs_review),
        )
