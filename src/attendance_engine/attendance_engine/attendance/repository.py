from __future__ import annotations

from datetime import date
from typing import Callable, Optional, Protocol, Sequence

from .model import AttendanceSession, NewSession, SessionChange

SessionMutation = Callable[[AttendanceSession], SessionChange]


class AttendanceRepository(Protocol):
    def get_by_id(self, session_id: int) -> Optional[AttendanceSession]:
        raise NotImplementedError

    def get_by_break_id(self, break_id: int) -> Optional[AttendanceSession]:
        raise NotImplementedError

    def get_for_employee_and_date(self, employee_id: int, work_date: date) -> Optional[AttendanceSession]:
        raise NotImplementedError

    def get_open_for_employee(self, employee_id: int) -> Optional[AttendanceSession]:
        """Most recent session not yet completed (may start on an earlier date)."""

        raise NotImplementedError

    def get_recent_for_employee(self, employee_id: int, limit: int) -> Sequence[AttendanceSession]:
        raise NotImplementedError

    def get_range_for_employee(self, employee_id: int, start: date, end: date) -> Sequence[AttendanceSession]:
        raise NotImplementedError

    def create_session(self, new: NewSession) -> AttendanceSession:
        """Insert a session; raises DuplicateSession when (employee, date) exists."""

        raise NotImplementedError

    def update_session(self, session_id: int, mutate: SessionMutation) -> SessionChange:
        """Run ``mutate`` on the locked session and persist its result atomically.

        Domain errors raised by ``mutate`` roll the transaction back.
        """

        raise NotImplementedError
