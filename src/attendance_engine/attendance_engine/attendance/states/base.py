from __future__ import annotations

from abc import ABC
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ...core.enums import BreakType, PunchMethod
from ...core.exceptions import NoActiveSession, NoOpenBreak
from ...geofence.model import GeoPoint
from ...worktime.calculator.base import WorkTimeCalculator
from ..model import AttendanceSession, SessionChange


@dataclass(frozen=True)
class PunchOutInput:
    at: datetime
    point: GeoPoint
    method: PunchMethod
    geofence_compliant: bool


class SessionStateHandler(ABC):
    """State Pattern: one handler per session state.

    Each handler returns the next session value; the repository persists it
    inside the same transaction that loaded the session. The defaults reject
    the transition, so a handler only overrides what its state allows.
    """

    def start_break(self, session: AttendanceSession, *, break_type: BreakType, at: datetime) -> SessionChange:
        raise NoActiveSession()

    def end_break(self, session: AttendanceSession, *, at: datetime) -> SessionChange:
        raise NoOpenBreak()

    def punch_out(
        self,
        session: AttendanceSession,
        *,
        punch: PunchOutInput,
        calculator: WorkTimeCalculator,
    ) -> SessionChange:
        raise NoActiveSession()

    @staticmethod
    def latest_break_end(session: AttendanceSession) -> Optional[datetime]:
        ends = [b.ended_at for b in session.breaks if b.ended_at is not None]
        return max(ends) if ends else None
