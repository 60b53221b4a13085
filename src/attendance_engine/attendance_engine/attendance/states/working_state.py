from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from ...core.enums import BreakType, SessionState, VerificationStatus
from ...core.exceptions import ValidationError
from ...worktime.calculator.base import WorkTimeCalculator
from ..model import AttendanceSession, Break, SessionChange
from .base import PunchOutInput, SessionStateHandler


class WorkingStateHandler(SessionStateHandler):
    """ACTIVE and OUT_OF_RANGE: the employee is on the clock."""

    def start_break(self, session: AttendanceSession, *, break_type: BreakType, at: datetime) -> SessionChange:
        if at < session.punch_in_time:
            raise ValidationError("Break cannot start before punch-in")
        last_end = self.latest_break_end(session)
        if last_end is not None and at < last_end:
            raise ValidationError("Break cannot start before the previous break ended")

        new_break = Break(break_id=0, session_id=session.session_id, break_type=break_type, started_at=at)
        return SessionChange(
            session=replace(session, state=SessionState.ON_BREAK, breaks=session.breaks + (new_break,)),
            new_break=new_break,
        )

    def punch_out(
        self,
        session: AttendanceSession,
        *,
        punch: PunchOutInput,
        calculator: WorkTimeCalculator,
    ) -> SessionChange:
        durations = calculator.compute_durations(session.punch_in_time, punch.at, session.breaks)
        verification = session.verification_status
        if durations.needs_review:
            verification = VerificationStatus.NEEDS_REVIEW

        return SessionChange(
            session=replace(
                session,
                state=SessionState.COMPLETED,
                punch_out_time=punch.at,
                punch_out_point=punch.point,
                punch_out_method=punch.method,
                geofence_out_compliant=punch.geofence_compliant,
                durations=durations,
                verification_status=verification,
            )
        )
