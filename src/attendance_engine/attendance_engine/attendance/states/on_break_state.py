from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from ...core.enums import BreakType, VerificationStatus
from ...core.exceptions import BreakAlreadyOpen, NoOpenBreak, OpenBreakPending
from ...worktime.calculator.base import WorkTimeCalculator
from ..model import AttendanceSession, SessionChange
from .base import PunchOutInput, SessionStateHandler


class OnBreakStateHandler(SessionStateHandler):
    """ON_BREAK: exactly one open break; punch-out waits until it ends."""

    def start_break(self, session: AttendanceSession, *, break_type: BreakType, at: datetime) -> SessionChange:
        raise BreakAlreadyOpen()

    def end_break(self, session: AttendanceSession, *, at: datetime) -> SessionChange:
        open_break = session.open_break
        if open_break is None:
            raise NoOpenBreak()

        closed = open_break.close(at)
        verification = session.verification_status
        if at < open_break.started_at:
            # Device clock went backwards: zero-length break, flagged for review.
            verification = VerificationStatus.NEEDS_REVIEW

        breaks = tuple(closed if b.break_id == open_break.break_id else b for b in session.breaks)
        return SessionChange(
            session=replace(
                session,
                state=session.working_state,
                breaks=breaks,
                verification_status=verification,
            ),
            closed_break=closed,
        )

    def punch_out(
        self,
        session: AttendanceSession,
        *,
        punch: PunchOutInput,
        calculator: WorkTimeCalculator,
    ) -> SessionChange:
        raise OpenBreakPending()
