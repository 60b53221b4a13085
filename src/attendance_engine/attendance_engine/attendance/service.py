from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence

from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import BreakType, PunchMethod, SessionState
from ..core.exceptions import (
    DuplicateSession,
    NoActiveSession,
    NoOpenBreak,
    OutsideGeofence,
    SessionNotFound,
    Unauthorized,
    UnknownEmployee,
    UnknownWorkplace,
    ValidationError,
)
from ..core.settings import EngineSettings
from ..employees.repository import EmployeeRepository
from ..events.publisher import (
    SESSION_BREAK_ENDED,
    SESSION_BREAK_STARTED,
    SESSION_PUNCHED_IN,
    SESSION_PUNCHED_OUT,
    EventPublisher,
)
from ..geofence.model import GeoPoint
from ..geofence.validator import GeofenceValidator
from ..worktime.calculator.base import WorkTimeCalculator
from ..worktime.calculator.standard_calculator import StandardWorkTimeCalculator
from .factory import SessionStateFactory
from .model import AttendanceSession, Break, NewSession, SessionChange, SessionSnapshot
from .repository import AttendanceRepository
from .states.base import PunchOutInput

logger = logging.getLogger(__name__)


class AttendanceService:
    """Punch-in/out lifecycle of attendance sessions.

    Every mutation runs inside ``AttendanceRepository.update_session`` (or the
    insert for punch-in), so validation and write share one transaction.
    Events are emitted only after that call returns.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        employees: EmployeeRepository,
        geofence: GeofenceValidator,
        *,
        state_factory: SessionStateFactory | None = None,
        calculator: WorkTimeCalculator | None = None,
        publisher: EventPublisher | None = None,
        settings: EngineSettings | None = None,
    ):
        self._attendance = attendance
        self._employees = employees
        self._geofence = geofence
        self._factory = state_factory or SessionStateFactory()
        self._calculator = calculator
        self._publisher = publisher or EventPublisher()
        self._settings = settings or EngineSettings()

    def _calculator_for(self, settings: EngineSettings) -> WorkTimeCalculator:
        if self._calculator is not None:
            return self._calculator
        return StandardWorkTimeCalculator(settings.standard_day)

    def _require_employee(self, employee_id: int):
        employee = self._employees.get_by_id(int(employee_id))
        if not employee or not employee.is_active:
            raise UnknownEmployee()
        return employee

    def _require_session(self, session_id: int, *, employee_id: int | None) -> AttendanceSession:
        session = self._attendance.get_by_id(int(session_id))
        if not session:
            raise SessionNotFound()
        if employee_id is not None and session.employee_id != int(employee_id):
            raise Unauthorized("Session belongs to another employee")
        return session

    # -------- commands --------
    def punch_in(
        self,
        employee_id: int,
        workplace_id: int,
        point: GeoPoint,
        *,
        method: PunchMethod = PunchMethod.MOBILE,
        now: datetime | None = None,
        settings: EngineSettings | None = None,
    ) -> AttendanceSession:
        now = now or datetime.now()
        settings = settings or self._settings
        self._require_employee(employee_id)

        check = self._geofence.verify_location(point, int(workplace_id), method=method)
        if not check.compliant:
            if settings.geofence_strict:
                logger.warning(
                    "punch-in rejected: employee=%s workplace=%s distance=%s",
                    employee_id,
                    workplace_id,
                    check.distance_meters,
                )
                raise OutsideGeofence()
            logger.warning("punch-in outside geofence: employee=%s workplace=%s", employee_id, workplace_id)

        open_session = self._attendance.get_open_for_employee(int(employee_id))
        if open_session and open_session.work_date != now.date():
            raise DuplicateSession("An earlier session is still open; punch out first")

        session = self._attendance.create_session(
            NewSession(
                employee_id=int(employee_id),
                workplace_id=int(workplace_id),
                work_date=now.date(),
                punch_in_time=now,
                punch_in_point=point,
                punch_in_method=method,
                geofence_in_compliant=check.compliant,
                state=SessionState.ACTIVE if check.compliant else SessionState.OUT_OF_RANGE,
            )
        )
        logger.info("punched in: session=%s employee=%s state=%s", session.session_id, employee_id, session.state.value)

        self._publisher.emit(
            SESSION_PUNCHED_IN,
            {
                "session_id": session.session_id,
                "employee_id": session.employee_id,
                "workplace_id": session.workplace_id,
                "at": session.punch_in_time,
                "geofence_compliant": session.geofence_in_compliant,
            },
        )
        return session

    def start_break(
        self,
        session_id: int,
        break_type: BreakType,
        *,
        employee_id: int | None = None,
        now: datetime | None = None,
    ) -> Break:
        now = now or datetime.now()
        self._require_session(session_id, employee_id=employee_id)

        def mutate(session: AttendanceSession) -> SessionChange:
            return self._factory.for_state(session.state).start_break(session, break_type=break_type, at=now)

        change = self._attendance.update_session(int(session_id), mutate)
        started = change.new_break
        logger.info("break started: session=%s break=%s type=%s", session_id, started.break_id, break_type.value)

        self._publisher.emit(
            SESSION_BREAK_STARTED,
            {
                "session_id": change.session.session_id,
                "employee_id": change.session.employee_id,
                "break_id": started.break_id,
                "break_type": started.break_type.value,
                "at": started.started_at,
            },
        )
        return started

    def end_break(
        self,
        session_id: int,
        *,
        employee_id: int | None = None,
        now: datetime | None = None,
    ) -> Break:
        now = now or datetime.now()
        self._require_session(session_id, employee_id=employee_id)
        return self._end_break(int(session_id), break_id=None, now=now)

    def end_break_by_id(
        self,
        break_id: int,
        *,
        employee_id: int | None = None,
        now: datetime | None = None,
    ) -> Break:
        now = now or datetime.now()
        session = self._attendance.get_by_break_id(int(break_id))
        if not session:
            raise NoOpenBreak("Break does not exist")
        if employee_id is not None and session.employee_id != int(employee_id):
            raise Unauthorized("Break belongs to another employee")
        return self._end_break(session.session_id, break_id=int(break_id), now=now)

    def _end_break(self, session_id: int, *, break_id: int | None, now: datetime) -> Break:
        def mutate(session: AttendanceSession) -> SessionChange:
            open_break = session.open_break
            if break_id is not None and (open_break is None or open_break.break_id != break_id):
                raise NoOpenBreak("Break is not in progress")
            return self._factory.for_state(session.state).end_break(session, at=now)

        change = self._attendance.update_session(session_id, mutate)
        closed = change.closed_break
        logger.info(
            "break ended: session=%s break=%s duration=%s exceeded=%s",
            session_id,
            closed.break_id,
            closed.duration,
            closed.exceeded,
        )
        if change.session.needs_review:
            logger.warning("session %s flagged for review (break clock skew)", session_id)

        self._publisher.emit(
            SESSION_BREAK_ENDED,
            {
                "session_id": change.session.session_id,
                "employee_id": change.session.employee_id,
                "break_id": closed.break_id,
                "duration_seconds": int(closed.duration.total_seconds()),
                "exceeded": closed.exceeded,
                "at": closed.ended_at,
            },
        )
        return closed

    def punch_out(
        self,
        employee_id: int,
        point: GeoPoint,
        *,
        method: PunchMethod = PunchMethod.MOBILE,
        now: datetime | None = None,
        settings: EngineSettings | None = None,
    ) -> AttendanceSession:
        now = now or datetime.now()
        settings = settings or self._settings

        open_session = self._attendance.get_open_for_employee(int(employee_id))
        if not open_session:
            raise NoActiveSession()

        try:
            compliant = self._geofence.is_within_any_active_zone(point, open_session.workplace_id, method=method)
        except UnknownWorkplace:
            logger.warning("workplace %s no longer active at punch-out", open_session.workplace_id)
            compliant = False
        if not compliant:
            logger.warning("punch-out outside geofence: employee=%s session=%s", employee_id, open_session.session_id)

        punch = PunchOutInput(at=now, point=point, method=method, geofence_compliant=compliant)
        calculator = self._calculator_for(settings)

        def mutate(session: AttendanceSession) -> SessionChange:
            return self._factory.for_state(session.state).punch_out(session, punch=punch, calculator=calculator)

        session = self._attendance.update_session(open_session.session_id, mutate).session
        d = session.durations
        logger.info(
            "punched out: session=%s employee=%s net=%s overtime=%s",
            session.session_id,
            employee_id,
            d.net,
            d.overtime,
        )
        if session.needs_review:
            logger.warning("session %s flagged for review", session.session_id)

        self._publisher.emit(
            SESSION_PUNCHED_OUT,
            {
                "session_id": session.session_id,
                "employee_id": session.employee_id,
                "at": session.punch_out_time,
                "net_seconds": int(d.net.total_seconds()),
                "overtime_seconds": int(d.overtime.total_seconds()),
                "needs_review": session.needs_review,
            },
        )
        return session

    # -------- queries --------
    def current_status(
        self,
        employee_id: int,
        *,
        now: datetime | None = None,
        settings: EngineSettings | None = None,
    ) -> Optional[SessionSnapshot]:
        """Read-only view; never use it to decide a mutation."""

        now = now or datetime.now()
        settings = settings or self._settings

        session = self._attendance.get_open_for_employee(int(employee_id))
        if session:
            # Provisionally close the running break so on-break time is not counted as work.
            breaks = [b.close(now) if b.is_open else b for b in session.breaks]
            durations = self._calculator_for(settings).compute_durations(session.punch_in_time, now, breaks)
            open_break = session.open_break
            return _snapshot(
                session,
                durations=durations,
                on_break_since=open_break.started_at if open_break else None,
                provisional=True,
            )

        session = self._attendance.get_for_employee_and_date(int(employee_id), now.date())
        if session:
            return _snapshot(session, durations=session.durations, on_break_since=None, provisional=False)
        return None

    def history(self, employee_id: int, limit: int = DEFAULT_HISTORY_LIMIT) -> Sequence[AttendanceSession]:
        if int(limit) <= 0:
            raise ValidationError("Limit must be positive")
        return self._attendance.get_recent_for_employee(int(employee_id), int(limit))


def _snapshot(session: AttendanceSession, *, durations, on_break_since, provisional: bool) -> SessionSnapshot:
    return SessionSnapshot(
        session_id=session.session_id,
        employee_id=session.employee_id,
        workplace_id=session.workplace_id,
        work_date=session.work_date,
        state=session.state,
        punch_in_time=session.punch_in_time,
        punch_out_time=session.punch_out_time,
        geofence_in_compliant=session.geofence_in_compliant,
        on_break_since=on_break_since,
        durations=durations,
        provisional=provisional,
    )
