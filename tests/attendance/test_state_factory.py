from datetime import datetime, timedelta

import pytest

from src.attendance_engine.attendance_engine.attendance.factory import SessionStateFactory
from src.attendance_engine.attendance_engine.attendance.model import AttendanceSession, Break
from src.attendance_engine.attendance_engine.attendance.states.base import PunchOutInput
from src.attendance_engine.attendance_engine.attendance.states.completed_state import CompletedStateHandler
from src.attendance_engine.attendance_engine.attendance.states.on_break_state import OnBreakStateHandler
from src.attendance_engine.attendance_engine.attendance.states.working_state import WorkingStateHandler
from src.attendance_engine.attendance_engine.core.enums import BreakType, PunchMethod, SessionState
from src.attendance_engine.attendance_engine.core.exceptions import (
    BreakAlreadyOpen,
    NoActiveSession,
    NoOpenBreak,
    OpenBreakPending,
    ValidationError,
)
from src.attendance_engine.attendance_engine.geofence.model import GeoPoint
from src.attendance_engine.attendance_engine.worktime.calculator.standard_calculator import (
    StandardWorkTimeCalculator,
)

POINT = GeoPoint(lat=37.5665, lng=126.978)
START = datetime(2025, 3, 10, 9, 0)


def _session(state=SessionState.ACTIVE, breaks=(), compliant=True):
    return AttendanceSession(
        session_id=1,
        employee_id=3,
        workplace_id=1,
        work_date=START.date(),
        punch_in_time=START,
        punch_in_point=POINT,
        punch_in_method=PunchMethod.MOBILE,
        geofence_in_compliant=compliant,
        state=state,
        breaks=tuple(breaks),
    )


def _punch(at):
    return PunchOutInput(at=at, point=POINT, method=PunchMethod.MOBILE, geofence_compliant=True)


@pytest.mark.parametrize(
    "state, handler_cls",
    [
        (SessionState.ACTIVE, WorkingStateHandler),
        (SessionState.OUT_OF_RANGE, WorkingStateHandler),
        (SessionState.ON_BREAK, OnBreakStateHandler),
        (SessionState.COMPLETED, CompletedStateHandler),
    ],
)
def test_factory_returns_handler_per_state(state, handler_cls):
    assert isinstance(SessionStateFactory().for_state(state), handler_cls)


def test_completed_rejects_everything():
    handler = CompletedStateHandler()
    session = _session(SessionState.COMPLETED)
    with pytest.raises(NoActiveSession):
        handler.start_break(session, break_type=BreakType.MEAL, at=START)
    with pytest.raises(NoOpenBreak):
        handler.end_break(session, at=START)
    with pytest.raises(NoActiveSession):
        handler.punch_out(session, punch=_punch(START), calculator=StandardWorkTimeCalculator())


def test_working_start_break_appends_open_break():
    change = WorkingStateHandler().start_break(_session(), break_type=BreakType.SHORT, at=START + timedelta(hours=2))

    assert change.session.state is SessionState.ON_BREAK
    assert change.new_break is change.session.breaks[-1]
    assert change.new_break.is_open


def test_break_may_not_overlap_previous_break():
    earlier = Break(
        break_id=7,
        session_id=1,
        break_type=BreakType.MEAL,
        started_at=START + timedelta(hours=3),
        ended_at=START + timedelta(hours=4),
        duration=timedelta(hours=1),
    )
    with pytest.raises(ValidationError):
        WorkingStateHandler().start_break(
            _session(breaks=[earlier]), break_type=BreakType.SHORT, at=START + timedelta(hours=3, minutes=30)
        )


def test_on_break_rejects_second_break_and_punch_out():
    open_break = Break(break_id=1, session_id=1, break_type=BreakType.MEAL, started_at=START + timedelta(hours=3))
    session = _session(SessionState.ON_BREAK, breaks=[open_break])
    handler = OnBreakStateHandler()

    with pytest.raises(BreakAlreadyOpen):
        handler.start_break(session, break_type=BreakType.SHORT, at=START + timedelta(hours=4))
    with pytest.raises(OpenBreakPending):
        handler.punch_out(session, punch=_punch(START + timedelta(hours=8)), calculator=StandardWorkTimeCalculator())


def test_end_break_returns_to_geofence_state():
    open_break = Break(break_id=1, session_id=1, break_type=BreakType.MEAL, started_at=START + timedelta(hours=3))
    session = _session(SessionState.ON_BREAK, breaks=[open_break], compliant=False)

    change = OnBreakStateHandler().end_break(session, at=START + timedelta(hours=3, minutes=40))
    assert change.session.state is SessionState.OUT_OF_RANGE
    assert change.closed_break.duration == timedelta(minutes=40)
    assert change.session.open_break is None


def test_punch_out_stores_durations():
    closed = Break(
        break_id=1,
        session_id=1,
        break_type=BreakType.MEAL,
        started_at=START + timedelta(hours=3),
        ended_at=START + timedelta(hours=4),
        duration=timedelta(hours=1),
    )
    change = WorkingStateHandler().punch_out(
        _session(breaks=[closed]),
        punch=_punch(START + timedelta(hours=10)),
        calculator=StandardWorkTimeCalculator(),
    )

    session = change.session
    assert session.state is SessionState.COMPLETED
    assert session.punch_out_time == START + timedelta(hours=10)
    assert session.durations.net == timedelta(hours=9)
    assert session.durations.overtime == timedelta(hours=1)
