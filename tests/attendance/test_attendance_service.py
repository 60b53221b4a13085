from datetime import timedelta

import pytest

from src.attendance_engine.attendance_engine.core.enums import (
    BreakType,
    PunchMethod,
    SessionState,
    VerificationStatus,
)
from src.attendance_engine.attendance_engine.core.exceptions import (
    BreakAlreadyOpen,
    DuplicateSession,
    NoActiveSession,
    NoOpenBreak,
    OpenBreakPending,
    OutsideGeofence,
    SessionNotFound,
    Unauthorized,
    UnknownEmployee,
    UnknownWorkplace,
    ValidationError,
)
from src.attendance_engine.attendance_engine.core.settings import EngineSettings
from src.attendance_engine.attendance_engine.geofence.model import GeoPoint

OFFICE = GeoPoint(lat=37.5665, lng=126.978)
FAR_AWAY = GeoPoint(lat=37.60, lng=126.978)


def _day(fixed_now, hour, minute=0):
    return fixed_now.replace(hour=hour, minute=minute)


def test_scenario_a_full_day(engine, fixed_now):
    svc = engine.attendance_service
    session = svc.punch_in(3, 1, OFFICE, now=_day(fixed_now, 9))
    assert session.state is SessionState.ACTIVE
    assert session.geofence_in_compliant is True

    started = svc.start_break(session.session_id, BreakType.MEAL, now=_day(fixed_now, 12))
    assert started.break_id > 0
    closed = svc.end_break(session.session_id, now=_day(fixed_now, 12, 30))
    assert closed.duration == timedelta(minutes=30)
    assert closed.exceeded is False

    done = svc.punch_out(3, OFFICE, now=_day(fixed_now, 17, 30))
    assert done.state is SessionState.COMPLETED
    assert done.durations.total == timedelta(hours=8.5)
    assert done.durations.break_time == timedelta(minutes=30)
    assert done.durations.net == timedelta(hours=8)
    assert done.durations.overtime == timedelta(0)
    assert done.geofence_out_compliant is True


def test_scenario_b_overtime(engine, fixed_now):
    svc = engine.attendance_service
    session = svc.punch_in(3, 1, OFFICE, now=_day(fixed_now, 9))
    svc.start_break(session.session_id, BreakType.MEAL, now=_day(fixed_now, 12))
    svc.end_break(session.session_id, now=_day(fixed_now, 12, 30))

    done = svc.punch_out(3, OFFICE, now=_day(fixed_now, 19))
    assert done.durations.net == timedelta(hours=9.5)
    assert done.durations.overtime == timedelta(hours=1.5)


def test_scenario_c_second_punch_in_same_day(engine, fixed_now):
    svc = engine.attendance_service
    svc.punch_in(3, 1, OFFICE, now=_day(fixed_now, 9))
    with pytest.raises(DuplicateSession):
        svc.punch_in(3, 1, OFFICE, now=_day(fixed_now, 10))


def test_punch_in_again_after_completing_day_is_rejected(engine, fixed_now):
    svc = engine.attendance_service
    svc.punch_in(3, 1, OFFICE, now=_day(fixed_now, 9))
    svc.punch_out(3, OFFICE, now=_day(fixed_now, 17))
    with pytest.raises(DuplicateSession):
        svc.punch_in(3, 1, OFFICE, now=_day(fixed_now, 18))


def test_scenario_d_punch_out_with_open_break(engine, fakes, fixed_now):
    svc = engine.attendance_service
    session = svc.punch_in(3, 1, OFFICE, now=_day(fixed_now, 9))
    svc.start_break(session.session_id, BreakType.SHORT, now=_day(fixed_now, 15))

    with pytest.raises(OpenBreakPending):
        svc.punch_out(3, OFFICE, now=_day(fixed_now, 17))
    assert fakes.attendance.get_by_id(session.session_id).state is SessionState.ON_BREAK


def test_outside_geofence_is_recorded_when_not_strict(engine, fixed_now):
    session = engine.attendance_service.punch_in(3, 1, FAR_AWAY, now=fixed_now)

    assert session.state is SessionState.OUT_OF_RANGE
    assert session.geofence_in_compliant is False


def test_outside_geofence_rejected_in_strict_mode(engine, fakes, fixed_now):
    with pytest.raises(OutsideGeofence):
        engine.attendance_service.punch_in(
            3, 1, FAR_AWAY, now=fixed_now, settings=EngineSettings(geofence_strict=True)
        )
    assert fakes.attendance.sessions == {}


def test_break_from_out_of_range_returns_to_out_of_range(engine, fixed_now):
    svc = engine.attendance_service
    session = svc.punch_in(3, 1, FAR_AWAY, now=_day(fixed_now, 9))
    svc.start_break(session.session_id, BreakType.REST, now=_day(fixed_now, 10))
    svc.end_break(session.session_id, now=_day(fixed_now, 10, 10))

    assert engine.attendance_repo.get_by_id(session.session_id).state is SessionState.OUT_OF_RANGE


def test_unknown_workplace_and_employee(engine, fixed_now):
    svc = engine.attendance_service
    with pytest.raises(UnknownWorkplace):
        svc.punch_in(3, 3, OFFICE, now=fixed_now)
    with pytest.raises(UnknownEmployee):
        svc.punch_in(6, 1, OFFICE, now=fixed_now)


def test_second_open_break_rejected(engine, fixed_now):
    svc = engine.attendance_service
    session = svc.punch_in(3, 1, OFFICE, now=_day(fixed_now, 9))
    svc.start_break(session.session_id, BreakType.MEAL, now=_day(fixed_now, 12))

    with pytest.raises(BreakAlreadyOpen):
        svc.start_break(session.session_id, BreakType.SHORT, now=_day(fixed_now, 12, 5))


def test_end_break_without_open_break(engine, fixed_now):
    session = engine.attendance_service.punch_in(3, 1, OFFICE, now=fixed_now)
    with pytest.raises(NoOpenBreak):
        engine.attendance_service.end_break(session.session_id, now=fixed_now + timedelta(hours=1))


def test_break_on_completed_session(engine, fixed_now):
    svc = engine.attendance_service
    session = svc.punch_in(3, 1, OFFICE, now=_day(fixed_now, 9))
    svc.punch_out(3, OFFICE, now=_day(fixed_now, 17))

    with pytest.raises(NoActiveSession):
        svc.start_break(session.session_id, BreakType.MEAL, now=_day(fixed_now, 18))


def test_break_on_missing_session(engine, fixed_now):
    with pytest.raises(SessionNotFound):
        engine.attendance_service.start_break(404, BreakType.MEAL, now=fixed_now)


def test_punch_out_without_session(engine, fixed_now):
    with pytest.raises(NoActiveSession):
        engine.attendance_service.punch_out(3, OFFICE, now=fixed_now)


def test_break_cannot_start_before_punch_in(engine, fixed_now):
    session = engine.attendance_service.punch_in(3, 1, OFFICE, now=_day(fixed_now, 9))
    with pytest.raises(ValidationError):
        engine.attendance_service.start_break(session.session_id, BreakType.MEAL, now=_day(fixed_now, 8))


def test_end_break_by_id(engine, fixed_now):
    svc = engine.attendance_service
    session = svc.punch_in(3, 1, OFFICE, now=_day(fixed_now, 9))
    started = svc.start_break(session.session_id, BreakType.REST, now=_day(fixed_now, 10), employee_id=3)

    closed = svc.end_break_by_id(started.break_id, now=_day(fixed_now, 10, 45), employee_id=3)
    assert closed.break_id == started.break_id
    assert closed.duration == timedelta(minutes=45)
    assert closed.exceeded is True

    with pytest.raises(NoOpenBreak):
        svc.end_break_by_id(started.break_id, now=_day(fixed_now, 11))


def test_other_employee_cannot_touch_session(engine, fixed_now):
    svc = engine.attendance_service
    session = svc.punch_in(3, 1, OFFICE, now=fixed_now)
    with pytest.raises(Unauthorized):
        svc.start_break(session.session_id, BreakType.MEAL, now=fixed_now, employee_id=4)


def test_break_clock_skew_flags_review(engine, fixed_now):
    svc = engine.attendance_service
    session = svc.punch_in(3, 1, OFFICE, now=_day(fixed_now, 9))
    svc.start_break(session.session_id, BreakType.MEAL, now=_day(fixed_now, 12))

    closed = svc.end_break(session.session_id, now=_day(fixed_now, 11, 50))
    assert closed.duration == timedelta(0)

    stored = engine.attendance_repo.get_by_id(session.session_id)
    assert stored.state is SessionState.ACTIVE
    assert stored.verification_status is VerificationStatus.NEEDS_REVIEW


def test_punch_out_clock_skew_flags_review(engine, fixed_now):
    svc = engine.attendance_service
    svc.punch_in(3, 1, OFFICE, now=_day(fixed_now, 9))

    done = svc.punch_out(3, OFFICE, now=_day(fixed_now, 8))
    assert done.state is SessionState.COMPLETED
    assert done.durations.total == timedelta(0)
    assert done.verification_status is VerificationStatus.NEEDS_REVIEW


def test_punch_out_records_location_compliance_only(engine, fixed_now):
    svc = engine.attendance_service
    svc.punch_in(3, 1, OFFICE, now=_day(fixed_now, 9))

    done = svc.punch_out(
        3,
        FAR_AWAY,
        method=PunchMethod.WEB,
        now=_day(fixed_now, 17),
        settings=EngineSettings(geofence_strict=True),
    )
    assert done.geofence_out_compliant is False
    assert done.punch_out_method is PunchMethod.WEB


def test_standard_day_override(engine, fixed_now):
    svc = engine.attendance_service
    svc.punch_in(3, 1, OFFICE, now=_day(fixed_now, 9))
    done = svc.punch_out(3, OFFICE, now=_day(fixed_now, 17), settings=EngineSettings(standard_day_hours=7))

    assert done.durations.overtime == timedelta(hours=1)


def test_current_status_live_snapshot(engine, fixed_now):
    svc = engine.attendance_service
    assert svc.current_status(3, now=fixed_now) is None

    session = svc.punch_in(3, 1, OFFICE, now=_day(fixed_now, 9))
    svc.start_break(session.session_id, BreakType.MEAL, now=_day(fixed_now, 12))

    snap = svc.current_status(3, now=_day(fixed_now, 12, 20))
    assert snap.is_active is True
    assert snap.provisional is True
    assert snap.state is SessionState.ON_BREAK
    assert snap.on_break_since == _day(fixed_now, 12)
    assert snap.durations.total == timedelta(hours=3, minutes=20)
    assert snap.durations.net == timedelta(hours=3)


def test_current_status_after_punch_out(engine, fixed_now):
    svc = engine.attendance_service
    svc.punch_in(3, 1, OFFICE, now=_day(fixed_now, 9))
    svc.punch_out(3, OFFICE, now=_day(fixed_now, 17))

    snap = svc.current_status(3, now=_day(fixed_now, 18))
    assert snap.is_active is False
    assert snap.provisional is False
    assert snap.durations.net == timedelta(hours=8)


def test_current_status_does_not_mutate(engine, fakes, fixed_now):
    svc = engine.attendance_service
    session = svc.punch_in(3, 1, OFFICE, now=_day(fixed_now, 9))
    before = fakes.attendance.get_by_id(session.session_id)

    svc.current_status(3, now=_day(fixed_now, 11))
    assert fakes.attendance.get_by_id(session.session_id) == before


def test_open_session_from_previous_day_blocks_new_punch_in(engine, fixed_now):
    svc = engine.attendance_service
    svc.punch_in(3, 1, OFFICE, now=_day(fixed_now, 22))
    with pytest.raises(DuplicateSession):
        svc.punch_in(3, 1, OFFICE, now=_day(fixed_now, 9) + timedelta(days=1))

    done = svc.punch_out(3, OFFICE, now=_day(fixed_now, 6) + timedelta(days=1))
    assert done.durations.total == timedelta(hours=8)


def test_history_newest_first(engine, fixed_now):
    svc = engine.attendance_service
    for offset in range(3):
        day = fixed_now + timedelta(days=offset)
        svc.punch_in(3, 1, OFFICE, now=day)
        svc.punch_out(3, OFFICE, now=day + timedelta(hours=8))

    history = svc.history(3, limit=2)
    assert [s.work_date for s in history] == [
        (fixed_now + timedelta(days=2)).date(),
        (fixed_now + timedelta(days=1)).date(),
    ]
    with pytest.raises(ValidationError):
        svc.history(3, limit=0)


def test_events_follow_committed_transitions(engine, fixed_now, received_events):
    svc = engine.attendance_service
    session = svc.punch_in(3, 1, OFFICE, now=_day(fixed_now, 9))
    svc.start_break(session.session_id, BreakType.MEAL, now=_day(fixed_now, 12))
    svc.end_break(session.session_id, now=_day(fixed_now, 12, 30))
    svc.punch_out(3, OFFICE, now=_day(fixed_now, 17))

    assert [name for name, _ in received_events] == [
        "session.punched-in",
        "session.break-started",
        "session.break-ended",
        "session.punched-out",
    ]
    assert received_events[-1][1]["net_seconds"] == int(timedelta(hours=7, minutes=30).total_seconds())


def test_failed_transition_emits_nothing(engine, fixed_now, received_events):
    with pytest.raises(NoActiveSession):
        engine.attendance_service.punch_out(3, OFFICE, now=fixed_now)
    assert received_events == []
