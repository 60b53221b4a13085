from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime
from decimal import Decimal

import pytest

from src.attendance_engine.attendance_engine.approvals.model import (
    ExceptionRequest,
    resolved_verification,
    verification_effect,
)
from src.attendance_engine.attendance_engine.attendance.model import AttendanceSession
from src.attendance_engine.attendance_engine.container import wire_services
from src.attendance_engine.attendance_engine.core.enums import RequestStatus, Role
from src.attendance_engine.attendance_engine.core.exceptions import (
    AlreadyExists,
    AlreadyResolved,
    BalanceNotFound,
    BreakAlreadyOpen,
    DuplicatePendingRequest,
    DuplicateSession,
    RequestNotFound,
    SessionNotFound,
)
from src.attendance_engine.attendance_engine.core.settings import EngineSettings
from src.attendance_engine.attendance_engine.employees.model import Employee
from src.attendance_engine.attendance_engine.events.publisher import EventPublisher, signals
from src.attendance_engine.attendance_engine.geofence.model import GeoPoint, GeofenceZone, Workplace
from src.attendance_engine.attendance_engine.leave.model import (
    BalanceSummary,
    LeaveBalance,
    LeaveRequest,
    LeaveType,
    RequestTransition,
)

OFFICE = GeoPoint(lat=37.5665, lng=126.978)


class FakeWorkplaceRepo:
    def __init__(self):
        self.workplaces: dict[int, Workplace] = {}
        self.zones: list[GeofenceZone] = []

    def get_workplace(self, workplace_id):
        return self.workplaces.get(int(workplace_id))

    def list_active_zones(self, workplace_id):
        return [z for z in self.zones if z.workplace_id == int(workplace_id) and z.is_active]


class FakeEmployeeRepo:
    def __init__(self):
        self.employees: dict[int, Employee] = {}

    def add(self, employee: Employee) -> None:
        self.employees[employee.employee_id] = employee

    def get_by_id(self, employee_id):
        return self.employees.get(int(employee_id))


class FakeAttendanceRepo:
    """In-memory store with the same uniqueness rules as the MySQL schema."""

    def __init__(self):
        self._lock = threading.Lock()
        self._next_session_id = 1
        self._next_break_id = 1
        self.sessions: dict[int, AttendanceSession] = {}
        self._by_day: dict[tuple, int] = {}

    def get_by_id(self, session_id):
        return self.sessions.get(int(session_id))

    def get_by_break_id(self, break_id):
        for s in self.sessions.values():
            if any(b.break_id == int(break_id) for b in s.breaks):
                return s
        return None

    def get_for_employee_and_date(self, employee_id, work_date):
        sid = self._by_day.get((int(employee_id), work_date))
        return self.sessions.get(sid) if sid else None

    def get_open_for_employee(self, employee_id):
        open_sessions = [s for s in self.sessions.values() if s.employee_id == int(employee_id) and s.state.is_open]
        return max(open_sessions, key=lambda s: s.punch_in_time) if open_sessions else None

    def get_recent_for_employee(self, employee_id, limit):
        mine = [s for s in self.sessions.values() if s.employee_id == int(employee_id)]
        return sorted(mine, key=lambda s: s.work_date, reverse=True)[: int(limit)]

    def get_range_for_employee(self, employee_id, start, end):
        mine = [s for s in self.sessions.values() if s.employee_id == int(employee_id) and start <= s.work_date <= end]
        return sorted(mine, key=lambda s: s.work_date)

    def create_session(self, new):
        with self._lock:
            key = (new.employee_id, new.work_date)
            if key in self._by_day:
                raise DuplicateSession()
            session = AttendanceSession(
                session_id=self._next_session_id,
                employee_id=new.employee_id,
                workplace_id=new.workplace_id,
                work_date=new.work_date,
                punch_in_time=new.punch_in_time,
                punch_in_point=new.punch_in_point,
                punch_in_method=new.punch_in_method,
                geofence_in_compliant=new.geofence_in_compliant,
                state=new.state,
            )
            self._next_session_id += 1
            self.sessions[session.session_id] = session
            self._by_day[key] = session.session_id
            return session

    def update_session(self, session_id, mutate):
        with self._lock:
            current = self.sessions.get(int(session_id))
            if not current:
                raise SessionNotFound()
            change = mutate(current)
            session = change.session

            if change.new_break is not None:
                if any(b.is_open for b in current.breaks):
                    raise BreakAlreadyOpen()
                stored = replace(change.new_break, break_id=self._next_break_id)
                self._next_break_id += 1
                session = replace(
                    session,
                    breaks=tuple(stored if b is change.new_break else b for b in session.breaks),
                )
                change = replace(change, session=session, new_break=stored)

            self.sessions[session.session_id] = session
            return change

    def set_verification(self, session_id, status, approver_id, at):
        s = self.sessions[int(session_id)]
        self.sessions[s.session_id] = replace(
            s,
            verification_status=resolved_verification(s.verification_status, status),
            approved_by=approver_id,
            approved_at=at,
        )

    def put(self, session: AttendanceSession) -> AttendanceSession:
        """Store a prepared session directly (used to arrange history)."""

        with self._lock:
            self.sessions[session.session_id] = session
            self._by_day[(session.employee_id, session.work_date)] = session.session_id
            self._next_session_id = max(self._next_session_id, session.session_id + 1)
            return session


class FakeExceptionRepo:
    def __init__(self, attendance: FakeAttendanceRepo):
        self._attendance = attendance
        self._lock = threading.Lock()
        self._next_id = 1
        self.requests: dict[int, ExceptionRequest] = {}

    def _apply(self, req: ExceptionRequest) -> None:
        effect = verification_effect(req.kind, req.status)
        if effect is not None:
            self._attendance.set_verification(req.session_id, effect, req.approver_id, req.resolved_at)

    def get_by_id(self, request_id):
        return self.requests.get(int(request_id))

    def create(self, new, *, approve_as=None):
        with self._lock:
            if approve_as is None and any(
                r.session_id == new.session_id and r.kind == new.kind and r.status is RequestStatus.PENDING
                for r in self.requests.values()
            ):
                raise DuplicatePendingRequest()
            req = ExceptionRequest(
                request_id=self._next_id,
                session_id=new.session_id,
                kind=new.kind,
                reason=new.reason,
                status=RequestStatus.APPROVED if approve_as is not None else RequestStatus.PENDING,
                requester_id=new.requester_id,
                created_at=new.created_at,
                approver_id=approve_as,
                resolved_at=new.created_at if approve_as is not None else None,
            )
            self._next_id += 1
            self.requests[req.request_id] = req
            self._apply(req)
            return req

    def resolve(self, request_id, *, status, approver_id, notes, at):
        with self._lock:
            current = self.requests.get(int(request_id))
            if not current:
                raise RequestNotFound()
            if current.status.is_terminal:
                raise AlreadyResolved()
            resolved = replace(current, status=status, approver_id=int(approver_id), notes=notes, resolved_at=at)
            self.requests[resolved.request_id] = resolved
            self._apply(resolved)
            return resolved

    def list_pending_for_session(self, session_id):
        return [
            r for r in self.requests.values() if r.session_id == int(session_id) and r.status is RequestStatus.PENDING
        ]

    def count_by_status(self):
        counts: dict[RequestStatus, int] = {}
        for r in self.requests.values():
            counts[r.status] = counts.get(r.status, 0) + 1
        return counts

    def average_response_seconds(self):
        spans = [(r.resolved_at - r.created_at).total_seconds() for r in self.requests.values() if r.resolved_at]
        return sum(spans) / len(spans) if spans else None


class FakeLeaveRepo:
    def __init__(self):
        self._lock = threading.Lock()
        self._next_balance_id = 1
        self._next_request_id = 1
        self.types: dict[int, LeaveType] = {}
        self.balances: dict[tuple, LeaveBalance] = {}
        self.requests: dict[int, LeaveRequest] = {}

    def add_type(self, leave_type: LeaveType) -> None:
        self.types[leave_type.leave_type_id] = leave_type

    def put_balance(self, employee_id, leave_type_id, year, *, initial, accrued="0", used="0") -> LeaveBalance:
        initial, accrued, used = Decimal(str(initial)), Decimal(str(accrued)), Decimal(str(used))
        balance = LeaveBalance(
            balance_id=self._next_balance_id,
            employee_id=employee_id,
            leave_type_id=leave_type_id,
            year=year,
            initial=initial,
            accrued=accrued,
            used=used,
            current=initial + accrued - used,
        )
        self._next_balance_id += 1
        self.balances[(employee_id, leave_type_id, year)] = balance
        return balance

    def get_leave_type(self, leave_type_id):
        return self.types.get(int(leave_type_id))

    def get_balance(self, employee_id, leave_type_id, year):
        return self.balances.get((int(employee_id), int(leave_type_id), int(year)))

    def list_balance_summaries(self, employee_id, year):
        out = []
        for (emp, type_id, y), b in sorted(self.balances.items()):
            if emp == int(employee_id) and y == int(year):
                t = self.types[type_id]
                out.append(BalanceSummary(balance=b, leave_type_name=t.name, max_balance=t.max_balance))
        return out

    def create_balance(self, employee_id, leave_type_id, year, *, initial):
        with self._lock:
            if (int(employee_id), int(leave_type_id), int(year)) in self.balances:
                raise AlreadyExists()
            return self.put_balance(int(employee_id), int(leave_type_id), int(year), initial=initial)

    def accrue_balances(self, year, apply):
        updated = 0
        with self._lock:
            for key, b in list(self.balances.items()):
                t = self.types[b.leave_type_id]
                if b.year != int(year) or not t.is_active or t.monthly_accrual_rate <= 0:
                    continue
                changed = apply(b, t)
                if changed is not None:
                    self.balances[key] = changed
                    updated += 1
        return updated

    def get_request(self, request_id):
        return self.requests.get(int(request_id))

    def create_request(self, new):
        with self._lock:
            req = LeaveRequest(
                request_id=self._next_request_id,
                employee_id=new.employee_id,
                leave_type_id=new.leave_type_id,
                start_date=new.start_date,
                end_date=new.end_date,
                total_days=new.total_days,
                status=RequestStatus.PENDING,
                created_at=new.created_at,
                reason=new.reason,
            )
            self._next_request_id += 1
            self.requests[req.request_id] = req
            return req

    def transition_request(self, request_id, *, target, actor_id, at, on_approve=None):
        with self._lock:
            current = self.requests.get(int(request_id))
            if not current:
                raise RequestNotFound()
            key = (current.employee_id, current.leave_type_id, current.balance_year)

            if target is RequestStatus.APPROVED and current.status is RequestStatus.APPROVED:
                return RequestTransition(request=current, balance=self.balances.get(key), changed=False)
            if current.status.is_terminal:
                raise AlreadyResolved()

            balance = None
            if target is RequestStatus.APPROVED:
                balance = self.balances.get(key)
                if balance is None:
                    raise BalanceNotFound()
                if on_approve is not None:
                    balance = on_approve(balance, current)
                    self.balances[key] = balance

            decided = replace(current, status=target, approver_id=int(actor_id), decided_at=at)
            self.requests[decided.request_id] = decided
            return RequestTransition(request=decided, balance=balance, changed=True)


class Fakes:
    def __init__(self):
        self.workplaces = FakeWorkplaceRepo()
        self.employees = FakeEmployeeRepo()
        self.attendance = FakeAttendanceRepo()
        self.exceptions = FakeExceptionRepo(self.attendance)
        self.leave = FakeLeaveRepo()


@pytest.fixture
def fixed_now():
    return datetime(2025, 3, 10, 9, 0, 0)


@pytest.fixture
def fakes():
    f = Fakes()
    f.workplaces.workplaces[1] = Workplace(workplace_id=1, name="Seoul HQ")
    f.workplaces.workplaces[2] = Workplace(workplace_id=2, name="Remote hub")
    f.workplaces.workplaces[3] = Workplace(workplace_id=3, name="Closed site", is_active=False)
    f.workplaces.zones.append(
        GeofenceZone(zone_id=1, workplace_id=1, name="HQ lobby", center=OFFICE, radius_meters=100)
    )

    f.employees.add(Employee(employee_id=1, full_name="Ada Admin", role=Role.ADMIN, workplace_id=1))
    f.employees.add(Employee(employee_id=2, full_name="Max Manager", role=Role.MANAGER, workplace_id=1))
    f.employees.add(Employee(employee_id=3, full_name="Sam Staff", role=Role.STAFF, workplace_id=1, manager_id=2))
    f.employees.add(Employee(employee_id=4, full_name="Rae Remote", role=Role.STAFF, workplace_id=2, manager_id=2))
    f.employees.add(Employee(employee_id=5, full_name="Mo Manager", role=Role.MANAGER, workplace_id=2))
    f.employees.add(Employee(employee_id=6, full_name="Lee Left", role=Role.STAFF, workplace_id=1, is_active=False))

    f.leave.add_type(
        LeaveType(
            leave_type_id=1,
            name="Annual Leave",
            default_allotment=Decimal("15"),
            monthly_accrual_rate=Decimal("1.25"),
            max_balance=Decimal("20"),
            is_paid=True,
        )
    )
    f.leave.add_type(
        LeaveType(
            leave_type_id=2,
            name="Sick Leave",
            default_allotment=Decimal("10"),
            monthly_accrual_rate=Decimal("0"),
            is_paid=True,
            requires_approval=False,
        )
    )
    f.leave.add_type(
        LeaveType(
            leave_type_id=3,
            name="Comp Time",
            default_allotment=Decimal("0"),
            monthly_accrual_rate=Decimal("0.5"),
            max_balance=None,
        )
    )
    return f


@pytest.fixture
def settings():
    return EngineSettings()


@pytest.fixture
def engine(fakes, settings):
    return wire_services(
        workplaces_repo=fakes.workplaces,
        employees_repo=fakes.employees,
        attendance_repo=fakes.attendance,
        exceptions_repo=fakes.exceptions,
        leave_repo=fakes.leave,
        settings=settings,
        publisher=EventPublisher(max_retries=1),
    )


@pytest.fixture
def received_events():
    """Collect every emitted event as (name, payload) for the duration of a test."""

    received: list[tuple[str, dict]] = []
    names = [
        "session.punched-in",
        "session.break-started",
        "session.break-ended",
        "session.punched-out",
        "exception.requested",
        "exception.resolved",
        "leave.request-approved",
    ]
    receivers = []
    for name in names:

        def receiver(sender, _name=name, **payload):
            received.append((_name, payload))

        signals.signal(name).connect(receiver, weak=False)
        receivers.append((name, receiver))

    yield received

    for name, receiver in receivers:
        signals.signal(name).disconnect(receiver)
