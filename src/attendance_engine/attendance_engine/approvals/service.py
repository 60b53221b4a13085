from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence

from ..attendance.model import AttendanceSession
from ..attendance.repository import AttendanceRepository
from ..common.validators import require_non_empty
from ..core.enums import Decision, ExceptionKind, RequestStatus, Role
from ..core.exceptions import RequestNotFound, SessionNotFound, Unauthorized, UnknownEmployee
from ..core.settings import EngineSettings
from ..employees.model import Employee
from ..employees.repository import EmployeeRepository
from ..events.publisher import EXCEPTION_REQUESTED, EXCEPTION_RESOLVED, EventPublisher
from .model import ApprovalStats, ExceptionRequest, NewExceptionRequest
from .repository import ExceptionRequestRepository

logger = logging.getLogger(__name__)


def can_approve(approver: Employee, session: AttendanceSession, owner: Optional[Employee]) -> bool:
    """Admins approve anything; managers approve their workplace or their reports."""

    if not approver.is_active:
        return False
    if approver.role == Role.ADMIN:
        return True
    if approver.role == Role.MANAGER:
        if approver.workplace_id is not None and approver.workplace_id == session.workplace_id:
            return True
        return owner is not None and approver.manages(owner)
    return False


class ExceptionApprovalService:
    def __init__(
        self,
        exceptions: ExceptionRequestRepository,
        attendance: AttendanceRepository,
        employees: EmployeeRepository,
        *,
        publisher: EventPublisher | None = None,
        settings: EngineSettings | None = None,
    ):
        self._exceptions = exceptions
        self._attendance = attendance
        self._employees = employees
        self._publisher = publisher or EventPublisher()
        self._settings = settings or EngineSettings()

    def _require_employee(self, employee_id: int) -> Employee:
        employee = self._employees.get_by_id(int(employee_id))
        if not employee or not employee.is_active:
            raise UnknownEmployee()
        return employee

    def _require_session(self, session_id: int) -> AttendanceSession:
        session = self._attendance.get_by_id(int(session_id))
        if not session:
            raise SessionNotFound()
        return session

    def request_exception(
        self,
        session_id: int,
        kind: ExceptionKind,
        reason: str,
        requester_id: int,
        *,
        now: datetime | None = None,
        settings: EngineSettings | None = None,
    ) -> ExceptionRequest:
        now = now or datetime.now()
        settings = settings or self._settings
        reason = require_non_empty(reason, "Reason")

        session = self._require_session(session_id)
        requester = self._require_employee(requester_id)
        if session.employee_id != requester.employee_id:
            owner = self._employees.get_by_id(session.employee_id)
            if not can_approve(requester, session, owner):
                raise Unauthorized("Cannot file a request for another employee's session")

        auto_approve = settings.auto_approve_privileged and requester.role.is_privileged
        req = self._exceptions.create(
            NewExceptionRequest(
                session_id=session.session_id,
                kind=kind,
                reason=reason,
                requester_id=requester.employee_id,
                created_at=now,
            ),
            approve_as=requester.employee_id if auto_approve else None,
        )
        logger.info(
            "exception requested: request=%s session=%s kind=%s status=%s",
            req.request_id,
            req.session_id,
            req.kind.value,
            req.status.value,
        )

        self._publisher.emit(EXCEPTION_REQUESTED, _payload(req))
        if req.status is RequestStatus.APPROVED:
            self._publisher.emit(EXCEPTION_RESOLVED, _payload(req))
        return req

    def resolve_exception(
        self,
        request_id: int,
        decision: Decision,
        approver_id: int,
        notes: str | None = None,
        *,
        now: datetime | None = None,
    ) -> ExceptionRequest:
        now = now or datetime.now()

        req = self._exceptions.get_by_id(int(request_id))
        if not req:
            raise RequestNotFound()

        approver = self._require_employee(approver_id)
        if req.requester_id == approver.employee_id:
            raise Unauthorized("Requesters cannot resolve their own request")
        session = self._require_session(req.session_id)
        owner = self._employees.get_by_id(session.employee_id)
        if not can_approve(approver, session, owner):
            raise Unauthorized("Not allowed to resolve requests for this session")

        resolved = self._exceptions.resolve(
            req.request_id,
            status=decision.status,
            approver_id=approver.employee_id,
            notes=(notes or "").strip() or None,
            at=now,
        )
        logger.info(
            "exception resolved: request=%s status=%s approver=%s",
            resolved.request_id,
            resolved.status.value,
            resolved.approver_id,
        )
        self._publisher.emit(EXCEPTION_RESOLVED, _payload(resolved))
        return resolved

    def pending_for_session(self, session_id: int) -> Sequence[ExceptionRequest]:
        return self._exceptions.list_pending_for_session(int(session_id))

    def approval_stats(self) -> ApprovalStats:
        counts = self._exceptions.count_by_status()
        approved = counts.get(RequestStatus.APPROVED, 0)
        rejected = counts.get(RequestStatus.REJECTED, 0)
        decided = approved + rejected
        avg_seconds = self._exceptions.average_response_seconds()
        return ApprovalStats(
            total=sum(counts.values()),
            pending=counts.get(RequestStatus.PENDING, 0),
            approved=approved,
            rejected=rejected,
            approval_rate=round(approved * 100 / decided, 1) if decided else 0.0,
            average_response_hours=round(avg_seconds / 3600, 2) if avg_seconds else 0.0,
        )


def _payload(req: ExceptionRequest) -> dict:
    return {
        "request_id": req.request_id,
        "session_id": req.session_id,
        "kind": req.kind.value,
        "status": req.status.value,
        "requester_id": req.requester_id,
        "approver_id": req.approver_id,
    }
