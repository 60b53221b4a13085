from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal

from ..common.validators import require_date_range
from ..core.enums import RequestStatus
from ..core.exceptions import (
    BalanceNotFound,
    InsufficientBalance,
    RequestNotFound,
    Unauthorized,
    UnknownEmployee,
    UnknownLeaveType,
)
from ..employees.model import Employee
from ..employees.repository import EmployeeRepository
from .ledger import LeaveLedger
from .model import LeaveBalance, LeaveRequest, NewLeaveRequest
from .repository import LeaveRepository

logger = logging.getLogger(__name__)


def inclusive_days(start: date, end: date) -> Decimal:
    require_date_range(start, end)
    return Decimal((end - start).days + 1)


class LeaveRequestService:
    """PENDING -> APPROVED | REJECTED | CANCELLED; only approval touches the ledger."""

    def __init__(self, leave: LeaveRepository, employees: EmployeeRepository, ledger: LeaveLedger):
        self._leave = leave
        self._employees = employees
        self._ledger = ledger

    def _require_employee(self, employee_id: int) -> Employee:
        employee = self._employees.get_by_id(int(employee_id))
        if not employee or not employee.is_active:
            raise UnknownEmployee()
        return employee

    def _require_request(self, request_id: int) -> LeaveRequest:
        req = self._leave.get_request(int(request_id))
        if not req:
            raise RequestNotFound()
        return req

    def _require_reviewer(self, reviewer_id: int, req: LeaveRequest) -> Employee:
        reviewer = self._require_employee(reviewer_id)
        if reviewer.employee_id == req.employee_id:
            raise Unauthorized("Employees cannot review their own leave request")
        owner = self._employees.get_by_id(req.employee_id)
        if not owner or not reviewer.oversees(owner):
            raise Unauthorized("Not allowed to review this leave request")
        return reviewer

    def submit(
        self,
        employee_id: int,
        leave_type_id: int,
        start: date,
        end: date,
        reason: str | None = None,
        *,
        now: datetime | None = None,
    ) -> LeaveRequest:
        now = now or datetime.now()
        days = inclusive_days(start, end)
        employee = self._require_employee(employee_id)

        leave_type = self._leave.get_leave_type(int(leave_type_id))
        if not leave_type or not leave_type.is_active:
            raise UnknownLeaveType()

        balance = self._leave.get_balance(employee.employee_id, leave_type.leave_type_id, start.year)
        if not balance:
            raise BalanceNotFound()
        if balance.current < days:
            raise InsufficientBalance(f"Requested {days} day(s), {balance.current} available")

        req = self._leave.create_request(
            NewLeaveRequest(
                employee_id=employee.employee_id,
                leave_type_id=leave_type.leave_type_id,
                start_date=start,
                end_date=end,
                total_days=days,
                reason=(reason or "").strip() or None,
                created_at=now,
            )
        )
        logger.info("leave requested: request=%s employee=%s days=%s", req.request_id, employee_id, days)

        if not leave_type.requires_approval:
            self._ledger.debit_on_approval(req, approver_id=employee.employee_id, now=now)
            return self._require_request(req.request_id)
        return req

    def approve(self, request_id: int, approver_id: int, *, now: datetime | None = None) -> LeaveBalance:
        req = self._require_request(request_id)
        self._require_reviewer(approver_id, req)
        # A repeated approval returns the balance without a second debit.
        return self._ledger.debit_on_approval(req, approver_id=int(approver_id), now=now)

    def reject(self, request_id: int, approver_id: int, *, now: datetime | None = None) -> LeaveRequest:
        now = now or datetime.now()
        req = self._require_request(request_id)
        self._require_reviewer(approver_id, req)
        result = self._leave.transition_request(
            req.request_id, target=RequestStatus.REJECTED, actor_id=int(approver_id), at=now
        )
        logger.info("leave rejected: request=%s approver=%s", req.request_id, approver_id)
        return result.request

    def cancel(self, request_id: int, employee_id: int, *, now: datetime | None = None) -> LeaveRequest:
        now = now or datetime.now()
        req = self._require_request(request_id)
        if req.employee_id != int(employee_id):
            raise Unauthorized("Only the requester can cancel a leave request")
        result = self._leave.transition_request(
            req.request_id, target=RequestStatus.CANCELLED, actor_id=int(employee_id), at=now
        )
        logger.info("leave cancelled: request=%s", req.request_id)
        return result.request
