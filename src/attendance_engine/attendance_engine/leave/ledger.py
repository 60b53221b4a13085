from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Sequence

from ..core.enums import RequestStatus
from ..core.exceptions import InsufficientBalance, UnknownLeaveType, ValidationError
from ..events.publisher import LEAVE_REQUEST_APPROVED, EventPublisher
from .model import BalanceSummary, LeaveBalance, LeaveRequest, LeaveType
from .repository import LeaveRepository

logger = logging.getLogger(__name__)

ZERO_DAYS = Decimal("0")


def accrual_increment(balance: LeaveBalance, rate: Decimal, cap: Optional[Decimal]) -> Decimal:
    """One period's increment, reduced so ``current`` never passes the cap."""

    if rate <= 0:
        return ZERO_DAYS
    if cap is None:
        return rate
    return max(ZERO_DAYS, min(rate, cap - balance.current))


def apply_accrual(balance: LeaveBalance, leave_type: LeaveType) -> Optional[LeaveBalance]:
    inc = accrual_increment(balance, leave_type.monthly_accrual_rate, leave_type.max_balance)
    if inc <= 0:
        return None
    return replace(balance, accrued=balance.accrued + inc, current=balance.current + inc)


def apply_debit(balance: LeaveBalance, request: LeaveRequest) -> LeaveBalance:
    days = request.total_days
    if balance.current - days < 0:
        raise InsufficientBalance(f"Requested {days} day(s), {balance.current} available")
    return replace(balance, used=balance.used + days, current=balance.current - days)


def initial_allotment(leave_type: LeaveType) -> Decimal:
    allotment = max(leave_type.default_allotment, ZERO_DAYS)
    if leave_type.max_balance is not None:
        allotment = min(allotment, leave_type.max_balance)
    return allotment


class LeaveLedger:
    """Owns every balance mutation: accrual, approval debit, initialization."""

    def __init__(self, leave: LeaveRepository, *, publisher: EventPublisher | None = None):
        self._leave = leave
        self._publisher = publisher or EventPublisher()

    def accrue(self, period: date) -> int:
        """Add one period's accrual to every accruing balance of ``period.year``.

        Not idempotent: every call adds a full increment. The caller runs it
        once per period.
        """

        updated = self._leave.accrue_balances(period.year, apply_accrual)
        logger.info("accrual for %s: %d balance(s) updated", period.strftime("%Y-%m"), updated)
        return updated

    def debit_on_approval(
        self,
        leave_request: LeaveRequest,
        *,
        approver_id: int,
        now: datetime | None = None,
    ) -> LeaveBalance:
        now = now or datetime.now()
        result = self._leave.transition_request(
            leave_request.request_id,
            target=RequestStatus.APPROVED,
            actor_id=int(approver_id),
            at=now,
            on_approve=apply_debit,
        )
        request, balance = result.request, result.balance
        if result.changed:
            logger.info(
                "leave approved: request=%s employee=%s days=%s balance=%s",
                request.request_id,
                request.employee_id,
                request.total_days,
                balance.current,
            )
            self._publisher.emit(
                LEAVE_REQUEST_APPROVED,
                {
                    "request_id": request.request_id,
                    "employee_id": request.employee_id,
                    "leave_type_id": request.leave_type_id,
                    "days": str(request.total_days),
                    "balance": str(balance.current),
                },
            )
        return balance

    def initialize_balance(self, employee_id: int, leave_type_id: int, year: int) -> LeaveBalance:
        if int(year) < 1:
            raise ValidationError("Year must be positive")
        leave_type = self._leave.get_leave_type(int(leave_type_id))
        if not leave_type or not leave_type.is_active:
            raise UnknownLeaveType()

        balance = self._leave.create_balance(
            int(employee_id),
            leave_type.leave_type_id,
            int(year),
            initial=initial_allotment(leave_type),
        )
        logger.info(
            "leave balance initialized: employee=%s type=%s year=%s initial=%s",
            employee_id,
            leave_type_id,
            year,
            balance.initial,
        )
        return balance

    def balance_summary(self, employee_id: int, year: int) -> Sequence[BalanceSummary]:
        return self._leave.list_balance_summaries(int(employee_id), int(year))
