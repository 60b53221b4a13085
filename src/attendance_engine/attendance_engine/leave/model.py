from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..core.enums import RequestStatus


@dataclass(frozen=True)
class LeaveType:
    """Catalog entry; ``max_balance`` of None means uncapped."""

    leave_type_id: int
    name: str
    default_allotment: Decimal
    monthly_accrual_rate: Decimal
    max_balance: Optional[Decimal] = None
    is_paid: bool = False
    requires_approval: bool = True
    is_active: bool = True


@dataclass(frozen=True)
class LeaveBalance:
    """Per (employee, leave type, year).

    ``current`` always equals ``initial + accrued - used`` and never drops
    below zero.
    """

    balance_id: int
    employee_id: int
    leave_type_id: int
    year: int
    initial: Decimal
    accrued: Decimal
    used: Decimal
    current: Decimal


@dataclass(frozen=True)
class BalanceSummary:
    balance: LeaveBalance
    leave_type_name: str
    max_balance: Optional[Decimal]

    @property
    def is_capped(self) -> bool:
        return self.max_balance is not None and self.balance.current >= self.max_balance


@dataclass(frozen=True)
class LeaveRequest:
    request_id: int
    employee_id: int
    leave_type_id: int
    start_date: date
    end_date: date
    total_days: Decimal
    status: RequestStatus
    created_at: datetime
    reason: Optional[str] = None
    approver_id: Optional[int] = None
    decided_at: Optional[datetime] = None

    @property
    def balance_year(self) -> int:
        return self.start_date.year


@dataclass(frozen=True)
class NewLeaveRequest:
    employee_id: int
    leave_type_id: int
    start_date: date
    end_date: date
    total_days: Decimal
    reason: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class RequestTransition:
    """Outcome of one request transition; ``changed`` is False for a repeated approval."""

    request: LeaveRequest
    balance: Optional[LeaveBalance]
    changed: bool
