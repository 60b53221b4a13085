from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional, Protocol, Sequence

from ..core.enums import RequestStatus
from .model import BalanceSummary, LeaveBalance, LeaveRequest, LeaveType, NewLeaveRequest, RequestTransition

# (balance, leave type) -> updated balance, or None to leave the row alone.
AccrualStep = Callable[[LeaveBalance, LeaveType], Optional[LeaveBalance]]
# (balance, request) -> debited balance; raises to abort the approval.
DebitStep = Callable[[LeaveBalance, LeaveRequest], LeaveBalance]


class LeaveRepository(Protocol):
    # Catalog
    def get_leave_type(self, leave_type_id: int) -> Optional[LeaveType]:
        raise NotImplementedError

    # Balances
    def get_balance(self, employee_id: int, leave_type_id: int, year: int) -> Optional[LeaveBalance]:
        raise NotImplementedError

    def list_balance_summaries(self, employee_id: int, year: int) -> Sequence[BalanceSummary]:
        raise NotImplementedError

    def create_balance(self, employee_id: int, leave_type_id: int, year: int, *, initial: Decimal) -> LeaveBalance:
        """Raises AlreadyExists when the (employee, type, year) balance is present."""

        raise NotImplementedError

    def accrue_balances(self, year: int, apply: AccrualStep) -> int:
        """Lock every balance of ``year`` whose type accrues, apply ``apply`` and
        persist the rows it changed. Returns the number of rows changed."""

        raise NotImplementedError

    # Requests
    def get_request(self, request_id: int) -> Optional[LeaveRequest]:
        raise NotImplementedError

    def create_request(self, new: NewLeaveRequest) -> LeaveRequest:
        raise NotImplementedError

    def transition_request(
        self,
        request_id: int,
        *,
        target: RequestStatus,
        actor_id: int,
        at: datetime,
        on_approve: DebitStep | None = None,
    ) -> RequestTransition:
        """Move a PENDING request to ``target`` in one transaction.

        For APPROVED the balance row is locked and ``on_approve`` debits it.
        Approving an already APPROVED request changes nothing and returns the
        current balance. Any other move out of a terminal state raises
        AlreadyResolved.
        """

        raise NotImplementedError
