from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Optional, Sequence

import mysql.connector

from ..core.enums import RequestStatus
from ..core.exceptions import AlreadyExists, AlreadyResolved, BalanceNotFound, RequestNotFound
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key, optional_decimal, to_decimal
from .model import BalanceSummary, LeaveBalance, LeaveRequest, LeaveType, NewLeaveRequest, RequestTransition
from .repository import AccrualStep, DebitStep, LeaveRepository

_TYPE_COLUMNS = """
    leave_type_id, name, default_allotment, monthly_accrual_rate, max_balance,
    is_paid, requires_approval, is_active
"""

_BALANCE_COLUMNS = """
    balance_id, employee_id, leave_type_id, year,
    initial_balance, accrued_balance, used_balance, current_balance
"""

_REQUEST_COLUMNS = """
    request_id, employee_id, leave_type_id, start_date, end_date, total_days,
    reason, status, approver_id, created_at, decided_at
"""


def _type_from_row(r: dict) -> LeaveType:
    return LeaveType(
        leave_type_id=int(r["leave_type_id"]),
        name=r["name"],
        default_allotment=to_decimal(r["default_allotment"]),
        monthly_accrual_rate=to_decimal(r["monthly_accrual_rate"]),
        max_balance=optional_decimal(r.get("max_balance")),
        is_paid=bool(r.get("is_paid")),
        requires_approval=bool(r.get("requires_approval", True)),
        is_active=bool(r.get("is_active", True)),
    )


def _balance_from_row(r: dict) -> LeaveBalance:
    return LeaveBalance(
        balance_id=int(r["balance_id"]),
        employee_id=int(r["employee_id"]),
        leave_type_id=int(r["leave_type_id"]),
        year=int(r["year"]),
        initial=to_decimal(r["initial_balance"]),
        accrued=to_decimal(r["accrued_balance"]),
        used=to_decimal(r["used_balance"]),
        current=to_decimal(r["current_balance"]),
    )


def _request_from_row(r: dict) -> LeaveRequest:
    return LeaveRequest(
        request_id=int(r["request_id"]),
        employee_id=int(r["employee_id"]),
        leave_type_id=int(r["leave_type_id"]),
        start_date=r["start_date"],
        end_date=r["end_date"],
        total_days=to_decimal(r["total_days"]),
        status=RequestStatus(r["status"]),
        created_at=r["created_at"],
        reason=r.get("reason"),
        approver_id=r.get("approver_id"),
        decided_at=r.get("decided_at"),
    )


def _write_balance(cur, b: LeaveBalance) -> None:
    cur.execute(
        """
        UPDATE leave_balances
        SET accrued_balance=%s, used_balance=%s, current_balance=%s
        WHERE balance_id=%s
        """,
        (b.accrued, b.used, b.current, int(b.balance_id)),
    )


class MySQLLeaveRepository(LeaveRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    # -------- catalog --------
    def get_leave_type(self, leave_type_id: int) -> Optional[LeaveType]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_TYPE_COLUMNS} FROM leave_types WHERE leave_type_id=%s", (int(leave_type_id),))
            r = fetchone(cur)
            return _type_from_row(r) if r else None

    # -------- balances --------
    def get_balance(self, employee_id: int, leave_type_id: int, year: int) -> Optional[LeaveBalance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_BALANCE_COLUMNS} FROM leave_balances
                WHERE employee_id=%s AND leave_type_id=%s AND year=%s
                """,
                (int(employee_id), int(leave_type_id), int(year)),
            )
            r = fetchone(cur)
            return _balance_from_row(r) if r else None

    def list_balance_summaries(self, employee_id: int, year: int) -> Sequence[BalanceSummary]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT b.balance_id, b.employee_id, b.leave_type_id, b.year,
                       b.initial_balance, b.accrued_balance, b.used_balance, b.current_balance,
                       t.name AS leave_type_name, t.max_balance
                FROM leave_balances b
                JOIN leave_types t ON t.leave_type_id = b.leave_type_id
                WHERE b.employee_id=%s AND b.year=%s
                ORDER BY t.name
                """,
                (int(employee_id), int(year)),
            )
            return [
                BalanceSummary(
                    balance=_balance_from_row(r),
                    leave_type_name=r["leave_type_name"],
                    max_balance=optional_decimal(r.get("max_balance")),
                )
                for r in fetchall(cur)
            ]

    def create_balance(self, employee_id: int, leave_type_id: int, year: int, *, initial: Decimal) -> LeaveBalance:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO leave_balances(
                        employee_id, leave_type_id, year,
                        initial_balance, accrued_balance, used_balance, current_balance
                    )
                    VALUES(%s,%s,%s,%s,0,0,%s)
                    """,
                    (int(employee_id), int(leave_type_id), int(year), initial, initial),
                )
                balance_id = int(cur.lastrowid)
        except mysql.connector.IntegrityError as err:
            if is_duplicate_key(err):
                raise AlreadyExists("Leave balance already exists for this employee, type and year") from err
            raise

        zero = Decimal("0")
        return LeaveBalance(
            balance_id=balance_id,
            employee_id=int(employee_id),
            leave_type_id=int(leave_type_id),
            year=int(year),
            initial=initial,
            accrued=zero,
            used=zero,
            current=initial,
        )

    def accrue_balances(self, year: int, apply: AccrualStep) -> int:
        updated = 0
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_TYPE_COLUMNS} FROM leave_types
                WHERE is_active=1 AND monthly_accrual_rate > 0
                """
            )
            types = {int(r["leave_type_id"]): _type_from_row(r) for r in fetchall(cur)}
            if not types:
                return 0

            placeholders = ",".join(["%s"] * len(types))
            cur.execute(
                f"""
                SELECT {_BALANCE_COLUMNS} FROM leave_balances
                WHERE year=%s AND leave_type_id IN ({placeholders})
                ORDER BY balance_id
                FOR UPDATE
                """,
                (int(year), *types.keys()),
            )
            for r in fetchall(cur):
                balance = _balance_from_row(r)
                changed = apply(balance, types[balance.leave_type_id])
                if changed is not None:
                    _write_balance(cur, changed)
                    updated += 1
        return updated

    # -------- requests --------
    def get_request(self, request_id: int) -> Optional[LeaveRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_REQUEST_COLUMNS} FROM leave_requests WHERE request_id=%s", (int(request_id),))
            r = fetchone(cur)
            return _request_from_row(r) if r else None

    def create_request(self, new: NewLeaveRequest) -> LeaveRequest:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO leave_requests(
                    employee_id, leave_type_id, start_date, end_date, total_days, reason, status, created_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(new.employee_id),
                    int(new.leave_type_id),
                    new.start_date,
                    new.end_date,
                    new.total_days,
                    new.reason,
                    RequestStatus.PENDING.value,
                    new.created_at,
                ),
            )
            request_id = int(cur.lastrowid)

        return LeaveRequest(
            request_id=request_id,
            employee_id=new.employee_id,
            leave_type_id=new.leave_type_id,
            start_date=new.start_date,
            end_date=new.end_date,
            total_days=new.total_days,
            status=RequestStatus.PENDING,
            created_at=new.created_at,
            reason=new.reason,
        )

    def transition_request(
        self,
        request_id: int,
        *,
        target: RequestStatus,
        actor_id: int,
        at: datetime,
        on_approve: DebitStep | None = None,
    ) -> RequestTransition:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_REQUEST_COLUMNS} FROM leave_requests WHERE request_id=%s FOR UPDATE",
                (int(request_id),),
            )
            r = fetchone(cur)
            if not r:
                raise RequestNotFound()
            current = _request_from_row(r)

            if target is RequestStatus.APPROVED and current.status is RequestStatus.APPROVED:
                return RequestTransition(request=current, balance=self._lock_balance(cur, current), changed=False)
            if current.status.is_terminal:
                raise AlreadyResolved()

            balance = None
            if target is RequestStatus.APPROVED:
                balance = self._lock_balance(cur, current)
                if on_approve is not None:
                    balance = on_approve(balance, current)
                    _write_balance(cur, balance)

            cur.execute(
                """
                UPDATE leave_requests
                SET status=%s, approver_id=%s, decided_at=%s
                WHERE request_id=%s
                """,
                (target.value, int(actor_id), at, int(request_id)),
            )
            decided = replace(current, status=target, approver_id=int(actor_id), decided_at=at)
            return RequestTransition(request=decided, balance=balance, changed=True)

    @staticmethod
    def _lock_balance(cur, request: LeaveRequest) -> LeaveBalance:
        cur.execute(
            f"""
            SELECT {_BALANCE_COLUMNS} FROM leave_balances
            WHERE employee_id=%s AND leave_type_id=%s AND year=%s
            FOR UPDATE
            """,
            (request.employee_id, request.leave_type_id, request.balance_year),
        )
        r = fetchone(cur)
        if not r:
            raise BalanceNotFound()
        return _balance_from_row(r)
