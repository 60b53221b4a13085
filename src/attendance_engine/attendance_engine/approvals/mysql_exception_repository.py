from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

import mysql.connector

from ..core.enums import ExceptionKind, RequestStatus, VerificationStatus
from ..core.exceptions import AlreadyResolved, DuplicatePendingRequest, RequestNotFound
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key
from .model import ExceptionRequest, NewExceptionRequest, resolved_verification, verification_effect
from .repository import ExceptionRequestRepository

_COLUMNS = """
    request_id, session_id, kind, reason, status, requester_id,
    approver_id, notes, created_at, resolved_at
"""


def _from_row(r: dict) -> ExceptionRequest:
    return ExceptionRequest(
        request_id=int(r["request_id"]),
        session_id=int(r["session_id"]),
        kind=ExceptionKind(r["kind"]),
        reason=r["reason"],
        status=RequestStatus(r["status"]),
        requester_id=int(r["requester_id"]),
        created_at=r["created_at"],
        approver_id=r.get("approver_id"),
        notes=r.get("notes"),
        resolved_at=r.get("resolved_at"),
    )


def _apply_verification(cur, req: ExceptionRequest) -> None:
    effect = verification_effect(req.kind, req.status)
    if effect is None:
        return
    cur.execute(
        "SELECT verification_status FROM attendance_sessions WHERE session_id=%s FOR UPDATE",
        (req.session_id,),
    )
    row = fetchone(cur)
    if not row:
        return
    status = resolved_verification(VerificationStatus(row["verification_status"]), effect)
    cur.execute(
        """
        UPDATE attendance_sessions
        SET verification_status=%s, approved_by=%s, approved_at=%s
        WHERE session_id=%s
        """,
        (
            status.value,
            req.approver_id,
            req.resolved_at,
            req.session_id,
        ),
    )


class MySQLExceptionRequestRepository(ExceptionRequestRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, request_id: int) -> Optional[ExceptionRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM exception_requests WHERE request_id=%s", (int(request_id),))
            r = fetchone(cur)
            return _from_row(r) if r else None

    def create(self, new: NewExceptionRequest, *, approve_as: int | None = None) -> ExceptionRequest:
        status = RequestStatus.APPROVED if approve_as is not None else RequestStatus.PENDING
        resolved_at = new.created_at if approve_as is not None else None
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO exception_requests(
                        session_id, kind, reason, status, requester_id, approver_id, created_at, resolved_at
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        int(new.session_id),
                        new.kind.value,
                        new.reason,
                        status.value,
                        int(new.requester_id),
                        approve_as,
                        new.created_at,
                        resolved_at,
                    ),
                )
                req = ExceptionRequest(
                    request_id=int(cur.lastrowid),
                    session_id=new.session_id,
                    kind=new.kind,
                    reason=new.reason,
                    status=status,
                    requester_id=new.requester_id,
                    created_at=new.created_at,
                    approver_id=approve_as,
                    resolved_at=resolved_at,
                )
                _apply_verification(cur, req)
                return req
        except mysql.connector.IntegrityError as err:
            if is_duplicate_key(err):
                raise DuplicatePendingRequest() from err
            raise

    def resolve(
        self,
        request_id: int,
        *,
        status: RequestStatus,
        approver_id: int,
        notes: Optional[str],
        at: datetime,
    ) -> ExceptionRequest:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM exception_requests WHERE request_id=%s FOR UPDATE",
                (int(request_id),),
            )
            r = fetchone(cur)
            if not r:
                raise RequestNotFound()
            current = _from_row(r)
            if current.status.is_terminal:
                raise AlreadyResolved()

            cur.execute(
                """
                UPDATE exception_requests
                SET status=%s, approver_id=%s, notes=%s, resolved_at=%s
                WHERE request_id=%s
                """,
                (status.value, int(approver_id), notes, at, int(request_id)),
            )
            resolved = ExceptionRequest(
                request_id=current.request_id,
                session_id=current.session_id,
                kind=current.kind,
                reason=current.reason,
                status=status,
                requester_id=current.requester_id,
                created_at=current.created_at,
                approver_id=int(approver_id),
                notes=notes,
                resolved_at=at,
            )
            _apply_verification(cur, resolved)
            return resolved

    def list_pending_for_session(self, session_id: int) -> Sequence[ExceptionRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM exception_requests
                WHERE session_id=%s AND status=%s
                ORDER BY created_at, request_id
                """,
                (int(session_id), RequestStatus.PENDING.value),
            )
            return [_from_row(r) for r in fetchall(cur)]

    def count_by_status(self) -> dict[RequestStatus, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT status, COUNT(*) AS n FROM exception_requests GROUP BY status")
            return {RequestStatus(r["status"]): int(r["n"]) for r in fetchall(cur)}

    def average_response_seconds(self) -> Optional[float]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT AVG(TIMESTAMPDIFF(SECOND, created_at, resolved_at)) AS avg_seconds
                FROM exception_requests
                WHERE resolved_at IS NOT NULL
                """
            )
            r = fetchone(cur)
            if not r or r.get("avg_seconds") is None:
                return None
            return float(r["avg_seconds"])
