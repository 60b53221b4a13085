from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Optional, Sequence

import mysql.connector

from ..core.enums import BreakType, PunchMethod, SessionState, VerificationStatus
from ..core.exceptions import BreakAlreadyOpen, DuplicateSession, SessionNotFound
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key, seconds_to_timedelta
from ..geofence.model import GeoPoint
from ..worktime.calculator.base import WorkDurations
from .model import AttendanceSession, Break, NewSession, SessionChange
from .repository import AttendanceRepository, SessionMutation

_SESSION_COLUMNS = """
    session_id, employee_id, workplace_id, work_date,
    punch_in_time, punch_out_time, punch_in_method, punch_out_method,
    punch_in_lat, punch_in_lng, punch_in_accuracy,
    punch_out_lat, punch_out_lng, punch_out_accuracy,
    geofence_in_compliant, geofence_out_compliant, status,
    total_seconds, break_seconds, net_seconds, overtime_seconds,
    verification_status, approved_by, approved_at
"""


def _point(lat, lng, accuracy) -> Optional[GeoPoint]:
    if lat is None or lng is None:
        return None
    return GeoPoint(lat=float(lat), lng=float(lng), accuracy=float(accuracy) if accuracy is not None else None)


def _break_from_row(r: dict) -> Break:
    return Break(
        break_id=int(r["break_id"]),
        session_id=int(r["session_id"]),
        break_type=BreakType(r["break_type"]),
        started_at=r["started_at"],
        ended_at=r.get("ended_at"),
        duration=seconds_to_timedelta(r.get("duration_seconds")),
        exceeded=bool(r.get("exceeded")),
    )


def _session_from_row(r: dict, breaks: Sequence[Break]) -> AttendanceSession:
    out_compliant = r.get("geofence_out_compliant")
    return AttendanceSession(
        session_id=int(r["session_id"]),
        employee_id=int(r["employee_id"]),
        workplace_id=int(r["workplace_id"]),
        work_date=r["work_date"],
        punch_in_time=r["punch_in_time"],
        punch_in_point=_point(r["punch_in_lat"], r["punch_in_lng"], r.get("punch_in_accuracy")),
        punch_in_method=PunchMethod(r["punch_in_method"]),
        geofence_in_compliant=bool(r["geofence_in_compliant"]),
        state=SessionState(r["status"]),
        punch_out_time=r.get("punch_out_time"),
        punch_out_point=_point(r.get("punch_out_lat"), r.get("punch_out_lng"), r.get("punch_out_accuracy")),
        punch_out_method=PunchMethod(r["punch_out_method"]) if r.get("punch_out_method") else None,
        geofence_out_compliant=None if out_compliant is None else bool(out_compliant),
        breaks=tuple(breaks),
        durations=WorkDurations(
            total=seconds_to_timedelta(r.get("total_seconds")),
            break_time=seconds_to_timedelta(r.get("break_seconds")),
            net=seconds_to_timedelta(r.get("net_seconds")),
            overtime=seconds_to_timedelta(r.get("overtime_seconds")),
            needs_review=r.get("verification_status") == VerificationStatus.NEEDS_REVIEW.value,
        ),
        verification_status=VerificationStatus(r["verification_status"]),
        approved_by=r.get("approved_by"),
        approved_at=r.get("approved_at"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    # -------- reads --------
    def _load_breaks(self, cur, session_ids: Sequence[int]) -> dict[int, list[Break]]:
        out: dict[int, list[Break]] = {sid: [] for sid in session_ids}
        if not session_ids:
            return out
        placeholders = ",".join(["%s"] * len(session_ids))
        cur.execute(
            f"""
            SELECT break_id, session_id, break_type, started_at, ended_at, duration_seconds, exceeded
            FROM attendance_breaks
            WHERE session_id IN ({placeholders})
            ORDER BY started_at, break_id
            """,
            tuple(session_ids),
        )
        for r in fetchall(cur):
            out[int(r["session_id"])].append(_break_from_row(r))
        return out

    def _select(self, where: str, params: tuple, *, suffix: str = "") -> list[AttendanceSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SESSION_COLUMNS} FROM attendance_sessions WHERE {where} {suffix}", params)
            rows = fetchall(cur)
            breaks = self._load_breaks(cur, [int(r["session_id"]) for r in rows])
            return [_session_from_row(r, breaks[int(r["session_id"])]) for r in rows]

    def _select_one(self, where: str, params: tuple, *, suffix: str = "") -> Optional[AttendanceSession]:
        rows = self._select(where, params, suffix=suffix)
        return rows[0] if rows else None

    def get_by_id(self, session_id: int) -> Optional[AttendanceSession]:
        return self._select_one("session_id=%s", (int(session_id),))

    def get_by_break_id(self, break_id: int) -> Optional[AttendanceSession]:
        return self._select_one(
            "session_id=(SELECT session_id FROM attendance_breaks WHERE break_id=%s)",
            (int(break_id),),
        )

    def get_for_employee_and_date(self, employee_id: int, work_date: date) -> Optional[AttendanceSession]:
        return self._select_one("employee_id=%s AND work_date=%s", (int(employee_id), work_date))

    def get_open_for_employee(self, employee_id: int) -> Optional[AttendanceSession]:
        return self._select_one(
            "employee_id=%s AND status<>%s",
            (int(employee_id), SessionState.COMPLETED.value),
            suffix="ORDER BY punch_in_time DESC LIMIT 1",
        )

    def get_recent_for_employee(self, employee_id: int, limit: int) -> Sequence[AttendanceSession]:
        return self._select("employee_id=%s", (int(employee_id), int(limit)), suffix="ORDER BY work_date DESC LIMIT %s")

    def get_range_for_employee(self, employee_id: int, start: date, end: date) -> Sequence[AttendanceSession]:
        return self._select(
            "employee_id=%s AND work_date BETWEEN %s AND %s",
            (int(employee_id), start, end),
            suffix="ORDER BY work_date",
        )

    # -------- writes --------
    def create_session(self, new: NewSession) -> AttendanceSession:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_sessions(
                        employee_id, workplace_id, work_date, punch_in_time, punch_in_method,
                        punch_in_lat, punch_in_lng, punch_in_accuracy, geofence_in_compliant, status
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        int(new.employee_id),
                        int(new.workplace_id),
                        new.work_date,
                        new.punch_in_time,
                        new.punch_in_method.value,
                        new.punch_in_point.lat,
                        new.punch_in_point.lng,
                        new.punch_in_point.accuracy,
                        int(new.geofence_in_compliant),
                        new.state.value,
                    ),
                )
                session_id = int(cur.lastrowid)
        except mysql.connector.IntegrityError as err:
            if is_duplicate_key(err):
                raise DuplicateSession() from err
            raise

        return AttendanceSession(
            session_id=session_id,
            employee_id=new.employee_id,
            workplace_id=new.workplace_id,
            work_date=new.work_date,
            punch_in_time=new.punch_in_time,
            punch_in_point=new.punch_in_point,
            punch_in_method=new.punch_in_method,
            geofence_in_compliant=new.geofence_in_compliant,
            state=new.state,
        )

    def update_session(self, session_id: int, mutate: SessionMutation) -> SessionChange:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    f"SELECT {_SESSION_COLUMNS} FROM attendance_sessions WHERE session_id=%s FOR UPDATE",
                    (int(session_id),),
                )
                row = fetchone(cur)
                if not row:
                    raise SessionNotFound()
                current = _session_from_row(row, self._load_breaks(cur, [int(session_id)])[int(session_id)])

                change = mutate(current)
                return self._write_change(cur, change)
        except mysql.connector.IntegrityError as err:
            if is_duplicate_key(err):
                raise BreakAlreadyOpen() from err
            raise

    def _write_change(self, cur, change: SessionChange) -> SessionChange:
        s = change.session
        d = s.durations
        out = s.punch_out_point
        cur.execute(
            """
            UPDATE attendance_sessions
            SET status=%s, punch_out_time=%s, punch_out_method=%s,
                punch_out_lat=%s, punch_out_lng=%s, punch_out_accuracy=%s,
                geofence_out_compliant=%s,
                total_seconds=%s, break_seconds=%s, net_seconds=%s, overtime_seconds=%s,
                verification_status=%s, approved_by=%s, approved_at=%s
            WHERE session_id=%s
            """,
            (
                s.state.value,
                s.punch_out_time,
                s.punch_out_method.value if s.punch_out_method else None,
                out.lat if out else None,
                out.lng if out else None,
                out.accuracy if out else None,
                None if s.geofence_out_compliant is None else int(s.geofence_out_compliant),
                int(d.total.total_seconds()),
                int(d.break_time.total_seconds()),
                int(d.net.total_seconds()),
                int(d.overtime.total_seconds()),
                s.verification_status.value,
                s.approved_by,
                s.approved_at,
                int(s.session_id),
            ),
        )

        new_break = change.new_break
        if new_break is not None:
            cur.execute(
                """
                INSERT INTO attendance_breaks(session_id, break_type, started_at)
                VALUES(%s,%s,%s)
                """,
                (int(s.session_id), new_break.break_type.value, new_break.started_at),
            )
            stored = replace(new_break, break_id=int(cur.lastrowid))
            breaks = tuple(stored if b is new_break else b for b in s.breaks)
            return replace(change, session=replace(s, breaks=breaks), new_break=stored)

        closed = change.closed_break
        if closed is not None:
            cur.execute(
                """
                UPDATE attendance_breaks
                SET ended_at=%s, duration_seconds=%s, exceeded=%s
                WHERE break_id=%s AND ended_at IS NULL
                """,
                (closed.ended_at, int(closed.duration.total_seconds()), int(closed.exceeded), int(closed.break_id)),
            )
        return change
