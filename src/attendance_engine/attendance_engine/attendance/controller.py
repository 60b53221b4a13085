from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import to_hours, to_minutes
from ..common.http import (
    current_employee_id,
    json_body,
    optional_datetime,
    parse_point,
    require_date,
    require_enum,
    require_int,
)
from ..container import Container
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import BreakType, PunchMethod
from ..worktime.calculator.base import WorkDurations
from .model import AttendanceSession, SessionSnapshot


def _durations_json(d: WorkDurations) -> dict:
    return {
        "totalHours": to_hours(d.total),
        "breakHours": to_hours(d.break_time),
        "netHours": to_hours(d.net),
        "overtimeHours": to_hours(d.overtime),
    }


def _snapshot_json(s: SessionSnapshot) -> dict:
    return {
        "sessionId": s.session_id,
        "workplaceId": s.workplace_id,
        "workDate": s.work_date.isoformat(),
        "status": s.state.value,
        "punchInTime": s.punch_in_time.isoformat(),
        "punchOutTime": s.punch_out_time.isoformat() if s.punch_out_time else None,
        "geofenceCompliant": s.geofence_in_compliant,
        "onBreakSince": s.on_break_since.isoformat() if s.on_break_since else None,
        "provisional": s.provisional,
        **_durations_json(s.durations),
    }


def _session_json(s: AttendanceSession) -> dict:
    return {
        "sessionId": s.session_id,
        "workDate": s.work_date.isoformat(),
        "status": s.state.value,
        "punchInTime": s.punch_in_time.isoformat(),
        "punchOutTime": s.punch_out_time.isoformat() if s.punch_out_time else None,
        "verificationStatus": s.verification_status.value,
        **_durations_json(s.durations),
    }


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service

    @app.route("/attendance/punch-in", methods=["POST"], endpoint="punch_in")
    def punch_in():
        payload = json_body()
        session = service.punch_in(
            current_employee_id(),
            require_int(payload, "workplaceId"),
            parse_point(payload),
            method=require_enum(payload, "method", PunchMethod, PunchMethod.MOBILE),
            now=optional_datetime(payload, "timestamp"),
        )
        return (
            jsonify(
                {
                    "sessionId": session.session_id,
                    "status": session.state.value,
                    "geofenceCompliant": session.geofence_in_compliant,
                }
            ),
            201,
        )

    @app.route("/attendance/punch-out", methods=["POST"], endpoint="punch_out")
    def punch_out():
        payload = json_body()
        session = service.punch_out(
            current_employee_id(),
            parse_point(payload),
            method=require_enum(payload, "method", PunchMethod, PunchMethod.MOBILE),
            now=optional_datetime(payload, "timestamp"),
        )
        return jsonify({"sessionId": session.session_id, **_durations_json(session.durations)})

    @app.route("/attendance/break/start", methods=["POST"], endpoint="break_start")
    def break_start():
        payload = json_body()
        started = service.start_break(
            require_int(payload, "sessionId"),
            require_enum(payload, "breakType", BreakType),
            employee_id=current_employee_id(),
            now=optional_datetime(payload, "timestamp"),
        )
        return jsonify({"breakId": started.break_id}), 201

    @app.route("/attendance/break/end", methods=["POST"], endpoint="break_end")
    def break_end():
        payload = json_body()
        closed = service.end_break_by_id(
            require_int(payload, "breakId"),
            employee_id=current_employee_id(),
            now=optional_datetime(payload, "timestamp"),
        )
        return jsonify({"durationMinutes": to_minutes(closed.duration), "exceeded": closed.exceeded})

    @app.route("/attendance/current-status", methods=["GET"], endpoint="current_status")
    def current_status():
        snapshot = service.current_status(current_employee_id())
        return jsonify(
            {
                "isActive": bool(snapshot and snapshot.is_active),
                "sessionSnapshot": _snapshot_json(snapshot) if snapshot else None,
            }
        )

    @app.route("/attendance/verify-location", methods=["GET"], endpoint="verify_location")
    def verify_location():
        args = request.args.to_dict()
        check = container.geofence.verify_location(
            parse_point(args),
            require_int(args, "workplaceId"),
            method=require_enum(args, "method", PunchMethod, PunchMethod.MOBILE),
        )
        return jsonify(
            {
                "distance": round(check.distance_meters, 2) if check.distance_meters is not None else None,
                "radius": check.radius_meters,
                "zoneId": check.nearest_zone_id,
                "isWithinRadius": check.compliant,
            }
        )

    @app.route("/attendance/history", methods=["GET"], endpoint="attendance_history")
    def attendance_history():
        limit = request.args.get("limit", type=int) or DEFAULT_HISTORY_LIMIT
        sessions = service.history(current_employee_id(), limit)
        return jsonify({"sessions": [_session_json(s) for s in sessions]})

    @app.route("/attendance/stats", methods=["GET"], endpoint="attendance_stats")
    def attendance_stats():
        args = request.args.to_dict()
        stats = container.stats_service.employee_stats(
            current_employee_id(),
            require_date(args, "startDate"),
            require_date(args, "endDate"),
        )
        return jsonify(
            {
                "daysAttended": stats.days_attended,
                "totalNetHours": stats.total_net_hours,
                "averageNetHours": stats.average_net_hours,
                "totalOvertimeHours": stats.total_overtime_hours,
                "flaggedForReview": stats.flagged_for_review,
            }
        )
