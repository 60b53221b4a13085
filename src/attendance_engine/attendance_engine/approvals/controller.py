from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import current_employee_id, json_body, require_enum, require_int
from ..common.validators import require_present
from ..container import Container
from ..core.enums import Decision, ExceptionKind
from .model import ExceptionRequest


def _request_json(r: ExceptionRequest) -> dict:
    return {
        "requestId": r.request_id,
        "sessionId": r.session_id,
        "kind": r.kind.value,
        "reason": r.reason,
        "status": r.status.value,
        "requesterId": r.requester_id,
        "approverId": r.approver_id,
        "createdAt": r.created_at.isoformat(),
    }


def register(app: Flask, container: Container) -> None:
    service = container.approval_service

    @app.route("/attendance/exception-request", methods=["POST"], endpoint="exception_request")
    def exception_request():
        payload = json_body()
        req = service.request_exception(
            require_int(payload, "sessionId"),
            require_enum(payload, "kind", ExceptionKind),
            str(require_present(payload.get("reason"), "reason")),
            current_employee_id(),
        )
        return jsonify({"requestId": req.request_id, "status": req.status.value}), 201

    @app.route("/attendance/exception-resolve", methods=["POST"], endpoint="exception_resolve")
    def exception_resolve():
        payload = json_body()
        req = service.resolve_exception(
            require_int(payload, "requestId"),
            require_enum(payload, "decision", Decision),
            current_employee_id(),
            payload.get("notes"),
        )
        return jsonify({"status": req.status.value})

    @app.route("/attendance/exception-requests", methods=["GET"], endpoint="pending_exceptions")
    def pending_exceptions():
        session_id = require_int(request.args.to_dict(), "sessionId")
        return jsonify({"requests": [_request_json(r) for r in service.pending_for_session(session_id)]})

    @app.route("/attendance/approval-stats", methods=["GET"], endpoint="approval_stats")
    def approval_stats():
        stats = service.approval_stats()
        return jsonify(
            {
                "totalRequests": stats.total,
                "pendingRequests": stats.pending,
                "approvedRequests": stats.approved,
                "rejectedRequests": stats.rejected,
                "approvalRate": stats.approval_rate,
                "averageResponseTime": stats.average_response_hours,
            }
        )
