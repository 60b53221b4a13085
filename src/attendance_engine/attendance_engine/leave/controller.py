from __future__ import annotations

from datetime import date

from flask import Flask, jsonify, request

from ..common.http import current_employee_id, json_body, require_date, require_int
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.leave_service

    @app.route("/leave-request", methods=["POST"], endpoint="leave_submit")
    def leave_submit():
        payload = json_body()
        req = service.submit(
            current_employee_id(),
            require_int(payload, "leaveTypeId"),
            require_date(payload, "startDate"),
            require_date(payload, "endDate"),
            payload.get("reason"),
        )
        return jsonify({"requestId": req.request_id, "status": req.status.value, "totalDays": str(req.total_days)}), 201

    @app.route("/leave-request/approve", methods=["POST"], endpoint="leave_approve")
    def leave_approve():
        payload = json_body()
        balance = service.approve(require_int(payload, "requestId"), current_employee_id())
        return jsonify({"balance": str(balance.current)})

    @app.route("/leave-request/reject", methods=["POST"], endpoint="leave_reject")
    def leave_reject():
        payload = json_body()
        req = service.reject(require_int(payload, "requestId"), current_employee_id())
        return jsonify({"status": req.status.value})

    @app.route("/leave-request/cancel", methods=["POST"], endpoint="leave_cancel")
    def leave_cancel():
        payload = json_body()
        req = service.cancel(require_int(payload, "requestId"), current_employee_id())
        return jsonify({"status": req.status.value})

    @app.route("/leave-balances", methods=["GET"], endpoint="leave_balances")
    def leave_balances():
        year = request.args.get("year", type=int) or date.today().year
        summaries = container.leave_ledger.balance_summary(current_employee_id(), year)
        return jsonify(
            {
                "year": year,
                "balances": [
                    {
                        "leaveTypeId": s.balance.leave_type_id,
                        "leaveType": s.leave_type_name,
                        "initial": str(s.balance.initial),
                        "accrued": str(s.balance.accrued),
                        "used": str(s.balance.used),
                        "current": str(s.balance.current),
                        "maxBalance": str(s.max_balance) if s.max_balance is not None else None,
                        "isCapped": s.is_capped,
                    }
                    for s in summaries
                ],
            }
        )
