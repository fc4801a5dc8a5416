from flask import Blueprint, jsonify, request, g

from ..decorators import require_user
from ..services import finance_service


finance_bp = Blueprint("finance", __name__, url_prefix="/api/finance")


@finance_bp.get("/summary")
@require_user
def finance_summary():
    role = request.args.get("role", "designer")
    time_range = request.args.get("range", "all")

    try:
        summary = finance_service.get_finance_summary(g.user_id, role, time_range)
        return jsonify(summary.to_dict()), 200
    except finance_service.FinanceError as exc:
        return jsonify({"error": str(exc)}), 400


@finance_bp.get("/history")
@require_user
def payment_history():
    role = request.args.get("role", "designer")
    filters = {
        "status": request.args.get("status"),
        "type": request.args.get("type"),
        "date_from": request.args.get("date_from"),
        "date_to": request.args.get("date_to"),
    }

    try:
        rows = finance_service.get_payment_history(g.user_id, role, filters)
        return jsonify({"transactions": [row.to_dict() for row in rows]}), 200
    except finance_service.FinanceError as exc:
        return jsonify({"error": str(exc)}), 400


@finance_bp.get("/analytics")
@require_user
def revenue_analytics():
    role = request.args.get("role", "designer")
    time_range = request.args.get("range", "30d")

    try:
        analytics = finance_service.get_revenue_analytics(g.user_id, role, time_range)
        return jsonify(analytics.to_dict()), 200
    except finance_service.FinanceError as exc:
        return jsonify({"error": str(exc)}), 400
