# backend/printmarket/routes/system.py
"""
System health endpoint.

Reports database connectivity and the escrow backlog so a deploy can be
checked without touching money paths.
"""

import time
from flask import Blueprint, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import CustomizationRequest, Order
from printmarket.time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        request_count = db.session.query(CustomizationRequest).count()
        order_count = db.session.query(Order).count()
        held_count = db.session.query(CustomizationRequest).filter_by(escrow_status="held").count()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "customization_requests": request_count,
                "orders": order_count,
                "escrow_held": held_count,
            },
        }
    except SQLAlchemyError:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: database reachable
    - 503: database unreachable
    """
    start_time = time.time()
    database_health = check_database_health()
    healthy = database_health["status"] == "healthy"

    response = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "currency": current_app.config.get("CURRENCY"),
        "checks": {"database": database_health},
    }
    return response, 200 if healthy else 503
