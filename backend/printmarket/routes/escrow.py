from flask import Blueprint, jsonify, current_app

from ..decorators import require_request_party, require_user
from ..services import escrow_service


escrow_bp = Blueprint("escrow", __name__, url_prefix="/api/escrow")


def _error_response(exc: escrow_service.EscrowError):
    if isinstance(exc, escrow_service.EscrowNotFoundError):
        return jsonify({"error": str(exc)}), 404
    if isinstance(exc, escrow_service.DoubleReleaseError):
        return jsonify({"error": str(exc)}), 409
    return jsonify({"error": str(exc)}), 400


@escrow_bp.get("/<int:request_id>")
@require_user
@require_request_party("customer", "designer", "shop")
def escrow_status(request_id: int):
    try:
        return jsonify(escrow_service.get_escrow_status(request_id)), 200
    except escrow_service.EscrowError as exc:
        return _error_response(exc)


@escrow_bp.post("/<int:request_id>/release-designer")
@require_user
@require_request_party("customer")
def release_designer(request_id: int):
    try:
        req = escrow_service.release_designer_payment(request_id)
        return jsonify(req.to_dict()), 200
    except escrow_service.EscrowError as exc:
        return _error_response(exc)
    except Exception:
        current_app.logger.exception("Designer release failed for request %s", request_id)
        return jsonify({"error": "Internal server error"}), 500


@escrow_bp.post("/<int:request_id>/release-shop")
@require_user
@require_request_party("customer")
def release_shop(request_id: int):
    try:
        req = escrow_service.release_shop_payment(request_id)
        return jsonify(req.to_dict()), 200
    except escrow_service.EscrowError as exc:
        return _error_response(exc)
    except Exception:
        current_app.logger.exception("Shop release failed for request %s", request_id)
        return jsonify({"error": "Internal server error"}), 500
