# Overview: Flask API routes for customization requests; parses input and returns JSON responses.

"""
Customization Request API Routes

DESIGN:
- Customer opens, approves, rejects and cancels requests
- Designer claims, prices and submits designs
- Printing shop (resolved from the caller's shop profile) prices, starts and
  completes production
- Payment records are appended here; gateway callbacks resolve them

The caller is identified by the X-User-Id header (see require_user).
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_user
from ..repositories import CustomizationRepository, ShopProfileRepository
from ..services import lifecycle_service, payment_service
from ..services.lifecycle_service import (
    LifecycleError,
    LifecycleNotFoundError,
    LifecyclePermissionError,
)
from ..services.payment_service import PaymentError
from ..validation import ValidationError


customizations_bp = Blueprint("customizations", __name__, url_prefix="/api/customizations")


def _error_response(exc: Exception):
    if isinstance(exc, LifecycleNotFoundError):
        return jsonify({"error": str(exc)}), 404
    if isinstance(exc, LifecyclePermissionError):
        return jsonify({"error": str(exc)}), 403
    return jsonify({"error": str(exc)}), 400


def _caller_shop_id():
    shop = ShopProfileRepository.find_by_user_id(g.user_id)
    if shop is None:
        raise LifecyclePermissionError("Caller has no printing shop profile")
    return shop.id


# =============================================================================
# REQUESTS
# =============================================================================

@customizations_bp.post("")
@require_user
def create_request_route():
    """
    Open a customization request as the calling customer.

    Request body:
    {
        "product_id": "prod-1",
        "product_name": "Classic Tee",
        "customer_name": "Ana",
        "customization_notes": "Logo on the back"
    }
    """
    data = request.get_json(silent=True) or {}
    data = dict(data, customer_id=g.user_id)
    try:
        req = lifecycle_service.create_request(data)
        return jsonify(req.to_dict()), 201
    except (LifecycleError, ValidationError) as exc:
        return _error_response(exc)


@customizations_bp.get("/<int:request_id>")
@require_user
def get_request_route(request_id: int):
    try:
        req = lifecycle_service.get_request(request_id)
        return jsonify(req.to_dict()), 200
    except LifecycleError as exc:
        return _error_response(exc)


@customizations_bp.patch("/<int:request_id>")
@require_user
def update_request_route(request_id: int):
    """Edit descriptive fields (notes, names, deliverable URLs). Customer or designer only."""
    data = request.get_json(silent=True)
    try:
        req = lifecycle_service.get_request(request_id)
        if g.user_id not in (req.customer_id, req.designer_id):
            raise LifecyclePermissionError("Only the customer or the assigned designer can edit this request")
        CustomizationRepository.update(request_id, data)
        return jsonify(lifecycle_service.get_request(request_id).to_dict()), 200
    except (LifecycleError, ValidationError) as exc:
        return _error_response(exc)


# =============================================================================
# WORKFLOW
# =============================================================================

@customizations_bp.post("/<int:request_id>/claim")
@require_user
def claim_route(request_id: int):
    try:
        req = lifecycle_service.claim_request(request_id, g.user_id)
        return jsonify(req.to_dict()), 200
    except LifecycleError as exc:
        return _error_response(exc)


@customizations_bp.post("/<int:request_id>/pricing")
@require_user
def pricing_route(request_id: int):
    """
    Designer quote.

    Request body:
    {"design_fee_cents": 50000, "product_cost_cents": 0, "printing_cost_cents": 0}
    """
    data = request.get_json(silent=True) or {}
    if "design_fee_cents" not in data:
        return jsonify({"error": "design_fee_cents is required"}), 400
    try:
        req = payment_service.create_pricing_agreement(
            request_id,
            g.user_id,
            data.get("design_fee_cents"),
            data.get("product_cost_cents", 0),
            data.get("printing_cost_cents", 0),
        )
        return jsonify(req.to_dict()), 200
    except (PaymentError, ValidationError) as exc:
        return _error_response(exc)


@customizations_bp.post("/<int:request_id>/submit-design")
@require_user
def submit_design_route(request_id: int):
    data = request.get_json(silent=True) or {}
    try:
        req = lifecycle_service.submit_design(
            request_id,
            g.user_id,
            final_file_url=data.get("final_file_url"),
            preview_image_url=data.get("preview_image_url"),
            notes=data.get("notes"),
        )
        return jsonify(req.to_dict()), 200
    except LifecycleError as exc:
        return _error_response(exc)


@customizations_bp.post("/<int:request_id>/approve")
@require_user
def approve_route(request_id: int):
    try:
        req = lifecycle_service.approve_design(request_id, g.user_id)
        return jsonify(req.to_dict()), 200
    except LifecycleError as exc:
        return _error_response(exc)


@customizations_bp.post("/<int:request_id>/reject")
@require_user
def reject_route(request_id: int):
    data = request.get_json(silent=True) or {}
    try:
        req = lifecycle_service.reject_design(request_id, g.user_id, data.get("reason") or "")
        return jsonify(req.to_dict()), 200
    except LifecycleError as exc:
        return _error_response(exc)


@customizations_bp.post("/<int:request_id>/production-pricing")
@require_user
def production_pricing_route(request_id: int):
    """
    Shop production quote; moves the request to ready_for_production.

    Request body:
    {"product_cost_cents": 30000, "printing_cost_cents": 20000}
    """
    data = request.get_json(silent=True) or {}
    try:
        req = lifecycle_service.finalize_production_pricing(
            request_id,
            _caller_shop_id(),
            product_cost_cents=data.get("product_cost_cents"),
            printing_cost_cents=data.get("printing_cost_cents"),
        )
        return jsonify(req.to_dict()), 200
    except (LifecycleError, ValidationError) as exc:
        return _error_response(exc)


@customizations_bp.post("/<int:request_id>/start-production")
@require_user
def start_production_route(request_id: int):
    try:
        req = lifecycle_service.start_production(request_id, _caller_shop_id())
        return jsonify(req.to_dict()), 200
    except LifecycleError as exc:
        return _error_response(exc)


@customizations_bp.post("/<int:request_id>/complete")
@require_user
def complete_route(request_id: int):
    try:
        req = lifecycle_service.complete_request(request_id, _caller_shop_id())
        return jsonify(req.to_dict()), 200
    except LifecycleError as exc:
        return _error_response(exc)


@customizations_bp.post("/<int:request_id>/cancel")
@require_user
def cancel_route(request_id: int):
    try:
        req = lifecycle_service.cancel_request(request_id, g.user_id)
    except LifecycleError as exc:
        return _error_response(exc)
    if req is None:
        return jsonify({"id": request_id, "deleted": True}), 200
    return jsonify(dict(req.to_dict(), deleted=False)), 200


# =============================================================================
# PAYMENTS
# =============================================================================

@customizations_bp.post("/<int:request_id>/payments")
@require_user
def record_payment_route(request_id: int):
    """
    Append a payment record.

    Request body:
    {
        "amount_cents": 50000,
        "status": "pending",            (pending | success | failed)
        "payment_method": "xendit",     (optional)
        "invoice_url": "https://...",   (optional)
        "external_id": "inv-123"        (optional)
    }
    """
    data = request.get_json(silent=True) or {}
    if "amount_cents" not in data:
        return jsonify({"error": "amount_cents is required"}), 400
    try:
        req = lifecycle_service.get_request(request_id)
        if req.customer_id != g.user_id:
            raise LifecyclePermissionError("Only the requesting customer can pay for this request")
        record = payment_service.record_payment(
            request_id,
            data.get("amount_cents"),
            status=data.get("status", payment_service.RECORD_PENDING),
            payment_method=data.get("payment_method"),
            invoice_url=data.get("invoice_url"),
            external_id=data.get("external_id"),
        )
        return jsonify(record.to_dict()), 201
    except (LifecycleError, PaymentError, ValidationError) as exc:
        return _error_response(exc)


@customizations_bp.get("/<int:request_id>/payments")
@require_user
def list_payments_route(request_id: int):
    try:
        lifecycle_service.get_request(request_id)
    except LifecycleError as exc:
        return _error_response(exc)
    payments = payment_service.get_request_payments(request_id)
    return jsonify({"request_id": request_id, "payments": [p.to_dict() for p in payments]}), 200


@customizations_bp.post("/payments/<int:payment_id>/resolve")
@require_user
def resolve_payment_route(payment_id: int):
    """Gateway callback: {"status": "success" | "failed"}"""
    data = request.get_json(silent=True) or {}
    try:
        record = payment_service.resolve_payment(payment_id, data.get("status"))
        return jsonify(record.to_dict()), 200
    except PaymentError as exc:
        return _error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to resolve payment %s", payment_id)
        return jsonify({"error": "Internal server error"}), 500
