# Overview: Service-layer operations for the customization request lifecycle.

"""
PrintMarket Customization Lifecycle Service

================================================================================
PURPOSE: Move a customization request from commission to finished product
================================================================================

STATE MACHINE:
    pending_designer_review -> awaiting_customer_approval -> customer_approved
        -> ready_for_production -> in_production -> completed

    pending_designer_review:     Waiting for a designer to claim and submit work
    awaiting_customer_approval:  Design submitted, customer reviews it
    customer_approved:           Customer accepted; designer escrow may be released
    ready_for_production:        Shop priced production (product + printing cost)
    in_production:               Shop is printing
    completed:                   Delivered; shop escrow may be released

    Side exits:
    awaiting_customer_approval -> pending_designer_review (rejected, revision left)
    awaiting_customer_approval -> rejected (revision budget used up)
    any state before in_production -> cancelled (customer withdraws)

RULES:
1. Terminal states (completed, cancelled, rejected) have no outgoing transitions
2. Only the assigned designer submits; only the customer approves, rejects or cancels
3. Only the assigned shop starts and completes production
4. A request with payment records is never deleted; cancelling it keeps the row

================================================================================
"""

from __future__ import annotations
from typing import Literal

from flask import current_app

from ..extensions import db
from ..models import CustomizationRequest
from ..validation import CUSTOMIZATION_CREATE_POLICY, parse_cents, validate_payload
from printmarket.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry


VALID_STATUSES = {
    "pending_designer_review",
    "awaiting_customer_approval",
    "customer_approved",
    "ready_for_production",
    "in_production",
    "completed",
    "rejected",
    "cancelled",
}
LifecycleStatus = Literal[
    "pending_designer_review",
    "awaiting_customer_approval",
    "customer_approved",
    "ready_for_production",
    "in_production",
    "completed",
    "rejected",
    "cancelled",
]

TERMINAL_STATUSES = {"completed", "cancelled", "rejected"}
CANCELLABLE_STATUSES = {
    "pending_designer_review",
    "awaiting_customer_approval",
    "customer_approved",
    "ready_for_production",
}

VALID_TRANSITIONS = {
    ("pending_designer_review", "awaiting_customer_approval"),
    ("awaiting_customer_approval", "customer_approved"),
    ("awaiting_customer_approval", "pending_designer_review"),
    ("awaiting_customer_approval", "rejected"),
    ("customer_approved", "ready_for_production"),
    ("ready_for_production", "in_production"),
    ("in_production", "completed"),
} | {(status, "cancelled") for status in CANCELLABLE_STATUSES}


class LifecycleError(ValueError):
    """
    Raised when an invalid lifecycle transition is attempted.

    This is a domain error, not a technical error. It indicates
    that the caller attempted an operation that violates workflow rules.
    """
    pass


class LifecycleNotFoundError(LifecycleError):
    """Raised when the customization request does not exist."""


class LifecyclePermissionError(LifecycleError):
    """Raised when the acting user is not the party the step belongs to."""


def validate_status(status: str) -> None:
    """
    Validate that a status value is one of the allowed states.

    Raises:
        LifecycleError: If status is not in VALID_STATUSES
    """
    if status not in VALID_STATUSES:
        raise LifecycleError(
            f"Invalid status '{status}'. Must be one of: {', '.join(sorted(VALID_STATUSES))}"
        )


def can_transition(from_status: str, to_status: str) -> bool:
    """
    Check if a state transition is valid according to the lifecycle rules.

    Same-state transitions are rejected: every step in this workflow
    changes the request's status.
    """
    validate_status(from_status)
    validate_status(to_status)
    return (from_status, to_status) in VALID_TRANSITIONS


def _load_locked(request_id) -> CustomizationRequest:
    req = lock_for_update(
        db.session.query(CustomizationRequest).filter_by(id=request_id)
    ).first()
    if not req:
        raise LifecycleNotFoundError(f"Customization request {request_id} not found")
    return req


def _transition(req: CustomizationRequest, to_status: str) -> None:
    if not can_transition(req.status, to_status):
        raise LifecycleError(
            f"Cannot move request {req.id} from {req.status} to {to_status}"
        )
    req.status = to_status
    req.updated_at = utcnow()


def _require_customer(req: CustomizationRequest, customer_id: str) -> None:
    if req.customer_id != customer_id:
        raise LifecyclePermissionError("Only the requesting customer can do this")


def _require_designer(req: CustomizationRequest, designer_id: str) -> None:
    if not req.designer_id or req.designer_id != designer_id:
        raise LifecyclePermissionError("Only the assigned designer can do this")


def _require_shop(req: CustomizationRequest, shop_id: str) -> None:
    if not req.printing_shop_id or req.printing_shop_id != shop_id:
        raise LifecyclePermissionError("Only the assigned printing shop can do this")


def get_request(request_id) -> CustomizationRequest:
    req = db.session.get(CustomizationRequest, request_id)
    if not req:
        raise LifecycleNotFoundError(f"Customization request {request_id} not found")
    return req


def create_request(payload: dict) -> CustomizationRequest:
    """
    Open a new request in pending_designer_review.

    Accepted fields: customer_id (required), customer_name, product_id,
    product_name, customization_notes.
    """
    clean = validate_payload(
        model=CustomizationRequest,
        payload=payload,
        policy=CUSTOMIZATION_CREATE_POLICY,
        partial=False,
    )
    now = utcnow()
    req = CustomizationRequest(
        status="pending_designer_review",
        revision_count=0,
        paid_amount_cents=0,
        requested_at=now,
        updated_at=now,
        **clean,
    )
    db.session.add(req)
    db.session.commit()
    return req


def claim_request(request_id, designer_id: str) -> CustomizationRequest:
    """Assign a designer to an open request. Status does not change."""
    def _op():
        req = _load_locked(request_id)
        if req.status != "pending_designer_review":
            raise LifecycleError(f"Request {req.id} is {req.status}; only open requests can be claimed")
        if req.designer_id and req.designer_id != designer_id:
            raise LifecycleError(f"Request {req.id} is already claimed by another designer")
        req.designer_id = designer_id
        req.updated_at = utcnow()
        db.session.commit()
        return req

    return run_with_retry(_op)


def submit_design(
    request_id,
    designer_id: str,
    *,
    final_file_url: str,
    preview_image_url: str | None = None,
    notes: str | None = None,
) -> CustomizationRequest:
    """pending_designer_review -> awaiting_customer_approval"""
    if not final_file_url:
        raise LifecycleError("final_file_url is required to submit a design")

    def _op():
        req = _load_locked(request_id)
        _require_designer(req, designer_id)
        _transition(req, "awaiting_customer_approval")
        req.designer_final_file_url = final_file_url
        req.designer_preview_image_url = preview_image_url
        if notes is not None:
            req.designer_notes = notes
        db.session.commit()
        return req

    return run_with_retry(_op)


def approve_design(request_id, customer_id: str) -> CustomizationRequest:
    """
    awaiting_customer_approval -> customer_approved

    Entering customer_approved opens the designer escrow release gate.
    """
    def _op():
        req = _load_locked(request_id)
        _require_customer(req, customer_id)
        _transition(req, "customer_approved")
        req.rejection_reason = None
        db.session.commit()
        return req

    return run_with_retry(_op)


def reject_design(request_id, customer_id: str, reason: str) -> CustomizationRequest:
    """
    Send the design back for another revision, or reject the request once the
    revision budget (MAX_DESIGN_REVISIONS) is spent.
    """
    if not reason or not reason.strip():
        raise LifecycleError("A rejection reason is required")

    max_revisions = int(current_app.config.get("MAX_DESIGN_REVISIONS", 3))

    def _op():
        req = _load_locked(request_id)
        _require_customer(req, customer_id)
        revisions = (req.revision_count or 0) + 1
        target = "rejected" if revisions >= max_revisions else "pending_designer_review"
        _transition(req, target)
        req.revision_count = revisions
        req.rejection_reason = reason.strip()
        db.session.commit()
        return req

    return run_with_retry(_op)


def finalize_production_pricing(
    request_id,
    shop_id: str,
    *,
    product_cost_cents,
    printing_cost_cents,
) -> CustomizationRequest:
    """
    customer_approved -> ready_for_production

    Assigns the printing shop, records its product and printing cost and
    recomputes the total. Payment status follows the new total.
    """
    product_cost = parse_cents(product_cost_cents, "product_cost_cents")
    printing_cost = parse_cents(printing_cost_cents, "printing_cost_cents")

    def _op():
        req = _load_locked(request_id)
        if req.printing_shop_id and req.printing_shop_id != shop_id:
            raise LifecyclePermissionError("Request is assigned to another printing shop")
        if not req.has_pricing_agreement:
            raise LifecycleError(f"Request {req.id} has no pricing agreement")
        _transition(req, "ready_for_production")

        req.printing_shop_id = shop_id
        req.set_pricing(
            design_fee_cents=req.design_fee_cents,
            product_cost_cents=product_cost,
            printing_cost_cents=printing_cost,
        )
        if req.payment_status in ("partially_paid", "fully_paid"):
            paid = req.paid_amount_cents or 0
            req.payment_status = "fully_paid" if paid >= req.total_cost_cents else "partially_paid"
        db.session.commit()
        return req

    return run_with_retry(_op)


def start_production(request_id, shop_id: str) -> CustomizationRequest:
    """ready_for_production -> in_production"""
    def _op():
        req = _load_locked(request_id)
        _require_shop(req, shop_id)
        _transition(req, "in_production")
        db.session.commit()
        return req

    return run_with_retry(_op)


def complete_request(request_id, shop_id: str) -> CustomizationRequest:
    """in_production -> completed (opens the shop escrow release gate)"""
    def _op():
        req = _load_locked(request_id)
        _require_shop(req, shop_id)
        _transition(req, "completed")
        db.session.commit()
        return req

    return run_with_retry(_op)


def cancel_request(request_id, customer_id: str) -> CustomizationRequest | None:
    """
    Customer withdraws before production.

    Returns None when the request had no payment records and was deleted,
    otherwise the request in cancelled status.
    """
    def _op():
        req = _load_locked(request_id)
        _require_customer(req, customer_id)
        if not can_transition(req.status, "cancelled"):
            raise LifecycleError(f"Request {req.id} cannot be cancelled from {req.status}")

        if not req.payments:
            db.session.delete(req)
            db.session.commit()
            current_app.logger.info("Customization request %s deleted on cancel", request_id)
            return None

        _transition(req, "cancelled")
        db.session.commit()
        return req

    return run_with_retry(_op)
