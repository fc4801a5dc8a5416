# Overview: Service-layer operations for customer payments on customization requests.

"""
Customization Payment Service

WHY: The designer quotes a price, the customer pays through the gateway, and
the money sits in escrow until the escrow service releases it. This module owns
the first two steps: the pricing agreement and the payment record trail.

DESIGN PRINCIPLES:
- Pricing agreement lives on the request; total is always the sum of its parts
- Payment records are append-only; failed attempts stay on file
- A pending record is resolved exactly once (gateway callback)
- paid_amount_cents and payment_status are derived from successful records
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app

from ..extensions import db
from ..models import CustomizationRequest, PaymentRecord
from ..validation import parse_cents
from printmarket.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry


class PaymentError(Exception):
    """Raised for payment operation errors."""
    pass


# =============================================================================
# PAYMENT STATUS (CONSTANTS)
# =============================================================================

RECORD_PENDING = "pending"
RECORD_SUCCESS = "success"
RECORD_FAILED = "failed"

VALID_RECORD_STATUSES = {RECORD_PENDING, RECORD_SUCCESS, RECORD_FAILED}

PAYMENT_STATUS_PENDING = "pending"
PAYMENT_STATUS_PARTIAL = "partially_paid"
PAYMENT_STATUS_FULL = "fully_paid"

ESCROW_HELD = "held"

# Pricing can be (re)negotiated until the customer approves the design.
PRICING_OPEN_STATUSES = {"pending_designer_review", "awaiting_customer_approval"}
PAYMENT_CLOSED_STATUSES = {"cancelled", "rejected"}


# =============================================================================
# PRICING AGREEMENT
# =============================================================================

def create_pricing_agreement(
    request_id,
    designer_id: str,
    design_fee_cents,
    product_cost_cents=0,
    printing_cost_cents=0,
) -> CustomizationRequest:
    """
    Record the designer's quote.

    Payment details stay unset until the customer starts paying, so a bare
    quote contributes nothing to finance reports. A quote can be revised
    until the customer has paid something.

    Raises:
        PaymentError: wrong designer, request past approval, or already paid
        ValidationError: malformed amounts
    """
    design_fee = parse_cents(design_fee_cents, "design_fee_cents")
    product_cost = parse_cents(product_cost_cents, "product_cost_cents")
    printing_cost = parse_cents(printing_cost_cents, "printing_cost_cents")

    def _op():
        req = lock_for_update(
            db.session.query(CustomizationRequest).filter_by(id=request_id)
        ).first()
        if not req:
            raise PaymentError(f"Customization request {request_id} not found")
        if not req.designer_id or req.designer_id != designer_id:
            raise PaymentError("Only the assigned designer can set pricing")
        if req.status not in PRICING_OPEN_STATUSES:
            raise PaymentError(f"Pricing cannot change once the request is {req.status}")
        if (req.paid_amount_cents or 0) > 0:
            raise PaymentError("Pricing cannot change after the customer has paid")

        now = utcnow()
        req.set_pricing(
            design_fee_cents=design_fee,
            product_cost_cents=product_cost,
            printing_cost_cents=printing_cost,
        )
        req.pricing_agreed_at = now
        req.updated_at = now

        db.session.commit()
        return req

    return run_with_retry(_op)


# =============================================================================
# PAYMENT RECORDS
# =============================================================================

def _open_payment_details(req: CustomizationRequest) -> None:
    req.payment_status = PAYMENT_STATUS_PENDING
    req.paid_amount_cents = 0


def _apply_success(req: CustomizationRequest, amount_cents: int) -> None:
    remaining = (req.total_cost_cents or 0) - (req.paid_amount_cents or 0)
    if amount_cents > remaining:
        raise PaymentError(
            f"Payment of {amount_cents} exceeds remaining balance {max(remaining, 0)}"
        )
    req.paid_amount_cents = (req.paid_amount_cents or 0) + amount_cents
    if req.paid_amount_cents >= (req.total_cost_cents or 0):
        req.payment_status = PAYMENT_STATUS_FULL
    else:
        req.payment_status = PAYMENT_STATUS_PARTIAL
    # Escrow holds only money actually collected.
    if req.escrow_status is None:
        req.escrow_status = ESCROW_HELD
    req.updated_at = utcnow()


def record_payment(
    request_id,
    amount_cents,
    *,
    status: str = RECORD_PENDING,
    payment_method: str | None = None,
    invoice_url: str | None = None,
    external_id: str | None = None,
    paid_at: datetime | None = None,
) -> PaymentRecord:
    """
    Append a payment record to a request.

    Success records count toward paid_amount_cents immediately and may not
    exceed the remaining balance. Pending records wait for resolve_payment.
    """
    amount = parse_cents(amount_cents, "amount_cents", allow_zero=False)
    if status not in VALID_RECORD_STATUSES:
        raise PaymentError(
            f"Invalid payment status: {status}. Must be one of {sorted(VALID_RECORD_STATUSES)}"
        )

    def _op():
        req = lock_for_update(
            db.session.query(CustomizationRequest).filter_by(id=request_id)
        ).first()
        if not req:
            raise PaymentError(f"Customization request {request_id} not found")
        if not req.has_pricing_agreement:
            raise PaymentError(f"Request {req.id} has no pricing agreement to pay against")
        if req.status in PAYMENT_CLOSED_STATUSES:
            raise PaymentError(f"Cannot take payment for a {req.status} request")
        if not req.has_payment_details:
            _open_payment_details(req)

        record = PaymentRecord(
            request_id=req.id,
            amount_cents=amount,
            status=status,
            payment_method=payment_method or current_app.config.get("DEFAULT_PAYMENT_METHOD"),
            invoice_url=invoice_url,
            external_id=external_id,
            created_at=utcnow(),
        )
        if status == RECORD_SUCCESS:
            try:
                _apply_success(req, amount)
            except PaymentError:
                db.session.rollback()
                raise
            record.paid_at = paid_at or utcnow()

        db.session.add(record)
        db.session.commit()
        return record

    return run_with_retry(_op)


def resolve_payment(payment_id, status: str, *, paid_at: datetime | None = None) -> PaymentRecord:
    """
    Resolve a pending record to success or failed.

    Resolved records are immutable; a second resolution raises PaymentError.
    """
    if status not in (RECORD_SUCCESS, RECORD_FAILED):
        raise PaymentError("Payment can only be resolved to success or failed")

    def _op():
        record = lock_for_update(
            db.session.query(PaymentRecord).filter_by(id=payment_id)
        ).first()
        if not record:
            raise PaymentError(f"Payment {payment_id} not found")
        if record.status != RECORD_PENDING:
            raise PaymentError(f"Payment {payment_id} is already {record.status}")

        if status == RECORD_SUCCESS:
            req = lock_for_update(
                db.session.query(CustomizationRequest).filter_by(id=record.request_id)
            ).first()
            try:
                _apply_success(req, record.amount_cents)
            except PaymentError:
                db.session.rollback()
                raise
            record.paid_at = paid_at or utcnow()

        record.status = status
        db.session.commit()
        return record

    return run_with_retry(_op)


def get_request_payments(request_id) -> list[PaymentRecord]:
    return (
        db.session.query(PaymentRecord)
        .filter_by(request_id=request_id)
        .order_by(PaymentRecord.id)
        .all()
    )
