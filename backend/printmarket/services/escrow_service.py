# Overview: Service-layer operations for escrow release and repair on customization requests.

"""
Escrow Settlement Service

WHY: The customer pays the full total up front. The money is held until the
workflow earns it out: the design fee goes to the designer once the customer
approves the design, product and printing cost go to the shop once production
completes.

ESCROW STATES:
    held -> designer_paid -> released
    held -> shop_paid
    (released is reached when both payouts exist)

GUARANTEES:
- A payout amount is written at most once per request and role
- Each release is a single conditional UPDATE; a lost race raises DoubleReleaseError
- repair_escrow_state only backfills timestamps and advances escrow; it never
  changes a payout amount
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import CustomizationRequest
from printmarket.time_utils import to_utc_z, utcnow
from .concurrency import guarded_update, lock_for_update, run_with_retry


class EscrowError(Exception):
    """Raised when a payout cannot be released."""
    pass


class EscrowNotFoundError(EscrowError):
    """Raised when the customization request does not exist."""


class DoubleReleaseError(EscrowError):
    """Raised when the payout was already released, including by a concurrent caller."""


# =============================================================================
# ESCROW STATUS (CONSTANTS)
# =============================================================================

ESCROW_HELD = "held"
ESCROW_DESIGNER_PAID = "designer_paid"
ESCROW_SHOP_PAID = "shop_paid"
ESCROW_RELEASED = "released"

DESIGNER_RELEASE_STATUSES = {"customer_approved", "ready_for_production"}
SHOP_RELEASE_STATUSES = {"completed"}
SHOP_RELEASE_ESCROW = {ESCROW_HELD, ESCROW_DESIGNER_PAID}


def _load_locked(request_id) -> CustomizationRequest:
    req = lock_for_update(
        db.session.query(CustomizationRequest).filter_by(id=request_id)
    ).first()
    if not req:
        raise EscrowNotFoundError(f"Customization request {request_id} not found")
    return req


def designer_payout_amount(design_fee_cents: int) -> int:
    """Designer share of the design fee per DESIGNER_PAYOUT_PERCENT (integer cents, rounded down)."""
    percent = int(current_app.config.get("DESIGNER_PAYOUT_PERCENT", 100))
    return design_fee_cents * percent // 100


def _shop_escrow_after_release(req: CustomizationRequest) -> str:
    return ESCROW_RELEASED if req.designer_payout_cents is not None else ESCROW_SHOP_PAID


# =============================================================================
# ELIGIBILITY
# =============================================================================

def _designer_blocker(req: CustomizationRequest) -> str | None:
    if req.designer_payout_cents is not None:
        return "designer payout already released"
    if not req.has_pricing_agreement:
        return "no pricing agreement"
    if not req.designer_id:
        return "no designer assigned"
    if req.status not in DESIGNER_RELEASE_STATUSES:
        return f"request is {req.status}"
    if req.escrow_status != ESCROW_HELD:
        return f"escrow is {req.escrow_status or 'not open'}"
    return None


def _shop_blocker(req: CustomizationRequest) -> str | None:
    if req.shop_payout_cents is not None:
        return "shop payout already released"
    if not req.has_pricing_agreement:
        return "no pricing agreement"
    if not req.printing_shop_id:
        return "no printing shop assigned"
    if req.status not in SHOP_RELEASE_STATUSES:
        return f"request is {req.status}"
    if req.escrow_status not in SHOP_RELEASE_ESCROW:
        return f"escrow is {req.escrow_status or 'not open'}"
    return None


def can_release_designer_payment(request_id) -> bool:
    """True when the designer payout can be released now. Never raises."""
    try:
        req = db.session.get(CustomizationRequest, request_id)
    except SQLAlchemyError:
        current_app.logger.exception("Escrow eligibility check failed for request %s", request_id)
        return False
    return req is not None and _designer_blocker(req) is None


def can_release_shop_payment(request_id) -> bool:
    """True when the shop payout can be released now. Never raises."""
    try:
        req = db.session.get(CustomizationRequest, request_id)
    except SQLAlchemyError:
        current_app.logger.exception("Escrow eligibility check failed for request %s", request_id)
        return False
    return req is not None and _shop_blocker(req) is None


# =============================================================================
# RELEASE
# =============================================================================

def release_designer_payment(request_id, *, now: datetime | None = None) -> CustomizationRequest:
    """
    Release the design fee share to the designer.

    Raises:
        EscrowNotFoundError: request does not exist
        DoubleReleaseError: payout already recorded, or a concurrent release won
        EscrowError: missing pricing / designer, or status not eligible
    """
    def _op():
        req = _load_locked(request_id)
        blocker = _designer_blocker(req)
        if blocker == "designer payout already released":
            raise DoubleReleaseError(f"Request {req.id}: {blocker}")
        if blocker:
            raise EscrowError(f"Cannot release designer payment for request {req.id}: {blocker}")

        amount = designer_payout_amount(req.design_fee_cents)
        payout_id = f"designer-payout-{req.id}"
        paid_at = now or utcnow()

        matched = guarded_update(
            CustomizationRequest,
            CustomizationRequest.id == req.id,
            CustomizationRequest.designer_payout_cents.is_(None),
            CustomizationRequest.escrow_status == ESCROW_HELD,
            values={
                "designer_payout_cents": amount,
                "designer_paid_at": paid_at,
                "designer_payout_id": payout_id,
                "escrow_status": ESCROW_DESIGNER_PAID,
                "updated_at": paid_at,
            },
        )
        if matched != 1:
            db.session.rollback()
            raise DoubleReleaseError(f"Request {request_id}: designer payout already released")

        db.session.commit()
        current_app.logger.info(
            "Released designer payout %s for request %s: %s cents", payout_id, request_id, amount
        )
        return db.session.get(CustomizationRequest, request_id)

    return run_with_retry(_op)


def release_shop_payment(request_id, *, now: datetime | None = None) -> CustomizationRequest:
    """
    Release product and printing cost to the printing shop.

    Escrow ends in released when the designer was already paid, else shop_paid.
    """
    def _op():
        req = _load_locked(request_id)
        blocker = _shop_blocker(req)
        if blocker == "shop payout already released":
            raise DoubleReleaseError(f"Request {req.id}: {blocker}")
        if blocker:
            raise EscrowError(f"Cannot release shop payment for request {req.id}: {blocker}")

        amount = (req.product_cost_cents or 0) + (req.printing_cost_cents or 0)
        payout_id = f"shop-payout-{req.id}"
        paid_at = now or utcnow()
        observed_escrow = req.escrow_status

        matched = guarded_update(
            CustomizationRequest,
            CustomizationRequest.id == req.id,
            CustomizationRequest.shop_payout_cents.is_(None),
            CustomizationRequest.escrow_status == observed_escrow,
            values={
                "shop_payout_cents": amount,
                "shop_paid_at": paid_at,
                "shop_payout_id": payout_id,
                "escrow_status": _shop_escrow_after_release(req),
                "updated_at": paid_at,
            },
        )
        if matched != 1:
            db.session.rollback()
            raise DoubleReleaseError(f"Request {request_id}: shop payout already released")

        db.session.commit()
        current_app.logger.info(
            "Released shop payout %s for request %s: %s cents", payout_id, request_id, amount
        )
        return db.session.get(CustomizationRequest, request_id)

    return run_with_retry(_op)


# =============================================================================
# SELF-HEALING
# =============================================================================

def repair_escrow_state(request_id, *, now: datetime | None = None) -> bool:
    """
    Restore invariant (payout amount => paid-at timestamp) after a partial write.

    For each role whose payout amount is set but paid-at is missing, backfill
    paid-at with now and advance escrow from its pre-release state. Returns
    True when something was written. Running it again is a no-op.
    """
    def _op():
        req = _load_locked(request_id)
        stamp = now or utcnow()
        fixed = []

        if req.designer_payout_cents is not None and req.designer_paid_at is None:
            req.designer_paid_at = stamp
            fixed.append("designer_paid_at")
            if req.escrow_status == ESCROW_HELD:
                req.escrow_status = ESCROW_DESIGNER_PAID
                fixed.append("escrow_status")

        if req.shop_payout_cents is not None and req.shop_paid_at is None:
            req.shop_paid_at = stamp
            fixed.append("shop_paid_at")
            if req.escrow_status in SHOP_RELEASE_ESCROW:
                req.escrow_status = _shop_escrow_after_release(req)
                if "escrow_status" not in fixed:
                    fixed.append("escrow_status")

        if not fixed:
            db.session.rollback()
            return False

        req.updated_at = stamp
        db.session.commit()
        current_app.logger.warning(
            "Repaired escrow state for request %s: %s", request_id, ", ".join(fixed)
        )
        return True

    return run_with_retry(_op)


# =============================================================================
# STATUS / POLL
# =============================================================================

def get_escrow_status(request_id) -> dict:
    req = db.session.get(CustomizationRequest, request_id)
    if not req:
        raise EscrowNotFoundError(f"Customization request {request_id} not found")

    return {
        "request_id": req.id,
        "status": req.status,
        "payment_status": req.payment_status,
        "escrow_status": req.escrow_status,
        "total_cost_cents": req.total_cost_cents,
        "paid_amount_cents": req.paid_amount_cents,
        "currency": current_app.config.get("CURRENCY", "PHP"),
        "designer": {
            "designer_id": req.designer_id,
            "payout_cents": req.designer_payout_cents,
            "paid_at": to_utc_z(req.designer_paid_at),
            "payout_id": req.designer_payout_id,
            "can_release": _designer_blocker(req) is None,
        },
        "shop": {
            "printing_shop_id": req.printing_shop_id,
            "payout_cents": req.shop_payout_cents,
            "paid_at": to_utc_z(req.shop_paid_at),
            "payout_id": req.shop_payout_id,
            "can_release": _shop_blocker(req) is None,
        },
    }


def release_eligible_payments(*, now: datetime | None = None) -> dict:
    """
    Repair, then release every payout that is due.

    Each request is handled on its own; a failure is logged and counted and
    the sweep moves on.
    """
    request_ids = [
        row.id
        for row in db.session.query(CustomizationRequest.id)
        .filter(CustomizationRequest.payment_status.isnot(None))
        .order_by(CustomizationRequest.id)
        .all()
    ]

    result = {"checked": len(request_ids), "repaired": 0, "designer_released": 0, "shop_released": 0, "failed": 0}

    for request_id in request_ids:
        try:
            if repair_escrow_state(request_id, now=now):
                result["repaired"] += 1
            if can_release_designer_payment(request_id):
                release_designer_payment(request_id, now=now)
                result["designer_released"] += 1
            if can_release_shop_payment(request_id):
                release_shop_payment(request_id, now=now)
                result["shop_released"] += 1
        except (EscrowError, SQLAlchemyError):
            db.session.rollback()
            result["failed"] += 1
            current_app.logger.exception("Escrow sweep failed for request %s", request_id)

    return result
