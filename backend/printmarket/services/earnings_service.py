# Overview: Service-layer operations for designer earnings records on design-only orders.

"""
Designer Earnings Service

WHY: A paid design-only order earns its designer money outside of the
customization workflow. The earnings record is the authoritative entry for
that money; the finance engine only falls back to the order itself when no
record exists (legacy data).

RULES:
- At most one record per order (unique order_id); creating it again returns
  the existing record
- Records are created only for paid, design-only, non-cancelled orders
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import DesignerEarning, DesignerProfile, Order
from ..records import OrderSnapshot
from printmarket.time_utils import utcnow


class EarningsError(Exception):
    """Raised when an order cannot be recorded as designer earnings."""
    pass


def _is_earning_order(snapshot: OrderSnapshot) -> bool:
    return snapshot.is_design_only and snapshot.is_paid and not snapshot.is_cancelled


def record_design_order_earnings(order_id: str, *, paid_at: datetime | None = None) -> DesignerEarning | None:
    """
    Create the earnings record for a paid design-only order, once.

    Returns the record (new or existing), or None when the order does not earn
    designer money or its business owner has no designer profile.
    """
    order = db.session.get(Order, order_id)
    if not order:
        raise EarningsError(f"Order {order_id} not found")

    existing = db.session.query(DesignerEarning).filter_by(order_id=order_id).first()
    if existing:
        return existing

    if not _is_earning_order(OrderSnapshot.from_model(order)):
        return None

    profile = db.session.query(DesignerProfile).filter_by(user_id=order.business_owner_id).first()
    if not profile:
        current_app.logger.warning(
            "No designer profile for user %s; earnings for order %s not recorded",
            order.business_owner_id, order_id,
        )
        return None

    earning = DesignerEarning(
        designer_id=profile.id,
        order_id=order.id,
        amount_cents=order.total_amount_cents or 0,
        paid_at=paid_at or utcnow(),
        created_at=utcnow(),
    )
    db.session.add(earning)
    try:
        db.session.commit()
    except IntegrityError:
        # Concurrent writer created it first.
        db.session.rollback()
        return db.session.query(DesignerEarning).filter_by(order_id=order_id).first()
    return earning


def backfill_design_order_earnings(user_id: str) -> int:
    """
    Create missing records for a designer's legacy paid design orders.

    The order's creation time stands in for the unknown payment time, matching
    the date the finance engine uses for unrecorded orders. Returns the number
    of records created.
    """
    orders = (
        db.session.query(Order)
        .options(selectinload(Order.items))
        .filter(Order.business_owner_id == user_id)
        .order_by(Order.created_at)
        .all()
    )
    recorded = {
        row.order_id
        for row in db.session.query(DesignerEarning.order_id)
        .filter(DesignerEarning.order_id.in_([o.id for o in orders]))
        .all()
    } if orders else set()

    created = 0
    for order in orders:
        if order.id in recorded:
            continue
        if not _is_earning_order(OrderSnapshot.from_model(order)):
            continue
        earning = record_design_order_earnings(order.id, paid_at=order.created_at)
        if earning is not None:
            created += 1
    return created
