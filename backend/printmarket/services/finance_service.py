# Overview: Settlement/ledger engine; finance summary, payment history and revenue analytics.

"""
PrintMarket Finance Service

================================================================================
PURPOSE: Reconstruct a party's money position from domain records
================================================================================

There is no ledger table. Every call reads customization requests, orders and
designer earnings records, normalises them into LedgerEvents and aggregates.

SETTLEMENT OF AN EVENT:
    paid       released to the party (payout done, order delivered and paid,
               earnings record)
    collected  customer paid, money not yet released to the party
    pending    customer has not paid yet

SUMMARY:
    paid_amount     = sum(paid)
    pending_amount  = sum(collected) + sum(pending)
    total_earnings  = paid_amount + pending_amount
    this_month      = sum(paid + collected) dated this calendar month (UTC)

DEDUPLICATION:
    An earnings record and its design-only order describe the same money.
    The set of order ids covered by earnings records is built once per query;
    orders in that set never produce their own event.

FAILURE SEMANTICS:
    Secondary lookups (profiles, earnings, design orders, product names,
    repair, release) are best-effort: a failure is logged and the source
    contributes nothing. Reports never fail because of one bad record.

================================================================================
"""

from __future__ import annotations

import math
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Optional

from flask import current_app

from ..records import CustomizationSnapshot, EarningSnapshot, OrderItemSnapshot, OrderSnapshot
from ..repositories import (
    CustomizationRepository,
    DesignerEarningsRepository,
    DesignerProfileRepository,
    OrderRepository,
    ProductRepository,
    ShopProfileRepository,
    run_reads,
)
from printmarket.time_utils import month_start, to_datetime, to_utc_z, utcnow
from . import escrow_service


class FinanceError(ValueError):
    """Raised for an unknown role, time range or history filter."""
    pass


# =============================================================================
# CONSTANTS
# =============================================================================

TIME_RANGE_DAYS = {
    "7d": 7,
    "30d": 30,
    "90d": 90,
    "1y": 365,
    "all": None,
}
ANALYTICS_ALL_WINDOW_DAYS = 365
TOP_ITEMS_LIMIT = 10

ROLE_DESIGNER = "designer"
ROLE_BUSINESS_OWNER = "business_owner"
ROLE_CUSTOMER = "customer"
SUMMARY_ROLES = {ROLE_DESIGNER, ROLE_BUSINESS_OWNER}
HISTORY_ROLES = SUMMARY_ROLES | {ROLE_CUSTOMER}

SETTLEMENT_PAID = "paid"
SETTLEMENT_COLLECTED = "collected"
SETTLEMENT_PENDING = "pending"
EARNED_SETTLEMENTS = {SETTLEMENT_PAID, SETTLEMENT_COLLECTED}

KIND_CUSTOMIZATION = "customization"
KIND_ORDER = "order"

TRANSACTION_STATUSES = {"pending", "success", "failed", "refunded"}
TRANSACTION_TYPES = {KIND_CUSTOMIZATION, KIND_ORDER}

APPROVED_STATUSES = {"customer_approved", "ready_for_production"}
PRE_APPROVAL_STATUSES = {"pending_designer_review", "awaiting_customer_approval"}


# =============================================================================
# HELPERS
# =============================================================================

def get_cutoff(time_range: str, now: datetime | None = None) -> datetime | None:
    """Start of the reporting window; None means unbounded ('all')."""
    if time_range not in TIME_RANGE_DAYS:
        raise FinanceError(
            f"Invalid time range '{time_range}'. Must be one of: {', '.join(TIME_RANGE_DAYS)}"
        )
    days = TIME_RANGE_DAYS[time_range]
    if days is None:
        return None
    return (now or utcnow()) - timedelta(days=days)


def qualifies(effective_at: datetime | None, cutoff: datetime | None) -> bool:
    """Inclusive cutoff; undated records only count when there is no cutoff."""
    if cutoff is None:
        return True
    if effective_at is None:
        return False
    return effective_at >= cutoff


def calculate_growth(values: list[int]) -> dict:
    """Second half of the series against the first half, in percent."""
    if len(values) < 2:
        return {"percentage": 0, "period": "N/A"}

    mid = len(values) // 2
    first = sum(values[:mid])
    second = sum(values[mid:])

    if first == 0:
        return {"percentage": 100 if second > 0 else 0, "period": "current"}

    return {"percentage": round((second - first) / first * 100, 2), "period": "current"}


def _validate_role(role: str, allowed: set[str]) -> None:
    if role not in allowed:
        raise FinanceError(f"Invalid role '{role}'. Must be one of: {', '.join(sorted(allowed))}")


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass(frozen=True)
class LedgerEvent:
    key: str
    kind: str
    reference_id: str
    amount_cents: int
    settlement: str
    effective_at: Optional[datetime]
    name: str
    items: tuple[OrderItemSnapshot, ...] = ()


@dataclass
class FinanceSummary:
    total_earnings_cents: int = 0
    total_revenue_cents: int = 0
    pending_amount_cents: int = 0
    paid_amount_cents: int = 0
    this_month_earnings_cents: int = 0
    this_month_revenue_cents: int = 0
    currency: str = "PHP"

    def to_dict(self) -> dict:
        return {
            "total_earnings_cents": self.total_earnings_cents,
            "total_revenue_cents": self.total_revenue_cents,
            "pending_amount_cents": self.pending_amount_cents,
            "paid_amount_cents": self.paid_amount_cents,
            "this_month_earnings_cents": self.this_month_earnings_cents,
            "this_month_revenue_cents": self.this_month_revenue_cents,
            "currency": self.currency,
        }


@dataclass
class PaymentTransaction:
    id: str
    type: str
    reference_id: str
    amount_cents: int
    status: str
    paid_at: Optional[datetime] = None
    payment_method: Optional[str] = None
    invoice_url: Optional[str] = None
    description: str = ""
    customer_name: Optional[str] = None
    product_name: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "reference_id": self.reference_id,
            "amount_cents": self.amount_cents,
            "status": self.status,
            "paid_at": to_utc_z(self.paid_at),
            "payment_method": self.payment_method,
            "invoice_url": self.invoice_url,
            "description": self.description,
            "customer_name": self.customer_name,
            "product_name": self.product_name,
        }


@dataclass
class RevenueAnalytics:
    time_series: list[dict] = field(default_factory=list)
    breakdown: dict = field(default_factory=lambda: {"customizations_cents": 0, "orders_cents": 0})
    top_items: list[dict] = field(default_factory=list)
    growth: dict = field(default_factory=lambda: {"percentage": 0, "period": "N/A"})

    def to_dict(self) -> dict:
        return {
            "time_series": self.time_series,
            "breakdown": self.breakdown,
            "top_items": self.top_items,
            "growth": self.growth,
        }


@dataclass(frozen=True)
class HistoryFilters:
    status: Optional[str] = None
    type: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None

    @classmethod
    def from_mapping(cls, raw: dict | None) -> "HistoryFilters":
        """Build filters from query-string style input; blank values mean no filter."""
        raw = raw or {}
        status = raw.get("status") or None
        type_ = raw.get("type") or None
        if status is not None and status not in TRANSACTION_STATUSES:
            raise FinanceError(f"Invalid status filter '{status}'")
        if type_ is not None and type_ not in TRANSACTION_TYPES:
            raise FinanceError(f"Invalid type filter '{type_}'")

        dates = {}
        for key in ("date_from", "date_to"):
            value = raw.get(key)
            if value in (None, ""):
                dates[key] = None
                continue
            parsed = to_datetime(value)
            if parsed is None:
                raise FinanceError(f"Invalid {key} '{value}'")
            dates[key] = parsed

        return cls(status=status, type=type_, **dates)

    def matches(self, row: PaymentTransaction) -> bool:
        if self.status and row.status != self.status:
            return False
        if self.type and row.type != self.type:
            return False
        if self.date_from or self.date_to:
            if row.paid_at is None:
                return False
            if self.date_from and row.paid_at < self.date_from:
                return False
            if self.date_to and row.paid_at > self.date_to:
                return False
        return True


# =============================================================================
# NORMALISATION
# =============================================================================

def classify_customization(req: CustomizationSnapshot, role: str) -> LedgerEvent | None:
    """
    Turn a customization request into at most one event for the designer or shop.

    Priority: released payout, then customer paid, then still awaiting payment.
    Requests without pricing or payment details contribute nothing.
    """
    if not req.has_pricing or not req.has_payment_details:
        return None

    if role == ROLE_DESIGNER:
        payout, paid_at, fallback = req.designer_payout_cents, req.designer_paid_at, req.design_fee_cents or 0
    else:
        payout, paid_at, fallback = req.shop_payout_cents, req.shop_paid_at, req.shop_cost_cents

    def _event(settlement, amount, effective_at):
        return LedgerEvent(
            key=f"customization:{req.id}:{role}",
            kind=KIND_CUSTOMIZATION,
            reference_id=str(req.id),
            amount_cents=amount,
            settlement=settlement,
            effective_at=effective_at,
            name=req.display_name,
        )

    if payout is not None and paid_at is not None:
        return _event(SETTLEMENT_PAID, payout, paid_at)

    amount = payout if payout is not None else fallback

    if req.customer_has_paid:
        return _event(
            SETTLEMENT_COLLECTED,
            amount,
            req.latest_successful_payment_at or req.requested_at,
        )

    if req.has_pending_payment or req.escrow_status == escrow_service.ESCROW_HELD or payout is not None:
        return _event(SETTLEMENT_PENDING, amount, req.requested_at)

    return None


def classify_business_order(order: OrderSnapshot) -> LedgerEvent | None:
    """
    Paid and delivered orders are revenue; paid but undelivered ones are
    collected. Unpaid orders stay pending until delivery, after which only an
    explicitly pending payment still counts. Refunds count for nothing.
    """
    if order.is_cancelled or order.is_refunded:
        return None
    if order.is_paid and order.is_delivered:
        settlement = SETTLEMENT_PAID
    elif order.is_paid:
        settlement = SETTLEMENT_COLLECTED
    elif order.payment_status == "pending" or not order.is_delivered:
        settlement = SETTLEMENT_PENDING
    else:
        return None
    return LedgerEvent(
        key=f"order:{order.id}",
        kind=KIND_ORDER,
        reference_id=order.id,
        amount_cents=order.total_amount_cents,
        settlement=settlement,
        effective_at=order.created_at,
        name=_order_product_name(order),
        items=order.items,
    )


def designer_order_events(
    earnings: Iterable[EarningSnapshot],
    orders: Iterable[OrderSnapshot],
) -> list[LedgerEvent]:
    """
    Events for design-only orders: earnings records first, then paid orders
    without a record (legacy), then pending orders. Orders covered by an
    earnings record are skipped whatever their payment status.
    """
    earnings = list(earnings)
    design_orders = OrderedDict(
        (o.id, o) for o in orders if o.is_design_only and not o.is_cancelled
    )
    covered = {e.order_id for e in earnings}

    events = []
    for earning in earnings:
        order = design_orders.get(earning.order_id)
        events.append(LedgerEvent(
            key=f"earning:{earning.id}",
            kind=KIND_ORDER,
            reference_id=earning.order_id,
            amount_cents=earning.amount_cents,
            settlement=SETTLEMENT_PAID,
            effective_at=earning.paid_at,
            name=order.design_name if order else "Design",
        ))

    for order in design_orders.values():
        if order.id in covered:
            continue
        if order.is_paid:
            settlement = SETTLEMENT_PAID
        elif order.payment_status == "pending":
            settlement = SETTLEMENT_PENDING
        else:
            continue
        events.append(LedgerEvent(
            key=f"order:{order.id}",
            kind=KIND_ORDER,
            reference_id=order.id,
            amount_cents=order.total_amount_cents,
            settlement=settlement,
            effective_at=order.created_at,
            name=order.design_name,
        ))

    return events


def _order_product_name(order: OrderSnapshot) -> str:
    if order.items and order.items[0].product_name:
        return order.items[0].product_name
    return "Multiple items"


def _sum(events: Iterable[LedgerEvent]) -> int:
    return sum(e.amount_cents for e in events)


# =============================================================================
# ENGINE
# =============================================================================

class FinanceService:
    """
    Read-only reporting over the marketplace's money records.

    Collaborators default to the SQLAlchemy repositories; tests pass their own.
    """

    def __init__(
        self,
        *,
        customizations=CustomizationRepository,
        orders=OrderRepository,
        shop_profiles=ShopProfileRepository,
        designer_profiles=DesignerProfileRepository,
        earnings=DesignerEarningsRepository,
        products=ProductRepository,
        escrow=escrow_service,
    ):
        self.customizations = customizations
        self.orders = orders
        self.shop_profiles = shop_profiles
        self.designer_profiles = designer_profiles
        self.earnings = earnings
        self.products = products
        self.escrow = escrow

    # -------------------------------------------------------------------------
    # best-effort plumbing
    # -------------------------------------------------------------------------

    @staticmethod
    def _best_effort(label: str, fn: Callable[[], Any], default: Any, context: Any = None) -> Any:
        try:
            return fn()
        except Exception:
            current_app.logger.exception("Finance lookup failed: %s (%s)", label, context)
            return default

    def _safe_events(self, label: str, records: Iterable, classify: Callable) -> list[LedgerEvent]:
        events = []
        for record in records:
            event = self._best_effort(label, lambda: classify(record), None, getattr(record, "id", None))
            if event is not None:
                events.append(event)
        return events

    # -------------------------------------------------------------------------
    # source loading
    # -------------------------------------------------------------------------

    def _load_designer_sources(self, user_id: str):
        customizations, profile = run_reads(
            lambda: self.customizations.find_by_designer_id(user_id),
            lambda: self._best_effort(
                "designer profile", lambda: self.designer_profiles.find_by_user_id(user_id), None, user_id
            ),
        )

        # Earnings are scoped to the profile id, so the profile lookup comes first.
        def _earnings():
            if profile is None:
                return []
            return self._best_effort(
                "earnings records", lambda: self.earnings.find_by_designer_id(profile.id), [], user_id
            )

        earnings, orders = run_reads(
            _earnings,
            lambda: self._best_effort(
                "design orders", lambda: self.orders.find_by_business_owner(user_id), [], user_id
            ),
        )
        return customizations, earnings, orders

    def _load_business_sources(self, user_id: str):
        orders, shop = run_reads(
            lambda: self.orders.find_by_business_owner(user_id),
            lambda: self._best_effort(
                "shop profile", lambda: self.shop_profiles.find_by_user_id(user_id), None, user_id
            ),
        )
        customizations = []
        if shop is not None:
            customizations = self._best_effort(
                "shop customizations",
                lambda: self.customizations.find_all({"printing_shop_id": shop.id}),
                [],
                user_id,
            )
        return orders, customizations

    def _events_for(self, user_id: str, role: str) -> list[LedgerEvent]:
        if role == ROLE_DESIGNER:
            customizations, earnings, orders = self._load_designer_sources(user_id)
            events = self._best_effort(
                "design order events", lambda: designer_order_events(earnings, orders), [], user_id
            )
            events += self._safe_events(
                "customization", customizations, lambda r: classify_customization(r, ROLE_DESIGNER)
            )
            return events

        orders, customizations = self._load_business_sources(user_id)
        events = self._safe_events("order", orders, classify_business_order)
        events += self._safe_events(
            "customization", customizations, lambda r: classify_customization(r, ROLE_BUSINESS_OWNER)
        )
        return events

    # -------------------------------------------------------------------------
    # summary
    # -------------------------------------------------------------------------

    def get_finance_summary(
        self,
        user_id: str,
        role: str,
        time_range: str = "all",
        *,
        now: datetime | None = None,
    ) -> FinanceSummary:
        _validate_role(role, SUMMARY_ROLES)
        now = now or utcnow()
        cutoff = get_cutoff(time_range, now)
        this_month = month_start(now)

        events = [e for e in self._events_for(user_id, role) if qualifies(e.effective_at, cutoff)]

        paid = _sum(e for e in events if e.settlement == SETTLEMENT_PAID)
        pending = _sum(e for e in events if e.settlement != SETTLEMENT_PAID)
        month = _sum(
            e for e in events
            if e.settlement in EARNED_SETTLEMENTS
            and e.effective_at is not None
            and e.effective_at >= this_month
        )

        total = paid + pending
        return FinanceSummary(
            total_earnings_cents=total,
            total_revenue_cents=total,
            pending_amount_cents=pending,
            paid_amount_cents=paid,
            this_month_earnings_cents=month,
            this_month_revenue_cents=month,
            currency=current_app.config.get("CURRENCY", "PHP"),
        )

    # -------------------------------------------------------------------------
    # history
    # -------------------------------------------------------------------------

    def get_payment_history(
        self,
        user_id: str,
        role: str,
        filters: HistoryFilters | dict | None = None,
        *,
        now: datetime | None = None,
    ) -> list[PaymentTransaction]:
        _validate_role(role, HISTORY_ROLES)
        if not isinstance(filters, HistoryFilters):
            filters = HistoryFilters.from_mapping(filters)

        if role == ROLE_DESIGNER:
            rows = self._designer_history(user_id, now)
        elif role == ROLE_BUSINESS_OWNER:
            rows = self._business_history(user_id, now)
        else:
            rows = self._customer_history(user_id)

        rows = [row for row in rows if filters.matches(row)]
        dated = sorted((r for r in rows if r.paid_at is not None), key=lambda r: r.paid_at, reverse=True)
        undated = [r for r in rows if r.paid_at is None]
        return dated + undated

    def _settle(self, req: CustomizationSnapshot, now: datetime | None) -> CustomizationSnapshot:
        """Repair and opportunistically release before listing; one attempt each."""
        touched = False

        needs_repair = (
            (req.designer_payout_cents is not None and req.designer_paid_at is None)
            or (req.shop_payout_cents is not None and req.shop_paid_at is None)
        )
        if needs_repair:
            touched = bool(self._best_effort(
                "escrow repair", lambda: self.escrow.repair_escrow_state(req.id, now=now), False, req.id
            ))

        releasable = (
            req.status in APPROVED_STATUSES
            and req.escrow_status == escrow_service.ESCROW_HELD
            and req.designer_payout_cents is None
            and req.has_pricing
            and req.designer_id
        )
        if releasable:
            def _release():
                if not self.escrow.can_release_designer_payment(req.id):
                    return False
                self.escrow.release_designer_payment(req.id, now=now)
                return True

            touched = bool(self._best_effort("escrow release", _release, False, req.id)) or touched

        if not touched:
            return req
        refreshed = self._best_effort(
            "customization refresh", lambda: self.customizations.find_by_id(req.id), None, req.id
        )
        return refreshed or req

    def _designer_history(self, user_id: str, now: datetime | None) -> list[PaymentTransaction]:
        customizations, earnings, orders = self._load_designer_sources(user_id)
        default_method = current_app.config.get("DEFAULT_PAYMENT_METHOD")
        rows: list[PaymentTransaction] = []

        design_orders = {o.id: o for o in orders if o.is_design_only and not o.is_cancelled}
        covered = {e.order_id for e in earnings}

        for earning in earnings:
            order = design_orders.get(earning.order_id)
            name = order.design_name if order else "Design"
            rows.append(PaymentTransaction(
                id=earning.order_id or f"earnings-{earning.id}",
                type=KIND_ORDER,
                reference_id=earning.order_id,
                amount_cents=earning.amount_cents,
                status="success",
                paid_at=earning.paid_at,
                payment_method=default_method,
                description=f"Design purchase: {name}",
                product_name=name,
            ))

        for order in design_orders.values():
            if order.id in covered:
                continue
            if order.is_paid:
                status, suffix = "success", ""
            elif order.payment_status == "pending":
                status, suffix = "pending", " (Payment pending)"
            else:
                continue
            rows.append(PaymentTransaction(
                id=order.id,
                type=KIND_ORDER,
                reference_id=order.id,
                amount_cents=order.total_amount_cents,
                status=status,
                paid_at=order.created_at,
                payment_method=order.payment_method or default_method,
                description=f"Design purchase: {order.design_name}{suffix}",
                product_name=order.design_name,
            ))

        for req in customizations:
            if not req.has_payment_details:
                continue
            req = self._settle(req, now)
            rows.extend(self._best_effort(
                "customization rows", lambda: self._designer_customization_rows(req), [], req.id
            ))

        return rows

    @staticmethod
    def _designer_customization_rows(req: CustomizationSnapshot) -> list[PaymentTransaction]:
        rows = []
        name = req.display_name
        released = req.designer_payout_cents is not None and req.designer_paid_at is not None

        if req.has_pricing:
            for payment in req.payments:
                description = f"Design fee for {name}"
                if payment.status == "success" and not released:
                    if req.status in APPROVED_STATUSES:
                        description += " (Escrow release pending)"
                    elif req.status in PRE_APPROVAL_STATUSES:
                        description += " (Awaiting design approval)"
                rows.append(PaymentTransaction(
                    id=f"payment-{payment.id}",
                    type=KIND_CUSTOMIZATION,
                    reference_id=str(req.id),
                    amount_cents=payment.amount_cents,
                    status=payment.status if payment.status in TRANSACTION_STATUSES else "pending",
                    paid_at=payment.paid_at,
                    payment_method=payment.payment_method,
                    invoice_url=payment.invoice_url,
                    description=description,
                    customer_name=req.customer_name,
                    product_name=req.product_name,
                ))

        if released:
            rows.append(PaymentTransaction(
                id=req.designer_payout_id or f"payout-{req.id}",
                type=KIND_CUSTOMIZATION,
                reference_id=str(req.id),
                amount_cents=req.designer_payout_cents,
                status="success",
                paid_at=req.designer_paid_at,
                description=f"Payout for design: {name}",
                customer_name=req.customer_name,
                product_name=req.product_name,
            ))
        return rows

    def _business_history(self, user_id: str, now: datetime | None) -> list[PaymentTransaction]:
        orders, customizations = self._load_business_sources(user_id)
        rows: list[PaymentTransaction] = []

        for order in orders:
            if order.is_cancelled:
                continue
            if order.is_paid and order.is_delivered:
                status = "success"
            elif order.payment_status in ("failed", "refunded"):
                status = order.payment_status
            else:
                status = "pending"
            rows.append(PaymentTransaction(
                id=order.id,
                type=KIND_ORDER,
                reference_id=order.id,
                amount_cents=order.total_amount_cents,
                status=status,
                paid_at=order.created_at,
                payment_method=order.payment_method,
                description=f"Order #{order.id[:8]} - {order.status}",
                product_name=_order_product_name(order),
            ))

        for req in customizations:
            if not req.has_payment_details:
                continue
            req = self._settle(req, now)
            if req.has_pricing and req.shop_payout_cents is not None and req.shop_paid_at is not None:
                rows.append(PaymentTransaction(
                    id=req.shop_payout_id or f"payout-{req.id}",
                    type=KIND_CUSTOMIZATION,
                    reference_id=str(req.id),
                    amount_cents=req.shop_payout_cents,
                    status="success",
                    paid_at=req.shop_paid_at,
                    description=f"Production payment for {req.display_name}",
                    customer_name=req.customer_name,
                    product_name=req.product_name,
                ))
        return rows

    def _customer_history(self, user_id: str) -> list[PaymentTransaction]:
        orders, customizations = run_reads(
            lambda: self.orders.find_by_customer(user_id),
            lambda: self.customizations.find_by_customer_id(user_id),
        )
        rows: list[PaymentTransaction] = []

        for order in orders:
            status = order.payment_status if order.payment_status in ("failed", "refunded") else (
                "success" if order.is_paid else "pending"
            )
            rows.append(PaymentTransaction(
                id=order.id,
                type=KIND_ORDER,
                reference_id=order.id,
                amount_cents=order.total_amount_cents,
                status=status,
                paid_at=order.created_at,
                payment_method=order.payment_method,
                description=f"Order #{order.id[:8]}",
                product_name=_order_product_name(order),
            ))

        for req in customizations:
            for payment in req.payments:
                rows.append(PaymentTransaction(
                    id=f"payment-{payment.id}",
                    type=KIND_CUSTOMIZATION,
                    reference_id=str(req.id),
                    amount_cents=payment.amount_cents,
                    status=payment.status if payment.status in TRANSACTION_STATUSES else "pending",
                    paid_at=payment.paid_at,
                    payment_method=payment.payment_method,
                    invoice_url=payment.invoice_url,
                    description=f"Payment for {req.display_name} customization",
                    product_name=req.product_name,
                ))
        return rows

    # -------------------------------------------------------------------------
    # analytics
    # -------------------------------------------------------------------------

    def get_revenue_analytics(
        self,
        user_id: str,
        role: str,
        time_range: str = "30d",
        *,
        now: datetime | None = None,
    ) -> RevenueAnalytics:
        _validate_role(role, SUMMARY_ROLES)
        now = now or utcnow()
        start = get_cutoff(time_range, now) or now - timedelta(days=ANALYTICS_ALL_WINDOW_DAYS)

        events = [
            e for e in self._events_for(user_id, role)
            if e.settlement in EARNED_SETTLEMENTS
            and e.effective_at is not None
            and start <= e.effective_at <= now
        ]

        time_series = self._time_series(start, now, events)
        breakdown = {
            "customizations_cents": _sum(e for e in events if e.kind == KIND_CUSTOMIZATION),
            "orders_cents": _sum(e for e in events if e.kind == KIND_ORDER),
        }
        top_items = self._top_items(events)
        growth = calculate_growth([bucket["revenue_cents"] for bucket in time_series])

        return RevenueAnalytics(
            time_series=time_series,
            breakdown=breakdown,
            top_items=top_items,
            growth=growth,
        )

    @staticmethod
    def _time_series(start: datetime, end: datetime, events: list[LedgerEvent]) -> list[dict]:
        days = math.ceil((end - start) / timedelta(days=1))
        buckets: "OrderedDict[str, int]" = OrderedDict()
        for i in range(days + 1):
            buckets[(start + timedelta(days=i)).date().isoformat()] = 0

        for event in events:
            key = event.effective_at.date().isoformat()
            buckets[key] = buckets.get(key, 0) + event.amount_cents

        return [
            {"date": key, "revenue_cents": amount, "earnings_cents": amount}
            for key, amount in sorted(buckets.items())
        ]

    def _top_items(self, events: list[LedgerEvent]) -> list[dict]:
        missing_ids = sorted({
            item.product_id
            for event in events
            for item in event.items
            if item.product_id and not item.product_name and not item.design_name
        })
        names = self._product_names(missing_ids)

        totals: "OrderedDict[str, dict]" = OrderedDict()

        def _add(name: str, amount: int, count: int) -> None:
            entry = totals.setdefault(name, {"name": name, "amount_cents": 0, "count": 0})
            entry["amount_cents"] += amount
            entry["count"] += count

        for event in events:
            if not event.items:
                _add(event.name or "Unknown", event.amount_cents, 1)
                continue
            for item in event.items:
                name = item.product_name or item.design_name or names.get(item.product_id) or "Unknown"
                _add(name, item.line_total_cents, item.quantity)

        ranked = sorted(totals.values(), key=lambda entry: entry["amount_cents"], reverse=True)
        return [
            {"id": f"item-{index}", **entry}
            for index, entry in enumerate(ranked[:TOP_ITEMS_LIMIT])
        ]

    def _product_names(self, product_ids: list[str]) -> dict[str, str]:
        """One lookup per distinct product id; failures resolve to Unknown."""
        if not product_ids:
            return {}

        def _lookup(product_id):
            def _name():
                product = self.products.find_by_id(product_id)
                return product.name if product and product.name else "Unknown"
            return lambda: self._best_effort("product name", _name, "Unknown", product_id)

        resolved = run_reads(*[_lookup(pid) for pid in product_ids])
        return dict(zip(product_ids, resolved))


# =============================================================================
# MODULE-LEVEL ENTRY POINTS
# =============================================================================

def get_finance_summary(user_id: str, role: str, time_range: str = "all", *, now: datetime | None = None) -> FinanceSummary:
    return FinanceService().get_finance_summary(user_id, role, time_range, now=now)


def get_payment_history(user_id: str, role: str, filters=None, *, now: datetime | None = None) -> list[PaymentTransaction]:
    return FinanceService().get_payment_history(user_id, role, filters, now=now)


def get_revenue_analytics(user_id: str, role: str, time_range: str = "30d", *, now: datetime | None = None) -> RevenueAnalytics:
    return FinanceService().get_revenue_analytics(user_id, role, time_range, now=now)
