# Overview: Immutable read snapshots of persisted entities, safe to pass across threads.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .time_utils import to_datetime


CUSTOMER_PAID_STATUSES = {"partially_paid", "fully_paid"}


@dataclass(frozen=True)
class PaymentSnapshot:
    id: int
    request_id: int
    amount_cents: int
    status: str
    paid_at: Optional[datetime]
    payment_method: Optional[str]
    invoice_url: Optional[str]
    external_id: Optional[str]

    @classmethod
    def from_model(cls, payment) -> "PaymentSnapshot":
        return cls(
            id=payment.id,
            request_id=payment.request_id,
            amount_cents=payment.amount_cents or 0,
            status=payment.status,
            paid_at=to_datetime(payment.paid_at),
            payment_method=payment.payment_method,
            invoice_url=payment.invoice_url,
            external_id=payment.external_id,
        )


@dataclass(frozen=True)
class CustomizationSnapshot:
    """Read-only view of a customization request with its payment records."""

    id: int
    customer_id: str
    customer_name: Optional[str]
    designer_id: Optional[str]
    printing_shop_id: Optional[str]
    product_id: Optional[str]
    product_name: Optional[str]
    status: str
    design_fee_cents: Optional[int]
    product_cost_cents: Optional[int]
    printing_cost_cents: Optional[int]
    total_cost_cents: Optional[int]
    payment_status: Optional[str]
    paid_amount_cents: int
    escrow_status: Optional[str]
    designer_payout_cents: Optional[int]
    designer_paid_at: Optional[datetime]
    designer_payout_id: Optional[str]
    shop_payout_cents: Optional[int]
    shop_paid_at: Optional[datetime]
    shop_payout_id: Optional[str]
    requested_at: Optional[datetime]
    payments: tuple[PaymentSnapshot, ...] = ()

    @classmethod
    def from_model(cls, req) -> "CustomizationSnapshot":
        return cls(
            id=req.id,
            customer_id=req.customer_id,
            customer_name=req.customer_name,
            designer_id=req.designer_id,
            printing_shop_id=req.printing_shop_id,
            product_id=req.product_id,
            product_name=req.product_name,
            status=req.status,
            design_fee_cents=req.design_fee_cents,
            product_cost_cents=req.product_cost_cents,
            printing_cost_cents=req.printing_cost_cents,
            total_cost_cents=req.total_cost_cents,
            payment_status=req.payment_status,
            paid_amount_cents=req.paid_amount_cents or 0,
            escrow_status=req.escrow_status,
            designer_payout_cents=req.designer_payout_cents,
            designer_paid_at=to_datetime(req.designer_paid_at),
            designer_payout_id=req.designer_payout_id,
            shop_payout_cents=req.shop_payout_cents,
            shop_paid_at=to_datetime(req.shop_paid_at),
            shop_payout_id=req.shop_payout_id,
            requested_at=to_datetime(req.requested_at),
            payments=tuple(PaymentSnapshot.from_model(p) for p in req.payments),
        )

    @property
    def has_pricing(self) -> bool:
        return self.design_fee_cents is not None

    @property
    def has_payment_details(self) -> bool:
        return self.payment_status is not None

    @property
    def successful_payments(self) -> tuple[PaymentSnapshot, ...]:
        return tuple(p for p in self.payments if p.status == "success")

    @property
    def latest_successful_payment_at(self) -> Optional[datetime]:
        dates = [p.paid_at for p in self.successful_payments if p.paid_at is not None]
        return max(dates) if dates else None

    @property
    def has_pending_payment(self) -> bool:
        return any(p.status == "pending" for p in self.payments)

    @property
    def customer_has_paid(self) -> bool:
        return (
            bool(self.successful_payments)
            or self.payment_status in CUSTOMER_PAID_STATUSES
            or self.paid_amount_cents > 0
        )

    @property
    def shop_cost_cents(self) -> int:
        return (self.product_cost_cents or 0) + (self.printing_cost_cents or 0)

    @property
    def display_name(self) -> str:
        return self.product_name or "Custom Design"


@dataclass(frozen=True)
class OrderItemSnapshot:
    item_type: Optional[str]
    product_id: Optional[str]
    design_id: Optional[str]
    product_name: Optional[str]
    design_name: Optional[str]
    quantity: int
    price_cents: int

    @classmethod
    def from_model(cls, item) -> "OrderItemSnapshot":
        return cls(
            item_type=item.item_type,
            product_id=item.product_id,
            design_id=item.design_id,
            product_name=item.product_name,
            design_name=item.design_name,
            quantity=item.quantity or 0,
            price_cents=item.price_cents or 0,
        )

    @property
    def is_design(self) -> bool:
        return self.item_type == "design" or (bool(self.design_id) and not self.product_id)

    @property
    def line_total_cents(self) -> int:
        return self.price_cents * self.quantity


@dataclass(frozen=True)
class OrderSnapshot:
    id: str
    business_owner_id: str
    customer_id: Optional[str]
    status: str
    payment_status: str
    payment_method: Optional[str]
    total_amount_cents: int
    created_at: Optional[datetime]
    items: tuple[OrderItemSnapshot, ...] = ()

    @classmethod
    def from_model(cls, order) -> "OrderSnapshot":
        return cls(
            id=order.id,
            business_owner_id=order.business_owner_id,
            customer_id=order.customer_id,
            status=order.status,
            payment_status=order.payment_status,
            payment_method=order.payment_method,
            total_amount_cents=order.total_amount_cents or 0,
            created_at=to_datetime(order.created_at),
            items=tuple(OrderItemSnapshot.from_model(i) for i in order.items),
        )

    @property
    def is_design_only(self) -> bool:
        # An order without items is never design-only.
        return bool(self.items) and all(item.is_design for item in self.items)

    @property
    def is_paid(self) -> bool:
        return self.payment_status == "paid"

    @property
    def is_delivered(self) -> bool:
        return self.status == "delivered"

    @property
    def is_cancelled(self) -> bool:
        return self.status == "cancelled"

    @property
    def is_refunded(self) -> bool:
        return self.payment_status == "refunded"

    @property
    def design_name(self) -> str:
        for item in self.items:
            if item.design_name:
                return item.design_name
        return "Design"


@dataclass(frozen=True)
class EarningSnapshot:
    id: int
    designer_id: str
    order_id: str
    amount_cents: int
    paid_at: Optional[datetime]

    @classmethod
    def from_model(cls, earning) -> "EarningSnapshot":
        return cls(
            id=earning.id,
            designer_id=earning.designer_id,
            order_id=earning.order_id,
            amount_cents=earning.amount_cents or 0,
            paid_at=to_datetime(earning.paid_at),
        )


@dataclass(frozen=True)
class ProfileSnapshot:
    id: str
    user_id: str
    name: Optional[str] = None


@dataclass(frozen=True)
class ProductSnapshot:
    id: str
    name: str
