from __future__ import annotations

from ..extensions import db
from printmarket.time_utils import to_utc_z


class Order(db.Model):
    """
    Marketplace order: physical product purchases and design-only purchases.

    WHY: Design-only orders (every item is a design) are a second source of
    designer earnings next to customization requests; the designer is the
    business owner on those orders.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_owner_created", "business_owner_id", "created_at"),
    )

    id = db.Column(db.String(64), primary_key=True)
    business_owner_id = db.Column(db.String(64), nullable=False, index=True)
    customer_id = db.Column(db.String(64), nullable=True, index=True)

    status = db.Column(db.String(16), nullable=False, default="pending")  # pending, processing, shipped, delivered, cancelled
    payment_status = db.Column(db.String(16), nullable=False, default="pending")  # pending, paid, failed, refunded
    payment_method = db.Column(db.String(32), nullable=True)
    total_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    items = db.relationship(
        "OrderItem",
        backref="order",
        lazy=True,
        order_by="OrderItem.id",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_owner_id": self.business_owner_id,
            "customer_id": self.customer_id,
            "status": self.status,
            "payment_status": self.payment_status,
            "payment_method": self.payment_method,
            "total_amount_cents": self.total_amount_cents,
            "created_at": to_utc_z(self.created_at),
            "items": [item.to_dict() for item in self.items],
        }


class OrderItem(db.Model):
    """Line item on an order; either a product or a design."""
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.String(64), db.ForeignKey("orders.id"), nullable=False, index=True)

    item_type = db.Column(db.String(16), nullable=False, default="product")  # product, design
    product_id = db.Column(db.String(64), nullable=True)
    design_id = db.Column(db.String(64), nullable=True)
    product_name = db.Column(db.String(255), nullable=True)
    design_name = db.Column(db.String(255), nullable=True)

    quantity = db.Column(db.Integer, nullable=False, default=1)
    price_cents = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "item_type": self.item_type,
            "product_id": self.product_id,
            "design_id": self.design_id,
            "product_name": self.product_name,
            "design_name": self.design_name,
            "quantity": self.quantity,
            "price_cents": self.price_cents,
        }
