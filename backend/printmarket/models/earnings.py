from __future__ import annotations

from ..extensions import db
from printmarket.time_utils import to_utc_z


class DesignerEarning(db.Model):
    """
    Authoritative earnings entry for a paid design-only order.

    WHY: Recomputing designer earnings from orders double counts as soon as an
    order is represented twice. One row per order (unique order_id) is the
    de-duplication key the finance engine prefers over the order itself.
    """
    __tablename__ = "designer_earnings"
    __table_args__ = (
        db.UniqueConstraint("order_id", name="uq_designer_earnings_order"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    designer_id = db.Column(db.String(64), nullable=False, index=True)  # designer profile id
    order_id = db.Column(db.String(64), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "designer_id": self.designer_id,
            "order_id": self.order_id,
            "amount_cents": self.amount_cents,
            "paid_at": to_utc_z(self.paid_at) if self.paid_at else None,
            "created_at": to_utc_z(self.created_at),
        }
