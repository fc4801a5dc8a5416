from __future__ import annotations

from ..extensions import db
from printmarket.time_utils import to_utc_z


class CustomizationRequest(db.Model):
    """
    Customer commission for a custom design on a product.

    WHY: The request is the single record that carries the design workflow
    status, the agreed pricing and the escrow state. Payout fields are written
    only by the escrow service.

    PRICING AGREEMENT:
    - Exists once design_fee_cents is set
    - total_cost_cents = design_fee_cents + product_cost_cents + printing_cost_cents

    PAYMENT DETAILS:
    - Exist once payment_status is set (first payment attempt recorded)
    - escrow_status moves forward only: held -> designer_paid / shop_paid -> released
    """
    __tablename__ = "customization_requests"
    __table_args__ = (
        db.CheckConstraint(
            "total_cost_cents IS NULL OR "
            "total_cost_cents = design_fee_cents + product_cost_cents + printing_cost_cents",
            name="ck_customization_total_cost",
        ),
        db.CheckConstraint(
            "design_fee_cents IS NULL OR "
            "(design_fee_cents >= 0 AND product_cost_cents >= 0 AND printing_cost_cents >= 0)",
            name="ck_customization_pricing_non_negative",
        ),
        db.Index("ix_customizations_designer_status", "designer_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    # Document id from the previous store; set only on imported rows
    legacy_id = db.Column(db.String(128), nullable=True, unique=True)

    customer_id = db.Column(db.String(64), nullable=False, index=True)
    customer_name = db.Column(db.String(255), nullable=True)
    designer_id = db.Column(db.String(64), nullable=True)
    printing_shop_id = db.Column(db.String(64), nullable=True, index=True)

    product_id = db.Column(db.String(64), nullable=True)
    product_name = db.Column(db.String(255), nullable=True)
    customization_notes = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(32), nullable=False, default="pending_designer_review", index=True)
    revision_count = db.Column(db.Integer, nullable=False, default=0)
    rejection_reason = db.Column(db.String(500), nullable=True)

    # Designer deliverables
    designer_notes = db.Column(db.Text, nullable=True)
    designer_final_file_url = db.Column(db.String(1024), nullable=True)
    designer_preview_image_url = db.Column(db.String(1024), nullable=True)

    # Pricing agreement (all amounts in cents)
    design_fee_cents = db.Column(db.Integer, nullable=True)
    product_cost_cents = db.Column(db.Integer, nullable=True)
    printing_cost_cents = db.Column(db.Integer, nullable=True)
    total_cost_cents = db.Column(db.Integer, nullable=True)
    pricing_agreed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Payment details
    payment_status = db.Column(db.String(16), nullable=True)  # pending, partially_paid, fully_paid
    paid_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    escrow_status = db.Column(db.String(16), nullable=True)  # held, designer_paid, shop_paid, released

    designer_payout_cents = db.Column(db.Integer, nullable=True)
    designer_paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    designer_payout_id = db.Column(db.String(128), nullable=True)

    shop_payout_cents = db.Column(db.Integer, nullable=True)
    shop_paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    shop_payout_id = db.Column(db.String(128), nullable=True)

    requested_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    payments = db.relationship(
        "PaymentRecord",
        backref="request",
        lazy=True,
        order_by="PaymentRecord.id",
        cascade="all, delete-orphan",
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def has_pricing_agreement(self) -> bool:
        return self.design_fee_cents is not None

    @property
    def has_payment_details(self) -> bool:
        return self.payment_status is not None

    def set_pricing(self, *, design_fee_cents: int, product_cost_cents: int, printing_cost_cents: int) -> None:
        """Assign pricing parts and recompute the total from them."""
        self.design_fee_cents = design_fee_cents
        self.product_cost_cents = product_cost_cents
        self.printing_cost_cents = printing_cost_cents
        self.total_cost_cents = design_fee_cents + product_cost_cents + printing_cost_cents

    def to_dict(self) -> dict:
        pricing = None
        if self.has_pricing_agreement:
            pricing = {
                "design_fee_cents": self.design_fee_cents,
                "product_cost_cents": self.product_cost_cents,
                "printing_cost_cents": self.printing_cost_cents,
                "total_cost_cents": self.total_cost_cents,
                "agreed_at": to_utc_z(self.pricing_agreed_at) if self.pricing_agreed_at else None,
            }

        payment_details = None
        if self.has_payment_details:
            payment_details = {
                "payment_status": self.payment_status,
                "paid_amount_cents": self.paid_amount_cents,
                "escrow_status": self.escrow_status,
                "designer_payout_cents": self.designer_payout_cents,
                "designer_paid_at": to_utc_z(self.designer_paid_at) if self.designer_paid_at else None,
                "designer_payout_id": self.designer_payout_id,
                "shop_payout_cents": self.shop_payout_cents,
                "shop_paid_at": to_utc_z(self.shop_paid_at) if self.shop_paid_at else None,
                "shop_payout_id": self.shop_payout_id,
                "payments": [p.to_dict() for p in self.payments],
            }

        return {
            "id": self.id,
            "legacy_id": self.legacy_id,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "designer_id": self.designer_id,
            "printing_shop_id": self.printing_shop_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "customization_notes": self.customization_notes,
            "status": self.status,
            "revision_count": self.revision_count,
            "rejection_reason": self.rejection_reason,
            "designer_notes": self.designer_notes,
            "designer_final_file_url": self.designer_final_file_url,
            "designer_preview_image_url": self.designer_preview_image_url,
            "pricing_agreement": pricing,
            "payment_details": payment_details,
            "requested_at": to_utc_z(self.requested_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class PaymentRecord(db.Model):
    """
    Customer payment attempt against a customization request.

    WHY: Append-only trail of what the customer was charged. A pending record
    is resolved once to success or failed; resolved records are never edited,
    and failed attempts stay on file.
    """
    __tablename__ = "customization_payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    request_id = db.Column(db.Integer, db.ForeignKey("customization_requests.id"), nullable=False, index=True)

    amount_cents = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(16), nullable=False, default="pending")  # pending, success, failed
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    payment_method = db.Column(db.String(32), nullable=True)
    invoice_url = db.Column(db.String(1024), nullable=True)
    external_id = db.Column(db.String(128), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "request_id": self.request_id,
            "amount_cents": self.amount_cents,
            "status": self.status,
            "paid_at": to_utc_z(self.paid_at) if self.paid_at else None,
            "payment_method": self.payment_method,
            "invoice_url": self.invoice_url,
            "external_id": self.external_id,
            "created_at": to_utc_z(self.created_at),
        }
