# Overview: Service-layer operations for importing the previous document-store export.

"""
Legacy Import Service

WHY: Marketplace data was kept in a document store before this backend. Its
export is one JSON object of collections with camelCase fields, amounts in
currency units and timestamps in whatever shape the writer produced
(ISO strings, epoch milliseconds, {seconds, nanoseconds}).

RULES:
- All timestamps go through to_datetime; unparsable values become NULL
- Amounts are converted to integer cents
- Profiles, products and orders are upserted by id; customization requests by
  legacy_id; earnings records by order id. Re-running an import is safe.
- The whole import is one transaction: a malformed record aborts it
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from flask import current_app

from ..extensions import db
from ..models import (
    CustomizationRequest,
    DesignerEarning,
    DesignerProfile,
    Order,
    OrderItem,
    PaymentRecord,
    Product,
    ShopProfile,
)
from printmarket.time_utils import to_datetime, utcnow


class LegacyImportError(ValueError):
    """Raised when the export payload cannot be imported."""


COLLECTIONS = (
    "designerProfiles",
    "shopProfiles",
    "products",
    "orders",
    "designerEarnings",
    "customizationRequests",
)

# Statuses the previous workflow used that were renamed or merged here.
LEGACY_REQUEST_STATUS = {
    "in_progress": "pending_designer_review",
    "approved": "customer_approved",
}
LEGACY_ORDER_STATUS = {
    "to_ship": "processing",
}


def _to_cents(value: Any, field: str) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise LegacyImportError(f"{field} must be a number")
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise LegacyImportError(f"{field} must be a number, got {value!r}")
    if not amount.is_finite() or amount < 0:
        raise LegacyImportError(f"{field} must be a non-negative amount, got {value!r}")
    return int((amount * 100).quantize(Decimal("1")))


def _require_id(doc: dict, collection: str, index: int) -> str:
    if not isinstance(doc, dict):
        raise LegacyImportError(f"{collection}[{index}] is not an object")
    doc_id = doc.get("id")
    if doc_id in (None, ""):
        raise LegacyImportError(f"{collection}[{index}] has no id")
    return str(doc_id)


def _import_designer_profiles(docs: list) -> int:
    for index, doc in enumerate(docs):
        doc_id = _require_id(doc, "designerProfiles", index)
        profile = db.session.get(DesignerProfile, doc_id) or DesignerProfile(id=doc_id)
        profile.user_id = str(doc.get("userId") or "")
        profile.display_name = doc.get("displayName") or doc.get("businessName")
        if not profile.user_id:
            raise LegacyImportError(f"designerProfiles[{index}] has no userId")
        db.session.add(profile)
    return len(docs)


def _import_shop_profiles(docs: list) -> int:
    for index, doc in enumerate(docs):
        doc_id = _require_id(doc, "shopProfiles", index)
        shop = db.session.get(ShopProfile, doc_id) or ShopProfile(id=doc_id)
        shop.user_id = str(doc.get("userId") or "")
        shop.shop_name = doc.get("shopName") or doc.get("businessName")
        if not shop.user_id:
            raise LegacyImportError(f"shopProfiles[{index}] has no userId")
        db.session.add(shop)
    return len(docs)


def _import_products(docs: list) -> int:
    for index, doc in enumerate(docs):
        doc_id = _require_id(doc, "products", index)
        product = db.session.get(Product, doc_id) or Product(id=doc_id)
        product.name = doc.get("name") or "Unknown"
        product.created_at = to_datetime(doc.get("createdAt")) or utcnow()
        db.session.add(product)
    return len(docs)


def _import_orders(docs: list) -> int:
    for index, doc in enumerate(docs):
        doc_id = _require_id(doc, "orders", index)
        if not doc.get("businessOwnerId"):
            raise LegacyImportError(f"orders[{index}] has no businessOwnerId")

        order = db.session.get(Order, doc_id)
        if order is None:
            order = Order(id=doc_id)
        else:
            order.items.clear()

        status = doc.get("status") or "pending"
        order.business_owner_id = str(doc["businessOwnerId"])
        order.customer_id = doc.get("customerId") or doc.get("userId")
        order.status = LEGACY_ORDER_STATUS.get(status, status)
        order.payment_status = doc.get("paymentStatus") or "pending"
        order.payment_method = doc.get("paymentMethod")
        order.total_amount_cents = _to_cents(doc.get("totalAmount"), f"orders[{index}].totalAmount") or 0
        # Undated legacy orders keep a NULL-free column; the import time stands in.
        order.created_at = to_datetime(doc.get("createdAt")) or utcnow()

        for item_index, item in enumerate(doc.get("items") or []):
            where = f"orders[{index}].items[{item_index}]"
            order.items.append(OrderItem(
                item_type=item.get("itemType") or ("design" if item.get("designId") and not item.get("productId") else "product"),
                product_id=item.get("productId"),
                design_id=item.get("designId"),
                product_name=item.get("productName"),
                design_name=item.get("designName"),
                quantity=int(item.get("quantity") or 1),
                price_cents=_to_cents(item.get("price"), f"{where}.price") or 0,
            ))
        db.session.add(order)
    return len(docs)


def _import_designer_earnings(docs: list) -> tuple[int, int]:
    imported = skipped = 0
    for index, doc in enumerate(docs):
        if not isinstance(doc, dict) or not doc.get("orderId") or not doc.get("designerId"):
            raise LegacyImportError(f"designerEarnings[{index}] needs designerId and orderId")
        order_id = str(doc["orderId"])
        if db.session.query(DesignerEarning).filter_by(order_id=order_id).first():
            skipped += 1
            continue
        db.session.add(DesignerEarning(
            designer_id=str(doc["designerId"]),
            order_id=order_id,
            amount_cents=_to_cents(doc.get("amount"), f"designerEarnings[{index}].amount") or 0,
            paid_at=to_datetime(doc.get("paidAt")),
            created_at=utcnow(),
        ))
        db.session.flush()
        imported += 1
    return imported, skipped


def _import_customization_requests(docs: list) -> int:
    for index, doc in enumerate(docs):
        doc_id = _require_id(doc, "customizationRequests", index)
        where = f"customizationRequests[{index}]"
        if not doc.get("customerId"):
            raise LegacyImportError(f"{where} has no customerId")

        req = db.session.query(CustomizationRequest).filter_by(legacy_id=doc_id).first()
        if req is None:
            req = CustomizationRequest(legacy_id=doc_id)
        else:
            req.payments.clear()

        status = doc.get("status") or "pending_designer_review"
        requested_at = to_datetime(doc.get("requestedAt")) or to_datetime(doc.get("createdAt")) or utcnow()

        req.customer_id = str(doc["customerId"])
        req.customer_name = doc.get("customerName")
        req.designer_id = doc.get("designerId")
        req.printing_shop_id = doc.get("printingShopId")
        req.product_id = doc.get("productId")
        req.product_name = doc.get("productName")
        req.customization_notes = doc.get("customizationNotes")
        req.status = LEGACY_REQUEST_STATUS.get(status, status)
        req.revision_count = int(doc.get("revisionCount") or 0)
        req.rejection_reason = doc.get("rejectionReason")
        req.designer_notes = doc.get("designerNotes")
        req.designer_final_file_url = doc.get("designerFinalFileUrl")
        req.designer_preview_image_url = doc.get("designerPreviewImageUrl")
        req.requested_at = requested_at
        req.updated_at = to_datetime(doc.get("updatedAt")) or requested_at

        pricing = doc.get("pricingAgreement") or {}
        if pricing:
            req.set_pricing(
                design_fee_cents=_to_cents(pricing.get("designFee"), f"{where}.designFee") or 0,
                product_cost_cents=_to_cents(pricing.get("productCost"), f"{where}.productCost") or 0,
                printing_cost_cents=_to_cents(pricing.get("printingCost"), f"{where}.printingCost") or 0,
            )
            stored_total = _to_cents(pricing.get("totalCost"), f"{where}.totalCost")
            if stored_total is not None and stored_total != req.total_cost_cents:
                current_app.logger.warning(
                    "Legacy request %s total %s differs from its parts; recomputed as %s",
                    doc_id, stored_total, req.total_cost_cents,
                )
            req.pricing_agreed_at = to_datetime(pricing.get("agreedAt"))

        details = doc.get("paymentDetails") or {}
        if details:
            req.payment_status = details.get("paymentStatus") or "pending"
            req.paid_amount_cents = _to_cents(details.get("paidAmount"), f"{where}.paidAmount") or 0
            req.escrow_status = details.get("escrowStatus") or "held"
            req.designer_payout_cents = _to_cents(details.get("designerPayoutAmount"), f"{where}.designerPayoutAmount")
            req.designer_paid_at = to_datetime(details.get("designerPaidAt"))
            req.designer_payout_id = details.get("designerPayoutId")
            req.shop_payout_cents = _to_cents(details.get("shopPayoutAmount"), f"{where}.shopPayoutAmount")
            req.shop_paid_at = to_datetime(details.get("shopPaidAt"))
            req.shop_payout_id = details.get("shopPayoutId")

            for pay_index, pay in enumerate(details.get("payments") or []):
                req.payments.append(PaymentRecord(
                    amount_cents=_to_cents(pay.get("amount"), f"{where}.payments[{pay_index}].amount") or 0,
                    status=pay.get("status") or "pending",
                    paid_at=to_datetime(pay.get("paidAt")),
                    payment_method=pay.get("paymentMethod"),
                    invoice_url=pay.get("invoiceUrl"),
                    external_id=pay.get("externalId") or pay.get("id"),
                    created_at=to_datetime(pay.get("paidAt")) or requested_at,
                ))

        db.session.add(req)
    return len(docs)


def import_legacy_documents(payload: dict) -> dict[str, int]:
    """
    Import an export payload; returns the number of documents taken per collection.

    Missing collections count as empty. Earnings records whose order already
    has one are counted under "designerEarningsSkipped".
    """
    if not isinstance(payload, dict):
        raise LegacyImportError("Export payload must be a JSON object")

    unknown = sorted(set(payload) - set(COLLECTIONS))
    if unknown:
        raise LegacyImportError(f"Unknown collections: {', '.join(unknown)}")

    docs = {}
    for name in COLLECTIONS:
        value = payload.get(name) or []
        if not isinstance(value, list):
            raise LegacyImportError(f"{name} must be a list")
        docs[name] = value

    counts: dict[str, int] = {}
    try:
        counts["designerProfiles"] = _import_designer_profiles(docs["designerProfiles"])
        counts["shopProfiles"] = _import_shop_profiles(docs["shopProfiles"])
        counts["products"] = _import_products(docs["products"])
        counts["orders"] = _import_orders(docs["orders"])
        db.session.flush()
        imported, skipped = _import_designer_earnings(docs["designerEarnings"])
        counts["designerEarnings"] = imported
        counts["designerEarningsSkipped"] = skipped
        counts["customizationRequests"] = _import_customization_requests(docs["customizationRequests"])
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Legacy import finished: %s", counts)
    return counts
