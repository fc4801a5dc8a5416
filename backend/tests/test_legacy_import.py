# Overview: Pytest coverage for importing the previous document-store export.

from datetime import datetime

import pytest

from printmarket.models import CustomizationRequest, DesignerEarning, Order
from printmarket.services import finance_service
from printmarket.services.legacy_import_service import LegacyImportError, import_legacy_documents

from conftest import NOW


def _export():
    return {
        "designerProfiles": [{"id": "dp-9", "userId": "designer-9", "displayName": "Nine Studio"}],
        "shopProfiles": [{"id": "shop-9", "userId": "shop-user-9", "shopName": "Ink Works"}],
        "products": [{"id": "prod-1", "name": "Classic Tee", "createdAt": "2026-01-01T00:00:00Z"}],
        "orders": [
            {
                "id": "ord-1",
                "businessOwnerId": "designer-9",
                "customerId": "cust-9",
                "status": "delivered",
                "paymentStatus": "paid",
                "totalAmount": 49.5,
                "createdAt": {"seconds": 1_790_000_000, "nanoseconds": 0},
                "items": [{"designId": "d-1", "designName": "Wave", "quantity": 1, "price": 49.5}],
            },
            {
                "id": "ord-2",
                "businessOwnerId": "shop-user-9",
                "status": "to_ship",
                "paymentStatus": "paid",
                "totalAmount": "120.00",
                "createdAt": 1_790_100_000_000,
                "items": [{"productId": "prod-1", "quantity": 2, "price": 60}],
            },
        ],
        "designerEarnings": [
            {"designerId": "dp-9", "orderId": "ord-1", "amount": 49.5, "paidAt": "2026-09-21T10:00:00Z"},
        ],
        "customizationRequests": [
            {
                "id": "cr-legacy-1",
                "customerId": "cust-9",
                "designerId": "designer-9",
                "printingShopId": "shop-9",
                "productName": "Classic Tee",
                "status": "approved",
                "requestedAt": "2026-09-01T08:00:00Z",
                "pricingAgreement": {"designFee": 100, "productCost": 30, "printingCost": 20, "totalCost": 150},
                "paymentDetails": {
                    "paymentStatus": "fully_paid",
                    "paidAmount": 150,
                    "escrowStatus": "held",
                    "designerPayoutAmount": 100,
                    "payments": [
                        {"id": "inv-1", "amount": 150, "status": "success", "paidAt": "2026-09-02T08:00:00Z",
                         "paymentMethod": "xendit"},
                    ],
                },
            },
        ],
    }


class TestImport:
    def test_counts_and_conversions(self, db_session):
        counts = import_legacy_documents(_export())
        assert counts == {
            "designerProfiles": 1,
            "shopProfiles": 1,
            "products": 1,
            "orders": 2,
            "designerEarnings": 1,
            "designerEarningsSkipped": 0,
            "customizationRequests": 1,
        }

        design_order = db_session.get(Order, "ord-1")
        assert design_order.total_amount_cents == 4950
        assert design_order.items[0].item_type == "design"
        assert design_order.created_at == datetime(2026, 9, 21, 14, 13, 20)

        shop_order = db_session.get(Order, "ord-2")
        assert shop_order.status == "processing"
        assert shop_order.total_amount_cents == 12000
        assert shop_order.items[0].item_type == "product"

        req = db_session.query(CustomizationRequest).filter_by(legacy_id="cr-legacy-1").one()
        assert req.status == "customer_approved"
        assert req.total_cost_cents == 15000
        assert req.designer_payout_cents == 10000
        assert req.designer_paid_at is None
        assert req.payments[0].external_id == "inv-1"
        assert req.payments[0].amount_cents == 15000

    def test_reimport_is_idempotent(self, db_session):
        import_legacy_documents(_export())
        counts = import_legacy_documents(_export())

        assert counts["designerEarnings"] == 0
        assert counts["designerEarningsSkipped"] == 1
        assert db_session.query(CustomizationRequest).count() == 1
        assert db_session.query(DesignerEarning).count() == 1
        assert len(db_session.get(Order, "ord-2").items) == 1

    def test_imported_data_feeds_finance(self, db_session):
        import_legacy_documents(_export())

        summary = finance_service.get_finance_summary("designer-9", "designer", "all", now=NOW)
        # earnings record 49.50 (order not double counted); half-written payout of 100.00
        assert summary.paid_amount_cents == 4950
        assert summary.pending_amount_cents == 10000

        rows = finance_service.get_payment_history("designer-9", "designer", now=NOW)
        payout = [r for r in rows if r.description.startswith("Payout for design")]
        assert len(payout) == 1
        assert payout[0].paid_at == NOW

        summary = finance_service.get_finance_summary("designer-9", "designer", "all", now=NOW)
        assert summary.paid_amount_cents == 14950
        assert summary.pending_amount_cents == 0


class TestRejectedPayloads:
    def test_unknown_collection(self, db_session):
        with pytest.raises(LegacyImportError):
            import_legacy_documents({"users": []})

    def test_not_an_object(self, db_session):
        with pytest.raises(LegacyImportError):
            import_legacy_documents([])

    def test_bad_record_rolls_back_everything(self, db_session):
        payload = _export()
        payload["customizationRequests"][0]["pricingAgreement"]["designFee"] = "a lot"

        with pytest.raises(LegacyImportError):
            import_legacy_documents(payload)

        assert db_session.query(Order).count() == 0
        assert db_session.query(DesignerEarning).count() == 0

    def test_order_without_owner(self, db_session):
        payload = {"orders": [{"id": "ord-x", "totalAmount": 1}]}
        with pytest.raises(LegacyImportError):
            import_legacy_documents(payload)

    @pytest.mark.parametrize("amount", ["NaN", "Infinity", "-inf", -5, "-0.01"])
    def test_non_finite_or_negative_amount(self, db_session, amount):
        payload = {"orders": [{"id": "ord-x", "businessOwnerId": "shop-user-9", "totalAmount": amount}]}
        with pytest.raises(LegacyImportError):
            import_legacy_documents(payload)
        assert db_session.query(Order).count() == 0
