# Overview: Pytest coverage for designer earnings records on design-only orders.

from datetime import datetime

import pytest

from printmarket.models import DesignerEarning
from printmarket.services import earnings_service, finance_service
from printmarket.services.earnings_service import EarningsError

from conftest import DESIGNER_PROFILE, DESIGNER_USER, NOW


class TestRecordEarnings:
    def test_creates_record_once(self, db_session, designer_profile, make_design_order):
        make_design_order("order-1", 5000)

        first = earnings_service.record_design_order_earnings("order-1", paid_at=datetime(2026, 10, 6))
        second = earnings_service.record_design_order_earnings("order-1", paid_at=datetime(2026, 10, 9))

        assert first.id == second.id
        assert first.designer_id == DESIGNER_PROFILE
        assert first.amount_cents == 5000
        assert first.paid_at == datetime(2026, 10, 6)
        assert db_session.query(DesignerEarning).count() == 1

    def test_unpaid_order_not_recorded(self, designer_profile, make_design_order):
        make_design_order("order-2", 5000, status="pending", payment_status="pending")
        assert earnings_service.record_design_order_earnings("order-2") is None

    def test_product_order_not_recorded(self, designer_profile, make_order):
        make_order("order-3", total_amount_cents=9000, items=[
            {"item_type": "product", "product_id": "prod-1", "quantity": 1, "price_cents": 9000},
        ])
        assert earnings_service.record_design_order_earnings("order-3") is None

    def test_mixed_order_not_recorded(self, designer_profile, make_order):
        make_order("order-mixed", total_amount_cents=9000, items=[
            {"item_type": "design", "design_id": "d-1", "quantity": 1, "price_cents": 4000},
            {"item_type": "product", "product_id": "prod-1", "quantity": 1, "price_cents": 5000},
        ])
        assert earnings_service.record_design_order_earnings("order-mixed") is None

    def test_missing_profile_skips(self, make_design_order):
        make_design_order("order-4", 5000)
        assert earnings_service.record_design_order_earnings("order-4") is None

    def test_unknown_order(self, db_session):
        with pytest.raises(EarningsError):
            earnings_service.record_design_order_earnings("nope")


class TestBackfill:
    def test_backfill_legacy_orders(self, db_session, designer_profile, make_design_order, make_earning):
        make_design_order("order-a", 1000, created_at=datetime(2026, 9, 1))
        make_design_order("order-b", 2000, created_at=datetime(2026, 9, 2))
        make_design_order("order-c", 3000, status="pending", payment_status="pending")
        make_earning("order-b", 2000)

        before = finance_service.get_finance_summary(DESIGNER_USER, "designer", "all", now=NOW)

        assert earnings_service.backfill_design_order_earnings(DESIGNER_USER) == 1
        assert earnings_service.backfill_design_order_earnings(DESIGNER_USER) == 0

        backfilled = db_session.query(DesignerEarning).filter_by(order_id="order-a").one()
        assert backfilled.paid_at == datetime(2026, 9, 1)

        after = finance_service.get_finance_summary(DESIGNER_USER, "designer", "all", now=NOW)
        assert after == before
