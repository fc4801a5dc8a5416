# Overview: Pytest coverage for the finance summary aggregation.

"""
Finance Summary Tests

The summary is rebuilt from customization requests, design-only orders and
earnings records on every call. These tests walk a request through its money
states end to end, pin the earnings/order de-duplication, the inclusive time
window cutoff, and the best-effort handling of failing lookups.
"""

from datetime import datetime, timedelta

import pytest

from printmarket.services import escrow_service, finance_service, lifecycle_service, payment_service
from printmarket.services.finance_service import FinanceError, FinanceService

from conftest import CUSTOMER, DESIGNER_USER, NOW, SHOP_PROFILE, SHOP_USER


def _summary(user_id=DESIGNER_USER, role="designer", time_range="all"):
    return finance_service.get_finance_summary(user_id, role, time_range, now=NOW)


class TestDesignerScenarios:
    def test_request_moves_through_money_states(self, db_session):
        """Quote only, then paid into escrow, then released to the designer."""
        req = lifecycle_service.create_request({"customer_id": CUSTOMER, "product_name": "Classic Tee"})
        lifecycle_service.claim_request(req.id, DESIGNER_USER)
        payment_service.create_pricing_agreement(req.id, DESIGNER_USER, 10000)

        summary = _summary()
        assert summary.total_earnings_cents == 0
        assert summary.pending_amount_cents == 0
        assert summary.paid_amount_cents == 0

        payment_service.record_payment(req.id, 10000, status="success", paid_at=datetime(2026, 10, 10))

        summary = _summary()
        assert summary.total_earnings_cents == 10000
        assert summary.pending_amount_cents == 10000
        assert summary.paid_amount_cents == 0

        lifecycle_service.submit_design(req.id, DESIGNER_USER, final_file_url="https://files.example/final.png")
        lifecycle_service.approve_design(req.id, CUSTOMER)
        escrow_service.release_designer_payment(req.id, now=datetime(2026, 10, 12))

        summary = _summary()
        assert summary.total_earnings_cents == 10000
        assert summary.paid_amount_cents == 10000
        assert summary.this_month_earnings_cents == 10000
        assert summary.pending_amount_cents == 0

    def test_quote_without_payment_contributes_nothing(self, make_request):
        make_request(design_fee_cents=10000)
        summary = _summary()
        assert summary.to_dict() == {
            "total_earnings_cents": 0,
            "total_revenue_cents": 0,
            "pending_amount_cents": 0,
            "paid_amount_cents": 0,
            "this_month_earnings_cents": 0,
            "this_month_revenue_cents": 0,
            "currency": "PHP",
        }

    def test_successful_payment_without_payout_is_pending(self, make_request):
        make_request(
            design_fee_cents=10000,
            payment_status="fully_paid",
            paid_amount_cents=10000,
            escrow_status="held",
            payments=[{"amount_cents": 10000, "status": "success", "paid_at": datetime(2026, 10, 2)}],
        )
        summary = _summary()
        assert (summary.total_earnings_cents, summary.pending_amount_cents, summary.paid_amount_cents) == (10000, 10000, 0)
        assert summary.this_month_earnings_cents == 10000

    def test_released_payout_this_month(self, make_request):
        make_request(
            design_fee_cents=10000,
            payment_status="fully_paid",
            paid_amount_cents=10000,
            escrow_status="designer_paid",
            designer_payout_cents=10000,
            designer_paid_at=datetime(2026, 10, 3),
        )
        summary = _summary()
        assert summary.total_earnings_cents == 10000
        assert summary.paid_amount_cents == 10000
        assert summary.this_month_earnings_cents == 10000
        assert summary.pending_amount_cents == 0

    def test_pending_payment_record_counts_as_pending(self, make_request):
        make_request(
            design_fee_cents=10000,
            payment_status="pending",
            escrow_status="held",
            payments=[{"amount_cents": 10000, "status": "pending"}],
        )
        summary = _summary()
        assert summary.pending_amount_cents == 10000
        assert summary.this_month_earnings_cents == 0

    def test_design_order_with_earnings_record_counted_once(self, designer_profile, make_design_order, make_earning):
        make_design_order("order-d", 5000)
        make_earning("order-d", 5000)

        summary = _summary()
        assert summary.total_earnings_cents == 5000
        assert summary.paid_amount_cents == 5000

    def test_legacy_paid_design_order_without_record(self, designer_profile, make_design_order):
        make_design_order("order-legacy", 7000, created_at=datetime(2026, 10, 1, 0, 0, 0))
        summary = _summary()
        assert summary.total_earnings_cents == 7000
        assert summary.paid_amount_cents == 7000
        assert summary.this_month_earnings_cents == 7000

    def test_design_order_counted_without_profile(self, make_design_order):
        make_design_order("order-np", 3000)
        assert _summary().paid_amount_cents == 3000

    def test_unpaid_design_order_is_pending(self, designer_profile, make_design_order):
        make_design_order("order-p", 2500, status="pending", payment_status="pending")
        summary = _summary()
        assert summary.pending_amount_cents == 2500
        assert summary.paid_amount_cents == 0
        assert summary.total_earnings_cents == 2500

    def test_cancelled_and_product_orders_ignored(self, designer_profile, make_design_order, make_order):
        make_design_order("order-c", 2500, status="cancelled")
        make_order("order-prod", total_amount_cents=9000, items=[
            {"item_type": "product", "product_id": "prod-1", "quantity": 1, "price_cents": 9000},
        ])
        assert _summary().total_earnings_cents == 0

    def test_earnings_record_outside_month(self, designer_profile, make_design_order, make_earning):
        make_design_order("order-sep", 4000, created_at=datetime(2026, 9, 20))
        make_earning("order-sep", 4000, paid_at=datetime(2026, 9, 30, 23, 59, 59))
        summary = _summary()
        assert summary.paid_amount_cents == 4000
        assert summary.this_month_earnings_cents == 0

    def test_other_designers_records_excluded(self, designer_profile, make_request):
        make_request(
            designer_id="designer-user-2",
            design_fee_cents=10000,
            payment_status="fully_paid",
            paid_amount_cents=10000,
            escrow_status="held",
        )
        assert _summary().total_earnings_cents == 0


class TestTimeWindow:
    def test_seven_day_cutoff_is_inclusive(self, designer_profile, make_design_order, make_earning):
        cutoff = NOW - timedelta(days=7)
        make_design_order("order-edge", 1000)
        make_earning("order-edge", 1000, paid_at=cutoff)
        make_design_order("order-old", 2000)
        make_earning("order-old", 2000, paid_at=cutoff - timedelta(seconds=1))

        assert _summary(time_range="7d").paid_amount_cents == 1000
        assert _summary(time_range="all").paid_amount_cents == 3000

    def test_undated_records_only_count_for_all(self, designer_profile, make_design_order, make_earning):
        make_design_order("order-undated", 1500)
        make_earning("order-undated", 1500, paid_at=None)

        assert _summary(time_range="30d").paid_amount_cents == 0
        assert _summary(time_range="all").paid_amount_cents == 1500

    def test_collected_request_uses_payment_date(self, make_request):
        make_request(
            design_fee_cents=10000,
            payment_status="fully_paid",
            paid_amount_cents=10000,
            escrow_status="held",
            requested_at=datetime(2026, 1, 5),
            payments=[{"amount_cents": 10000, "status": "success", "paid_at": datetime(2026, 10, 14)}],
        )
        assert _summary(time_range="7d").pending_amount_cents == 10000

    def test_invalid_range(self, db_session):
        with pytest.raises(FinanceError):
            _summary(time_range="2w")

    def test_invalid_role(self, db_session):
        with pytest.raises(FinanceError):
            _summary(role="customer")


class TestBusinessOwner:
    def test_orders_and_shop_customizations(self, shop_profile, make_order, make_request):
        make_order("o-delivered", business_owner_id=SHOP_USER, total_amount_cents=20000)
        make_order("o-processing", business_owner_id=SHOP_USER, status="processing", total_amount_cents=5000)
        make_order("o-unpaid", business_owner_id=SHOP_USER, status="pending",
                   payment_status="pending", total_amount_cents=3000)
        make_order("o-cancelled", business_owner_id=SHOP_USER, status="cancelled", total_amount_cents=9999)
        make_request(
            status="completed",
            printing_shop_id=SHOP_PROFILE,
            design_fee_cents=10000,
            product_cost_cents=3000,
            printing_cost_cents=2000,
            payment_status="fully_paid",
            paid_amount_cents=15000,
            escrow_status="released",
            designer_payout_cents=10000,
            designer_paid_at=datetime(2026, 10, 4),
            shop_payout_cents=5000,
            shop_paid_at=datetime(2026, 10, 8),
        )

        summary = _summary(SHOP_USER, "business_owner")
        assert summary.paid_amount_cents == 25000
        assert summary.pending_amount_cents == 8000
        assert summary.total_revenue_cents == 33000
        assert summary.total_revenue_cents == summary.total_earnings_cents
        # delivered order, processing (collected) order and shop payout
        assert summary.this_month_revenue_cents == 30000

    def test_refunded_and_failed_delivered_orders_count_nothing(self, make_order):
        make_order("o-refunded", business_owner_id=SHOP_USER, payment_status="refunded", total_amount_cents=5000)
        make_order("o-failed", business_owner_id=SHOP_USER, payment_status="failed", total_amount_cents=4000)
        make_order("o-refunded-open", business_owner_id=SHOP_USER, status="processing",
                   payment_status="refunded", total_amount_cents=3000)
        make_order("o-awaiting", business_owner_id=SHOP_USER, status="shipped",
                   payment_status="failed", total_amount_cents=2000)

        summary = _summary(SHOP_USER, "business_owner")
        # only the undelivered order with a retryable payment is still owed
        assert summary.pending_amount_cents == 2000
        assert summary.paid_amount_cents == 0
        assert summary.total_earnings_cents == 2000

    def test_shop_cost_pending_until_released(self, shop_profile, make_request):
        make_request(
            status="in_production",
            printing_shop_id=SHOP_PROFILE,
            design_fee_cents=10000,
            product_cost_cents=3000,
            printing_cost_cents=2000,
            payment_status="fully_paid",
            paid_amount_cents=15000,
            escrow_status="designer_paid",
            designer_payout_cents=10000,
            designer_paid_at=datetime(2026, 10, 4),
        )
        summary = _summary(SHOP_USER, "business_owner")
        assert summary.pending_amount_cents == 5000
        assert summary.paid_amount_cents == 0

    def test_orders_counted_without_shop_profile(self, make_order):
        make_order("o-1", business_owner_id=SHOP_USER, total_amount_cents=1200)
        assert _summary(SHOP_USER, "business_owner").paid_amount_cents == 1200


class _BrokenRepository:
    @staticmethod
    def find_by_designer_id(_):
        raise RuntimeError("earnings store unavailable")

    @staticmethod
    def find_by_user_id(_):
        raise RuntimeError("profile store unavailable")

    @staticmethod
    def find_by_business_owner(_):
        raise RuntimeError("order store unavailable")


class TestBestEffort:
    def test_failing_earnings_lookup_is_logged_and_skipped(
        self, designer_profile, make_design_order, make_earning, make_request, caplog
    ):
        make_design_order("order-x", 5000)
        make_earning("order-x", 5000)
        make_request(
            design_fee_cents=10000,
            payment_status="fully_paid",
            paid_amount_cents=10000,
            escrow_status="designer_paid",
            designer_payout_cents=10000,
            designer_paid_at=datetime(2026, 10, 3),
        )

        service = FinanceService(earnings=_BrokenRepository)
        summary = service.get_finance_summary(DESIGNER_USER, "designer", now=NOW)

        # Earnings unavailable: the order falls back to its own amount, once.
        assert summary.paid_amount_cents == 15000
        assert "Finance lookup failed: earnings records" in caplog.text

    def test_failing_profile_and_orders_leave_customizations(self, make_request, caplog):
        make_request(
            design_fee_cents=10000,
            payment_status="fully_paid",
            paid_amount_cents=10000,
            escrow_status="held",
        )
        service = FinanceService(designer_profiles=_BrokenRepository, orders=_BrokenRepository)
        summary = service.get_finance_summary(DESIGNER_USER, "designer", now=NOW)
        assert summary.pending_amount_cents == 10000
        assert "designer profile" in caplog.text
        assert "design orders" in caplog.text

    def test_bad_record_does_not_abort(self, make_request, monkeypatch):
        make_request(
            design_fee_cents=10000,
            payment_status="fully_paid",
            paid_amount_cents=10000,
            escrow_status="held",
        )
        bad = make_request(
            design_fee_cents=20000,
            payment_status="fully_paid",
            paid_amount_cents=20000,
            escrow_status="held",
        )
        bad_id = bad.id
        original = finance_service.classify_customization

        def _classify(req, role):
            if req.id == bad_id:
                raise ValueError("corrupt request")
            return original(req, role)

        monkeypatch.setattr(finance_service, "classify_customization", _classify)
        summary = _summary()
        assert summary.pending_amount_cents == 10000
