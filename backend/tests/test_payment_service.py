# Overview: Pytest coverage for pricing agreements and customer payment records.

import pytest

from printmarket.services import payment_service
from printmarket.services.payment_service import PaymentError
from printmarket.validation import ValidationError

from conftest import DESIGNER_USER


@pytest.fixture
def quoted_request(make_request):
    """Claimed request in review with a 100.00 design fee and no payments."""
    return make_request(status="pending_designer_review", design_fee_cents=10000)


class TestPricingAgreement:
    def test_total_is_sum_of_parts(self, make_request):
        req = make_request(status="pending_designer_review")
        req = payment_service.create_pricing_agreement(req.id, DESIGNER_USER, 10000, 2500, 1500)
        assert req.total_cost_cents == req.design_fee_cents + req.product_cost_cents + req.printing_cost_cents
        assert req.total_cost_cents == 14000
        assert req.pricing_agreed_at is not None

    def test_quote_does_not_open_escrow(self, make_request):
        """Payment details only appear once the customer starts paying."""
        req = make_request(status="pending_designer_review")
        req = payment_service.create_pricing_agreement(req.id, DESIGNER_USER, 10000)
        assert req.has_pricing_agreement
        assert not req.has_payment_details
        assert req.escrow_status is None

    def test_only_assigned_designer(self, make_request):
        req = make_request(status="pending_designer_review")
        with pytest.raises(PaymentError):
            payment_service.create_pricing_agreement(req.id, "other-designer", 10000)

    def test_closed_after_approval(self, make_request):
        req = make_request(status="customer_approved")
        with pytest.raises(PaymentError):
            payment_service.create_pricing_agreement(req.id, DESIGNER_USER, 10000)

    def test_cannot_reprice_after_payment(self, quoted_request):
        payment_service.record_payment(quoted_request.id, 5000, status="success")
        with pytest.raises(PaymentError):
            payment_service.create_pricing_agreement(quoted_request.id, DESIGNER_USER, 20000)

    def test_rejects_decimal_and_negative_amounts(self, make_request):
        req = make_request(status="pending_designer_review")
        for bad in ("12.5", -1, 10.0, True, "1e4"):
            with pytest.raises(ValidationError):
                payment_service.create_pricing_agreement(req.id, DESIGNER_USER, bad)


class TestPaymentRecords:
    def test_pending_payment_opens_details_without_escrow(self, quoted_request):
        record = payment_service.record_payment(quoted_request.id, 10000)
        req = record.request
        assert record.status == "pending"
        assert record.paid_at is None
        assert req.payment_status == "pending"
        assert req.escrow_status is None
        assert req.paid_amount_cents == 0

    def test_successful_payment_opens_escrow(self, quoted_request):
        record = payment_service.record_payment(quoted_request.id, 4000, status="success")
        assert record.request.escrow_status == "held"

    def test_resolved_payment_opens_escrow(self, quoted_request):
        pending = payment_service.record_payment(quoted_request.id, 10000)
        resolved = payment_service.resolve_payment(pending.id, "success")
        assert resolved.request.escrow_status == "held"
        assert resolved.request.paid_amount_cents == 10000

    def test_success_updates_paid_amount(self, quoted_request):
        payment_service.record_payment(quoted_request.id, 4000, status="success")
        record = payment_service.record_payment(quoted_request.id, 6000, status="success")
        req = record.request
        assert req.paid_amount_cents == 10000
        assert req.payment_status == "fully_paid"
        assert record.paid_at is not None

    def test_partial_payment(self, quoted_request):
        record = payment_service.record_payment(quoted_request.id, 4000, status="success")
        assert record.request.payment_status == "partially_paid"

    def test_overpayment_rejected_and_nothing_written(self, quoted_request):
        with pytest.raises(PaymentError):
            payment_service.record_payment(quoted_request.id, 10001, status="success")
        assert payment_service.get_request_payments(quoted_request.id) == []

    def test_failed_attempt_is_kept(self, quoted_request):
        payment_service.record_payment(quoted_request.id, 10000, status="failed")
        payment_service.record_payment(quoted_request.id, 10000, status="success")
        statuses = [p.status for p in payment_service.get_request_payments(quoted_request.id)]
        assert statuses == ["failed", "success"]

    def test_needs_pricing(self, make_request):
        req = make_request(status="pending_designer_review")
        with pytest.raises(PaymentError):
            payment_service.record_payment(req.id, 100)

    def test_closed_request_takes_no_payment(self, make_request):
        req = make_request(status="cancelled", design_fee_cents=10000)
        with pytest.raises(PaymentError):
            payment_service.record_payment(req.id, 100)

    def test_zero_amount_rejected(self, quoted_request):
        with pytest.raises(ValidationError):
            payment_service.record_payment(quoted_request.id, 0)

    def test_default_payment_method(self, quoted_request):
        record = payment_service.record_payment(quoted_request.id, 100)
        assert record.payment_method == "xendit"


class TestResolvePayment:
    def test_resolve_success(self, quoted_request):
        record = payment_service.record_payment(quoted_request.id, 10000)
        resolved = payment_service.resolve_payment(record.id, "success")
        assert resolved.status == "success"
        assert resolved.paid_at is not None
        assert resolved.request.payment_status == "fully_paid"

    def test_resolve_failed_leaves_balance(self, quoted_request):
        record = payment_service.record_payment(quoted_request.id, 10000)
        resolved = payment_service.resolve_payment(record.id, "failed")
        assert resolved.status == "failed"
        assert resolved.request.paid_amount_cents == 0

    def test_resolved_record_is_immutable(self, quoted_request):
        record = payment_service.record_payment(quoted_request.id, 10000)
        payment_service.resolve_payment(record.id, "failed")
        with pytest.raises(PaymentError):
            payment_service.resolve_payment(record.id, "success")

    def test_resolve_to_pending_rejected(self, quoted_request):
        record = payment_service.record_payment(quoted_request.id, 10000)
        with pytest.raises(PaymentError):
            payment_service.resolve_payment(record.id, "pending")
