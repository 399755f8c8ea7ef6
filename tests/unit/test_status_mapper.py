"""Unit tests for mapping Stripe object state to canonical payment status.

Test categories:
- Charge flag grid
- Payment intent status, including open reviews
- Invoices and subscriptions, legacy and payments-list shapes
- Transaction ID resolution
"""

import pytest

from conftest import make_charge, make_invoice_payment, make_payment_intent, make_subscription
from stripe_checkout.models.enums import PaymentStatus
from stripe_checkout.models.errors import UnsupportedObjectKindError
from stripe_checkout.models.snapshots import (
    ChargeSnapshot,
    CheckoutSessionSnapshot,
    InvoiceSnapshot,
    PaymentIntentSnapshot,
    ReviewSnapshot,
    SubscriptionSnapshot,
)
from stripe_checkout.services.status_mapper import (
    charge_status,
    invoice_status,
    map_status,
    payment_intent_status,
    subscription_status,
    transaction_id_for,
)


# === Charge Tests ===


class TestChargeStatus:
    """Charge paid/captured/refunded combinations."""

    @pytest.mark.parametrize(
        ("paid", "captured", "refunded", "expected"),
        [
            (False, False, False, PaymentStatus.INITIALIZED),
            (False, True, True, PaymentStatus.INITIALIZED),
            (True, False, False, PaymentStatus.AUTHORIZED),
            (True, False, True, PaymentStatus.CANCELLED),
            (True, True, False, PaymentStatus.CAPTURED),
            (True, True, True, PaymentStatus.REFUNDED),
        ],
    )
    def test_charge_flags(self, paid: bool, captured: bool, refunded: bool, expected: PaymentStatus):
        charge = ChargeSnapshot.from_stripe(
            make_charge(paid=paid, captured=captured, refunded=refunded)
        )
        assert charge_status(charge) == expected

    def test_missing_charge_is_initialized(self):
        assert charge_status(None) == PaymentStatus.INITIALIZED

    def test_card_country_read_from_payment_method_details(self):
        charge = ChargeSnapshot.from_stripe(make_charge(country="DE"))
        assert charge.card_country == "DE"


# === Payment Intent Tests ===


class TestPaymentIntentStatus:
    """Payment intent status mapping."""

    def test_requires_capture_is_authorized(self):
        intent = PaymentIntentSnapshot.from_stripe(make_payment_intent(status="requires_capture"))
        assert payment_intent_status(intent) == PaymentStatus.AUTHORIZED

    def test_canceled_is_cancelled(self):
        intent = PaymentIntentSnapshot.from_stripe(make_payment_intent(status="canceled"))
        assert payment_intent_status(intent) == PaymentStatus.CANCELLED

    @pytest.mark.parametrize(
        "status",
        ["requires_payment_method", "requires_confirmation", "requires_action", "processing"],
    )
    def test_incomplete_is_initialized(self, status: str):
        intent = PaymentIntentSnapshot.from_stripe(make_payment_intent(status=status))
        assert payment_intent_status(intent) == PaymentStatus.INITIALIZED

    def test_succeeded_follows_latest_charge(self):
        intent = PaymentIntentSnapshot.from_stripe(
            make_payment_intent(charge=make_charge(captured=True, refunded=True))
        )
        assert payment_intent_status(intent) == PaymentStatus.REFUNDED

    def test_succeeded_without_expanded_charge_is_captured(self):
        intent = PaymentIntentSnapshot.from_stripe(make_payment_intent(charge="ch_3ABC123"))
        assert intent.latest_charge_id == "ch_3ABC123"
        assert payment_intent_status(intent) == PaymentStatus.CAPTURED

    def test_open_review_overrides_authorized(self):
        intent = PaymentIntentSnapshot.from_stripe(
            make_payment_intent(
                status="requires_capture",
                review={"id": "prv_123", "object": "review", "open": True, "reason": "rule"},
            )
        )
        assert payment_intent_status(intent) == PaymentStatus.PENDING_EXTERNAL_SYSTEM

    def test_open_review_overrides_captured(self):
        intent = PaymentIntentSnapshot.from_stripe(
            make_payment_intent(
                charge=make_charge(),
                review={"id": "prv_123", "object": "review", "open": True},
            )
        )
        assert payment_intent_status(intent) == PaymentStatus.PENDING_EXTERNAL_SYSTEM

    def test_closed_review_does_not_override(self):
        intent = PaymentIntentSnapshot.from_stripe(
            make_payment_intent(
                status="requires_capture",
                review={"id": "prv_123", "object": "review", "open": False, "reason": "approved"},
            )
        )
        assert payment_intent_status(intent) == PaymentStatus.AUTHORIZED

    def test_canceled_wins_over_open_review(self):
        intent = PaymentIntentSnapshot.from_stripe(
            make_payment_intent(
                status="canceled",
                review={"id": "prv_123", "object": "review", "open": True},
            )
        )
        assert payment_intent_status(intent) == PaymentStatus.CANCELLED

    def test_mapping_is_deterministic(self):
        raw = make_payment_intent(status="requires_capture", charge=make_charge(captured=False))
        results = {payment_intent_status(PaymentIntentSnapshot.from_stripe(raw)) for _ in range(5)}
        assert results == {PaymentStatus.AUTHORIZED}


# === Invoice and Subscription Tests ===


class TestInvoiceStatus:
    """Invoice and subscription mapping."""

    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            ("draft", PaymentStatus.INITIALIZED),
            ("open", PaymentStatus.AUTHORIZED),
            ("void", PaymentStatus.CANCELLED),
            ("uncollectible", PaymentStatus.ERROR),
        ],
    )
    def test_invoice_states(self, status: str, expected: PaymentStatus):
        invoice = InvoiceSnapshot.from_stripe({"id": "in_1", "status": status})
        assert invoice_status(invoice) == expected

    def test_paid_invoice_without_payment_details_is_captured(self):
        invoice = InvoiceSnapshot.from_stripe({"id": "in_1", "status": "paid"})
        assert invoice_status(invoice) == PaymentStatus.CAPTURED

    def test_paid_invoice_follows_expanded_payment_intent(self):
        intent = make_payment_intent("pi_sub_123", charge=make_charge("ch_sub_123"))
        subscription = SubscriptionSnapshot.from_stripe(
            make_subscription(payments=[make_invoice_payment(payment_intent=intent)])
        )
        assert subscription_status(subscription) == PaymentStatus.CAPTURED
        assert transaction_id_for(subscription) == "ch_sub_123"

    def test_legacy_invoice_charge_field(self):
        invoice = InvoiceSnapshot.from_stripe(
            {"id": "in_1", "status": "paid", "charge": make_charge("ch_legacy", refunded=True)}
        )
        assert invoice_status(invoice) == PaymentStatus.REFUNDED
        assert transaction_id_for(invoice) == "ch_legacy"

    def test_latest_paid_payment_picks_most_recent(self):
        invoice = InvoiceSnapshot.from_stripe({
            "id": "in_1",
            "status": "paid",
            "payments": {
                "data": [
                    make_invoice_payment(created=100, payment_intent="pi_old", charge="ch_old"),
                    make_invoice_payment(created=300, status="open", payment_intent="pi_open"),
                    make_invoice_payment(created=200, payment_intent="pi_new", charge="ch_new"),
                ]
            },
        })
        payment = invoice.latest_paid_payment()
        assert payment is not None
        assert payment.payment_intent_id == "pi_new"
        assert transaction_id_for(invoice) == "ch_new"

    def test_subscription_without_invoice_is_initialized(self):
        subscription = SubscriptionSnapshot.from_stripe({"id": "sub_1", "status": "incomplete"})
        assert subscription_status(subscription) == PaymentStatus.INITIALIZED
        assert transaction_id_for(subscription) is None


# === Dispatch Tests ===


class TestMapStatus:
    """Dispatch over snapshot kinds."""

    def test_dispatches_charge(self):
        assert map_status(ChargeSnapshot.from_stripe(make_charge())) == PaymentStatus.CAPTURED

    def test_session_is_unsupported(self):
        session = CheckoutSessionSnapshot(id="cs_1")
        with pytest.raises(UnsupportedObjectKindError):
            map_status(session)

    def test_review_is_unsupported(self):
        with pytest.raises(UnsupportedObjectKindError):
            map_status(ReviewSnapshot(id="prv_1"))
