"""Pytest configuration and fixtures for the Stripe Checkout provider tests.

This module provides reusable fixtures for testing:
- Provider settings and orders
- A mocked StripeClient with async resource methods
- Stripe-shaped objects (payment intents, charges, sessions, subscriptions)
- Webhook payload signing
"""

import hashlib
import hmac
import json
import os
import time
from decimal import Decimal
from typing import Any, Generator
from unittest.mock import AsyncMock, MagicMock

import pytest

# === Environment Setup ===

# Set environment variables for testing before imports
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-1")
os.environ.setdefault("DYNAMODB_TABLE_PREFIX", "test-checkout")
os.environ.setdefault("ENVIRONMENT", "test")

# Only set fake credentials for moto if no real credentials are present
if not os.environ.get("AWS_PROFILE") and not os.environ.get("AWS_ACCESS_KEY_ID"):
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

from stripe_checkout.models.order import (  # noqa: E402
    CustomerInfo,
    Order,
    OrderLine,
    OrderTransactionInfo,
)
from stripe_checkout.models.settings import StripeCheckoutSettings  # noqa: E402
from stripe_checkout.services.provisioning import RequestContext  # noqa: E402
from stripe_checkout.services.stripe_service import StripeService  # noqa: E402

# === Test Configuration ===

TEST_WEBHOOK_SECRET = "whsec_test_secret123"
TEST_SECRET_KEY = "sk_test_abc123"
TEST_ORDER_ID = "6f1c2f0e-8a53-4c1e-9d4b-2a1b3c4d5e6f"
TEST_ORDER_NUMBER = "ORDER-01234-56"
TEST_ORDER_REFERENCE = f"{TEST_ORDER_ID}:{TEST_ORDER_NUMBER}"


# === Helper Functions ===


def create_stripe_signature(
    payload: bytes,
    secret: str = TEST_WEBHOOK_SECRET,
    timestamp: int | None = None,
) -> str:
    """Create a valid Stripe webhook signature.

    Stripe signatures use HMAC-SHA256 with format: t={timestamp},v1={signature}
    """
    ts = str(timestamp if timestamp is not None else int(time.time()))
    signed_payload = f"{ts}.{payload.decode('utf-8')}"
    signature = hmac.new(
        secret.encode("utf-8"),
        signed_payload.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return f"t={ts},v1={signature}"


def make_event_payload(
    event_type: str,
    object_id: str,
    object_type: str,
    event_id: str = "evt_1ABC123DEF456",
) -> bytes:
    """Create a webhook body; the embedded object is deliberately sparse."""
    return json.dumps({
        "id": event_id,
        "object": "event",
        "type": event_type,
        "created": int(time.time()),
        "data": {"object": {"id": object_id, "object": object_type}},
    }).encode("utf-8")


def make_charge(
    charge_id: str = "ch_3ABC123",
    *,
    paid: bool = True,
    captured: bool = True,
    refunded: bool = False,
    amount: int = 1000,
    country: str | None = "IS",
) -> dict[str, Any]:
    return {
        "id": charge_id,
        "object": "charge",
        "paid": paid,
        "captured": captured,
        "refunded": refunded,
        "amount": amount,
        "currency": "eur",
        "payment_intent": "pi_3ABC123",
        "payment_method_details": {"type": "card", "card": {"country": country}},
    }


def make_payment_intent(
    intent_id: str = "pi_3ABC123",
    *,
    status: str = "succeeded",
    amount: int = 1000,
    charge: dict[str, Any] | str | None = None,
    review: dict[str, Any] | None = None,
    customer: str | None = "cus_ABC123",
    metadata: dict[str, str] | None = None,
) -> dict[str, Any]:
    return {
        "id": intent_id,
        "object": "payment_intent",
        "status": status,
        "amount": amount,
        "currency": "eur",
        "customer": customer,
        "client_secret": f"{intent_id}_secret_xyz",
        "latest_charge": charge,
        "review": review,
        "metadata": metadata if metadata is not None else {"orderReference": TEST_ORDER_REFERENCE},
    }


def make_checkout_session(
    session_id: str = "cs_test_abc123",
    *,
    mode: str = "payment",
    payment_intent: str | None = "pi_3ABC123",
    subscription: str | None = None,
    customer: str | None = "cus_ABC123",
) -> dict[str, Any]:
    return {
        "id": session_id,
        "object": "checkout.session",
        "mode": mode,
        "status": "complete",
        "payment_status": "paid",
        "customer": customer,
        "payment_intent": payment_intent,
        "subscription": subscription,
        "client_reference_id": TEST_ORDER_REFERENCE,
        "url": None,
    }


def make_invoice_payment(
    *,
    status: str = "paid",
    created: int = 1704067200,
    payment_intent: dict[str, Any] | str | None = "pi_sub_123",
    charge: str | None = None,
) -> dict[str, Any]:
    payment: dict[str, Any] = {"type": "payment_intent", "payment_intent": payment_intent}
    if charge:
        payment["charge"] = charge
    return {
        "id": f"inpay_{created}",
        "object": "invoice_payment",
        "status": status,
        "created": created,
        "payment": payment,
    }


def make_subscription(
    subscription_id: str = "sub_ABC123",
    *,
    status: str = "active",
    invoice_status: str = "paid",
    payments: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    return {
        "id": subscription_id,
        "object": "subscription",
        "status": status,
        "customer": "cus_ABC123",
        "metadata": {"orderReference": TEST_ORDER_REFERENCE},
        "latest_invoice": {
            "id": "in_ABC123",
            "object": "invoice",
            "status": invoice_status,
            "amount_paid": 2500,
            "currency": "eur",
            "payments": {"object": "list", "data": payments or []},
        },
    }


# === Settings and Order Fixtures ===


@pytest.fixture
def settings() -> StripeCheckoutSettings:
    """Provider settings in test mode."""
    return StripeCheckoutSettings(
        continue_url="https://shop.example.com/checkout/continue",
        cancel_url="https://shop.example.com/checkout/cancel",
        error_url="https://shop.example.com/checkout/error",
        billing_address_line1_property_alias="billingAddressLine1",
        billing_address_city_property_alias="billingCity",
        billing_address_zip_code_property_alias="billingZipCode",
        test_secret_key=TEST_SECRET_KEY,
        test_public_key="pk_test_abc123",
        test_webhook_signing_secret=TEST_WEBHOOK_SECRET,
        test_mode=True,
    )


@pytest.fixture
def order() -> Order:
    """A one-line order with an authorized transaction."""
    return Order(
        id=TEST_ORDER_ID,
        order_number=TEST_ORDER_NUMBER,
        currency_code="EUR",
        language_iso_code="en-GB",
        billing_country_code="IS",
        customer_info=CustomerInfo(
            first_name="Anna",
            last_name="Jonsdottir",
            email="anna@example.com",
        ),
        order_lines=[
            OrderLine(
                name="Summer cabin weekend",
                product_reference="CABIN-WKND",
                quantity=Decimal(1),
                tax_rate=Decimal("0.24"),
                total_price_without_tax=Decimal("8.06"),
                total_price_with_tax=Decimal("10.00"),
            )
        ],
        transaction_amount=Decimal("10.00"),
        transaction_info=OrderTransactionInfo(
            transaction_id="ch_3ABC123",
            amount_authorized=Decimal("10.00"),
            transaction_fee=Decimal("0.50"),
        ),
        properties={
            "billingAddressLine1": "Laugavegur 1",
            "billingCity": "Reykjavik",
            "billingZipCode": "101",
        },
    )


# === Stripe Client Fixtures ===


@pytest.fixture
def mock_stripe_client() -> MagicMock:
    """StripeClient stand-in whose *_async resource methods are AsyncMocks."""
    client = MagicMock()
    for resource in (
        client.payment_intents,
        client.charges,
        client.checkout.sessions,
        client.subscriptions,
        client.invoices,
        client.reviews,
        client.customers,
        client.tax_rates,
        client.refunds,
    ):
        for method in ("retrieve", "create", "update", "list", "capture", "cancel"):
            setattr(resource, f"{method}_async", AsyncMock())
    return client


@pytest.fixture
def stripe_service(mock_stripe_client: MagicMock) -> StripeService:
    return StripeService(TEST_SECRET_KEY, timeout=5.0, client=mock_stripe_client)


@pytest.fixture
def ctx(settings: StripeCheckoutSettings, stripe_service: StripeService) -> RequestContext:
    return RequestContext.create(settings, stripe_service)


@pytest.fixture
def reset_singletons() -> Generator[None, None, None]:
    """Clear cached settings, SSM client and store between tests."""
    from stripe_checkout.services.settings_service import get_provider_settings
    from stripe_checkout.services.ssm_service import get_ssm_service
    from stripe_checkout.services.transaction_store import reset_transaction_store

    get_provider_settings.cache_clear()
    get_ssm_service.cache_clear()
    reset_transaction_store()
    yield
    get_provider_settings.cache_clear()
    get_ssm_service.cache_clear()
    reset_transaction_store()
