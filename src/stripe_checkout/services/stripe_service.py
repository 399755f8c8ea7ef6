"""Stripe API access for a single request.

Provides integration with Stripe using the StripeClient pattern and its
async methods. A new client is built for every request with the key resolved
from that request's settings; the module never touches global ``stripe``
configuration, so overlapping requests in different modes cannot clobber
each other's credentials.
"""

import asyncio
import hashlib
from decimal import Decimal
from typing import Any, Awaitable

import stripe
from stripe import StripeClient

from ..models.errors import RemoteFetchError, StripeServiceError, is_stripe_error_retryable
from ..models.settings import StripeCheckoutSettings
from ..utils.logging import get_logger

logger = get_logger(__name__)

PAYMENT_INTENT_EXPAND = ["latest_charge", "review"]
# Stripe caps expansion at four levels, so the invoice payment's intent is
# retrieved separately (with PAYMENT_INTENT_EXPAND) rather than nested here.
SUBSCRIPTION_EXPAND = ["latest_invoice", "latest_invoice.payments"]
INVOICE_EXPAND = ["payments"]
TAX_RATE_PAGE_SIZE = 100


def _is_retryable(error: stripe.StripeError) -> bool:
    if isinstance(error, (stripe.APIConnectionError, stripe.RateLimitError)):
        return True
    if (error.http_status or 0) >= 500:
        return True
    return is_stripe_error_retryable(getattr(error, "code", None))


class StripeService:
    """Async Stripe operations bound to one API key.

    Every remote call is awaited under the configured timeout. Stripe errors
    and timeouts surface as StripeServiceError, or RemoteFetchError for
    retrievals, carrying whether a retry may succeed. Cancellation of the
    awaiting task propagates unchanged.

    Usage:
        service = StripeService.from_settings(settings)
        intent = await service.retrieve_payment_intent("pi_123")
    """

    def __init__(
        self,
        api_key: str,
        *,
        timeout: float = 30.0,
        max_network_retries: int = 2,
        client: StripeClient | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            api_key: Stripe secret key for this request's mode.
            timeout: Seconds to wait for each remote call.
            max_network_retries: Retries the Stripe client performs on network errors.
            client: Pre-built client, mainly for tests.
        """
        if not api_key and client is None:
            raise StripeServiceError("Stripe secret key is not configured")
        self._timeout = timeout
        self._client = client or StripeClient(
            api_key,
            http_client=stripe.HTTPXClient(timeout=timeout),
            max_network_retries=max_network_retries,
        )

    @classmethod
    def from_settings(cls, settings: StripeCheckoutSettings) -> "StripeService":
        return cls(
            settings.secret_key or "",
            timeout=settings.request_timeout_seconds,
            max_network_retries=settings.max_network_retries,
        )

    @property
    def client(self) -> StripeClient:
        return self._client

    async def _call(self, operation: str, call: Awaitable[Any], *, fetch: bool = False) -> Any:
        error_cls = RemoteFetchError if fetch else StripeServiceError
        try:
            return await asyncio.wait_for(call, timeout=self._timeout)
        except asyncio.TimeoutError as e:
            logger.error("Stripe %s timed out after %ss", operation, self._timeout)
            raise error_cls(
                f"Stripe {operation} timed out after {self._timeout}s",
                retryable=True,
            ) from e
        except stripe.StripeError as e:
            error_code = getattr(e, "code", None)
            logger.error(
                "Stripe %s failed: %s (code: %s)",
                operation,
                str(e),
                error_code,
            )
            raise error_cls(
                f"Failed to {operation}: {e}",
                stripe_error_code=error_code,
                retryable=_is_retryable(e),
            ) from e

    # --- Retrievals ---

    async def retrieve_payment_intent(self, payment_intent_id: str, expand: list[str] | None = None):
        params = {"expand": expand if expand is not None else PAYMENT_INTENT_EXPAND}
        return await self._call(
            "retrieve payment intent",
            self._client.payment_intents.retrieve_async(payment_intent_id, params=params),
            fetch=True,
        )

    async def retrieve_charge(self, charge_id: str):
        return await self._call(
            "retrieve charge",
            self._client.charges.retrieve_async(charge_id),
            fetch=True,
        )

    async def retrieve_checkout_session(self, session_id: str):
        return await self._call(
            "retrieve checkout session",
            self._client.checkout.sessions.retrieve_async(session_id),
            fetch=True,
        )

    async def retrieve_subscription(self, subscription_id: str, expand: list[str] | None = None):
        params = {"expand": expand if expand is not None else SUBSCRIPTION_EXPAND}
        return await self._call(
            "retrieve subscription",
            self._client.subscriptions.retrieve_async(subscription_id, params=params),
            fetch=True,
        )

    async def retrieve_invoice(self, invoice_id: str, expand: list[str] | None = None):
        params = {"expand": expand if expand is not None else INVOICE_EXPAND}
        return await self._call(
            "retrieve invoice",
            self._client.invoices.retrieve_async(invoice_id, params=params),
            fetch=True,
        )

    async def retrieve_review(self, review_id: str):
        return await self._call(
            "retrieve review",
            self._client.reviews.retrieve_async(review_id),
            fetch=True,
        )

    # --- Provisioning ---

    async def create_customer(self, params: dict[str, Any]):
        return await self._call("create customer", self._client.customers.create_async(params=params))

    async def update_customer(self, customer_id: str, params: dict[str, Any]):
        return await self._call(
            "update customer",
            self._client.customers.update_async(customer_id, params=params),
        )

    async def list_active_tax_rates(self) -> list[Any]:
        """List all active tax rates, following ``has_more`` page by page."""
        params: dict[str, Any] = {"active": True, "limit": TAX_RATE_PAGE_SIZE}
        tax_rates: list[Any] = []
        while True:
            page = await self._call(
                "list tax rates",
                self._client.tax_rates.list_async(params=dict(params)),
            )
            data = list(page.get("data") or [])
            tax_rates.extend(data)
            if not page.get("has_more") or not data:
                return tax_rates
            params["starting_after"] = data[-1].get("id")

    async def create_tax_rate(self, display_name: str, percentage: Decimal, inclusive: bool):
        return await self._call(
            "create tax rate",
            self._client.tax_rates.create_async(
                params={
                    "display_name": display_name,
                    "percentage": float(percentage),
                    "inclusive": inclusive,
                }
            ),
        )

    # --- Payments ---

    async def create_checkout_session(self, params: dict[str, Any]):
        return await self._call(
            "create checkout session",
            self._client.checkout.sessions.create_async(params=params),
        )

    async def create_payment_intent(self, params: dict[str, Any]):
        return await self._call(
            "create payment intent",
            self._client.payment_intents.create_async(params=params),
        )

    async def capture_payment_intent(self, payment_intent_id: str, amount_to_capture: int):
        return await self._call(
            "capture payment intent",
            self._client.payment_intents.capture_async(
                payment_intent_id,
                params={"amount_to_capture": amount_to_capture, "expand": PAYMENT_INTENT_EXPAND},
            ),
        )

    async def cancel_payment_intent(self, payment_intent_id: str):
        return await self._call(
            "cancel payment intent",
            self._client.payment_intents.cancel_async(
                payment_intent_id,
                params={"expand": PAYMENT_INTENT_EXPAND},
            ),
        )

    async def create_refund(self, charge_id: str, amount: int):
        logger.info("Creating refund for charge %s, amount %d", charge_id, amount)
        return await self._call(
            "create refund",
            self._client.refunds.create_async(
                params={"charge": charge_id, "amount": amount, "expand": ["charge"]}
            ),
        )

    async def cancel_subscription(self, subscription_id: str):
        return await self._call(
            "cancel subscription",
            self._client.subscriptions.cancel_async(
                subscription_id,
                params={"invoice_now": False, "prorate": False},
            ),
        )

    @staticmethod
    def compute_payload_hash(payload: bytes) -> str:
        """Compute SHA-256 hash of a webhook payload for the audit log."""
        return hashlib.sha256(payload).hexdigest()
