"""Retrieval of the authoritative Stripe object an event refers to."""

from ..models.enums import ObjectKind
from ..models.errors import RemoteFetchError
from ..models.snapshots import (
    ChargeSnapshot,
    CheckoutSessionSnapshot,
    InvoiceSnapshot,
    PaymentIntentSnapshot,
    RemoteObjectSnapshot,
    ReviewSnapshot,
    SubscriptionSnapshot,
)
from ..utils.logging import get_logger
from .stripe_service import StripeService

logger = get_logger(__name__)


class RemoteObjectFetcher:
    """Fetches Stripe objects and converts them to snapshots.

    Each ``fetch_*`` method issues exactly one retrieve call, with the
    expansions the status mapper needs. Failures raise RemoteFetchError and
    are never turned into a default snapshot.
    """

    def __init__(self, stripe_service: StripeService) -> None:
        self._stripe = stripe_service

    async def fetch(self, kind: ObjectKind, object_id: str) -> RemoteObjectSnapshot:
        """Fetch the object of the given kind.

        Args:
            kind: The object kind named by the event.
            object_id: The Stripe object ID.

        Returns:
            Snapshot of the object's current state.

        Raises:
            RemoteFetchError: If the object cannot be retrieved.
        """
        if not object_id:
            raise RemoteFetchError(f"No {kind.value} ID to fetch")

        logger.debug("Fetching %s %s", kind.value, object_id)

        if kind == ObjectKind.PAYMENT_INTENT:
            return await self.fetch_payment_intent(object_id)
        if kind == ObjectKind.CHARGE:
            return await self.fetch_charge(object_id)
        if kind == ObjectKind.CHECKOUT_SESSION:
            return await self.fetch_checkout_session(object_id)
        if kind == ObjectKind.SUBSCRIPTION:
            return await self.fetch_subscription(object_id)
        if kind == ObjectKind.INVOICE:
            return await self.fetch_invoice(object_id)
        if kind == ObjectKind.REVIEW:
            return await self.fetch_review(object_id)
        raise RemoteFetchError(f"Unsupported object kind: {kind}")

    async def fetch_payment_intent(self, payment_intent_id: str) -> PaymentIntentSnapshot:
        intent = await self._stripe.retrieve_payment_intent(payment_intent_id)
        return PaymentIntentSnapshot.from_stripe(intent)

    async def fetch_charge(self, charge_id: str) -> ChargeSnapshot:
        charge = await self._stripe.retrieve_charge(charge_id)
        return ChargeSnapshot.from_stripe(charge)

    async def fetch_checkout_session(self, session_id: str) -> CheckoutSessionSnapshot:
        session = await self._stripe.retrieve_checkout_session(session_id)
        return CheckoutSessionSnapshot.from_stripe(session)

    async def fetch_subscription(self, subscription_id: str) -> SubscriptionSnapshot:
        subscription = await self._stripe.retrieve_subscription(subscription_id)
        return SubscriptionSnapshot.from_stripe(subscription)

    async def fetch_invoice(self, invoice_id: str) -> InvoiceSnapshot:
        invoice = await self._stripe.retrieve_invoice(invoice_id)
        return InvoiceSnapshot.from_stripe(invoice)

    async def fetch_review(self, review_id: str) -> ReviewSnapshot:
        review = await self._stripe.retrieve_review(review_id)
        return ReviewSnapshot.from_stripe(review)
