"""Reconciliation of Stripe webhooks to canonical transaction state.

The pipeline for every delivery is: verify and normalize the envelope,
fetch the referenced object from Stripe, map it to a status, and hand the
result back. Nothing is read from the webhook body beyond the envelope, and
nothing is derived from the status previously stored on the order, so the
same event processed twice yields the same result.
"""

from ..models.enums import EventKind, SessionMode
from ..models.errors import (
    CheckoutError,
    InvalidEventPayloadError,
    RemoteFetchError,
    SignatureInvalidError,
    UnsupportedObjectKindError,
)
from ..models.order import OrderReference
from ..models.snapshots import (
    CheckoutSessionSnapshot,
    PaymentIntentSnapshot,
    RemoteObjectSnapshot,
    ReviewSnapshot,
)
from ..models.stripe_webhook import CanonicalEvent
from ..models.transaction import CallbackResult, MetaDataKey, TransactionUpdate, build_metadata
from ..utils.logging import get_logger, log_webhook_event
from ..utils.money import amount_from_minor_units
from .provisioning import RequestContext
from .status_mapper import invoice_status, payment_intent_status, transaction_id_for
from .webhook_parser import parse_event

logger = get_logger(__name__)

ORDER_REFERENCE_METADATA_KEY = "orderReference"
UNKNOWN_CARD_COUNTRY = "Unknown"


def _intent_update(intent: PaymentIntentSnapshot) -> TransactionUpdate:
    return TransactionUpdate(
        transaction_id=transaction_id_for(intent),
        amount_authorized=amount_from_minor_units(intent.amount),
        payment_status=payment_intent_status(intent),
    )


class TransactionReconciler:
    """Turns one inbound webhook into a CallbackResult.

    Usage:
        ctx = RequestContext.create(settings)
        result = await TransactionReconciler(ctx).process_webhook(body, signature)
    """

    def __init__(self, ctx: RequestContext) -> None:
        self._ctx = ctx

    def normalize(self, payload: bytes, signature: str | None) -> CanonicalEvent:
        """Verify and parse the webhook once per request.

        Raises:
            SignatureInvalidError: If the signature does not verify.
            InvalidEventPayloadError: If the payload is not an event.
        """
        if self._ctx.event is None:
            settings = self._ctx.settings
            self._ctx.event = parse_event(
                payload,
                signature,
                settings.webhook_signing_secret,
                settings.webhook_tolerance_seconds,
            )
        return self._ctx.event

    async def event_object(self, event: CanonicalEvent) -> RemoteObjectSnapshot | None:
        """Fetch the object the event refers to, once per request.

        Returns None when the event names no object or an unsupported kind.
        """
        if self._ctx.event_object is not None:
            return self._ctx.event_object
        if event.referenced_object_kind is None or not event.referenced_object_id:
            return None
        self._ctx.event_object = await self._ctx.fetcher.fetch(
            event.referenced_object_kind,
            event.referenced_object_id,
        )
        return self._ctx.event_object

    async def process_webhook(self, payload: bytes, signature: str | None) -> CallbackResult:
        """Process a webhook delivery.

        Never raises except on cancellation. A bad signature and a failed
        remote fetch are reported distinctly; everything else that yields
        nothing to persist is NO_OUTCOME.
        """
        try:
            event = self.normalize(payload, signature)
        except SignatureInvalidError as e:
            return CallbackResult.signature_invalid(e.message)
        except InvalidEventPayloadError as e:
            return CallbackResult.no_outcome(e.message)

        try:
            result = await self.reconcile(event)
        except RemoteFetchError as e:
            log_webhook_event(
                logger,
                event.type,
                event.id,
                object_id=event.referenced_object_id,
                result="fetch_failed",
                error=e.message,
            )
            return CallbackResult.fetch_failed(e.message, retryable=e.retryable)
        except UnsupportedObjectKindError as e:
            result = CallbackResult.no_outcome(e.message)
        except CheckoutError as e:
            logger.error("Stripe - ProcessCallback: %s", e.message)
            result = CallbackResult.no_outcome(e.message)
        except Exception:
            logger.exception("Stripe - ProcessCallback")
            result = CallbackResult.no_outcome("Unexpected error processing event")

        log_webhook_event(
            logger,
            event.type,
            event.id,
            object_id=event.referenced_object_id,
            result=result.kind.value,
            status=result.transaction_info.payment_status.value if result.transaction_info else None,
        )
        return result

    async def reconcile(self, event: CanonicalEvent) -> CallbackResult:
        """Compute the outcome for a normalized event.

        Unknown event types short-circuit without any remote call.

        Raises:
            RemoteFetchError: If a required Stripe object cannot be fetched.
        """
        if event.kind == EventKind.UNKNOWN:
            return CallbackResult.no_outcome(f"Unhandled event type: {event.type}")

        obj = await self.event_object(event)
        if obj is None:
            return CallbackResult.no_outcome("Event does not reference a supported object")

        if event.kind == EventKind.PAYMENT_SUCCEEDED and isinstance(obj, PaymentIntentSnapshot):
            return self._payment_intent_succeeded(obj)

        if event.kind == EventKind.CHECKOUT_COMPLETED and isinstance(obj, CheckoutSessionSnapshot):
            if obj.mode == SessionMode.PAYMENT:
                return await self._payment_session_completed(obj)
            if obj.mode == SessionMode.SUBSCRIPTION:
                return await self._subscription_session_completed(obj)
            mode = obj.mode.value if obj.mode else "unknown"
            return CallbackResult.no_outcome(f"Nothing to reconcile for {mode} session")

        if event.kind == EventKind.REVIEW_CLOSED and isinstance(obj, ReviewSnapshot):
            return await self._review_closed(obj)

        return CallbackResult.no_outcome(
            f"Event {event.type} references unexpected object {obj.kind.value}"
        )

    def _payment_intent_succeeded(self, intent: PaymentIntentSnapshot) -> CallbackResult:
        return CallbackResult.ok(
            _intent_update(intent),
            build_metadata({
                MetaDataKey.CUSTOMER_ID: intent.customer_id,
                MetaDataKey.PAYMENT_INTENT_ID: intent.id,
                MetaDataKey.CHARGE_ID: transaction_id_for(intent),
                MetaDataKey.CARD_COUNTRY: intent.card_country,
            }),
        )

    async def _payment_session_completed(self, session: CheckoutSessionSnapshot) -> CallbackResult:
        if not session.payment_intent_id:
            return CallbackResult.no_outcome("Checkout session has no payment intent")

        intent = await self._ctx.fetcher.fetch_payment_intent(session.payment_intent_id)
        return CallbackResult.ok(
            _intent_update(intent),
            build_metadata({
                MetaDataKey.SESSION_ID: session.id,
                MetaDataKey.CUSTOMER_ID: session.customer_id,
                MetaDataKey.PAYMENT_INTENT_ID: session.payment_intent_id,
                MetaDataKey.SUBSCRIPTION_ID: session.subscription_id,
                MetaDataKey.CHARGE_ID: transaction_id_for(intent),
                MetaDataKey.CARD_COUNTRY: intent.card_country,
            }),
        )

    async def _subscription_session_completed(self, session: CheckoutSessionSnapshot) -> CallbackResult:
        if not session.subscription_id:
            return CallbackResult.no_outcome("Checkout session has no subscription")

        subscription = await self._ctx.fetcher.fetch_subscription(session.subscription_id)
        invoice = subscription.latest_invoice
        payment = invoice.latest_paid_payment() if invoice else None
        if payment is None or not payment.payment_intent_id:
            # Session completed but nothing payable has landed yet
            return CallbackResult.no_outcome("Subscription invoice has no completed payment")

        intent = payment.payment_intent or await self._ctx.fetcher.fetch_payment_intent(
            payment.payment_intent_id
        )
        resolved = invoice.model_copy(update={"payment_intent": intent})
        charge_id = payment.charge_id or intent.latest_charge_id
        card_country = intent.card_country or (payment.charge.card_country if payment.charge else None)

        return CallbackResult.ok(
            TransactionUpdate(
                transaction_id=charge_id,
                amount_authorized=amount_from_minor_units(intent.amount),
                payment_status=invoice_status(resolved),
            ),
            build_metadata({
                MetaDataKey.SESSION_ID: session.id,
                MetaDataKey.CUSTOMER_ID: session.customer_id,
                MetaDataKey.PAYMENT_INTENT_ID: payment.payment_intent_id,
                MetaDataKey.SUBSCRIPTION_ID: session.subscription_id,
                MetaDataKey.CHARGE_ID: charge_id,
                MetaDataKey.CARD_COUNTRY: card_country or UNKNOWN_CARD_COUNTRY,
            }),
        )

    async def _review_closed(self, review: ReviewSnapshot) -> CallbackResult:
        # The intent's live state is authoritative; the review may confirm or release a hold
        if not review.payment_intent_id:
            return CallbackResult.no_outcome("Review has no payment intent")

        intent = await self._ctx.fetcher.fetch_payment_intent(review.payment_intent_id)
        return CallbackResult.ok(_intent_update(intent))

    async def get_order_reference(self, payload: bytes, signature: str | None) -> OrderReference | None:
        """Resolve the order a webhook belongs to.

        Returns None when the reference cannot be resolved; failures are
        logged, not raised.
        """
        try:
            event = self.normalize(payload, signature)
            value = await self._order_reference_value(event)
            return OrderReference.parse(value) if value else None
        except SignatureInvalidError:
            return None
        except Exception:
            logger.exception("Stripe - GetOrderReference")
            return None

    async def _order_reference_value(self, event: CanonicalEvent) -> str | None:
        if event.kind == EventKind.UNKNOWN:
            return None

        obj = await self.event_object(event)

        if event.kind == EventKind.PAYMENT_SUCCEEDED and isinstance(obj, PaymentIntentSnapshot):
            return obj.metadata.get(ORDER_REFERENCE_METADATA_KEY)

        if event.kind == EventKind.CHECKOUT_COMPLETED and isinstance(obj, CheckoutSessionSnapshot):
            return obj.client_reference_id

        if event.kind == EventKind.REVIEW_CLOSED and isinstance(obj, ReviewSnapshot):
            if not obj.payment_intent_id:
                return None
            intent = await self._ctx.fetcher.fetch_payment_intent(obj.payment_intent_id)
            return intent.metadata.get(ORDER_REFERENCE_METADATA_KEY)

        return None
