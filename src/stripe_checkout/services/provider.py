"""Stripe Checkout payment provider.

The entry point the host order system talks to. Every operation builds its
own RequestContext (and with it a Stripe client bound to the active mode's
key), and no operation raises: failures are logged at the operation
boundary and returned as a typed result.
"""

from decimal import Decimal
from typing import Awaitable, Callable

from ..models.errors import CheckoutError, ErrorCode, StripeServiceError
from ..models.order import Order, OrderReference
from ..models.settings import StripeCheckoutSettings
from ..models.snapshots import ChargeSnapshot, PaymentIntentSnapshot
from ..models.transaction import (
    ApiResult,
    CallbackResult,
    MetaDataKey,
    PaymentFormResult,
    TransactionUpdate,
    build_metadata,
)
from ..utils.logging import get_logger, log_payment_operation
from ..utils.money import amount_to_minor_units
from .checkout_session import create_checkout_session, create_payment_intent
from .provisioning import RequestContext
from .reconciler import TransactionReconciler
from .status_mapper import charge_status, payment_intent_status, transaction_id_for

logger = get_logger(__name__)

CREATE_PAYMENT_INTENT_MARKER = "create=paymentintent"


def is_create_payment_intent_request(query_string: str | None) -> bool:
    return bool(query_string) and CREATE_PAYMENT_INTENT_MARKER in query_string.lower()


def default_refund_amount(order: Order) -> Decimal:
    """Refund amount used when the caller does not name one.

    The authorized amount, plus the transaction fee when the store refunds
    fees.
    """
    info = order.transaction_info
    if order.store_can_refund_transaction_fee:
        return info.amount_authorized + info.transaction_fee
    return info.amount_authorized


class StripeCheckoutProvider:
    """Stripe Checkout provider operations.

    Usage:
        provider = StripeCheckoutProvider(get_provider_settings())
        result = await provider.capture_payment(order)
    """

    can_fetch_payment_status = True
    can_capture_payments = True
    can_cancel_payments = True
    can_refund_payments = True
    can_partially_refund_payments = True

    # Orders are finalized by the webhook, not on return to the continue URL
    finalize_at_continue_url = False

    transaction_metadata_keys: tuple[str, ...] = tuple(key.value for key in MetaDataKey)

    def __init__(self, settings: StripeCheckoutSettings) -> None:
        self._settings = settings

    @property
    def settings(self) -> StripeCheckoutSettings:
        return self._settings

    def get_continue_url(self) -> str:
        return self._settings.continue_url

    def get_cancel_url(self) -> str:
        return self._settings.cancel_url

    def get_error_url(self) -> str:
        return self._settings.error_url

    def new_context(self) -> RequestContext:
        return RequestContext.create(self._settings)

    async def _run(
        self,
        operation: str,
        order: Order,
        action: Callable[[RequestContext], Awaitable[ApiResult]],
    ) -> ApiResult:
        order_reference = str(order.generate_order_reference())
        try:
            result = await action(self.new_context())
        except CheckoutError as e:
            log_payment_operation(
                logger,
                operation,
                order_reference=order_reference,
                error=e.message,
                error_code=e.code.value,
            )
            return ApiResult.failed(e.code, retryable=getattr(e, "retryable", False))
        except Exception:
            logger.exception("%s failed for order %s", operation, order_reference)
            return ApiResult.failed(ErrorCode.STRIPE_API_ERROR)

        if result.transaction_info is not None:
            log_payment_operation(
                logger,
                operation,
                order_reference=order_reference,
                charge_id=result.transaction_info.transaction_id,
                status=result.transaction_info.payment_status.value,
            )
        return result

    # --- Checkout ---

    async def generate_form(self, order: Order) -> PaymentFormResult:
        """Create the hosted Checkout session for an order.

        Raises:
            CheckoutError: If the session cannot be created.
        """
        return await create_checkout_session(self.new_context(), order)

    async def process_callback(
        self,
        query_string: str | None,
        payload: bytes,
        signature: str | None,
        order: Order | None = None,
        ctx: RequestContext | None = None,
    ) -> CallbackResult:
        """Handle a request to the provider's callback URL.

        ``?create=paymentIntent`` requests create an intent for ``order`` and
        answer with its client secret; anything else is a Stripe webhook.
        """
        ctx = ctx or self.new_context()

        if is_create_payment_intent_request(query_string):
            return await self._create_payment_intent_callback(ctx, order)

        return await TransactionReconciler(ctx).process_webhook(payload, signature)

    async def _create_payment_intent_callback(
        self,
        ctx: RequestContext,
        order: Order | None,
    ) -> CallbackResult:
        if order is None:
            return CallbackResult.no_outcome("An order is required to create a payment intent")

        try:
            client_secret = await create_payment_intent(ctx, order)
        except StripeServiceError as e:
            logger.error("Stripe - CreatePaymentIntent: %s", e.message)
            return CallbackResult.no_outcome(e.message)
        except CheckoutError as e:
            logger.error("Stripe - CreatePaymentIntent: %s", e.message)
            return CallbackResult.no_outcome(e.message)

        return CallbackResult.ok(body={"clientSecret": client_secret})

    async def get_order_reference(
        self,
        payload: bytes,
        signature: str | None,
        ctx: RequestContext | None = None,
    ) -> OrderReference | None:
        return await TransactionReconciler(ctx or self.new_context()).get_order_reference(
            payload, signature
        )

    # --- Payment operations ---

    async def fetch_payment_status(self, order: Order) -> ApiResult:
        """Read the live status from the intent, or failing that the charge."""

        async def action(ctx: RequestContext) -> ApiResult:
            payment_intent_id = order.get_property(MetaDataKey.PAYMENT_INTENT_ID.value)
            if payment_intent_id:
                intent = await ctx.fetcher.fetch_payment_intent(payment_intent_id)
                return ApiResult(
                    transaction_info=TransactionUpdate(
                        transaction_id=transaction_id_for(intent),
                        payment_status=payment_intent_status(intent),
                    )
                )

            charge_id = order.get_property(MetaDataKey.CHARGE_ID.value)
            if charge_id:
                charge = await ctx.fetcher.fetch_charge(charge_id)
                return ApiResult(
                    transaction_info=TransactionUpdate(
                        transaction_id=charge.id,
                        payment_status=charge_status(charge),
                    )
                )

            return ApiResult.empty()

        return await self._run("Stripe - FetchPaymentStatus", order, action)

    async def capture_payment(self, order: Order) -> ApiResult:
        """Capture the authorized amount of the order's payment intent."""
        payment_intent_id = order.get_property(MetaDataKey.PAYMENT_INTENT_ID.value)
        if not payment_intent_id:
            return ApiResult.empty()

        async def action(ctx: RequestContext) -> ApiResult:
            amount = amount_to_minor_units(order.transaction_info.amount_authorized)
            intent = PaymentIntentSnapshot.from_stripe(
                await ctx.stripe.capture_payment_intent(payment_intent_id, amount)
            )
            return ApiResult(
                transaction_info=TransactionUpdate(
                    transaction_id=transaction_id_for(intent),
                    payment_status=payment_intent_status(intent),
                ),
                metadata=build_metadata({
                    MetaDataKey.CHARGE_ID: transaction_id_for(intent),
                    MetaDataKey.CARD_COUNTRY: intent.card_country,
                }),
            )

        return await self._run("Stripe - CapturePayment", order, action)

    async def refund_payment(self, order: Order, refund_amount: Decimal | None = None) -> ApiResult:
        """Refund the order's charge and cancel any subscription it started.

        Args:
            order: The order to refund.
            refund_amount: Amount to refund; see default_refund_amount when omitted.
        """
        charge_id = order.get_property(MetaDataKey.CHARGE_ID.value)
        if not charge_id:
            return ApiResult.empty()

        amount = refund_amount if refund_amount is not None else default_refund_amount(order)

        async def action(ctx: RequestContext) -> ApiResult:
            refund = await ctx.stripe.create_refund(charge_id, amount_to_minor_units(amount))

            refunded_charge = refund.get("charge")
            if refunded_charge is None or isinstance(refunded_charge, str):
                charge = await ctx.fetcher.fetch_charge(refunded_charge or charge_id)
            else:
                charge = ChargeSnapshot.from_stripe(refunded_charge)

            # Refunding the order undoes the purchase, subscription included
            subscription_id = order.get_property(MetaDataKey.SUBSCRIPTION_ID.value)
            if subscription_id:
                subscription = await ctx.stripe.retrieve_subscription(subscription_id, expand=[])
                if subscription is not None and subscription.get("status") != "canceled":
                    await ctx.stripe.cancel_subscription(subscription_id)
                    logger.info("Cancelled subscription %s after refund", subscription_id)

            return ApiResult(
                transaction_info=TransactionUpdate(
                    transaction_id=charge.id,
                    payment_status=charge_status(charge),
                )
            )

        return await self._run("Stripe - RefundPayment", order, action)

    async def cancel_payment(self, order: Order) -> ApiResult:
        """Cancel the payment intent, or refund the charge if it is too late."""
        payment_intent_id = order.get_property(MetaDataKey.PAYMENT_INTENT_ID.value)
        if payment_intent_id:

            async def action(ctx: RequestContext) -> ApiResult:
                intent = PaymentIntentSnapshot.from_stripe(
                    await ctx.stripe.cancel_payment_intent(payment_intent_id)
                )
                return ApiResult(
                    transaction_info=TransactionUpdate(
                        transaction_id=transaction_id_for(intent),
                        payment_status=payment_intent_status(intent),
                    )
                )

            return await self._run("Stripe - CancelPayment", order, action)

        if order.get_property(MetaDataKey.CHARGE_ID.value):
            return await self.refund_payment(order)

        return ApiResult.empty()
