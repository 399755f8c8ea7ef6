"""Callback endpoint for the Stripe Checkout provider.

Provides one URL serving two callers:
- Stripe webhook events (payment_intent.succeeded, checkout.session.completed,
  review.closed)
- Client-side "create payment intent" requests, marked by
  ``?create=paymentIntent``

Neither requires authentication: webhooks are verified with the Stripe
signing secret.
"""

from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError
from starlette.concurrency import run_in_threadpool
from starlette.status import (
    HTTP_200_OK,
    HTTP_400_BAD_REQUEST,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from stripe_checkout.models.enums import ResultKind
from stripe_checkout.models.errors import CheckoutError, ErrorCode, SignatureInvalidError
from stripe_checkout.models.order import Order
from stripe_checkout.models.transaction import CallbackResult
from stripe_checkout.services.provider import (
    StripeCheckoutProvider,
    is_create_payment_intent_request,
)
from stripe_checkout.services.stripe_service import StripeService
from stripe_checkout.services.transaction_store import TransactionStore
from stripe_checkout.utils.logging import get_logger, log_webhook_event
from stripe_checkout_api.dependencies import get_provider, get_store

logger = get_logger(__name__)

router = APIRouter(tags=["callbacks"])


# === Response Models ===


class WebhookResponse(BaseModel):
    """Standard webhook response."""

    received: bool
    event_id: str | None = None
    event_type: str | None = None
    processing_result: str  # "accepted", "no_outcome", "fetch_failed"
    payment_status: str | None = None
    order_reference: str | None = None
    message: str | None = None


def _status_for(result: CallbackResult) -> int:
    if result.kind == ResultKind.ACCEPTED:
        return HTTP_200_OK
    if result.kind == ResultKind.FETCH_FAILED and result.retryable:
        # Stripe redelivers on 5xx
        return HTTP_503_SERVICE_UNAVAILABLE
    return HTTP_400_BAD_REQUEST


async def _create_payment_intent(
    provider: StripeCheckoutProvider,
    query_string: str,
    payload: bytes,
) -> JSONResponse:
    try:
        order = Order.model_validate_json(payload)
    except ValidationError as e:
        raise CheckoutError(
            ErrorCode.INVALID_ORDER,
            details={"errors": str(e.error_count())},
        ) from e

    result = await provider.process_callback(query_string, payload, None, order=order)
    if not result.accepted:
        raise CheckoutError(
            ErrorCode.STRIPE_API_ERROR,
            details={"message": result.message or "Payment intent was not created"},
        )

    return JSONResponse(status_code=HTTP_200_OK, content=result.body)


@router.post(
    "/payment-providers/stripe-checkout/callback",
    summary="Receive Stripe webhooks and create-intent requests",
    description="""
Webhook path: verifies the Stripe-Signature header, re-fetches the object
the event refers to from Stripe and stores the resulting transaction state.
Duplicate deliveries are reprocessed and produce the same state.

Create-intent path (`?create=paymentIntent`): creates a PaymentIntent for the
posted order and returns its client secret.
""",
    response_model=WebhookResponse,
    responses={
        200: {"description": "Event accepted, or payment intent created"},
        400: {"description": "Invalid signature, or nothing to reconcile"},
        503: {"description": "Stripe could not be reached; Stripe will redeliver"},
    },
)
async def handle_callback(
    request: Request,
    provider: StripeCheckoutProvider = Depends(get_provider),
    store: TransactionStore = Depends(get_store),
) -> Any:
    """Handle a request to the provider callback URL."""
    payload = await request.body()
    query_string = request.url.query

    if is_create_payment_intent_request(query_string):
        return await _create_payment_intent(provider, query_string, payload)

    signature = request.headers.get("Stripe-Signature")
    if not signature:
        logger.warning("Webhook request missing Stripe-Signature header")
        raise SignatureInvalidError(details={"message": "Missing Stripe-Signature header"})

    ctx = provider.new_context()
    result = await provider.process_callback(query_string, payload, signature, ctx=ctx)

    if result.kind == ResultKind.SIGNATURE_INVALID:
        raise SignatureInvalidError(details={"message": "Invalid webhook signature"})

    event = ctx.event
    order_reference = None
    if result.accepted:
        reference = await provider.get_order_reference(payload, signature, ctx=ctx)
        if reference is not None:
            order_reference = str(reference)
            try:
                await run_in_threadpool(
                    store.save_outcome,
                    order_reference,
                    result.transaction_info,
                    result.metadata,
                )
            except Exception as e:
                logger.exception("Failed to save transaction state for %s", order_reference)
                raise CheckoutError(
                    ErrorCode.TRANSACTION_STORE_UNAVAILABLE,
                    details={"order_reference": order_reference},
                ) from e
        else:
            logger.warning("Accepted event %s has no resolvable order reference", event.id if event else None)

    if event is not None:
        try:
            await run_in_threadpool(
                store.log_event,
                event.id,
                event.type,
                StripeService.compute_payload_hash(payload),
                order_reference,
                result.kind.value,
                None if result.accepted else result.message,
            )
        except Exception:
            # Audit row only; the answer to Stripe stands
            logger.exception("Failed to write audit row for event %s", event.id)
        log_webhook_event(
            logger,
            event.type,
            event.id,
            order_reference=order_reference,
            result=result.kind.value,
        )

    response = WebhookResponse(
        received=True,
        event_id=event.id if event else None,
        event_type=event.type if event else None,
        processing_result=result.kind.value,
        payment_status=(
            result.transaction_info.payment_status.value if result.transaction_info else None
        ),
        order_reference=order_reference,
        message=result.message,
    )
    return JSONResponse(status_code=_status_for(result), content=response.model_dump(mode="json"))
