"""FastAPI exception handlers for converting CheckoutError to HTTP responses.

The ErrorCode-to-HTTP status mapping keeps Stripe's redelivery behaviour in
mind: Stripe retries a webhook on any non-2xx answer, so only failures that
a retry can fix are answered with 5xx.

- 400 Bad Request: signature failures, non-events, nothing to persist
- 422 Unprocessable Entity: order payload rejected
- 500 Internal Server Error: provider misconfiguration
- 502 Bad Gateway: Stripe rejected an operation
- 503 Service Unavailable: transient failure fetching from Stripe or saving state

Usage:
    from stripe_checkout_api.exceptions import register_exception_handlers
    register_exception_handlers(app)
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_422_UNPROCESSABLE_ENTITY,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_502_BAD_GATEWAY,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from stripe_checkout.models.errors import CheckoutError, ErrorCode, StripeServiceError
from stripe_checkout.utils.logging import get_logger

logger = get_logger(__name__)

ERROR_CODE_TO_HTTP_STATUS: dict[ErrorCode, int] = {
    # Webhook rejections -> 400, never retried usefully
    ErrorCode.INVALID_WEBHOOK_SIGNATURE: HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_EVENT_PAYLOAD: HTTP_400_BAD_REQUEST,
    ErrorCode.UNSUPPORTED_OBJECT_KIND: HTTP_400_BAD_REQUEST,
    ErrorCode.NO_ACTIONABLE_OUTCOME: HTTP_400_BAD_REQUEST,
    # Input errors
    ErrorCode.INVALID_ORDER: HTTP_422_UNPROCESSABLE_ENTITY,
    # Remote errors
    ErrorCode.STRIPE_API_ERROR: HTTP_502_BAD_GATEWAY,
    ErrorCode.REMOTE_FETCH_FAILED: HTTP_503_SERVICE_UNAVAILABLE,
    # Configuration
    ErrorCode.SETTINGS_UNAVAILABLE: HTTP_500_INTERNAL_SERVER_ERROR,
    # Persistence, retried by Stripe
    ErrorCode.TRANSACTION_STORE_UNAVAILABLE: HTTP_503_SERVICE_UNAVAILABLE,
}


def get_http_status_for_error(exc: CheckoutError) -> int:
    """Get the HTTP status for a CheckoutError.

    A failed fetch is only answered with 503 when a retry may succeed;
    otherwise Stripe would redeliver an event that can never be processed.
    """
    if (
        isinstance(exc, StripeServiceError)
        and exc.code == ErrorCode.REMOTE_FETCH_FAILED
        and not exc.retryable
    ):
        return HTTP_400_BAD_REQUEST
    return ERROR_CODE_TO_HTTP_STATUS.get(exc.code, HTTP_400_BAD_REQUEST)


async def checkout_error_handler(request: Request, exc: CheckoutError) -> JSONResponse:
    """Convert a CheckoutError to a JSON ErrorResponse."""
    status_code = get_http_status_for_error(exc)
    if status_code >= HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)

    return JSONResponse(
        status_code=status_code,
        content=exc.to_error_response().model_dump(mode="json"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Args:
        app: The FastAPI application instance.
    """
    app.add_exception_handler(CheckoutError, checkout_error_handler)  # type: ignore[arg-type]
