"""Standard error codes for the Stripe Checkout provider.

Every failure the provider reports carries one of these codes so the HTTP
layer and the host order system get a consistent error shape.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ErrorCode(str, Enum):
    """Error codes raised by provider operations."""

    # Webhook errors
    INVALID_WEBHOOK_SIGNATURE = "ERR_STRIPE_001"
    INVALID_EVENT_PAYLOAD = "ERR_STRIPE_002"
    UNSUPPORTED_OBJECT_KIND = "ERR_STRIPE_003"
    NO_ACTIONABLE_OUTCOME = "ERR_STRIPE_004"

    # Remote API errors
    STRIPE_API_ERROR = "ERR_STRIPE_005"
    REMOTE_FETCH_FAILED = "ERR_STRIPE_006"

    # Configuration / input errors
    SETTINGS_UNAVAILABLE = "ERR_CONFIG_001"
    INVALID_ORDER = "ERR_ORDER_001"

    # Persistence errors
    TRANSACTION_STORE_UNAVAILABLE = "ERR_STORE_001"


# Human-readable error messages
ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.INVALID_WEBHOOK_SIGNATURE: "Invalid webhook signature",
    ErrorCode.INVALID_EVENT_PAYLOAD: "Webhook payload is not a valid Stripe event",
    ErrorCode.UNSUPPORTED_OBJECT_KIND: "Event references an unsupported Stripe object",
    ErrorCode.NO_ACTIONABLE_OUTCOME: "Event produced no transaction update",
    ErrorCode.STRIPE_API_ERROR: "Stripe API error occurred",
    ErrorCode.REMOTE_FETCH_FAILED: "Failed to fetch the Stripe object referenced by the event",
    ErrorCode.SETTINGS_UNAVAILABLE: "Payment provider settings could not be loaded",
    ErrorCode.INVALID_ORDER: "Order payload is invalid",
    ErrorCode.TRANSACTION_STORE_UNAVAILABLE: "Transaction state could not be saved",
}

# Recovery hints for operators
ERROR_RECOVERY: dict[ErrorCode, str] = {
    ErrorCode.INVALID_WEBHOOK_SIGNATURE: "Verify webhook signing secret configuration",
    ErrorCode.INVALID_EVENT_PAYLOAD: "Check the webhook endpoint is only registered with Stripe",
    ErrorCode.UNSUPPORTED_OBJECT_KIND: "No action required",
    ErrorCode.NO_ACTIONABLE_OUTCOME: "No action required; the event carries nothing to persist yet",
    ErrorCode.STRIPE_API_ERROR: "Try again or check the Stripe dashboard",
    ErrorCode.REMOTE_FETCH_FAILED: "Stripe will redeliver the event; check API key and connectivity",
    ErrorCode.SETTINGS_UNAVAILABLE: "Check SSM parameters and environment variables",
    ErrorCode.INVALID_ORDER: "Send the order as JSON matching the Order schema",
    ErrorCode.TRANSACTION_STORE_UNAVAILABLE: "Stripe will redeliver the event; check DynamoDB availability",
}


class ErrorResponse(BaseModel):
    """Standard error body returned to HTTP callers."""

    model_config = ConfigDict(strict=True)

    success: bool = False
    error_code: ErrorCode
    message: str
    recovery: str
    details: Optional[dict[str, str]] = None

    @classmethod
    def from_code(
        cls,
        code: ErrorCode,
        details: Optional[dict[str, str]] = None,
    ) -> "ErrorResponse":
        """Create an ErrorResponse from an error code.

        Args:
            code: The error code
            details: Optional additional context about the error

        Returns:
            An ErrorResponse with the message and recovery hint for the code.
        """
        return cls(
            error_code=code,
            message=ERROR_MESSAGES[code],
            recovery=ERROR_RECOVERY[code],
            details=details,
        )


class CheckoutError(Exception):
    """Base exception for provider operations.

    Can be caught and converted to an ErrorResponse for HTTP responses.
    """

    code: ErrorCode = ErrorCode.STRIPE_API_ERROR

    def __init__(
        self,
        code: ErrorCode | None = None,
        details: Optional[dict[str, str]] = None,
        message: str | None = None,
    ):
        self.code = code or self.code
        self.message = message or ERROR_MESSAGES[self.code]
        self.recovery = ERROR_RECOVERY[self.code]
        self.details = details
        super().__init__(self.message)

    def to_error_response(self) -> ErrorResponse:
        """Convert this exception to an ErrorResponse."""
        return ErrorResponse.from_code(self.code, self.details)


class SignatureInvalidError(CheckoutError):
    """Raised when a webhook signature does not verify against the payload."""

    code = ErrorCode.INVALID_WEBHOOK_SIGNATURE


class InvalidEventPayloadError(CheckoutError):
    """Raised when a signed payload does not carry a Stripe event envelope."""

    code = ErrorCode.INVALID_EVENT_PAYLOAD


class UnsupportedObjectKindError(CheckoutError):
    """Raised when an event references an object kind we do not map."""

    code = ErrorCode.UNSUPPORTED_OBJECT_KIND


class StripeServiceError(CheckoutError):
    """Raised when a Stripe operation fails."""

    code = ErrorCode.STRIPE_API_ERROR

    def __init__(
        self,
        message: str,
        stripe_error_code: str | None = None,
        retryable: bool = False,
    ) -> None:
        """Initialize with message and optional Stripe error code.

        Args:
            message: Human-readable error message.
            stripe_error_code: Stripe-specific error code if available.
            retryable: Whether the failure is likely transient.
        """
        super().__init__(message=message)
        self.stripe_error_code = stripe_error_code
        self.retryable = retryable


class RemoteFetchError(StripeServiceError):
    """Raised when retrieving an authoritative Stripe object fails."""

    code = ErrorCode.REMOTE_FETCH_FAILED


# Stripe error codes that indicate a retry may succeed
STRIPE_RETRYABLE_ERRORS: set[str] = {
    "processing_error",
    "rate_limit",
    "lock_timeout",
    "api_connection_error",
}


def is_stripe_error_retryable(stripe_error_code: Optional[str]) -> bool:
    """Check if a Stripe error is likely transient and retryable.

    Args:
        stripe_error_code: The Stripe error code.

    Returns:
        True if the error may be resolved by retrying.
    """
    return stripe_error_code in STRIPE_RETRYABLE_ERRORS if stripe_error_code else False
