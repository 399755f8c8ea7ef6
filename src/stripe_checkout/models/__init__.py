"""Pydantic models for the Stripe Checkout provider."""

from .enums import EventKind, ObjectKind, PaymentStatus, ResultKind, SessionMode
from .errors import (
    CheckoutError,
    ErrorCode,
    ErrorResponse,
    ERROR_MESSAGES,
    ERROR_RECOVERY,
    InvalidEventPayloadError,
    RemoteFetchError,
    SignatureInvalidError,
    STRIPE_RETRYABLE_ERRORS,
    StripeServiceError,
    UnsupportedObjectKindError,
    is_stripe_error_retryable,
)
from .order import CustomerInfo, Order, OrderLine, OrderReference, OrderTransactionInfo
from .settings import StripeCheckoutSettings
from .snapshots import (
    ChargeSnapshot,
    CheckoutSessionSnapshot,
    InvoicePaymentSnapshot,
    InvoiceSnapshot,
    PaymentIntentSnapshot,
    RemoteObjectSnapshot,
    ReviewSnapshot,
    SubscriptionSnapshot,
)
from .stripe_webhook import CanonicalEvent, StripeWebhookEvent, WebhookEnvelope
from .transaction import (
    ApiResult,
    CallbackResult,
    MetaDataKey,
    PaymentFormResult,
    TransactionMetaData,
    TransactionUpdate,
    build_metadata,
)

__all__ = [
    # Enums
    "EventKind",
    "ObjectKind",
    "PaymentStatus",
    "ResultKind",
    "SessionMode",
    # Errors
    "CheckoutError",
    "ErrorCode",
    "ErrorResponse",
    "ERROR_MESSAGES",
    "ERROR_RECOVERY",
    "InvalidEventPayloadError",
    "RemoteFetchError",
    "SignatureInvalidError",
    "STRIPE_RETRYABLE_ERRORS",
    "StripeServiceError",
    "UnsupportedObjectKindError",
    "is_stripe_error_retryable",
    # Order
    "CustomerInfo",
    "Order",
    "OrderLine",
    "OrderReference",
    "OrderTransactionInfo",
    # Settings
    "StripeCheckoutSettings",
    # Snapshots
    "ChargeSnapshot",
    "CheckoutSessionSnapshot",
    "InvoicePaymentSnapshot",
    "InvoiceSnapshot",
    "PaymentIntentSnapshot",
    "RemoteObjectSnapshot",
    "ReviewSnapshot",
    "SubscriptionSnapshot",
    # Webhook
    "CanonicalEvent",
    "StripeWebhookEvent",
    "WebhookEnvelope",
    # Results
    "ApiResult",
    "CallbackResult",
    "MetaDataKey",
    "PaymentFormResult",
    "TransactionMetaData",
    "TransactionUpdate",
    "build_metadata",
]
