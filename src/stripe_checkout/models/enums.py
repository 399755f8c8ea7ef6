"""Enumerations shared across the provider."""

from enum import Enum


class PaymentStatus(str, Enum):
    """Canonical transaction status reported back to the order system."""

    INITIALIZED = "initialized"
    AUTHORIZED = "authorized"
    CAPTURED = "captured"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    ERROR = "error"
    PENDING_EXTERNAL_SYSTEM = "pending_external_system"


class EventKind(str, Enum):
    """Webhook event types the reconciler acts upon."""

    PAYMENT_SUCCEEDED = "payment_intent.succeeded"
    CHECKOUT_COMPLETED = "checkout.session.completed"
    REVIEW_CLOSED = "review.closed"
    UNKNOWN = "unknown"

    @classmethod
    def from_type(cls, event_type: str | None) -> "EventKind":
        """Resolve a raw Stripe event type, falling back to UNKNOWN."""
        if not event_type:
            return cls.UNKNOWN
        try:
            return cls(event_type)
        except ValueError:
            return cls.UNKNOWN


class ObjectKind(str, Enum):
    """Stripe object types (the ``object`` attribute) we know how to fetch."""

    PAYMENT_INTENT = "payment_intent"
    CHARGE = "charge"
    CHECKOUT_SESSION = "checkout.session"
    SUBSCRIPTION = "subscription"
    INVOICE = "invoice"
    REVIEW = "review"

    @classmethod
    def from_type(cls, object_type: str | None) -> "ObjectKind | None":
        """Resolve a raw Stripe object type, or None when unsupported."""
        if not object_type:
            return None
        try:
            return cls(object_type)
        except ValueError:
            return None


class SessionMode(str, Enum):
    """Checkout session modes."""

    PAYMENT = "payment"
    SUBSCRIPTION = "subscription"
    SETUP = "setup"


class ResultKind(str, Enum):
    """Outcome of processing an inbound callback."""

    ACCEPTED = "accepted"
    NO_OUTCOME = "no_outcome"
    SIGNATURE_INVALID = "signature_invalid"
    FETCH_FAILED = "fetch_failed"
