"""Stripe webhook signature verification and envelope parsing.

Only the event envelope (id, type and the referenced object's id and type)
is read from the payload. The nested object's shape depends on the API
version the Stripe account is pinned to, so business logic never trusts
it; the referenced object is fetched again instead.
"""

import stripe
from pydantic import ValidationError

from ..models.errors import InvalidEventPayloadError, SignatureInvalidError
from ..models.stripe_webhook import CanonicalEvent, WebhookEnvelope
from ..utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TOLERANCE_SECONDS = 300


def verify_signature(
    payload: bytes,
    signature: str | None,
    secret: str | None,
    tolerance: int = DEFAULT_TOLERANCE_SECONDS,
) -> None:
    """Verify a Stripe-Signature header against the raw request body.

    Stripe signs ``"{timestamp}.{body}"`` with HMAC-SHA256; the comparison
    is constant-time and the timestamp must lie within ``tolerance`` seconds.

    Args:
        payload: Raw request body bytes, exactly as received.
        signature: Stripe-Signature header value.
        secret: Webhook signing secret for the active mode.
        tolerance: Maximum allowed age of the signature in seconds.

    Raises:
        SignatureInvalidError: If the header is missing or does not verify.
    """
    if not signature:
        raise SignatureInvalidError(message="Missing Stripe-Signature header")
    if not secret:
        raise SignatureInvalidError(message="Webhook signing secret is not configured")

    try:
        body = payload.decode("utf-8")
    except UnicodeDecodeError as e:
        raise SignatureInvalidError(message="Webhook payload is not valid UTF-8") from e

    try:
        stripe.WebhookSignature.verify_header(body, signature, secret, tolerance)
    except stripe.SignatureVerificationError as e:
        logger.warning("Invalid webhook signature: %s", str(e))
        raise SignatureInvalidError(details={"reason": str(e)}) from e


def parse_envelope(payload: bytes) -> WebhookEnvelope:
    """Parse the event envelope from an already verified payload.

    Raises:
        InvalidEventPayloadError: If the payload is not an event envelope.
    """
    try:
        return WebhookEnvelope.model_validate_json(payload)
    except ValidationError as e:
        logger.warning("Webhook payload is not a Stripe event: %s", e.error_count())
        raise InvalidEventPayloadError() from e


def parse_event(
    payload: bytes,
    signature: str | None,
    secret: str | None,
    tolerance: int = DEFAULT_TOLERANCE_SECONDS,
) -> CanonicalEvent:
    """Verify and normalize an inbound webhook.

    Unknown event types normalize to ``EventKind.UNKNOWN`` and unknown
    object types to ``None``; neither is an error.

    Raises:
        SignatureInvalidError: If verification fails.
        InvalidEventPayloadError: If the signed payload has no envelope.
    """
    verify_signature(payload, signature, secret, tolerance)
    event = CanonicalEvent.from_envelope(parse_envelope(payload))
    logger.info(
        "Webhook signature verified for event: %s (%s)",
        event.id,
        event.type,
    )
    return event
