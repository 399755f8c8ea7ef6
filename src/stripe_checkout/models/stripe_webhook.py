"""Stripe webhook event models.

Webhook payload schemas drift with the account's API version, so only the
envelope is parsed here. The referenced object is re-fetched through the API
at the version this provider is written against.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .enums import EventKind, ObjectKind


class WebhookEnvelopeObject(BaseModel):
    """The ``data.object`` reference: only its id and type."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    object: str | None = None


class WebhookEnvelopeData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    object: WebhookEnvelopeObject | None = None


class WebhookEnvelope(BaseModel):
    """Stripped down Stripe event: id, type and the referenced object."""

    model_config = ConfigDict(extra="ignore")

    id: str
    type: str
    data: WebhookEnvelopeData | None = None


class CanonicalEvent(BaseModel):
    """Version-independent view of an inbound webhook event."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Stripe event ID (evt_xxx)")
    type: str = Field(..., description="Raw Stripe event type")
    kind: EventKind
    referenced_object_id: str | None = None
    referenced_object_kind: ObjectKind | None = None

    @classmethod
    def from_envelope(cls, envelope: WebhookEnvelope) -> "CanonicalEvent":
        """Build the canonical event from a parsed envelope."""
        obj = envelope.data.object if envelope.data else None
        return cls(
            id=envelope.id,
            type=envelope.type,
            kind=EventKind.from_type(envelope.type),
            referenced_object_id=obj.id if obj else None,
            referenced_object_kind=ObjectKind.from_type(obj.object) if obj else None,
        )


class StripeWebhookEvent(BaseModel):
    """Log of a received Stripe webhook event.

    Used for:
    - Auditing: track all webhook deliveries
    - Debugging: investigate payment issues

    Duplicate deliveries are logged again; they are never skipped because the
    transaction state is recomputed from Stripe on every delivery.
    """

    model_config = ConfigDict(strict=True)

    event_id: str = Field(
        ...,
        description="Stripe event ID (evt_xxx)",
        examples=["evt_1ABC123DEF456"],
    )
    event_type: str = Field(
        ...,
        description="Stripe event type",
        examples=["checkout.session.completed", "review.closed"],
    )
    processed_at: datetime = Field(
        ...,
        description="When the event was processed",
    )
    payload_hash: str = Field(
        ...,
        description="SHA-256 hash of the raw payload",
    )
    order_reference: str | None = Field(
        default=None,
        description="Order reference resolved from the event",
    )
    processing_result: str = Field(
        default="accepted",
        description="Result of processing: accepted, no_outcome, fetch_failed",
    )
    error_message: str | None = Field(
        default=None,
        description="Error details if processing failed",
    )
