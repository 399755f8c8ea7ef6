"""Provider settings.

Settings are loaded once per process and treated as read-only afterwards.
Each request resolves the key set for the active mode (test or live) and
builds its own Stripe client from it.
"""

from pydantic import BaseModel, ConfigDict, Field


def split_aliases(value: str | None) -> list[str]:
    """Split a comma separated setting into trimmed, non-empty entries."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


class StripeCheckoutSettings(BaseModel):
    """Stripe Checkout provider configuration."""

    model_config = ConfigDict(frozen=True)

    # Redirect URLs
    continue_url: str = Field(..., description="URL the customer returns to after payment")
    cancel_url: str = Field(..., description="URL the customer returns to on cancel")
    error_url: str = Field(..., description="URL the customer is sent to on error")

    # Order property aliases used to fill the customer's billing address
    billing_address_line1_property_alias: str | None = None
    billing_address_line2_property_alias: str | None = None
    billing_address_city_property_alias: str | None = None
    billing_address_state_property_alias: str | None = None
    billing_address_zip_code_property_alias: str | None = None

    # Keys per mode
    test_secret_key: str | None = Field(default=None, repr=False)
    test_public_key: str | None = None
    test_webhook_signing_secret: str | None = Field(default=None, repr=False)
    live_secret_key: str | None = Field(default=None, repr=False)
    live_public_key: str | None = None
    live_webhook_signing_secret: str | None = Field(default=None, repr=False)
    test_mode: bool = True

    # Checkout behaviour
    capture: bool = Field(default=False, description="Capture payments immediately")
    send_stripe_receipt: bool = False
    order_heading: str | None = None
    order_image: str | None = None
    one_time_items_heading: str | None = None
    order_properties: str | None = Field(
        default=None,
        description="Comma separated order property aliases mirrored into Stripe metadata",
        examples=["giftMessage,deliveryDate"],
    )
    payment_method_types: str | None = Field(
        default=None,
        description="Comma separated payment method types; defaults to card",
        examples=["card,klarna"],
    )

    # Transport
    webhook_tolerance_seconds: int = Field(default=300, gt=0)
    request_timeout_seconds: float = Field(default=30.0, gt=0)
    max_network_retries: int = Field(default=2, ge=0)

    @property
    def secret_key(self) -> str | None:
        return self.test_secret_key if self.test_mode else self.live_secret_key

    @property
    def public_key(self) -> str | None:
        return self.test_public_key if self.test_mode else self.live_public_key

    @property
    def webhook_signing_secret(self) -> str | None:
        return self.test_webhook_signing_secret if self.test_mode else self.live_webhook_signing_secret

    @property
    def mode(self) -> str:
        return "test" if self.test_mode else "live"

    @property
    def order_property_aliases(self) -> list[str]:
        return split_aliases(self.order_properties)

    @property
    def payment_method_type_list(self) -> list[str]:
        return split_aliases(self.payment_method_types) or ["card"]
