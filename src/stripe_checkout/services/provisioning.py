"""Request context and idempotent Stripe resource provisioning.

Customers and tax rates are identified by what they mean, not by Stripe ID:
a customer by the ID already stored on the order, a tax rate by its
(display name, percentage, inclusive) tuple matched against the active
rates. Everything cached here lives on the RequestContext and dies with the
request.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict

from ..models.order import Order
from ..models.settings import StripeCheckoutSettings
from ..models.snapshots import RemoteObjectSnapshot
from ..models.stripe_webhook import CanonicalEvent
from ..models.transaction import MetaDataKey
from ..utils.logging import get_logger
from .remote_fetcher import RemoteObjectFetcher
from .stripe_service import StripeService

logger = get_logger(__name__)


class TaxRateRecord(BaseModel):
    """A Stripe tax rate, reduced to its identity."""

    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str
    percentage: Decimal
    inclusive: bool

    def matches(self, display_name: str, percentage: Decimal, inclusive: bool) -> bool:
        return (
            self.display_name == display_name
            and self.percentage == percentage
            and self.inclusive == inclusive
        )

    @classmethod
    def from_stripe(cls, tax_rate: Any) -> "TaxRateRecord":
        return cls(
            id=tax_rate.get("id"),
            display_name=tax_rate.get("display_name") or "",
            percentage=Decimal(str(tax_rate.get("percentage") or 0)),
            inclusive=bool(tax_rate.get("inclusive")),
        )


@dataclass
class RequestContext:
    """State owned by a single inbound request.

    Attributes:
        settings: Provider settings (read-only).
        stripe: Stripe access bound to this request's resolved key.
        tax_rates: Active tax rates once listed; None until the first lookup.
        event: The normalized webhook event, once parsed.
        event_object: Snapshot of the object the event refers to, once fetched.
    """

    settings: StripeCheckoutSettings
    stripe: StripeService
    tax_rates: list[TaxRateRecord] | None = None
    event: CanonicalEvent | None = None
    event_object: RemoteObjectSnapshot | None = None

    @classmethod
    def create(
        cls,
        settings: StripeCheckoutSettings,
        stripe_service: StripeService | None = None,
    ) -> "RequestContext":
        return cls(settings=settings, stripe=stripe_service or StripeService.from_settings(settings))

    @property
    def fetcher(self) -> RemoteObjectFetcher:
        return RemoteObjectFetcher(self.stripe)


def _alias_value(order: Order, alias: str | None) -> str:
    if not alias or not alias.strip():
        return ""
    return order.get_property(alias) or ""


def build_customer_params(settings: StripeCheckoutSettings, order: Order) -> dict[str, Any]:
    """Customer fields shared by the create and update calls.

    Billing country and postal code are also written to metadata so Radar
    rules can compare them against the card's country.
    """
    address = {
        "line1": _alias_value(order, settings.billing_address_line1_property_alias),
        "line2": _alias_value(order, settings.billing_address_line2_property_alias),
        "city": _alias_value(order, settings.billing_address_city_property_alias),
        "state": _alias_value(order, settings.billing_address_state_property_alias),
        "postal_code": _alias_value(order, settings.billing_address_zip_code_property_alias),
        "country": order.billing_country_code or "",
    }
    return {
        "name": order.customer_info.full_name,
        "email": order.customer_info.email or "",
        "description": order.order_number,
        "address": address,
        "metadata": {
            "billingCountry": address["country"],
            "billingZipCode": address["postal_code"],
        },
    }


async def get_or_create_customer(ctx: RequestContext, order: Order) -> str:
    """Update the order's Stripe customer, or create one.

    Returns:
        The Stripe customer ID.
    """
    params = build_customer_params(ctx.settings, order)
    customer_id = order.get_property(MetaDataKey.CUSTOMER_ID.value)

    if customer_id:
        logger.info("Updating Stripe customer %s for order %s", customer_id, order.order_number)
        customer = await ctx.stripe.update_customer(customer_id, params)
    else:
        logger.info("Creating Stripe customer for order %s", order.order_number)
        customer = await ctx.stripe.create_customer(params)

    return customer.get("id")


def _find_tax_rate(
    tax_rates: list[TaxRateRecord],
    display_name: str,
    percentage: Decimal,
    inclusive: bool,
) -> TaxRateRecord | None:
    return next((r for r in tax_rates if r.matches(display_name, percentage, inclusive)), None)


async def get_or_create_tax_rate(
    ctx: RequestContext,
    display_name: str,
    percentage: Decimal,
    inclusive: bool,
) -> TaxRateRecord:
    """Resolve a tax rate by identity.

    Looks in the request cache, then lists the active rates once per request,
    then creates the rate and caches it. Repeated lookups of the same tuple
    within a request never list or create twice.
    """
    if ctx.tax_rates is not None:
        cached = _find_tax_rate(ctx.tax_rates, display_name, percentage, inclusive)
        if cached is not None:
            return cached
    else:
        active = await ctx.stripe.list_active_tax_rates()
        ctx.tax_rates = [TaxRateRecord.from_stripe(rate) for rate in active]
        logger.debug("Loaded %d active tax rates", len(ctx.tax_rates))

        listed = _find_tax_rate(ctx.tax_rates, display_name, percentage, inclusive)
        if listed is not None:
            return listed

    logger.info(
        "Creating tax rate %s %s%% (inclusive=%s)",
        display_name,
        percentage,
        inclusive,
    )
    tax_rate = await ctx.stripe.create_tax_rate(display_name, percentage, inclusive)
    # Cache under the requested identity; Stripe may echo the percentage back as a float
    created = TaxRateRecord(
        id=tax_rate.get("id"),
        display_name=display_name,
        percentage=percentage,
        inclusive=inclusive,
    )
    ctx.tax_rates.append(created)
    return created
