"""Checkout session and payment intent assembly from an order."""

from decimal import Decimal, InvalidOperation
from typing import Any

from ..models.enums import SessionMode
from ..models.errors import CheckoutError, ErrorCode
from ..models.order import Order, OrderLine
from ..models.settings import StripeCheckoutSettings
from ..models.transaction import MetaDataKey, PaymentFormResult, build_metadata
from ..utils.logging import get_logger, log_payment_operation
from ..utils.money import amount_from_minor_units, amount_to_minor_units
from .provisioning import RequestContext, get_or_create_customer, get_or_create_tax_rate

logger = get_logger(__name__)

__all__ = [
    "SUPPORTED_LOCALES",
    "amount_from_minor_units",
    "amount_to_minor_units",
    "build_line_items",
    "build_order_metadata",
    "create_checkout_session",
    "create_payment_intent",
    "find_best_match_supported_locale",
    "parse_payment_method_types",
]

# Locales Stripe Checkout can render
SUPPORTED_LOCALES: tuple[str, ...] = (
    "bg", "cs", "da", "de", "el", "en",
    "en-GB", "es", "es-419", "et", "fi", "fil",
    "fr", "fr-CA", "hr", "hu", "id", "it",
    "ja", "ko", "lt", "lv", "ms", "mt",
    "nb", "nl", "pl", "pt", "pt-BR", "ro",
    "ru", "sk", "sl", "sv", "th", "tr",
    "vi", "zh", "zh-HK", "zh-TW",
)

# Order line property aliases
IS_RECURRING_PROPERTY = "isRecurring"
PRICE_ID_PROPERTY = "stripePriceId"
PRICE_INCLUDES_TAX_PROPERTY = "stripePriceIncludesTax"
RECURRING_INTERVAL_PROPERTY = "stripeRecurringInterval"
RECURRING_INTERVAL_COUNT_PROPERTY = "stripeRecurringIntervalCount"
PRODUCT_ID_PROPERTY = "stripeProductId"

SUBSCRIPTION_TAX_NAME = "Subscription Tax"
DEFAULT_ONE_TIME_ITEMS_HEADING = "One time items (inc Tax)"


def find_best_match_supported_locale(locale: str | None) -> str:
    """Pick the Checkout locale for a language ISO code.

    Exact match first (case-insensitive), then the language part alone,
    else ``"auto"``.
    """
    if not locale or not locale.strip():
        return "auto"

    lookup = {supported.lower(): supported for supported in SUPPORTED_LOCALES}
    exact = lookup.get(locale.strip().lower())
    if exact:
        return exact

    language = locale.strip().split("-")[0].lower()
    return lookup.get(language, "auto")


def parse_payment_method_types(settings: StripeCheckoutSettings) -> list[str]:
    return settings.payment_method_type_list


def build_order_metadata(order: Order, settings: StripeCheckoutSettings) -> dict[str, str]:
    """Metadata attached to the payment intent or subscription.

    Carries the order reference back on webhooks, plus any order properties
    the store chose to mirror.
    """
    metadata = {
        "orderReference": str(order.generate_order_reference()),
        "orderId": order.id,
        "orderNumber": order.order_number,
    }
    for alias in settings.order_property_aliases:
        value = order.get_property(alias)
        if value:
            metadata[alias] = value
    return metadata


def _is_recurring(line: OrderLine) -> bool:
    return line.property_is_true(IS_RECURRING_PROPERTY)


def _interval_count(line: OrderLine) -> int:
    raw = line.get_property(RECURRING_INTERVAL_COUNT_PROPERTY)
    try:
        return int(raw) if raw else 1
    except ValueError:
        return 1


async def _recurring_line_item(ctx: RequestContext, order: Order, line: OrderLine) -> dict[str, Any]:
    tax_percentage = line.tax_rate * 100
    quantity = int(line.quantity)

    price_id = line.get_property(PRICE_ID_PROPERTY)
    if price_id:
        # Stripe holds the price; we only decide which taxes apply
        tax_rate = await get_or_create_tax_rate(
            ctx,
            SUBSCRIPTION_TAX_NAME,
            tax_percentage,
            line.property_is_true(PRICE_INCLUDES_TAX_PROPERTY),
        )
        return {"price": price_id, "quantity": quantity, "tax_rates": [tax_rate.id]}

    interval = line.get_property(RECURRING_INTERVAL_PROPERTY)
    if not interval:
        raise CheckoutError(
            ErrorCode.INVALID_ORDER,
            details={"order_line": line.name, "missing": RECURRING_INTERVAL_PROPERTY},
        )

    try:
        unit_amount = amount_to_minor_units(line.total_price_without_tax / line.quantity)
    except InvalidOperation as e:
        raise CheckoutError(ErrorCode.INVALID_ORDER, details={"order_line": line.name}) from e

    price_data: dict[str, Any] = {
        "currency": order.currency_code.lower(),
        "unit_amount": unit_amount,
        "recurring": {
            "interval": interval.lower(),
            "interval_count": _interval_count(line),
        },
    }

    product_id = line.get_property(PRODUCT_ID_PROPERTY)
    if product_id:
        price_data["product"] = product_id
    else:
        price_data["product_data"] = {
            "name": line.name,
            "metadata": {"productReference": line.product_reference or ""},
        }

    # Unit amount excludes tax, so the rate is applied on top
    tax_rate = await get_or_create_tax_rate(ctx, SUBSCRIPTION_TAX_NAME, tax_percentage, False)
    return {"price_data": price_data, "quantity": quantity, "tax_rates": [tax_rate.id]}


async def build_line_items(ctx: RequestContext, order: Order) -> tuple[list[dict[str, Any]], bool]:
    """Build session line items.

    Recurring lines become subscription items. Whatever part of the order
    total they do not cover is charged as a single one-time line.

    Returns:
        The line items and whether any of them is recurring.
    """
    settings = ctx.settings
    line_items: list[dict[str, Any]] = []
    has_recurring = False
    recurring_total = 0
    order_total = amount_to_minor_units(order.transaction_amount)

    for line in order.order_lines:
        if not _is_recurring(line):
            continue
        line_items.append(await _recurring_line_item(ctx, order, line))
        recurring_total += amount_to_minor_units(line.total_price_with_tax)
        has_recurring = True

    if recurring_total < order_total:
        if has_recurring:
            name = settings.one_time_items_heading or DEFAULT_ONE_TIME_ITEMS_HEADING
        else:
            name = settings.order_heading or f"#{order.order_number}"

        product_data: dict[str, Any] = {"name": name}
        if has_recurring or settings.order_heading:
            product_data["description"] = f"#{order.order_number}"

        line_items.append({
            "price_data": {
                "currency": order.currency_code.lower(),
                "unit_amount": order_total - recurring_total,
                "product_data": product_data,
            },
            "quantity": 1,
        })

    # Image only on the first item, and only when we describe the product ourselves
    if settings.order_image and line_items:
        first_product = line_items[0].get("price_data", {}).get("product_data")
        if first_product is not None:
            first_product["images"] = [settings.order_image]

    return line_items, has_recurring


async def create_checkout_session(ctx: RequestContext, order: Order) -> PaymentFormResult:
    """Create a hosted Checkout session for the order.

    Raises:
        StripeServiceError: If a Stripe call fails.
        CheckoutError: INVALID_ORDER if a recurring line is incomplete.
    """
    settings = ctx.settings
    customer_id = await get_or_create_customer(ctx, order)
    metadata = build_order_metadata(order, settings)
    line_items, has_recurring = await build_line_items(ctx, order)

    params: dict[str, Any] = {
        "customer": customer_id,
        "payment_method_types": parse_payment_method_types(settings),
        "line_items": line_items,
        "mode": SessionMode.SUBSCRIPTION.value if has_recurring else SessionMode.PAYMENT.value,
        "client_reference_id": str(order.generate_order_reference()),
        "success_url": settings.continue_url,
        "cancel_url": settings.cancel_url,
        "locale": find_best_match_supported_locale(order.language_iso_code),
    }

    if has_recurring:
        params["subscription_data"] = {"metadata": metadata}
    else:
        payment_intent_data: dict[str, Any] = {
            "capture_method": "automatic" if settings.capture else "manual",
            "metadata": metadata,
        }
        # Receipts are only configurable on one-time payments
        if settings.send_stripe_receipt and order.customer_info.email:
            payment_intent_data["receipt_email"] = order.customer_info.email
        params["payment_intent_data"] = payment_intent_data

    session = await ctx.stripe.create_checkout_session(params)

    log_payment_operation(
        logger,
        "Stripe - GenerateForm",
        order_reference=params["client_reference_id"],
        amount_minor=amount_to_minor_units(order.transaction_amount),
        session_id=session.get("id"),
        mode=params["mode"],
    )

    return PaymentFormResult(
        session_id=session.get("id"),
        checkout_url=session.get("url"),
        metadata=build_metadata({
            MetaDataKey.SESSION_ID: session.get("id"),
            MetaDataKey.CUSTOMER_ID: session.get("customer") or customer_id,
        }),
    )


async def create_payment_intent(ctx: RequestContext, order: Order) -> str | None:
    """Create a payment intent for client-side confirmation.

    Returns:
        The intent's client secret.
    """
    customer_id = await get_or_create_customer(ctx, order)
    amount = amount_to_minor_units(order.transaction_amount)
    intent = await ctx.stripe.create_payment_intent({
        "customer": customer_id,
        "amount": amount,
        "currency": order.currency_code.lower(),
        "payment_method_types": parse_payment_method_types(ctx.settings),
        "metadata": build_order_metadata(order, ctx.settings),
    })

    log_payment_operation(
        logger,
        "Stripe - CreatePaymentIntent",
        order_reference=str(order.generate_order_reference()),
        payment_intent_id=intent.get("id"),
        amount_minor=amount,
    )
    return intent.get("client_secret")
