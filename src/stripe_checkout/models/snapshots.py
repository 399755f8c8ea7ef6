"""Snapshots of the Stripe objects the status mapper reads.

Each snapshot keeps only the fields needed to derive a transaction status
and the metadata persisted alongside it. Snapshots are built fresh from the
Stripe API for every reconciliation and are immutable.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from .enums import ObjectKind, SessionMode


def _field(obj: Any, name: str) -> Any:
    """Read a field from a StripeObject or plain dict."""
    if obj is None or isinstance(obj, str):
        return None
    return obj.get(name)


def _expandable_id(value: Any) -> str | None:
    """Return the id of an expandable field, expanded or not."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return value.get("id")


def _expanded(value: Any) -> Any:
    """Return the expanded object, or None when only an id is present."""
    if value is None or isinstance(value, str):
        return None
    return value


class ChargeSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal[ObjectKind.CHARGE] = ObjectKind.CHARGE
    id: str
    paid: bool = False
    captured: bool = False
    refunded: bool = False
    amount: int = 0
    currency: str | None = None
    payment_intent_id: str | None = None
    card_country: str | None = None

    @classmethod
    def from_stripe(cls, charge: Any) -> "ChargeSnapshot":
        card = _field(_field(charge, "payment_method_details"), "card")
        return cls(
            id=charge.get("id"),
            paid=bool(charge.get("paid")),
            captured=bool(charge.get("captured")),
            refunded=bool(charge.get("refunded")),
            amount=charge.get("amount") or 0,
            currency=charge.get("currency"),
            payment_intent_id=_expandable_id(charge.get("payment_intent")),
            card_country=_field(card, "country"),
        )


class ReviewSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal[ObjectKind.REVIEW] = ObjectKind.REVIEW
    id: str
    open: bool = False
    reason: str | None = None
    payment_intent_id: str | None = None
    charge_id: str | None = None

    @classmethod
    def from_stripe(cls, review: Any) -> "ReviewSnapshot":
        return cls(
            id=review.get("id"),
            open=bool(review.get("open")),
            reason=review.get("reason"),
            payment_intent_id=_expandable_id(review.get("payment_intent")),
            charge_id=_expandable_id(review.get("charge")),
        )


class PaymentIntentSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal[ObjectKind.PAYMENT_INTENT] = ObjectKind.PAYMENT_INTENT
    id: str
    status: str
    amount: int = 0
    currency: str | None = None
    customer_id: str | None = None
    client_secret: str | None = None
    latest_charge_id: str | None = None
    latest_charge: ChargeSnapshot | None = None
    review: ReviewSnapshot | None = None
    metadata: dict[str, str] = Field(default_factory=dict)

    @property
    def card_country(self) -> str | None:
        return self.latest_charge.card_country if self.latest_charge else None

    @classmethod
    def from_stripe(cls, intent: Any) -> "PaymentIntentSnapshot":
        latest_charge = _expanded(intent.get("latest_charge"))
        review = _expanded(intent.get("review"))
        return cls(
            id=intent.get("id"),
            status=intent.get("status"),
            amount=intent.get("amount") or 0,
            currency=intent.get("currency"),
            customer_id=_expandable_id(intent.get("customer")),
            client_secret=intent.get("client_secret"),
            latest_charge_id=_expandable_id(intent.get("latest_charge")),
            latest_charge=ChargeSnapshot.from_stripe(latest_charge) if latest_charge else None,
            review=ReviewSnapshot.from_stripe(review) if review else None,
            metadata=dict(intent.get("metadata") or {}),
        )


class InvoicePaymentSnapshot(BaseModel):
    """One payment attempt recorded against an invoice."""

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    status: str | None = None
    created: int = 0
    payment_intent_id: str | None = None
    charge_id: str | None = None
    payment_intent: PaymentIntentSnapshot | None = None
    charge: ChargeSnapshot | None = None

    @classmethod
    def from_stripe(cls, invoice_payment: Any) -> "InvoicePaymentSnapshot":
        payment = invoice_payment.get("payment") or {}
        intent = _expanded(payment.get("payment_intent"))
        charge = _expanded(payment.get("charge"))
        return cls(
            id=invoice_payment.get("id"),
            status=invoice_payment.get("status"),
            created=invoice_payment.get("created") or 0,
            payment_intent_id=_expandable_id(payment.get("payment_intent")),
            charge_id=_expandable_id(payment.get("charge")),
            payment_intent=PaymentIntentSnapshot.from_stripe(intent) if intent else None,
            charge=ChargeSnapshot.from_stripe(charge) if charge else None,
        )


class InvoiceSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal[ObjectKind.INVOICE] = ObjectKind.INVOICE
    id: str
    status: str | None = None
    amount_paid: int = 0
    currency: str | None = None
    charge_id: str | None = None
    payment_intent: PaymentIntentSnapshot | None = None
    charge: ChargeSnapshot | None = None
    payments: tuple[InvoicePaymentSnapshot, ...] = ()

    def latest_paid_payment(self) -> InvoicePaymentSnapshot | None:
        """Most recent successful payment attempt, if any."""
        paid = [p for p in self.payments if p.status == "paid"]
        if not paid:
            return None
        return max(paid, key=lambda p: p.created)

    @classmethod
    def from_stripe(cls, invoice: Any) -> "InvoiceSnapshot":
        # Older API versions link the payment directly on the invoice
        intent = _expanded(invoice.get("payment_intent"))
        charge = _expanded(invoice.get("charge"))
        payments = _field(invoice.get("payments"), "data") or []
        return cls(
            id=invoice.get("id"),
            status=invoice.get("status"),
            amount_paid=invoice.get("amount_paid") or 0,
            currency=invoice.get("currency"),
            charge_id=_expandable_id(invoice.get("charge")),
            payment_intent=PaymentIntentSnapshot.from_stripe(intent) if intent else None,
            charge=ChargeSnapshot.from_stripe(charge) if charge else None,
            payments=tuple(InvoicePaymentSnapshot.from_stripe(p) for p in payments),
        )


class SubscriptionSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal[ObjectKind.SUBSCRIPTION] = ObjectKind.SUBSCRIPTION
    id: str
    status: str | None = None
    customer_id: str | None = None
    latest_invoice_id: str | None = None
    latest_invoice: InvoiceSnapshot | None = None
    metadata: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_stripe(cls, subscription: Any) -> "SubscriptionSnapshot":
        invoice = _expanded(subscription.get("latest_invoice"))
        return cls(
            id=subscription.get("id"),
            status=subscription.get("status"),
            customer_id=_expandable_id(subscription.get("customer")),
            latest_invoice_id=_expandable_id(subscription.get("latest_invoice")),
            latest_invoice=InvoiceSnapshot.from_stripe(invoice) if invoice else None,
            metadata=dict(subscription.get("metadata") or {}),
        )


class CheckoutSessionSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal[ObjectKind.CHECKOUT_SESSION] = ObjectKind.CHECKOUT_SESSION
    id: str
    mode: SessionMode | None = None
    status: str | None = None
    payment_status: str | None = None
    customer_id: str | None = None
    payment_intent_id: str | None = None
    subscription_id: str | None = None
    client_reference_id: str | None = None
    url: str | None = None

    @classmethod
    def from_stripe(cls, session: Any) -> "CheckoutSessionSnapshot":
        mode = session.get("mode")
        return cls(
            id=session.get("id"),
            mode=SessionMode(mode) if mode else None,
            status=session.get("status"),
            payment_status=session.get("payment_status"),
            customer_id=_expandable_id(session.get("customer")),
            payment_intent_id=_expandable_id(session.get("payment_intent")),
            subscription_id=_expandable_id(session.get("subscription")),
            client_reference_id=session.get("client_reference_id"),
            url=session.get("url"),
        )


RemoteObjectSnapshot = Annotated[
    Union[
        ChargeSnapshot,
        ReviewSnapshot,
        PaymentIntentSnapshot,
        InvoiceSnapshot,
        SubscriptionSnapshot,
        CheckoutSessionSnapshot,
    ],
    Field(discriminator="kind"),
]
