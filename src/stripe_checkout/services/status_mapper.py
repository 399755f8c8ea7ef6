"""Mapping of Stripe object state to canonical payment status.

Every function here is pure: the same snapshot always maps to the same
status. Status is derived from the processor's current state alone, never
from the status previously recorded for the order, which is what makes
duplicate and out-of-order webhook deliveries safe to replay.
"""

from ..models.enums import PaymentStatus
from ..models.errors import UnsupportedObjectKindError
from ..models.snapshots import (
    ChargeSnapshot,
    InvoiceSnapshot,
    PaymentIntentSnapshot,
    RemoteObjectSnapshot,
    SubscriptionSnapshot,
)


def charge_status(charge: ChargeSnapshot | None) -> PaymentStatus:
    """Map a charge.

    A refund of an uncaptured charge releases the authorization, so it maps
    to CANCELLED rather than REFUNDED.
    """
    if charge is None or not charge.paid:
        return PaymentStatus.INITIALIZED

    if charge.captured:
        return PaymentStatus.REFUNDED if charge.refunded else PaymentStatus.CAPTURED

    return PaymentStatus.CANCELLED if charge.refunded else PaymentStatus.AUTHORIZED


def payment_intent_status(intent: PaymentIntentSnapshot) -> PaymentStatus:
    """Map a payment intent.

    An open fraud review wins over every status except ``canceled``: a
    payment under review is never reported as authorized or captured.
    """
    if intent.status == "canceled":
        return PaymentStatus.CANCELLED

    if intent.review is not None and intent.review.open:
        return PaymentStatus.PENDING_EXTERNAL_SYSTEM

    if intent.status == "requires_capture":
        return PaymentStatus.AUTHORIZED

    if intent.status == "succeeded":
        if intent.latest_charge is not None:
            return charge_status(intent.latest_charge)
        return PaymentStatus.CAPTURED

    return PaymentStatus.INITIALIZED


def linked_payment_intent(invoice: InvoiceSnapshot) -> PaymentIntentSnapshot | None:
    """The payment intent that paid the invoice, if resolvable."""
    if invoice.payment_intent is not None:
        return invoice.payment_intent
    payment = invoice.latest_paid_payment()
    return payment.payment_intent if payment else None


def linked_charge(invoice: InvoiceSnapshot) -> ChargeSnapshot | None:
    if invoice.charge is not None:
        return invoice.charge
    payment = invoice.latest_paid_payment()
    return payment.charge if payment else None


def invoice_status(invoice: InvoiceSnapshot) -> PaymentStatus:
    # Invoice statuses: draft, open, paid, void, uncollectible
    if invoice.status == "void":
        return PaymentStatus.CANCELLED

    if invoice.status == "open":
        return PaymentStatus.AUTHORIZED

    if invoice.status == "paid":
        intent = linked_payment_intent(invoice)
        if intent is not None:
            return payment_intent_status(intent)
        charge = linked_charge(invoice)
        if charge is not None:
            return charge_status(charge)
        return PaymentStatus.CAPTURED

    if invoice.status == "uncollectible":
        return PaymentStatus.ERROR

    return PaymentStatus.INITIALIZED


def subscription_status(subscription: SubscriptionSnapshot) -> PaymentStatus:
    """Map a subscription through its latest invoice."""
    if subscription.latest_invoice is None:
        return PaymentStatus.INITIALIZED
    return invoice_status(subscription.latest_invoice)


def map_status(snapshot: RemoteObjectSnapshot) -> PaymentStatus:
    """Map any payable snapshot to its canonical status.

    Raises:
        UnsupportedObjectKindError: For checkout sessions and reviews, which
            carry no payment state of their own.
    """
    if isinstance(snapshot, ChargeSnapshot):
        return charge_status(snapshot)
    if isinstance(snapshot, PaymentIntentSnapshot):
        return payment_intent_status(snapshot)
    if isinstance(snapshot, InvoiceSnapshot):
        return invoice_status(snapshot)
    if isinstance(snapshot, SubscriptionSnapshot):
        return subscription_status(snapshot)
    raise UnsupportedObjectKindError(details={"kind": str(snapshot.kind.value)})


def transaction_id_for(snapshot: RemoteObjectSnapshot) -> str | None:
    """Processor transaction reference (a charge ID) for the snapshot."""
    if isinstance(snapshot, ChargeSnapshot):
        return snapshot.id
    if isinstance(snapshot, PaymentIntentSnapshot):
        return snapshot.latest_charge_id
    if isinstance(snapshot, InvoiceSnapshot):
        if snapshot.charge_id:
            return snapshot.charge_id
        payment = snapshot.latest_paid_payment()
        if payment is None:
            return None
        if payment.charge_id:
            return payment.charge_id
        return payment.payment_intent.latest_charge_id if payment.payment_intent else None
    if isinstance(snapshot, SubscriptionSnapshot) and snapshot.latest_invoice is not None:
        return transaction_id_for(snapshot.latest_invoice)
    return None
