"""Order inputs supplied by the host order system.

These models are read-only views of the order; the provider never changes
them. Amounts are decimal major units in the order's currency.
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from .enums import PaymentStatus


def _is_truthy(value: str | None) -> bool:
    if value is None or not value.strip():
        return False
    return value == "1" or value.lower() == "true"


class CustomerInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}"


class OrderLine(BaseModel):
    """A single order line."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Display name of the line")
    product_reference: str | None = Field(default=None, description="Host product reference")
    quantity: Decimal = Field(default=Decimal(1), gt=0)
    tax_rate: Decimal = Field(
        default=Decimal(0),
        ge=0,
        description="Tax rate as a fraction",
        examples=[Decimal("0.2")],
    )
    total_price_without_tax: Decimal = Field(default=Decimal(0), ge=0)
    total_price_with_tax: Decimal = Field(default=Decimal(0), ge=0)
    properties: dict[str, str] = Field(default_factory=dict)

    def get_property(self, alias: str) -> str | None:
        value = self.properties.get(alias)
        return value if value and value.strip() else None

    def property_is_true(self, alias: str) -> bool:
        return _is_truthy(self.properties.get(alias))


class OrderTransactionInfo(BaseModel):
    """Transaction state the host currently holds for the order."""

    model_config = ConfigDict(frozen=True)

    transaction_id: str | None = None
    amount_authorized: Decimal = Field(default=Decimal(0), ge=0)
    transaction_fee: Decimal = Field(default=Decimal(0), ge=0)
    payment_status: PaymentStatus | None = None


class OrderReference(BaseModel):
    """Identifies an order across the processor round trip.

    Serialized as ``"{order_id}:{order_number}"`` into session
    ``client_reference_id`` and payment metadata.
    """

    model_config = ConfigDict(frozen=True)

    order_id: str
    order_number: str

    def __str__(self) -> str:
        return f"{self.order_id}:{self.order_number}"

    @classmethod
    def parse(cls, value: str) -> "OrderReference":
        """Parse a serialized order reference.

        Raises:
            ValueError: If the value is not in ``order_id:order_number`` form.
        """
        order_id, sep, order_number = value.strip().partition(":")
        if not sep or not order_id or not order_number:
            raise ValueError(f"Invalid order reference: {value!r}")
        return cls(order_id=order_id, order_number=order_number)


class Order(BaseModel):
    """The order being paid for."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Order ID", examples=["6f1c2f0e-8a53-4c1e-9d4b-2a1b3c4d5e6f"])
    order_number: str = Field(..., description="Human readable order number", examples=["ORDER-01234-56"])
    currency_code: str = Field(..., min_length=3, max_length=3, examples=["EUR"])
    language_iso_code: str = Field(default="en", examples=["en-GB"])
    billing_country_code: str | None = Field(default=None, examples=["IS"])
    customer_info: CustomerInfo = Field(default_factory=CustomerInfo)
    order_lines: list[OrderLine] = Field(default_factory=list)
    transaction_amount: Decimal = Field(..., ge=0, description="Total amount to pay, tax included")
    transaction_info: OrderTransactionInfo = Field(default_factory=OrderTransactionInfo)
    properties: dict[str, str] = Field(
        default_factory=dict,
        description="Order properties, including persisted processor metadata",
    )
    store_can_refund_transaction_fee: bool = Field(
        default=False,
        description="Whether the store refunds the transaction fee with the payment",
    )

    def get_property(self, alias: str) -> str | None:
        """Return a non-blank order property, or None."""
        value = self.properties.get(alias)
        return value if value and value.strip() else None

    def property_is_true(self, alias: str) -> bool:
        return _is_truthy(self.properties.get(alias))

    def generate_order_reference(self) -> OrderReference:
        return OrderReference(order_id=self.id, order_number=self.order_number)
