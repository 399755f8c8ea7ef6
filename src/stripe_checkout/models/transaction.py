"""Results handed back to the host order system."""

from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from .enums import PaymentStatus, ResultKind
from .errors import ErrorCode


class MetaDataKey(str, Enum):
    """Order properties the provider persists between operations."""

    SESSION_ID = "processorSessionId"
    CUSTOMER_ID = "processorCustomerId"
    PAYMENT_INTENT_ID = "processorPaymentIntentId"
    SUBSCRIPTION_ID = "processorSubscriptionId"
    CHARGE_ID = "processorChargeId"
    CARD_COUNTRY = "processorCardCountry"


TransactionMetaData = dict[str, str]


def build_metadata(values: dict[MetaDataKey, Optional[str]]) -> TransactionMetaData:
    """Build persistable metadata, dropping keys without a value.

    Persisted values are overwritten, never removed, so a key that could not
    be resolved is omitted rather than written as empty.
    """
    return {key.value: value for key, value in values.items() if value}


class TransactionUpdate(BaseModel):
    """Canonical transaction state derived from the processor."""

    model_config = ConfigDict(frozen=True)

    transaction_id: Optional[str] = Field(
        default=None,
        description="Processor transaction reference (charge ID)",
        examples=["ch_3ABC123DEF456"],
    )
    amount_authorized: Optional[Decimal] = Field(
        default=None,
        description="Authorized amount in major units",
    )
    payment_status: PaymentStatus


class ApiResult(BaseModel):
    """Outcome of a capture, refund, cancel or status fetch."""

    model_config = ConfigDict(frozen=True)

    transaction_info: Optional[TransactionUpdate] = None
    metadata: TransactionMetaData = Field(default_factory=dict)
    error_code: Optional[ErrorCode] = None
    retryable: bool = False

    @property
    def is_empty(self) -> bool:
        return self.transaction_info is None and not self.metadata and self.error_code is None

    @classmethod
    def empty(cls) -> "ApiResult":
        """Nothing to do, e.g. the prerequisite processor id is missing."""
        return cls()

    @classmethod
    def failed(cls, error_code: ErrorCode, retryable: bool = False) -> "ApiResult":
        return cls(error_code=error_code, retryable=retryable)


class CallbackResult(BaseModel):
    """Outcome of processing an inbound callback.

    ``body`` carries the JSON payload for callbacks that answer the caller
    directly (the create-intent callback).
    """

    model_config = ConfigDict(frozen=True)

    kind: ResultKind
    transaction_info: Optional[TransactionUpdate] = None
    metadata: TransactionMetaData = Field(default_factory=dict)
    body: Optional[dict[str, Any]] = None
    message: Optional[str] = None
    retryable: bool = False

    @property
    def accepted(self) -> bool:
        return self.kind == ResultKind.ACCEPTED

    @classmethod
    def ok(
        cls,
        transaction_info: Optional[TransactionUpdate] = None,
        metadata: Optional[TransactionMetaData] = None,
        body: Optional[dict[str, Any]] = None,
    ) -> "CallbackResult":
        return cls(
            kind=ResultKind.ACCEPTED,
            transaction_info=transaction_info,
            metadata=metadata or {},
            body=body,
        )

    @classmethod
    def no_outcome(cls, message: Optional[str] = None) -> "CallbackResult":
        return cls(kind=ResultKind.NO_OUTCOME, message=message)

    @classmethod
    def signature_invalid(cls, message: Optional[str] = None) -> "CallbackResult":
        return cls(kind=ResultKind.SIGNATURE_INVALID, message=message)

    @classmethod
    def fetch_failed(cls, message: Optional[str] = None, retryable: bool = False) -> "CallbackResult":
        return cls(kind=ResultKind.FETCH_FAILED, message=message, retryable=retryable)


class PaymentFormResult(BaseModel):
    """Hosted checkout session created for an order."""

    model_config = ConfigDict(frozen=True)

    session_id: str = Field(..., examples=["cs_test_abc123def456"])
    checkout_url: Optional[str] = Field(
        default=None,
        description="Stripe Checkout URL to redirect the customer to",
        examples=["https://checkout.stripe.com/c/pay/cs_test_abc123"],
    )
    metadata: TransactionMetaData = Field(default_factory=dict)
