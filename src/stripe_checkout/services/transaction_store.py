"""DynamoDB persistence for reconciled transaction state.

Stands in for the host order system's storage when the provider is deployed
on its own: the callback endpoint writes every accepted outcome here, plus
one audit row per webhook delivery.
"""

import os
from datetime import datetime, timezone
from typing import Any

import boto3

from ..models.stripe_webhook import StripeWebhookEvent
from ..models.transaction import TransactionMetaData, TransactionUpdate
from ..utils.logging import get_logger

logger = get_logger(__name__)

_transaction_store_instance: "TransactionStore | None" = None


def get_transaction_store(environment: str | None = None) -> "TransactionStore":
    """Get or create the shared TransactionStore.

    Args:
        environment: Environment name. Only used on first call.
    """
    global _transaction_store_instance
    if _transaction_store_instance is None:
        _transaction_store_instance = TransactionStore(environment)
    return _transaction_store_instance


def reset_transaction_store() -> None:
    """Reset the singleton instance (for testing only).

    Lets tests create a fresh store inside a mock_aws context.
    """
    global _transaction_store_instance
    _transaction_store_instance = None


class TransactionStore:
    """Order transaction state and webhook audit log."""

    TRANSACTIONS_TABLE = "order-transactions"
    WEBHOOK_EVENTS_TABLE = "stripe-webhook-events"

    def __init__(self, environment: str | None = None) -> None:
        self.environment = environment or os.getenv("ENVIRONMENT", "dev")
        # Allow override via DYNAMODB_TABLE_PREFIX for testing
        self.name_prefix = os.getenv("DYNAMODB_TABLE_PREFIX", f"checkout-{self.environment}")
        self._dynamodb = boto3.resource("dynamodb")

    def table_name(self, table: str) -> str:
        return f"{self.name_prefix}-{table}"

    def _get_table(self, table: str) -> Any:
        return self._dynamodb.Table(self.table_name(table))

    def save_outcome(
        self,
        order_reference: str,
        transaction_info: TransactionUpdate | None,
        metadata: TransactionMetaData,
    ) -> None:
        """Persist a reconciled outcome for an order.

        Each metadata key is stored as its own attribute and only ever SET,
        so a value written by an earlier delivery is overwritten but never
        removed.

        Args:
            order_reference: Serialized order reference (partition key).
            transaction_info: Status, transaction ID and authorized amount.
            metadata: Processor metadata to persist.
        """
        values: dict[str, Any] = {
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        if transaction_info is not None:
            values["payment_status"] = transaction_info.payment_status.value
            if transaction_info.transaction_id:
                values["transaction_id"] = transaction_info.transaction_id
            if transaction_info.amount_authorized is not None:
                values["amount_authorized"] = transaction_info.amount_authorized
        values.update(metadata)

        names: dict[str, str] = {}
        attribute_values: dict[str, Any] = {}
        assignments: list[str] = []
        for i, (name, value) in enumerate(values.items()):
            names[f"#a{i}"] = name
            attribute_values[f":v{i}"] = value
            assignments.append(f"#a{i} = :v{i}")

        self._get_table(self.TRANSACTIONS_TABLE).update_item(
            Key={"order_reference": order_reference},
            UpdateExpression="SET " + ", ".join(assignments),
            ExpressionAttributeNames=names,
            ExpressionAttributeValues=attribute_values,
        )
        logger.info(
            "Saved transaction state for %s: %s",
            order_reference,
            values.get("payment_status", "metadata only"),
        )

    def get_transaction(self, order_reference: str) -> dict[str, Any] | None:
        response = self._get_table(self.TRANSACTIONS_TABLE).get_item(
            Key={"order_reference": order_reference}
        )
        item: dict[str, Any] | None = response.get("Item")
        return item

    def log_event(
        self,
        event_id: str,
        event_type: str,
        payload_hash: str,
        order_reference: str | None,
        processing_result: str,
        error_message: str | None = None,
    ) -> StripeWebhookEvent:
        """Write a webhook audit row.

        Deliveries of the same event overwrite the row; they are always
        reprocessed.

        Args:
            event_id: Stripe event ID
            event_type: Event type (checkout.session.completed, etc.)
            payload_hash: SHA-256 hash of payload
            order_reference: Associated order reference (if resolved)
            processing_result: Result (accepted, no_outcome, fetch_failed)
            error_message: Error message if processing failed
        """
        record = StripeWebhookEvent(
            event_id=event_id,
            event_type=event_type,
            processed_at=datetime.now(timezone.utc),
            payload_hash=payload_hash,
            order_reference=order_reference,
            processing_result=processing_result,
            error_message=error_message,
        )
        self._get_table(self.WEBHOOK_EVENTS_TABLE).put_item(
            Item=record.model_dump(mode="json", exclude_none=True)
        )
        return record
