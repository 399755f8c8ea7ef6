"""Services for the Stripe Checkout provider."""

from .provider import StripeCheckoutProvider
from .provisioning import (
    RequestContext,
    TaxRateRecord,
    get_or_create_customer,
    get_or_create_tax_rate,
)
from .reconciler import TransactionReconciler
from .remote_fetcher import RemoteObjectFetcher
from .settings_service import get_provider_settings, load_settings
from .ssm_service import SSMService, SSMServiceError, get_ssm_service
from .stripe_service import StripeService
from .transaction_store import TransactionStore, get_transaction_store, reset_transaction_store
from .webhook_parser import parse_event, verify_signature

__all__ = [
    "RemoteObjectFetcher",
    "RequestContext",
    "SSMService",
    "SSMServiceError",
    "StripeCheckoutProvider",
    "StripeService",
    "TaxRateRecord",
    "TransactionReconciler",
    "TransactionStore",
    "get_or_create_customer",
    "get_or_create_tax_rate",
    "get_provider_settings",
    "get_ssm_service",
    "get_transaction_store",
    "load_settings",
    "parse_event",
    "reset_transaction_store",
    "verify_signature",
]
