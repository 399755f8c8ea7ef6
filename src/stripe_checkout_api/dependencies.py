"""FastAPI dependency providers for the provider and its store.

Usage in routes:
    from stripe_checkout_api.dependencies import get_provider

    @router.post("/callback")
    async def callback(provider: StripeCheckoutProvider = Depends(get_provider)):
        ...

Testing:
    Override with ``app.dependency_overrides`` or call reset_dependencies()
    between tests.
"""

from functools import lru_cache

from stripe_checkout.services.provider import StripeCheckoutProvider
from stripe_checkout.services.settings_service import get_provider_settings
from stripe_checkout.services.transaction_store import (
    TransactionStore,
    get_transaction_store,
    reset_transaction_store,
)


@lru_cache
def get_provider() -> StripeCheckoutProvider:
    """Get the provider configured from the process-wide settings."""
    return StripeCheckoutProvider(get_provider_settings())


def get_store() -> TransactionStore:
    return get_transaction_store()


def reset_dependencies() -> None:
    """Clear cached instances (for testing only)."""
    get_provider.cache_clear()
    get_provider_settings.cache_clear()
    reset_transaction_store()
