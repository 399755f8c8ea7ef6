"""Provider settings loading.

Non-secret settings come from environment variables. Keys for the active
mode are read from SSM Parameter Store at::

    /checkout/{environment}/stripe/{test|live}/{secret_key|public_key|webhook_secret}
"""

import os
from functools import lru_cache

from pydantic import ValidationError

from ..models.errors import CheckoutError, ErrorCode
from ..models.settings import StripeCheckoutSettings
from ..utils.logging import get_logger
from .ssm_service import SSMService, SSMServiceError, get_ssm_service

logger = get_logger(__name__)

# Setting field -> environment variable
ENV_SETTINGS: dict[str, str] = {
    "continue_url": "STRIPE_CONTINUE_URL",
    "cancel_url": "STRIPE_CANCEL_URL",
    "error_url": "STRIPE_ERROR_URL",
    "billing_address_line1_property_alias": "STRIPE_BILLING_ADDRESS_LINE1_PROPERTY_ALIAS",
    "billing_address_line2_property_alias": "STRIPE_BILLING_ADDRESS_LINE2_PROPERTY_ALIAS",
    "billing_address_city_property_alias": "STRIPE_BILLING_ADDRESS_CITY_PROPERTY_ALIAS",
    "billing_address_state_property_alias": "STRIPE_BILLING_ADDRESS_STATE_PROPERTY_ALIAS",
    "billing_address_zip_code_property_alias": "STRIPE_BILLING_ADDRESS_ZIP_CODE_PROPERTY_ALIAS",
    "test_mode": "STRIPE_TEST_MODE",
    "capture": "STRIPE_CAPTURE",
    "send_stripe_receipt": "STRIPE_SEND_RECEIPT",
    "order_heading": "STRIPE_ORDER_HEADING",
    "order_image": "STRIPE_ORDER_IMAGE",
    "one_time_items_heading": "STRIPE_ONE_TIME_ITEMS_HEADING",
    "order_properties": "STRIPE_ORDER_PROPERTIES",
    "payment_method_types": "STRIPE_PAYMENT_METHOD_TYPES",
    "webhook_tolerance_seconds": "STRIPE_WEBHOOK_TOLERANCE_SECONDS",
    "request_timeout_seconds": "STRIPE_REQUEST_TIMEOUT_SECONDS",
    "max_network_retries": "STRIPE_MAX_NETWORK_RETRIES",
}

# Setting field suffix -> SSM parameter name; the mode prefixes both
KEY_PARAMETERS: dict[str, str] = {
    "secret_key": "secret_key",
    "webhook_signing_secret": "webhook_secret",
    "public_key": "public_key",
}

_TRUE_VALUES = {"1", "true", "yes", "on"}


def parameter_path(environment: str, mode: str, name: str) -> str:
    return f"/checkout/{environment}/stripe/{mode}/{name}"


def _env_flag(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES


def load_settings(
    environment: str | None = None,
    ssm: SSMService | None = None,
) -> StripeCheckoutSettings:
    """Build provider settings from the environment and SSM.

    Only the active mode's keys are fetched.

    Args:
        environment: Environment name (dev, prod). Defaults to ENVIRONMENT env var.
        ssm: SSM service to read keys from. Defaults to the shared instance.

    Returns:
        Loaded settings.

    Raises:
        CheckoutError: SETTINGS_UNAVAILABLE if a required value is missing.
    """
    environment = environment or os.environ.get("ENVIRONMENT", "dev")
    ssm = ssm or get_ssm_service()

    values: dict[str, object] = {}
    for field, env_var in ENV_SETTINGS.items():
        raw = os.environ.get(env_var)
        if raw is None or raw == "":
            continue
        if field in ("test_mode", "capture", "send_stripe_receipt"):
            values[field] = _env_flag(raw)
        else:
            values[field] = raw

    test_mode = values.get("test_mode", True)
    mode = "test" if test_mode else "live"

    paths = {
        f"{mode}_{name}": parameter_path(environment, mode, key)
        for name, key in KEY_PARAMETERS.items()
    }
    try:
        found = ssm.get_parameters(paths.values())
    except SSMServiceError as e:
        logger.error("Failed to load Stripe %s keys: %s", mode, e)
        raise CheckoutError(ErrorCode.SETTINGS_UNAVAILABLE, details={"mode": mode}) from e

    missing_keys = [
        paths[field] for field in (f"{mode}_secret_key", f"{mode}_webhook_signing_secret")
        if not found.get(paths[field])
    ]
    if missing_keys:
        logger.error("Missing Stripe %s keys in SSM: %s", mode, ", ".join(missing_keys))
        raise CheckoutError(
            ErrorCode.SETTINGS_UNAVAILABLE,
            details={"mode": mode, "parameters": ", ".join(missing_keys)},
        )

    for field, path in paths.items():
        if found.get(path):
            values[field] = found[path]

    try:
        settings = StripeCheckoutSettings.model_validate(values)
    except ValidationError as e:
        missing = ", ".join(str(err["loc"][0]) for err in e.errors() if err.get("loc"))
        logger.error("Invalid provider settings: %s", missing)
        raise CheckoutError(ErrorCode.SETTINGS_UNAVAILABLE, details={"fields": missing}) from e

    logger.info("Stripe settings loaded for environment %s in %s mode", environment, mode)
    return settings


@lru_cache(maxsize=1)
def get_provider_settings() -> StripeCheckoutSettings:
    """Get the process-wide provider settings (loaded once)."""
    return load_settings()
