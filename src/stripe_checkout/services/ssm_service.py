"""SSM Parameter Store access for Stripe keys.

Each mode (test, live) keeps its secret key, publishable key and webhook
signing secret as SecureString parameters. A mode's keys are read in one
batched, decrypted call and cached for the life of the process.
"""

from functools import lru_cache
from typing import Any, Iterable

import boto3
from botocore.exceptions import ClientError

from ..utils.logging import get_logger

logger = get_logger(__name__)

# GetParameters accepts at most this many names per call
BATCH_SIZE = 10


class SSMServiceError(Exception):
    """Raised when SSM parameter retrieval fails."""

    pass


class SSMService:
    """Decrypted, cached reads of Stripe key parameters.

    Usage:
        ssm = get_ssm_service()
        keys = ssm.get_parameters(["/checkout/dev/stripe/test/secret_key"])
    """

    def __init__(self, client: Any | None = None) -> None:
        self._client = client or boto3.client("ssm")
        self._cache: dict[str, str] = {}

    def get_parameters(self, names: Iterable[str], *, use_cache: bool = True) -> dict[str, str]:
        """Read several parameters, batching the uncached names.

        Names SSM reports as invalid are absent from the result; callers
        decide which of them are required.

        Args:
            names: Full parameter paths.
            use_cache: Serve previously read values without calling SSM.

        Returns:
            Decrypted values keyed by parameter path.

        Raises:
            SSMServiceError: If a batch request fails.
        """
        found: dict[str, str] = {}
        pending: list[str] = []
        for name in dict.fromkeys(names):
            if use_cache and name in self._cache:
                logger.debug("SSM cache hit for %s", name)
                found[name] = self._cache[name]
            else:
                pending.append(name)

        for start in range(0, len(pending), BATCH_SIZE):
            batch = pending[start : start + BATCH_SIZE]
            logger.info("Fetching SSM parameters: %s", ", ".join(batch))
            try:
                response = self._client.get_parameters(Names=batch, WithDecryption=True)
            except ClientError as e:
                code = e.response.get("Error", {}).get("Code", "Unknown")
                if code == "AccessDeniedException":
                    raise SSMServiceError(
                        "Access denied to SSM parameters; check IAM permissions for ssm:GetParameters"
                    ) from e
                raise SSMServiceError(f"Failed to retrieve SSM parameters: {e}") from e

            for parameter in response.get("Parameters", []):
                self._cache[parameter["Name"]] = parameter["Value"]
                found[parameter["Name"]] = parameter["Value"]
            for name in response.get("InvalidParameters", []):
                logger.warning("SSM parameter not found: %s", name)

        return found

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.info("SSM parameter cache cleared")


@lru_cache(maxsize=1)
def get_ssm_service() -> SSMService:
    """Get the shared SSMService instance."""
    return SSMService()
