"""
Ledger Adapter Configuration.

Connection settings for the HTTP ledger gateway, loaded from the
environment (a .env file is honoured).
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from core.exceptions import ConfigurationError


load_dotenv()


@dataclass(frozen=True)
class GatewayConfig:
    """
    Configuration for HttpLedgerGatewaySource.

    The gateway is a read-only JSON indexer in front of the ledger
    contracts; it exposes the product, history, event-filter and
    retailer queries as GET endpoints.
    """

    base_url: str = "http://localhost:8545/api"
    api_key: Optional[str] = None

    timeout_seconds: float = 30.0
    """Total timeout per HTTP request."""

    max_retries: int = 2
    """Attempts per query before giving up. Client errors are never retried."""

    retry_backoff_base: float = 1.5
    """Exponential backoff base between attempts (seconds)."""

    def validate(self) -> List[str]:
        errors = []
        if not self.base_url:
            errors.append("base_url must not be empty")
        if self.timeout_seconds <= 0:
            errors.append("timeout_seconds must be positive")
        if self.max_retries < 1:
            errors.append("max_retries must be at least 1")
        if self.retry_backoff_base < 1.0:
            errors.append("retry_backoff_base must be >= 1.0")
        return errors

    @classmethod
    def from_env(cls) -> "GatewayConfig":
        """Load configuration from environment variables."""
        try:
            config = cls(
                base_url=os.getenv("LEDGER_GATEWAY_URL", cls.base_url).rstrip("/"),
                api_key=os.getenv("LEDGER_GATEWAY_API_KEY"),
                timeout_seconds=float(os.getenv("LEDGER_GATEWAY_TIMEOUT_SECONDS", str(cls.timeout_seconds))),
                max_retries=int(os.getenv("LEDGER_GATEWAY_MAX_RETRIES", str(cls.max_retries))),
                retry_backoff_base=float(os.getenv("LEDGER_GATEWAY_RETRY_BACKOFF", str(cls.retry_backoff_base))),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid ledger gateway setting: {e}", cause=e)

        errors = config.validate()
        if errors:
            raise ConfigurationError(
                f"Invalid ledger gateway configuration: {'; '.join(errors)}",
                config_key="LEDGER_GATEWAY",
            )
        return config

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_url": self.base_url,
            "api_key_set": self.api_key is not None,
            "timeout_seconds": self.timeout_seconds,
            "max_retries": self.max_retries,
            "retry_backoff_base": self.retry_backoff_base,
        }
