"""
Verification Requests - Configuration.

Thresholds follow the ledger's 2-of-3 voting convention and its
three-day verification timeout.
"""

import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, List

from dotenv import load_dotenv

from core.exceptions import ConfigurationError


load_dotenv()


DEFAULT_TIMEOUT_SECONDS = 3 * 24 * 3600


@dataclass(frozen=True)
class OrchestratorConfig:
    """Configuration for VerificationRequestOrchestrator."""

    approval_threshold: int = 2
    rejection_threshold: int = 2
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS

    @property
    def timeout(self) -> timedelta:
        return timedelta(seconds=self.timeout_seconds)

    def validate(self) -> List[str]:
        errors = []
        if self.approval_threshold < 1:
            errors.append("approval_threshold must be at least 1")
        if self.rejection_threshold < 1:
            errors.append("rejection_threshold must be at least 1")
        if self.timeout_seconds <= 0:
            errors.append("timeout_seconds must be positive")
        return errors

    @classmethod
    def from_env(cls) -> "OrchestratorConfig":
        """Load from REQUEST_* environment variables."""
        try:
            config = cls(
                approval_threshold=int(os.getenv("REQUEST_APPROVAL_THRESHOLD", "2")),
                rejection_threshold=int(os.getenv("REQUEST_REJECTION_THRESHOLD", "2")),
                timeout_seconds=int(os.getenv("REQUEST_TIMEOUT_SECONDS", str(DEFAULT_TIMEOUT_SECONDS))),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid request setting: {e}", cause=e)

        errors = config.validate()
        if errors:
            raise ConfigurationError(f"Invalid orchestrator configuration: {'; '.join(errors)}")
        return config

    def to_dict(self) -> Dict[str, Any]:
        return {
            "approval_threshold": self.approval_threshold,
            "rejection_threshold": self.rejection_threshold,
            "timeout_seconds": self.timeout_seconds,
        }
