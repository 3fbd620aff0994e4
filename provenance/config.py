"""
Provenance - Configuration.

============================================================
PURPOSE
============================================================
Ledger conventions and aggregation parameters used while
normalizing and merging events.

============================================================
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, List

from dotenv import load_dotenv

from core.exceptions import ConfigurationError


load_dotenv()


# Transfer location the ledger writes when a verifier confirms authenticity
VERIFICATION_NODE_LOCATION = "Verification Node"


@dataclass(frozen=True)
class ProvenanceConfig:
    """
    Configuration for normalization and timeline merging.

    ============================================================
    ORACLE AGGREGATION
    ============================================================
    Attestations for the same oracle request are summed by source
    weight. The aggregate counts only once quorum_weight is reached;
    it passes when passing weight is at least pass_bps_threshold
    basis points of the total (6000 = 60%).
    ============================================================
    """

    verification_sentinel: str = VERIFICATION_NODE_LOCATION

    # Numeric timestamps above this are milliseconds, below are seconds
    millisecond_threshold: int = 10_000_000_000

    oracle_quorum_weight: int = 200
    oracle_pass_bps_threshold: int = 6000

    def validate(self) -> List[str]:
        errors = []
        if not self.verification_sentinel:
            errors.append("verification_sentinel must not be empty")
        if self.oracle_quorum_weight <= 0:
            errors.append("oracle_quorum_weight must be positive")
        if not 0 < self.oracle_pass_bps_threshold <= 10000:
            errors.append("oracle_pass_bps_threshold must be in (0, 10000]")
        return errors

    @classmethod
    def from_env(cls) -> "ProvenanceConfig":
        try:
            config = cls(
                verification_sentinel=os.getenv("PROVENANCE_VERIFICATION_SENTINEL", VERIFICATION_NODE_LOCATION),
                oracle_quorum_weight=int(os.getenv("PROVENANCE_ORACLE_QUORUM_WEIGHT", "200")),
                oracle_pass_bps_threshold=int(os.getenv("PROVENANCE_ORACLE_PASS_BPS", "6000")),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid provenance setting: {e}", cause=e)

        errors = config.validate()
        if errors:
            raise ConfigurationError(f"Invalid provenance configuration: {'; '.join(errors)}")
        return config

    def to_dict(self) -> Dict[str, Any]:
        return {
            "verification_sentinel": self.verification_sentinel,
            "millisecond_threshold": self.millisecond_threshold,
            "oracle_quorum_weight": self.oracle_quorum_weight,
            "oracle_pass_bps_threshold": self.oracle_pass_bps_threshold,
        }
