"""
Confidence Scoring - Configuration.

============================================================
PURPOSE
============================================================
Weights, caps and tier thresholds for the additive confidence
model.

============================================================
WEIGHT PHILOSOPHY
============================================================
Each factor is bounded on its own before summing; the sum is
then clamped to [min_score, max_score].

| Factor                  | Points               | Bound      |
|-------------------------|----------------------|------------|
| verification            | +40 flat             | binary     |
| transfers               | +5 per transfer      | cap +20    |
| age                     | +2 per day           | cap +15    |
| status bonus            | +10 at retailer/sold | -          |
| dispute penalty         | -30 when disputed    | -          |
| counterparty reputation | 15 x rep / 1000      | cap +15    |

These constants reproduce the heuristic the platform has shipped
with. They are illustrative rather than calibrated.

============================================================
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from dotenv import load_dotenv

from core.exceptions import ConfigurationError
from provenance.types import ProductStatus


load_dotenv()


@dataclass(frozen=True)
class ScoringConfig:
    """Configuration for ConfidenceScorer and tier classification."""

    # Verification (binary)
    verification_points: float = 40.0

    # Custody transfers
    transfer_points: float = 5.0
    transfer_cap: float = 20.0

    # Age since registration
    age_points_per_day: float = 2.0
    age_cap: float = 15.0

    # Status
    status_bonus_points: float = 10.0
    bonus_statuses: Tuple[ProductStatus, ...] = (ProductStatus.AT_RETAILER, ProductStatus.SOLD)
    dispute_penalty_points: float = 30.0

    # Counterparty reputation
    reputation_max_points: float = 15.0
    reputation_scale: float = 1000.0
    reputation_statuses: Tuple[ProductStatus, ...] = (ProductStatus.AT_RETAILER,)

    # Bounds
    min_score: float = 0.0
    max_score: float = 100.0

    # Tier thresholds (inclusive lower bounds)
    low_tier_min: float = 80.0
    medium_tier_min: float = 50.0

    engine_version: str = "1.0.0"

    def validate(self) -> List[str]:
        errors = []
        if self.min_score >= self.max_score:
            errors.append("min_score must be below max_score")
        if not self.min_score < self.medium_tier_min < self.low_tier_min <= self.max_score:
            errors.append("tier thresholds must satisfy min < medium < low <= max")
        if self.reputation_scale <= 0:
            errors.append("reputation_scale must be positive")
        for name in ("transfer_cap", "age_cap", "reputation_max_points", "dispute_penalty_points"):
            if getattr(self, name) < 0:
                errors.append(f"{name} must not be negative")
        return errors

    @classmethod
    def from_env(cls) -> "ScoringConfig":
        """Load weights from SCORING_* environment variables."""
        defaults = cls()
        try:
            config = cls(
                verification_points=float(os.getenv("SCORING_VERIFICATION_POINTS", defaults.verification_points)),
                transfer_points=float(os.getenv("SCORING_TRANSFER_POINTS", defaults.transfer_points)),
                transfer_cap=float(os.getenv("SCORING_TRANSFER_CAP", defaults.transfer_cap)),
                age_points_per_day=float(os.getenv("SCORING_AGE_POINTS_PER_DAY", defaults.age_points_per_day)),
                age_cap=float(os.getenv("SCORING_AGE_CAP", defaults.age_cap)),
                status_bonus_points=float(os.getenv("SCORING_STATUS_BONUS", defaults.status_bonus_points)),
                dispute_penalty_points=float(os.getenv("SCORING_DISPUTE_PENALTY", defaults.dispute_penalty_points)),
                reputation_max_points=float(os.getenv("SCORING_REPUTATION_MAX", defaults.reputation_max_points)),
                low_tier_min=float(os.getenv("SCORING_LOW_TIER_MIN", defaults.low_tier_min)),
                medium_tier_min=float(os.getenv("SCORING_MEDIUM_TIER_MIN", defaults.medium_tier_min)),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid scoring setting: {e}", cause=e)

        errors = config.validate()
        if errors:
            raise ConfigurationError(f"Invalid scoring configuration: {'; '.join(errors)}")
        return config

    def to_dict(self) -> Dict[str, Any]:
        return {
            "verification_points": self.verification_points,
            "transfer_points": self.transfer_points,
            "transfer_cap": self.transfer_cap,
            "age_points_per_day": self.age_points_per_day,
            "age_cap": self.age_cap,
            "status_bonus_points": self.status_bonus_points,
            "bonus_statuses": [s.name for s in self.bonus_statuses],
            "dispute_penalty_points": self.dispute_penalty_points,
            "reputation_max_points": self.reputation_max_points,
            "reputation_scale": self.reputation_scale,
            "reputation_statuses": [s.name for s in self.reputation_statuses],
            "min_score": self.min_score,
            "max_score": self.max_score,
            "low_tier_min": self.low_tier_min,
            "medium_tier_min": self.medium_tier_min,
            "engine_version": self.engine_version,
        }


# ============================================================
# PRESETS
# ============================================================


def get_default_config() -> ScoringConfig:
    """The weights the platform ships with."""
    return ScoringConfig()


def get_conservative_config() -> ScoringConfig:
    """Same weights, stricter tiers: LOW needs 90, MEDIUM needs 60."""
    return ScoringConfig(low_tier_min=90.0, medium_tier_min=60.0)
