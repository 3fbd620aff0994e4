"""
Confidence Scoring - Scorer.

============================================================
PURPOSE
============================================================
Turns a merged Timeline plus the product snapshot into a bounded
confidence score.

============================================================
SCORING LOGIC PATTERN
============================================================
For each factor, in FactorName order:
    points = bounded contribution (0 when the factor does not apply)

raw_total = sum(points)
score     = clamp(raw_total, min_score, max_score)
tier      = RiskTier.from_score(score)

Every factor is reported, including zero contributions, so the
breakdown is auditable.

============================================================
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from provenance.types import ProductSnapshot, ProductStatus, Timeline, DataQualityIssue

from .config import ScoringConfig
from .types import ConfidenceAssessment, ConfidenceFactor, FactorName, RiskTier


logger = logging.getLogger(__name__)


class ConfidenceScorer:
    """
    Additive weighted confidence model.

    Deterministic and stateless: the same timeline, snapshot and
    reputation always give the same assessment.
    """

    def __init__(self, config: Optional[ScoringConfig] = None):
        self.config = config or ScoringConfig()

    def score(
        self,
        timeline: Timeline,
        snapshot: ProductSnapshot,
        counterparty_reputation: Optional[float] = None,
        data_quality_issues: Iterable[DataQualityIssue] = (),
        assessed_at: Optional[datetime] = None,
    ) -> ConfidenceAssessment:
        """
        Score one product.

        Args:
            timeline: Merged timeline (must contain a Registration)
            snapshot: Registry snapshot
            counterparty_reputation: Current holder's reputation (0-1000)
            data_quality_issues: Issues to carry on the assessment
            assessed_at: Assessment time; defaults to now

        Returns:
            ConfidenceAssessment with every factor listed
        """
        factors: List[ConfidenceFactor] = [
            self._verification_factor(timeline),
            self._transfer_factor(timeline),
            self._age_factor(timeline),
            self._status_bonus_factor(snapshot),
            self._dispute_penalty_factor(snapshot),
            self._reputation_factor(snapshot, counterparty_reputation),
        ]

        raw_total = sum(f.points for f in factors)
        score = max(self.config.min_score, min(self.config.max_score, raw_total))
        tier = RiskTier.from_score(score, self.config.low_tier_min, self.config.medium_tier_min)

        logger.debug(
            f"Scored {snapshot.product_id}: {score:.2f} ({tier.value}) "
            f"from {', '.join(f'{f.name.value}={f.points:+.2f}' for f in factors)}"
        )

        return ConfidenceAssessment(
            score=score,
            risk_tier=tier,
            contributing_factors=tuple(factors),
            raw_total=raw_total,
            data_quality_issues=tuple(data_quality_issues),
            assessed_at=assessed_at or datetime.now(timezone.utc),
        )

    # --------------------------------------------------
    # Factors
    # --------------------------------------------------

    def _verification_factor(self, timeline: Timeline) -> ConfidenceFactor:
        count = timeline.aggregates.verification_count
        if count == 0:
            return ConfidenceFactor(FactorName.VERIFICATION, 0.0, "No successful verification")
        return ConfidenceFactor(
            FactorName.VERIFICATION,
            self.config.verification_points,
            f"{count} successful verification(s)",
        )

    def _transfer_factor(self, timeline: Timeline) -> ConfidenceFactor:
        count = timeline.aggregates.transfer_count
        points = min(count * self.config.transfer_points, self.config.transfer_cap)
        return ConfidenceFactor(FactorName.TRANSFERS, points, f"{count} custody transfer(s)")

    def _age_factor(self, timeline: Timeline) -> ConfidenceFactor:
        days = timeline.aggregates.age_days
        points = min(days * self.config.age_points_per_day, self.config.age_cap)
        return ConfidenceFactor(FactorName.AGE, points, f"Registered {days:.1f} day(s) ago")

    def _status_bonus_factor(self, snapshot: ProductSnapshot) -> ConfidenceFactor:
        if snapshot.status in self.config.bonus_statuses:
            return ConfidenceFactor(
                FactorName.STATUS_BONUS,
                self.config.status_bonus_points,
                f"Status {snapshot.status.label}",
            )
        return ConfidenceFactor(FactorName.STATUS_BONUS, 0.0, f"Status {snapshot.status.label}")

    def _dispute_penalty_factor(self, snapshot: ProductSnapshot) -> ConfidenceFactor:
        if snapshot.status == ProductStatus.DISPUTED:
            return ConfidenceFactor(
                FactorName.DISPUTE_PENALTY,
                -self.config.dispute_penalty_points,
                "Product is under dispute",
            )
        return ConfidenceFactor(FactorName.DISPUTE_PENALTY, 0.0, "No active dispute status")

    def _reputation_factor(
        self,
        snapshot: ProductSnapshot,
        reputation: Optional[float],
    ) -> ConfidenceFactor:
        if snapshot.status not in self.config.reputation_statuses:
            return ConfidenceFactor(
                FactorName.COUNTERPARTY_REPUTATION, 0.0, "Not held by a retailer"
            )
        if reputation is None:
            return ConfidenceFactor(
                FactorName.COUNTERPARTY_REPUTATION, 0.0, "Reputation unavailable"
            )

        ratio = max(0.0, float(reputation)) / self.config.reputation_scale
        points = min(ratio * self.config.reputation_max_points, self.config.reputation_max_points)
        return ConfidenceFactor(
            FactorName.COUNTERPARTY_REPUTATION,
            points,
            f"Holder reputation {reputation:g}/{self.config.reputation_scale:g}",
        )


def score(
    timeline: Timeline,
    snapshot: ProductSnapshot,
    counterparty_reputation: Optional[float] = None,
    config: Optional[ScoringConfig] = None,
) -> ConfidenceAssessment:
    """Convenience function to score in one call."""
    return ConfidenceScorer(config).score(timeline, snapshot, counterparty_reputation)
