"""
Confidence Scoring - Type Definitions.

============================================================
PURPOSE
============================================================
Data contracts for the Confidence Scorer and Risk Classifier.

============================================================
SCORE AND TIERS
============================================================
Score is bounded to [0, 100]. Tiers:
- LOW:      score >= 80
- MEDIUM:   50 <= score < 80
- HIGH:     score < 50
- CRITICAL: the assessment itself failed (data incomplete);
            never produced from a numeric score

============================================================
NOT A PROOF
============================================================
The score is a point-in-time heuristic over ledger data. It is
not a cryptographic proof of authenticity.

============================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from core.exceptions import ProvenanceError
from provenance.types import DataQualityIssue, ProductSnapshot, Timeline


# ============================================================
# ENUMS
# ============================================================


class RiskTier(str, Enum):
    """Discrete risk classification of a product."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @classmethod
    def from_score(cls, score: float, low_min: float = 80.0, medium_min: float = 50.0) -> "RiskTier":
        """
        Classify a numeric score.

        CRITICAL is never returned here; it is reserved for
        assessments that could not be computed.
        """
        if score >= low_min:
            return cls.LOW
        elif score >= medium_min:
            return cls.MEDIUM
        return cls.HIGH


class FactorName(str, Enum):
    """Scoring factors, in evaluation and reporting order."""

    VERIFICATION = "verification"
    TRANSFERS = "transfers"
    AGE = "age"
    STATUS_BONUS = "status_bonus"
    DISPUTE_PENALTY = "dispute_penalty"
    COUNTERPARTY_REPUTATION = "counterparty_reputation"

    @classmethod
    def all_factors(cls) -> List["FactorName"]:
        return list(cls)


class RecommendationAction(str, Enum):
    """Buyer-facing advice."""

    SAFE_TO_PROCEED = "safe_to_proceed"
    PROCEED_WITH_CAUTION = "proceed_with_caution"
    NOT_RECOMMENDED = "not_recommended"
    DO_NOT_PROCEED = "do_not_proceed"


# ============================================================
# OUTPUT CONTRACTS
# ============================================================


@dataclass(frozen=True)
class ConfidenceFactor:
    """One line of the additive model."""

    name: FactorName
    points: float
    detail: str = ""

    @property
    def fired(self) -> bool:
        return self.points != 0


@dataclass(frozen=True)
class ConfidenceAssessment:
    """
    Output of the Confidence Scorer.

    Computed fresh on every query and never persisted.

    ============================================================
    OUTPUT GUARANTEES
    ============================================================
    - score: always within [0, 100]
    - contributing_factors: every factor, in FactorName order,
      including zero contributions (empty when unresolvable)
    - risk_tier == CRITICAL iff failure_reason is set
    ============================================================
    """

    score: float
    risk_tier: RiskTier
    contributing_factors: Tuple[ConfidenceFactor, ...] = ()

    # Sum before clamping
    raw_total: float = 0.0

    data_quality_issues: Tuple[DataQualityIssue, ...] = ()
    failure_reason: Optional[str] = None
    assessed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def unresolvable(cls, reason: str, assessed_at: Optional[datetime] = None) -> "ConfidenceAssessment":
        """Assessment for a product whose provenance could not be reconstructed."""
        return cls(
            score=0.0,
            risk_tier=RiskTier.CRITICAL,
            failure_reason=reason,
            assessed_at=assessed_at or datetime.now(timezone.utc),
        )

    @property
    def is_resolvable(self) -> bool:
        return self.failure_reason is None

    def factor(self, name: FactorName) -> Optional[ConfidenceFactor]:
        return next((f for f in self.contributing_factors if f.name == name), None)

    @property
    def fired_factors(self) -> List[ConfidenceFactor]:
        return [f for f in self.contributing_factors if f.fired]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": round(self.score, 2),
            "risk_tier": self.risk_tier.value,
            "raw_total": round(self.raw_total, 2),
            "contributing_factors": [
                {"name": f.name.value, "points": round(f.points, 2), "detail": f.detail}
                for f in self.contributing_factors
            ],
            "data_quality_issues": [
                {"code": i.code, "message": i.message} for i in self.data_quality_issues
            ],
            "failure_reason": self.failure_reason,
            "assessed_at": self.assessed_at.isoformat(),
        }


@dataclass(frozen=True)
class Recommendation:
    """Risk Classifier output shown to a prospective buyer."""

    action: RecommendationAction
    risk_tier: RiskTier
    headline: str
    rationale: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action.value,
            "risk_tier": self.risk_tier.value,
            "headline": self.headline,
            "rationale": list(self.rationale),
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class ProductAssessmentResult:
    """
    Everything the presentation layer needs for one product.

    timeline is None when the assessment is unresolvable.
    """

    product_id: str
    snapshot: Optional[ProductSnapshot]
    timeline: Optional[Timeline]
    assessment: ConfidenceAssessment
    recommendation: Recommendation
    dropped_record_count: int = 0
    error: Optional[ProvenanceError] = None

    @property
    def risk_tier(self) -> RiskTier:
        return self.assessment.risk_tier

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "snapshot": self.snapshot.to_dict() if self.snapshot else None,
            "timeline": self.timeline.to_dict() if self.timeline else None,
            "assessment": self.assessment.to_dict(),
            "recommendation": self.recommendation.to_dict(),
            "dropped_record_count": self.dropped_record_count,
            "error": self.error.to_dict() if self.error else None,
        }
