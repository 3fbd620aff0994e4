"""
Confidence Scoring - Risk Classifier.

Pure mapping from risk tier to buyer recommendation. The rationale
is drawn from the factors that fired, or from the failure reason
when the assessment could not be computed.
"""

from typing import Dict, List, Tuple

from .types import (
    ConfidenceAssessment,
    Recommendation,
    RecommendationAction,
    RiskTier,
)


RECOMMENDATIONS: Dict[RiskTier, Tuple[RecommendationAction, str]] = {
    RiskTier.LOW: (
        RecommendationAction.SAFE_TO_PROCEED,
        "Safe to purchase: strong provenance and verification record",
    ),
    RiskTier.MEDIUM: (
        RecommendationAction.PROCEED_WITH_CAUTION,
        "Purchase with caution: consider requesting additional verification",
    ),
    RiskTier.HIGH: (
        RecommendationAction.NOT_RECOMMENDED,
        "Not recommended: provenance record is too thin to establish authenticity",
    ),
    RiskTier.CRITICAL: (
        RecommendationAction.DO_NOT_PROCEED,
        "Do not proceed: provenance could not be reconstructed",
    ),
}


class RiskClassifier:
    """Maps a ConfidenceAssessment to a Recommendation."""

    def classify(self, assessment: ConfidenceAssessment) -> Recommendation:
        action, headline = RECOMMENDATIONS[assessment.risk_tier]

        rationale: List[str]
        if not assessment.is_resolvable:
            rationale = [assessment.failure_reason or "Assessment failed"]
        else:
            rationale = [
                f"{factor.points:+.1f} {factor.name.value}: {factor.detail}"
                for factor in assessment.fired_factors
            ]
            if not rationale:
                rationale = ["No factor contributed to the score"]

        warnings = tuple(issue.message for issue in assessment.data_quality_issues)

        return Recommendation(
            action=action,
            risk_tier=assessment.risk_tier,
            headline=headline,
            rationale=tuple(rationale),
            warnings=warnings,
        )


def classify(assessment: ConfidenceAssessment) -> Recommendation:
    """Convenience function around RiskClassifier.classify."""
    return RiskClassifier().classify(assessment)
