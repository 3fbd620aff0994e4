"""
Confidence Scoring - Package.

============================================================
PURPOSE
============================================================
Computes a bounded confidence score for a product's provenance
and maps it to a buyer recommendation:

    Timeline ──► ConfidenceScorer ──► RiskClassifier ──► Recommendation

ProductAssessmentEngine wires the ledger fetch, the provenance
package and the scorer into one call.

============================================================
"""

from .classifier import RECOMMENDATIONS, RiskClassifier, classify
from .config import ScoringConfig, get_conservative_config, get_default_config
from .engine import DISCLAIMER, ProductAssessmentEngine, format_assessment_summary
from .scorer import ConfidenceScorer, score
from .types import (
    ConfidenceAssessment,
    ConfidenceFactor,
    FactorName,
    ProductAssessmentResult,
    Recommendation,
    RecommendationAction,
    RiskTier,
)


__all__ = [
    "RECOMMENDATIONS",
    "RiskClassifier",
    "classify",
    "ScoringConfig",
    "get_conservative_config",
    "get_default_config",
    "DISCLAIMER",
    "ProductAssessmentEngine",
    "format_assessment_summary",
    "ConfidenceScorer",
    "score",
    "ConfidenceAssessment",
    "ConfidenceFactor",
    "FactorName",
    "ProductAssessmentResult",
    "Recommendation",
    "RecommendationAction",
    "RiskTier",
]
