"""
Confidence Scoring Engine - Main Orchestrator.

============================================================
PURPOSE
============================================================
The ProductAssessmentEngine is the main entry point for a
prospective buyer's query about one product.

It orchestrates:
1. Ledger fetch (product, history, verifications, disputes,
   attestations, holder reputation)
2. Event normalization
3. Timeline merge
4. Data quality checks
5. Confidence scoring
6. Risk classification

============================================================
FAILURE HANDLING
============================================================
- Unknown product: ProductNotFoundError propagates
- Ledger unreachable: LedgerAdapterError propagates
- No Registration event or unknown status: the result is
  returned with the CRITICAL tier and the error attached

============================================================
USAGE
============================================================
    from confidence_scoring import ProductAssessmentEngine
    from ledger_adapters import HttpLedgerGatewaySource

    async with HttpLedgerGatewaySource() as source:
        engine = ProductAssessmentEngine(source)
        result = await engine.assess_product("PROD-001")

    print(format_assessment_summary(result))

============================================================
"""

import logging
from datetime import datetime
from typing import List, Optional

from core.clock import ClockProtocol, SystemClock, ensure_utc
from core.exceptions import DataIncompleteError
from ledger_adapters.base import LedgerDataSource
from ledger_adapters.models import LedgerRecordBundle
from provenance.config import ProvenanceConfig
from provenance.normalizer import EventNormalizer
from provenance.quality import check_status_consistency
from provenance.timeline import TimelineMerger
from provenance.types import ProductSnapshot

from .classifier import RiskClassifier
from .config import ScoringConfig
from .scorer import ConfidenceScorer
from .types import ConfidenceAssessment, ProductAssessmentResult


logger = logging.getLogger(__name__)


DISCLAIMER = (
    "This score is a heuristic over on-ledger records at the time of the query. "
    "It is not a cryptographic proof of authenticity."
)


class ProductAssessmentEngine:
    """
    Runs the full read path for one product.

    Stateless between calls: nothing computed here is stored.
    """

    def __init__(
        self,
        data_source: LedgerDataSource,
        scoring_config: Optional[ScoringConfig] = None,
        provenance_config: Optional[ProvenanceConfig] = None,
        clock: Optional[ClockProtocol] = None,
    ):
        self.data_source = data_source
        self.scoring_config = scoring_config or ScoringConfig()
        self.provenance_config = provenance_config or ProvenanceConfig()
        self._clock = clock or SystemClock()

        self._normalizer = EventNormalizer(self.provenance_config)
        self._merger = TimelineMerger(self.provenance_config, self._clock)
        self._scorer = ConfidenceScorer(self.scoring_config)
        self._classifier = RiskClassifier()

    async def assess_product(self, product_id: str) -> ProductAssessmentResult:
        """
        Fetch, reconstruct and score one product.

        Raises:
            ProductNotFoundError: If the ledger has no such product
            LedgerAdapterError: If the ledger cannot be queried
        """
        logger.info(f"Assessing product {product_id} via {self.data_source.name}")
        bundle = await self.data_source.fetch_bundle(product_id)
        result = self.assess_bundle(bundle)
        logger.info(
            f"Product {product_id}: score={result.assessment.score:.2f} "
            f"tier={result.risk_tier.value} dropped={result.dropped_record_count}"
        )
        return result

    def assess_bundle(
        self,
        bundle: LedgerRecordBundle,
        now: Optional[datetime] = None,
    ) -> ProductAssessmentResult:
        """Score records that have already been fetched."""
        product_id = bundle.product.product_id
        reference = ensure_utc(now) if now is not None else self._clock.now()
        snapshot: Optional[ProductSnapshot] = None
        dropped = 0

        try:
            normalized = self._normalizer.normalize_bundle(bundle)
            snapshot = normalized.snapshot
            dropped = normalized.dropped_count

            timeline = self._merger.merge(normalized.batches, now=reference, product_id=product_id)
        except DataIncompleteError as e:
            logger.error(f"Provenance unresolvable for {product_id}: {e.message}")
            assessment = ConfidenceAssessment.unresolvable(e.message, assessed_at=reference)
            return ProductAssessmentResult(
                product_id=product_id,
                snapshot=snapshot,
                timeline=None,
                assessment=assessment,
                recommendation=self._classifier.classify(assessment),
                dropped_record_count=dropped,
                error=e,
            )

        issues = check_status_consistency(timeline, snapshot)
        assessment = self._scorer.score(
            timeline,
            snapshot,
            counterparty_reputation=normalized.counterparty_reputation,
            data_quality_issues=issues,
            assessed_at=reference,
        )

        return ProductAssessmentResult(
            product_id=product_id,
            snapshot=snapshot,
            timeline=timeline,
            assessment=assessment,
            recommendation=self._classifier.classify(assessment),
            dropped_record_count=dropped,
        )


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================


def format_assessment_summary(result: ProductAssessmentResult) -> str:
    """
    Render a result as a plain-text report for the buyer.

    Args:
        result: Output of ProductAssessmentEngine

    Returns:
        Multi-line summary ending with the disclaimer
    """
    assessment = result.assessment
    recommendation = result.recommendation

    lines: List[str] = [
        f"Product: {result.product_id}",
        f"Confidence: {assessment.score:.1f}/100",
        f"Risk tier: {assessment.risk_tier.value.upper()}",
        f"Recommendation: {recommendation.headline}",
    ]

    if result.snapshot is not None:
        lines.append(f"Status: {result.snapshot.status.label}")

    if assessment.contributing_factors:
        lines.append("Factors:")
        for factor in assessment.contributing_factors:
            lines.append(f"  {factor.name.value:<24} {factor.points:+6.1f}  {factor.detail}")
    elif assessment.failure_reason:
        lines.append(f"Reason: {assessment.failure_reason}")

    if recommendation.warnings:
        lines.append("Warnings:")
        lines.extend(f"  - {w}" for w in recommendation.warnings)

    if result.dropped_record_count:
        lines.append(f"Dropped records: {result.dropped_record_count}")

    lines.append("")
    lines.append(DISCLAIMER)
    return "\n".join(lines)
