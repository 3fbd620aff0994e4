"""
Provenance - Data Quality Checks.

Compares the registry snapshot with the reconstructed timeline.
Disagreements are reported, never silently resolved.
"""

import logging
from typing import List

from .types import DataQualityIssue, EventKind, ProductSnapshot, ProductStatus, Timeline


logger = logging.getLogger(__name__)

HELD_DOWNSTREAM = (ProductStatus.IN_TRANSIT, ProductStatus.AT_RETAILER, ProductStatus.SOLD)


def check_status_consistency(timeline: Timeline, snapshot: ProductSnapshot) -> List[DataQualityIssue]:
    """Return every inconsistency between snapshot state and timeline."""
    issues: List[DataQualityIssue] = []
    aggregates = timeline.aggregates

    if aggregates.open_dispute_count and snapshot.status != ProductStatus.DISPUTED:
        issues.append(DataQualityIssue(
            code="open_dispute_status_mismatch",
            message=(
                f"{aggregates.open_dispute_count} unresolved dispute(s) but status "
                f"reads {snapshot.status.label}"
            ),
        ))

    if snapshot.status == ProductStatus.DISPUTED and not aggregates.open_dispute_count:
        issues.append(DataQualityIssue(
            code="disputed_without_open_dispute",
            message="Status reads Disputed but no unresolved dispute was found",
        ))

    if snapshot.status in HELD_DOWNSTREAM and aggregates.transfer_count == 0:
        issues.append(DataQualityIssue(
            code="status_without_transfers",
            message=f"Status reads {snapshot.status.label} but custody history is empty",
        ))

    transfers = timeline.events_of(EventKind.CUSTODY_TRANSFER)
    if transfers and snapshot.current_owner:
        last_holder = transfers[-1].counterparty or ""
        if last_holder and last_holder.lower() != snapshot.current_owner.lower():
            issues.append(DataQualityIssue(
                code="owner_mismatch",
                message=f"Last transfer went to {last_holder}, registry owner is {snapshot.current_owner}",
            ))

    for issue in issues:
        logger.warning(f"Data quality [{snapshot.product_id}] {issue.code}: {issue.message}")

    return issues
