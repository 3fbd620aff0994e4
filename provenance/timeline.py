"""
Provenance - Timeline Merger.

============================================================
PURPOSE
============================================================
Merges normalized event batches for one product into a single
time-ordered Timeline and computes its aggregates.

============================================================
GUARANTEES
============================================================
- Idempotent: duplicate events (same content key) collapse to one
- Deterministic: the result does not depend on batch order
- Ordered by (timestamp, kind emission rank, source order, content key)
- A product without a Registration event is unresolvable and
  raises DataIncompleteError instead of getting an age of zero

============================================================
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from core.clock import ClockProtocol, SystemClock, elapsed_days, ensure_utc
from core.exceptions import DataIncompleteError

from .config import ProvenanceConfig
from .consensus import aggregate_oracle_consensus
from .types import EventKind, ProvenanceEvent, Timeline, TimelineAggregates


logger = logging.getLogger(__name__)


class TimelineMerger:
    """Merges event batches into a Timeline."""

    def __init__(
        self,
        config: Optional[ProvenanceConfig] = None,
        clock: Optional[ClockProtocol] = None,
    ):
        self.config = config or ProvenanceConfig()
        self._clock = clock or SystemClock()

    def merge(
        self,
        event_batches: Iterable[Iterable[ProvenanceEvent]],
        now: Optional[datetime] = None,
        product_id: Optional[str] = None,
    ) -> Timeline:
        """
        Merge batches into one ordered Timeline.

        Args:
            event_batches: Normalized events, one iterable per source
            now: Reference time for age; defaults to the clock
            product_id: Used in error context only

        Returns:
            Timeline with aggregates

        Raises:
            DataIncompleteError: If no Registration event is present
        """
        unique: Dict[str, ProvenanceEvent] = {}
        total = 0

        for batch in event_batches:
            for event in batch:
                total += 1
                key = event.content_key
                existing = unique.get(key)
                # Keep the earliest emission so the choice is order-independent
                if existing is None or event.sort_key < existing.sort_key:
                    unique[key] = event

        events = sorted(unique.values(), key=lambda e: e.sort_key)

        if total != len(events):
            logger.debug(f"Collapsed {total - len(events)} duplicate event(s)")

        if not any(e.kind == EventKind.REGISTRATION for e in events):
            raise DataIncompleteError(
                "No Registration event; product provenance cannot be resolved",
                product_id=product_id,
            )

        reference = ensure_utc(now) if now is not None else self._clock.now()
        aggregates = self._compute_aggregates(events, reference)

        return Timeline(events=tuple(events), aggregates=aggregates)

    def _compute_aggregates(self, events: List[ProvenanceEvent], now: datetime) -> TimelineAggregates:
        registration = next(e for e in events if e.kind == EventKind.REGISTRATION)

        consensus = aggregate_oracle_consensus(
            events,
            quorum_weight=self.config.oracle_quorum_weight,
            pass_bps_threshold=self.config.oracle_pass_bps_threshold,
        )

        return TimelineAggregates(
            transfer_count=sum(1 for e in events if e.kind == EventKind.CUSTODY_TRANSFER),
            verification_count=sum(1 for e in events if e.is_successful_verification),
            failed_verification_count=sum(1 for e in events if e.is_failed_verification),
            pending_verification_count=sum(1 for e in events if e.is_pending_verification),
            dispute_count=sum(1 for e in events if e.kind == EventKind.DISPUTE),
            open_dispute_count=sum(1 for e in events if e.is_open_dispute),
            attestation_count=sum(1 for e in events if e.kind == EventKind.ORACLE_ATTESTATION),
            age_days=elapsed_days(registration.timestamp, now),
            registered_at=registration.timestamp,
            oracle_consensus=tuple(consensus),
        )


def merge(
    event_batches: Iterable[Iterable[ProvenanceEvent]],
    now: Optional[datetime] = None,
    config: Optional[ProvenanceConfig] = None,
) -> Timeline:
    """Convenience wrapper around TimelineMerger.merge."""
    return TimelineMerger(config).merge(event_batches, now=now)
