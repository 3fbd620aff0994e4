"""
Provenance - Package.

============================================================
PURPOSE
============================================================
Reconstructs a product's history from heterogeneous ledger
records:

    raw records ──► EventNormalizer ──► TimelineMerger ──► Timeline

============================================================
USAGE
============================================================
    from provenance import EventNormalizer, TimelineMerger

    normalizer = EventNormalizer()
    normalized = normalizer.normalize_bundle(bundle)

    timeline = TimelineMerger().merge(normalized.batches)
    print(timeline.aggregates.verification_count)

============================================================
"""

from .config import ProvenanceConfig, VERIFICATION_NODE_LOCATION
from .consensus import aggregate_oracle_consensus
from .normalizer import (
    EventNormalizer,
    InvalidTimestampError,
    NormalizedBundle,
    normalize,
    resolve_timestamp,
)
from .quality import check_status_consistency
from .timeline import TimelineMerger, merge
from .types import (
    DataQualityIssue,
    DisputeStatus,
    EventKind,
    NormalizationResult,
    OracleConsensus,
    ProductSnapshot,
    ProductStatus,
    ProvenanceEvent,
    Timeline,
    TimelineAggregates,
)


__all__ = [
    "ProvenanceConfig",
    "VERIFICATION_NODE_LOCATION",
    "aggregate_oracle_consensus",
    "EventNormalizer",
    "InvalidTimestampError",
    "NormalizedBundle",
    "normalize",
    "resolve_timestamp",
    "check_status_consistency",
    "TimelineMerger",
    "merge",
    "DataQualityIssue",
    "DisputeStatus",
    "EventKind",
    "NormalizationResult",
    "OracleConsensus",
    "ProductSnapshot",
    "ProductStatus",
    "ProvenanceEvent",
    "Timeline",
    "TimelineAggregates",
]
