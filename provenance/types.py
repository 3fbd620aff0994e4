"""
Provenance - Type Definitions.

============================================================
PURPOSE
============================================================
Data contracts for provenance reconstruction.

Raw ledger records of five different shapes are normalized into
a single ProvenanceEvent, merged into a Timeline, and summarized
as TimelineAggregates for scoring.

============================================================
DESIGN PRINCIPLES
============================================================
- All types are immutable
- Every event timestamp is a timezone-aware UTC datetime
- Ordering is total and deterministic:
  (timestamp, emission rank of kind, source order, content key)

============================================================
"""

import hashlib
import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from core.clock import ensure_utc, to_iso8601


# ============================================================
# ENUMS
# ============================================================


class EventKind(str, Enum):
    """
    Discriminator for ProvenanceEvent.

    Declaration order is the ledger emission order and is used as
    the tie-breaker for events sharing a timestamp.
    """

    REGISTRATION = "registration"
    CUSTODY_TRANSFER = "custody_transfer"
    VERIFICATION_OUTCOME = "verification_outcome"
    DISPUTE = "dispute"
    ORACLE_ATTESTATION = "oracle_attestation"

    @property
    def emission_rank(self) -> int:
        return list(EventKind).index(self)


class ProductStatus(IntEnum):
    """Product status as encoded by the ledger registry."""

    REGISTERED = 0
    IN_TRANSIT = 1
    AT_RETAILER = 2
    SOLD = 3
    DISPUTED = 4

    @property
    def label(self) -> str:
        return self.name.replace("_", " ").title()


class DisputeStatus(IntEnum):
    """Dispute status as encoded by the dispute resolution contract."""

    ACTIVE = 0
    RESOLVED = 1
    CLOSED = 2


# ============================================================
# EVENTS
# ============================================================


def _payload_digest(payload: Mapping[str, Any]) -> str:
    canonical = json.dumps(payload, sort_keys=True, default=str, separators=(",", ":"))
    return hashlib.sha256(canonical.encode()).hexdigest()


@dataclass(frozen=True)
class ProvenanceEvent:
    """
    The unifying record for everything that happened to a product.

    Payload keys by kind:
    - REGISTRATION: product_id, metadata_uri
    - CUSTODY_TRANSFER: location, verification_hash
    - VERIFICATION_OUTCOME: verdict, fee, request_id, pending (no verifier assigned yet)
    - DISPUTE: dispute_id, description, status, votes_for, votes_against, resolved
    - ORACLE_ATTESTATION: request_id, verdict, weight, evidence_uri
    """

    kind: EventKind
    timestamp: datetime
    actor: str
    counterparty: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)

    # Index of the record in its source list
    source_order: int = 0

    # True when derived from another record rather than read directly
    synthetic: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.actor, str):
            raise TypeError(f"{self.kind.value} actor must be a string, got {type(self.actor).__name__}")
        object.__setattr__(self, "timestamp", ensure_utc(self.timestamp))

    @property
    def content_key(self) -> str:
        """De-duplication key: kind + actor + timestamp + payload hash."""
        return "|".join([
            self.kind.value,
            self.actor.lower(),
            to_iso8601(self.timestamp),
            _payload_digest(self.payload),
        ])

    @property
    def sort_key(self) -> Tuple[datetime, int, int, str]:
        return (self.timestamp, self.kind.emission_rank, self.source_order, self.content_key)

    @property
    def is_successful_verification(self) -> bool:
        return self.kind == EventKind.VERIFICATION_OUTCOME and bool(self.payload.get("verdict"))

    @property
    def is_pending_verification(self) -> bool:
        return self.kind == EventKind.VERIFICATION_OUTCOME and bool(self.payload.get("pending"))

    @property
    def is_failed_verification(self) -> bool:
        return (
            self.kind == EventKind.VERIFICATION_OUTCOME
            and not self.payload.get("verdict")
            and not self.is_pending_verification
        )

    @property
    def is_open_dispute(self) -> bool:
        return self.kind == EventKind.DISPUTE and not self.payload.get("resolved")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "timestamp": to_iso8601(self.timestamp),
            "actor": self.actor,
            "counterparty": self.counterparty,
            "payload": dict(self.payload),
            "synthetic": self.synthetic,
        }


@dataclass(frozen=True)
class NormalizationResult:
    """Output of normalizing one source's records."""

    kind: EventKind
    events: Tuple[ProvenanceEvent, ...] = ()
    dropped_count: int = 0
    dropped_reasons: Tuple[str, ...] = ()


# ============================================================
# SNAPSHOT
# ============================================================


@dataclass(frozen=True)
class ProductSnapshot:
    """Point-in-time state of one product as reported by the registry."""

    product_id: str
    manufacturer: str
    current_owner: str
    status: ProductStatus
    registered_at: Optional[datetime] = None
    metadata_uri: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "manufacturer": self.manufacturer,
            "current_owner": self.current_owner,
            "status": self.status.name,
            "registered_at": to_iso8601(self.registered_at) if self.registered_at else None,
            "metadata_uri": self.metadata_uri,
        }


# ============================================================
# ORACLE CONSENSUS
# ============================================================


@dataclass(frozen=True)
class OracleConsensus:
    """Weighted aggregate of the attestations for one oracle request."""

    request_id: str
    total_weight: int
    pass_weight: int
    count: int
    quorum_reached: bool
    passed: bool

    @property
    def pass_ratio(self) -> float:
        return self.pass_weight / self.total_weight if self.total_weight else 0.0


# ============================================================
# DATA QUALITY
# ============================================================


@dataclass(frozen=True)
class DataQualityIssue:
    """A disagreement between the snapshot and the reconstructed timeline."""

    code: str
    message: str


# ============================================================
# TIMELINE
# ============================================================


@dataclass(frozen=True)
class TimelineAggregates:
    """Derived counts computed while merging."""

    transfer_count: int = 0
    verification_count: int = 0
    failed_verification_count: int = 0
    pending_verification_count: int = 0
    dispute_count: int = 0
    open_dispute_count: int = 0
    attestation_count: int = 0
    age_days: float = 0.0
    registered_at: Optional[datetime] = None
    oracle_consensus: Tuple[OracleConsensus, ...] = ()

    @property
    def has_verification(self) -> bool:
        return self.verification_count > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transfer_count": self.transfer_count,
            "verification_count": self.verification_count,
            "failed_verification_count": self.failed_verification_count,
            "pending_verification_count": self.pending_verification_count,
            "dispute_count": self.dispute_count,
            "open_dispute_count": self.open_dispute_count,
            "attestation_count": self.attestation_count,
            "age_days": round(self.age_days, 4),
            "registered_at": to_iso8601(self.registered_at) if self.registered_at else None,
            "oracle_consensus": [
                {
                    "request_id": c.request_id,
                    "total_weight": c.total_weight,
                    "pass_weight": c.pass_weight,
                    "count": c.count,
                    "quorum_reached": c.quorum_reached,
                    "passed": c.passed,
                }
                for c in self.oracle_consensus
            ],
        }


@dataclass(frozen=True)
class Timeline:
    """
    Ordered provenance events for one product.

    Strictly non-decreasing by timestamp. Always contains exactly
    the Registration event(s) the ledger reported; a Timeline
    without one is never constructed.
    """

    events: Tuple[ProvenanceEvent, ...]
    aggregates: TimelineAggregates

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self) -> Iterator[ProvenanceEvent]:
        return iter(self.events)

    @property
    def registration(self) -> ProvenanceEvent:
        return next(e for e in self.events if e.kind == EventKind.REGISTRATION)

    def events_of(self, kind: EventKind) -> List[ProvenanceEvent]:
        return [e for e in self.events if e.kind == kind]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "events": [e.to_dict() for e in self.events],
            "aggregates": self.aggregates.to_dict(),
        }
