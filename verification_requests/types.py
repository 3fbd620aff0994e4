"""
Verification Requests - Type Definitions.

============================================================
REQUEST LIFECYCLE
============================================================

    PENDING ──► APPROVED   (approve votes reach threshold)
       │
       ├──────► REJECTED   (reject votes reach threshold)
       │
       └──────► EXPIRED    (explicit resolve after timeout)

All three outcomes are terminal.

============================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional


class RequestState(Enum):
    """Lifecycle state of a verification or dispute request."""

    PENDING = "PENDING"
    """Collecting votes."""

    APPROVED = "APPROVED"
    """Approval threshold reached."""

    REJECTED = "REJECTED"
    """Rejection threshold reached."""

    EXPIRED = "EXPIRED"
    """Timed out without reaching a threshold."""

    def is_terminal(self) -> bool:
        return self != RequestState.PENDING


class RequestKind(str, Enum):
    """What the request asks the voters to decide."""

    VERIFICATION = "verification"
    DISPUTE = "dispute"


@dataclass(frozen=True)
class Vote:
    """One identity's vote on one request."""

    voter_id: str
    approve: bool
    cast_at: datetime


@dataclass
class VerificationRequest:
    """
    Mutable record of one request, owned by the orchestrator.

    votes is keyed by voter identity, so at most one vote per
    identity is ever held.
    """

    request_id: str
    product_id: str
    kind: RequestKind
    requester: str
    created_at: datetime
    timeout: timedelta
    state: RequestState = RequestState.PENDING
    votes: Dict[str, Vote] = field(default_factory=dict)
    eligible_voters: Optional[FrozenSet[str]] = None
    resolved_at: Optional[datetime] = None

    @property
    def expires_at(self) -> datetime:
        return self.created_at + self.timeout

    @property
    def approve_count(self) -> int:
        return sum(1 for v in self.votes.values() if v.approve)

    @property
    def reject_count(self) -> int:
        return sum(1 for v in self.votes.values() if not v.approve)

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def is_eligible(self, voter_id: str) -> bool:
        """None means any identity may vote."""
        return self.eligible_voters is None or voter_id in self.eligible_voters

    def to_dict(self) -> Dict[str, Any]:
        return {
            "request_id": self.request_id,
            "product_id": self.product_id,
            "kind": self.kind.value,
            "requester": self.requester,
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "state": self.state.value,
            "approve_count": self.approve_count,
            "reject_count": self.reject_count,
            "voters": sorted(self.votes),
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
        }


@dataclass(frozen=True)
class RequestTransition:
    """A single state change of a request."""

    request_id: str
    from_state: RequestState
    to_state: RequestState
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    reason: str = ""
    triggered_by: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
