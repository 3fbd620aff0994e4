"""
Verification Requests - Persistence Models.

============================================================
PURPOSE
============================================================
ORM models for the request audit trail.

============================================================
MODELS
============================================================
1. VerificationRequestRecord: one row per request, current state
2. RequestVoteRecord: one row per (request, voter)
3. RequestTransitionRecord: every state change, append-only

============================================================
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database.engine import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================
# REQUEST MODEL
# ============================================================


class VerificationRequestRecord(Base):
    """Current state of one verification or dispute request."""

    __tablename__ = "verification_requests"

    request_id: Mapped[str] = mapped_column(String(128), primary_key=True)

    product_id: Mapped[str] = mapped_column(String(128), nullable=False)

    kind: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="verification or dispute",
    )

    requester: Mapped[str] = mapped_column(String(128), nullable=False)

    state: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="PENDING, APPROVED, REJECTED, EXPIRED",
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    timeout_seconds: Mapped[int] = mapped_column(Integer, nullable=False)

    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    eligible_voters: Mapped[Optional[List[str]]] = mapped_column(
        JSON,
        nullable=True,
        comment="Null when any identity may vote",
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    votes: Mapped[List["RequestVoteRecord"]] = relationship(
        "RequestVoteRecord",
        back_populates="request",
        cascade="all, delete-orphan",
        order_by="RequestVoteRecord.id",
    )

    transitions: Mapped[List["RequestTransitionRecord"]] = relationship(
        "RequestTransitionRecord",
        back_populates="request",
        cascade="all, delete-orphan",
        order_by="RequestTransitionRecord.id",
    )

    __table_args__ = (
        Index("ix_verification_requests_product", "product_id"),
        Index("ix_verification_requests_state", "state"),
    )

    def __repr__(self) -> str:
        return (
            f"VerificationRequestRecord("
            f"request_id={self.request_id}, "
            f"product={self.product_id}, "
            f"state={self.state})"
        )


# ============================================================
# VOTE MODEL
# ============================================================


class RequestVoteRecord(Base):
    """A single vote. The unique constraint mirrors one-vote-per-identity."""

    __tablename__ = "request_votes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    request_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("verification_requests.request_id", ondelete="CASCADE"),
        nullable=False,
    )

    voter_id: Mapped[str] = mapped_column(String(128), nullable=False)

    approve: Mapped[bool] = mapped_column(Boolean, nullable=False)

    cast_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    request: Mapped["VerificationRequestRecord"] = relationship(
        "VerificationRequestRecord",
        back_populates="votes",
    )

    __table_args__ = (
        UniqueConstraint("request_id", "voter_id", name="uq_request_votes_voter"),
    )

    def __repr__(self) -> str:
        return f"RequestVoteRecord(request_id={self.request_id}, voter={self.voter_id}, approve={self.approve})"


# ============================================================
# TRANSITION MODEL
# ============================================================


class RequestTransitionRecord(Base):
    """Append-only audit of state changes."""

    __tablename__ = "request_transitions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    request_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("verification_requests.request_id", ondelete="CASCADE"),
        nullable=False,
    )

    from_state: Mapped[str] = mapped_column(String(20), nullable=False)

    to_state: Mapped[str] = mapped_column(String(20), nullable=False)

    transitioned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    reason: Mapped[str] = mapped_column(Text, nullable=False, default="")

    triggered_by: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    details: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)

    request: Mapped["VerificationRequestRecord"] = relationship(
        "VerificationRequestRecord",
        back_populates="transitions",
    )

    __table_args__ = (
        Index("ix_request_transitions_request", "request_id"),
    )

    def __repr__(self) -> str:
        return (
            f"RequestTransitionRecord("
            f"request_id={self.request_id}, "
            f"{self.from_state} -> {self.to_state})"
        )
