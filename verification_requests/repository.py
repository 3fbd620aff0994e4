"""
Verification Requests - Repository.

============================================================
PURPOSE
============================================================
Repository for the request audit trail.

Provides:
- Saving request state
- Recording votes and transitions
- Loading a request and its history

Each write runs in its own transaction.

============================================================
"""

import logging
from datetime import timedelta
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from core.clock import ensure_utc
from database.engine import DatabasePersistenceError, transaction_scope, get_db_session

from .models import RequestTransitionRecord, RequestVoteRecord, VerificationRequestRecord
from .types import RequestKind, RequestState, RequestTransition, VerificationRequest, Vote


logger = logging.getLogger(__name__)


class VerificationRequestRepository:
    """
    Repository for request persistence operations.

    ============================================================
    METHODS
    ============================================================
    - save_request: Insert or update the request row
    - record_vote: Append a vote
    - record_transition: Append a state change and update the request row
    - load_request: Rebuild a VerificationRequest
    - load_history: Transitions in order
    - list_pending: Requests still collecting votes

    ============================================================
    """

    def __init__(self, session_factory: sessionmaker):
        """
        Args:
            session_factory: Factory from database.engine.get_session_factory
        """
        self._session_factory = session_factory

    # --------------------------------------------------------
    # WRITE OPERATIONS
    # --------------------------------------------------------

    def save_request(self, request: VerificationRequest) -> None:
        with transaction_scope(self._session_factory) as session:
            record = session.get(VerificationRequestRecord, request.request_id)
            if record is None:
                record = VerificationRequestRecord(
                    request_id=request.request_id,
                    product_id=request.product_id,
                    kind=request.kind.value,
                    requester=request.requester,
                    created_at=request.created_at,
                    timeout_seconds=int(request.timeout.total_seconds()),
                    eligible_voters=sorted(request.eligible_voters) if request.eligible_voters is not None else None,
                    state=request.state.value,
                )
                session.add(record)
            record.state = request.state.value
            record.resolved_at = request.resolved_at

    def record_vote(self, request_id: str, vote: Vote) -> None:
        with transaction_scope(self._session_factory) as session:
            session.add(RequestVoteRecord(
                request_id=request_id,
                voter_id=vote.voter_id,
                approve=vote.approve,
                cast_at=vote.cast_at,
            ))

    def record_transition(self, transition: RequestTransition) -> None:
        """Append a state change and move the request row to its target state, atomically."""
        with transaction_scope(self._session_factory) as session:
            record = session.get(VerificationRequestRecord, transition.request_id)
            if record is None:
                raise DatabasePersistenceError(f"No stored request {transition.request_id}")
            record.state = transition.to_state.value
            record.resolved_at = transition.timestamp
            session.add(RequestTransitionRecord(
                request_id=transition.request_id,
                from_state=transition.from_state.value,
                to_state=transition.to_state.value,
                transitioned_at=transition.timestamp,
                reason=transition.reason,
                triggered_by=transition.triggered_by,
                details=transition.details or None,
            ))
        logger.debug(
            f"Persisted transition {transition.request_id}: "
            f"{transition.from_state.value} -> {transition.to_state.value}"
        )

    # --------------------------------------------------------
    # READ OPERATIONS
    # --------------------------------------------------------

    def load_request(self, request_id: str) -> Optional[VerificationRequest]:
        with get_db_session(self._session_factory) as session:
            record = session.get(VerificationRequestRecord, request_id)
            if record is None:
                return None

            votes = {
                v.voter_id: Vote(voter_id=v.voter_id, approve=v.approve, cast_at=ensure_utc(v.cast_at))
                for v in record.votes
            }
            return VerificationRequest(
                request_id=record.request_id,
                product_id=record.product_id,
                kind=RequestKind(record.kind),
                requester=record.requester,
                created_at=ensure_utc(record.created_at),
                timeout=timedelta(seconds=record.timeout_seconds),
                state=RequestState(record.state),
                votes=votes,
                eligible_voters=frozenset(record.eligible_voters) if record.eligible_voters is not None else None,
                resolved_at=ensure_utc(record.resolved_at) if record.resolved_at else None,
            )

    def load_history(self, request_id: str) -> List[RequestTransition]:
        with get_db_session(self._session_factory) as session:
            rows = session.execute(
                select(RequestTransitionRecord)
                .where(RequestTransitionRecord.request_id == request_id)
                .order_by(RequestTransitionRecord.id)
            ).scalars().all()

            return [
                RequestTransition(
                    request_id=row.request_id,
                    from_state=RequestState(row.from_state),
                    to_state=RequestState(row.to_state),
                    timestamp=ensure_utc(row.transitioned_at),
                    reason=row.reason,
                    triggered_by=row.triggered_by,
                    details=row.details or {},
                )
                for row in rows
            ]

    def list_pending(self) -> List[str]:
        """IDs of requests still in PENDING."""
        with get_db_session(self._session_factory) as session:
            return list(session.execute(
                select(VerificationRequestRecord.request_id)
                .where(VerificationRequestRecord.state == RequestState.PENDING.value)
                .order_by(VerificationRequestRecord.created_at)
            ).scalars().all())
