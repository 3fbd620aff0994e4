"""
Verification Requests - Request State Machine.

============================================================
PURPOSE
============================================================
Drives one verification or dispute request from PENDING to a
terminal outcome.

STATE MACHINE:

    PENDING ──(approve votes >= threshold)──► APPROVED
       │
       ├────(reject votes >= threshold)─────► REJECTED
       │
       └────(resolve_expired after timeout)─► EXPIRED

INVARIANTS:
- Terminal states are final
- One vote per identity
- Expiry is never implicit; resolve_expired must be called
- All transitions are logged

============================================================
"""

import logging
from typing import Callable, Dict, Iterable, List, Optional, Set, Union

from core.clock import ClockProtocol, SystemClock
from core.exceptions import (
    AlreadyResolvedError,
    AuthorizationDeniedError,
    DuplicateVoteError,
    InvalidTransitionError,
    NotExpiredError,
    RequestNotFoundError,
    StateConflictError,
)
from ledger_adapters.models import DisputeRecord, VerificationAttemptRecord
from provenance.types import DisputeStatus

from .config import OrchestratorConfig
from .repository import VerificationRequestRepository
from .types import RequestKind, RequestState, RequestTransition, VerificationRequest, Vote


logger = logging.getLogger(__name__)


# ============================================================
# STATE TRANSITION RULES
# ============================================================

VALID_TRANSITIONS: Dict[RequestState, Set[RequestState]] = {
    RequestState.PENDING: {
        RequestState.APPROVED,
        RequestState.REJECTED,
        RequestState.EXPIRED,
    },
    # Terminal states - no transitions out
    RequestState.APPROVED: set(),
    RequestState.REJECTED: set(),
    RequestState.EXPIRED: set(),
}


LedgerRequestRecord = Union[VerificationAttemptRecord, DisputeRecord]


# ============================================================
# ORCHESTRATOR
# ============================================================

class VerificationRequestOrchestrator:
    """
    State machine for verification and dispute requests.

    Manages state transitions with:
    - Eligibility and duplicate-vote guards
    - Threshold evaluation after every vote
    - Listener notification
    - History tracking (and persistence when a repository is attached)
    """

    def __init__(
        self,
        config: Optional[OrchestratorConfig] = None,
        clock: Optional[ClockProtocol] = None,
        repository: Optional[VerificationRequestRepository] = None,
    ):
        self.config = config or OrchestratorConfig()
        self._clock = clock or SystemClock()
        self._repository = repository
        self._requests: Dict[str, VerificationRequest] = {}
        self._history: Dict[str, List[RequestTransition]] = {}
        self._listeners: List[Callable[[RequestTransition], None]] = []

    def add_listener(self, listener: Callable[[RequestTransition], None]) -> None:
        """Add a transition listener."""
        self._listeners.append(listener)

    # --------------------------------------------------------
    # REQUEST LIFECYCLE
    # --------------------------------------------------------

    def open_request(
        self,
        request_id: str,
        product_id: str,
        requester: str,
        kind: RequestKind = RequestKind.VERIFICATION,
        eligible_voters: Optional[Iterable[str]] = None,
    ) -> VerificationRequest:
        """
        Open a new PENDING request.

        Args:
            request_id: Ledger request or dispute id
            product_id: Product under review
            requester: Identity that raised the request
            kind: VERIFICATION or DISPUTE
            eligible_voters: Identities allowed to vote; None allows any

        Raises:
            StateConflictError: If the id is already in use
        """
        if self._find(request_id) is not None:
            raise StateConflictError(
                f"Request {request_id} already exists",
                request_id=request_id,
            )

        request = VerificationRequest(
            request_id=request_id,
            product_id=product_id,
            kind=kind,
            requester=requester,
            created_at=self._clock.now(),
            timeout=self.config.timeout,
            eligible_voters=frozenset(eligible_voters) if eligible_voters is not None else None,
        )
        if self._repository is not None:
            self._repository.save_request(request)

        self._requests[request_id] = request
        self._history[request_id] = []

        logger.info(
            f"Opened {kind.value} request {request_id} for {product_id} "
            f"(expires {request.expires_at.isoformat()})"
        )
        return request

    def submit_vote(self, request_id: str, voter_id: str, approve: bool) -> RequestState:
        """
        Record one vote and apply any threshold it crosses.

        Returns:
            The request state after the vote

        Raises:
            RequestNotFoundError: Unknown request
            AlreadyResolvedError: Request is terminal
            AuthorizationDeniedError: Voter is not eligible
            DuplicateVoteError: Voter already voted
        """
        request = self._require(request_id)

        if request.state.is_terminal():
            raise AlreadyResolvedError(request_id, request.state.value)

        if not request.is_eligible(voter_id):
            logger.warning(f"Rejected vote from ineligible {voter_id} on {request_id}")
            raise AuthorizationDeniedError(voter_id, request_id=request_id)

        if voter_id in request.votes:
            raise DuplicateVoteError(request_id, voter_id)

        vote = Vote(voter_id=voter_id, approve=approve, cast_at=self._clock.now())
        if self._repository is not None:
            self._repository.record_vote(request_id, vote)
        request.votes[voter_id] = vote

        logger.info(
            f"Vote on {request_id} from {voter_id}: {'approve' if approve else 'reject'} "
            f"({request.approve_count} for, {request.reject_count} against)"
        )

        if request.approve_count >= self.config.approval_threshold:
            self._transition(
                request,
                RequestState.APPROVED,
                reason=f"{request.approve_count} approve vote(s) reached threshold",
                triggered_by=voter_id,
            )
        elif request.reject_count >= self.config.rejection_threshold:
            self._transition(
                request,
                RequestState.REJECTED,
                reason=f"{request.reject_count} reject vote(s) reached threshold",
                triggered_by=voter_id,
            )

        return request.state

    def resolve_expired(self, request_id: str) -> RequestState:
        """
        Move a timed-out PENDING request to EXPIRED.

        Raises:
            RequestNotFoundError: Unknown request
            AlreadyResolvedError: Request is terminal
            NotExpiredError: Timeout has not elapsed
        """
        request = self._require(request_id)

        if request.state.is_terminal():
            raise AlreadyResolvedError(request_id, request.state.value)

        if not request.is_expired(self._clock.now()):
            raise NotExpiredError(request_id, request.expires_at)

        self._transition(
            request,
            RequestState.EXPIRED,
            reason="Timed out without reaching a threshold",
        )
        return request.state

    def sync_from_ledger(self, record: LedgerRequestRecord) -> RequestState:
        """
        Apply an outcome the ledger has already recorded.

        A VerificationAttemptRecord with a verifier is final: result
        True approves, False rejects. A DisputeRecord that is no
        longer ACTIVE approves when votes_for exceeds votes_against.
        Records still open on the ledger leave the request unchanged.

        Raises:
            RequestNotFoundError: Unknown request
            InvalidTransitionError: Ledger outcome contradicts a
                terminal state already held
        """
        if isinstance(record, DisputeRecord):
            request = self._require(record.dispute_id)
            if record.status == DisputeStatus.ACTIVE:
                return request.state
            target = RequestState.APPROVED if record.votes_for > record.votes_against else RequestState.REJECTED
            details = {"votes_for": record.votes_for, "votes_against": record.votes_against}
        else:
            request = self._require(record.request_id)
            if not record.verifier:
                return request.state
            target = RequestState.APPROVED if record.result else RequestState.REJECTED
            details = {"verifier": record.verifier, "result": record.result}

        if request.state == target:
            return request.state

        self._transition(
            request,
            target,
            reason="Outcome recorded on ledger",
            triggered_by="ledger",
            details=details,
        )
        return request.state

    # --------------------------------------------------------
    # QUERIES
    # --------------------------------------------------------

    def get_request(self, request_id: str) -> VerificationRequest:
        """Raises RequestNotFoundError for unknown ids."""
        return self._require(request_id)

    def history(self, request_id: str) -> List[RequestTransition]:
        """Transitions of one request, oldest first."""
        self._require(request_id)
        return list(self._history[request_id])

    def pending_requests(self) -> List[VerificationRequest]:
        """PENDING requests, including stored ones not yet loaded, oldest first."""
        if self._repository is not None:
            for request_id in self._repository.list_pending():
                self._find(request_id)
        pending = [r for r in self._requests.values() if r.state == RequestState.PENDING]
        return sorted(pending, key=lambda r: r.created_at)

    # --------------------------------------------------------
    # INTERNALS
    # --------------------------------------------------------

    def _find(self, request_id: str) -> Optional[VerificationRequest]:
        request = self._requests.get(request_id)
        if request is None and self._repository is not None:
            request = self._repository.load_request(request_id)
            if request is not None:
                self._requests[request_id] = request
                self._history[request_id] = self._repository.load_history(request_id)
        return request

    def _require(self, request_id: str) -> VerificationRequest:
        request = self._find(request_id)
        if request is None:
            raise RequestNotFoundError(request_id)
        return request

    def _transition(
        self,
        request: VerificationRequest,
        target: RequestState,
        reason: str = "",
        triggered_by: Optional[str] = None,
        details: Optional[Dict] = None,
    ) -> RequestTransition:
        if target not in VALID_TRANSITIONS[request.state]:
            raise InvalidTransitionError(
                f"Cannot transition {request.request_id} from "
                f"{request.state.value} to {target.value}",
                request_id=request.request_id,
                state=request.state.value,
            )

        now = self._clock.now()
        transition = RequestTransition(
            request_id=request.request_id,
            from_state=request.state,
            to_state=target,
            timestamp=now,
            reason=reason,
            triggered_by=triggered_by,
            details=details or {},
        )

        # memory changes only after the audit write succeeds
        if self._repository is not None:
            self._repository.record_transition(transition)

        request.state = target
        request.resolved_at = now
        self._history[request.request_id].append(transition)

        for listener in self._listeners:
            try:
                listener(transition)
            except Exception as e:
                logger.error(f"Request listener error: {e}")

        logger.info(
            f"Request {request.request_id}: "
            f"{transition.from_state.value} -> {transition.to_state.value} "
            f"({reason})"
        )
        return transition
