"""
Verification Request Orchestrator Tests.

============================================================
PURPOSE
============================================================
TEST CATEGORIES:
- Vote thresholds (2-of-3)
- Terminal-state guards
- Eligibility and duplicate votes
- Explicit expiry
- Ledger synchronization
- Listeners and history

============================================================
"""

from datetime import timedelta

import pytest

from core.clock import MockClock
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
from verification_requests.config import OrchestratorConfig
from verification_requests.state_machine import VALID_TRANSITIONS, VerificationRequestOrchestrator
from verification_requests.types import RequestKind, RequestState


VOTERS = ["0xV1", "0xV2", "0xV3"]


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def orchestrator(clock):
    return VerificationRequestOrchestrator(OrchestratorConfig(), clock)


@pytest.fixture
def open_request(orchestrator):
    orchestrator.open_request("REQ-1", "PROD-001", "0xBuyer", RequestKind.VERIFICATION, eligible_voters=VOTERS)
    return "REQ-1"


# ============================================================
# THRESHOLD TESTS
# ============================================================

class TestVoting:

    def test_two_approvals_approve(self, orchestrator, open_request):
        assert orchestrator.submit_vote(open_request, "0xV1", True) == RequestState.PENDING
        assert orchestrator.submit_vote(open_request, "0xV2", True) == RequestState.APPROVED

        request = orchestrator.get_request(open_request)
        assert request.resolved_at is not None

    def test_two_rejections_reject(self, orchestrator, open_request):
        orchestrator.submit_vote(open_request, "0xV1", False)
        orchestrator.submit_vote(open_request, "0xV2", True)

        assert orchestrator.submit_vote(open_request, "0xV3", False) == RequestState.REJECTED

    def test_votes_after_approval_already_resolved(self, orchestrator, open_request):
        orchestrator.submit_vote(open_request, "0xV1", True)
        orchestrator.submit_vote(open_request, "0xV2", True)

        with pytest.raises(AlreadyResolvedError):
            orchestrator.submit_vote(open_request, "0xV3", True)

        # a fourth identity gets the same answer
        with pytest.raises(AlreadyResolvedError):
            orchestrator.submit_vote(open_request, "0xV4", True)

        assert len(orchestrator.get_request(open_request).votes) == 2

    def test_three_of_three_threshold(self, clock):
        orchestrator = VerificationRequestOrchestrator(OrchestratorConfig(approval_threshold=3), clock)
        orchestrator.open_request("R", "P", "0xBuyer", eligible_voters=VOTERS)

        for voter in VOTERS:
            state = orchestrator.submit_vote("R", voter, True)

        assert state == RequestState.APPROVED
        with pytest.raises(AlreadyResolvedError):
            orchestrator.submit_vote("R", "0xV4", True)

    def test_duplicate_vote_rejected_and_not_counted(self, orchestrator, open_request):
        orchestrator.submit_vote(open_request, "0xV1", True)

        with pytest.raises(DuplicateVoteError):
            orchestrator.submit_vote(open_request, "0xV1", True)

        request = orchestrator.get_request(open_request)
        assert request.approve_count == 1
        assert request.state == RequestState.PENDING

    def test_ineligible_voter(self, orchestrator, open_request):
        with pytest.raises(AuthorizationDeniedError) as exc_info:
            orchestrator.submit_vote(open_request, "0xIntruder", True)

        assert exc_info.value.is_hard_error
        assert orchestrator.get_request(open_request).votes == {}

    def test_open_eligibility(self, orchestrator):
        orchestrator.open_request("R-OPEN", "P", "0xBuyer")

        assert orchestrator.submit_vote("R-OPEN", "0xAnyone", True) == RequestState.PENDING

    def test_unknown_request(self, orchestrator):
        with pytest.raises(RequestNotFoundError):
            orchestrator.submit_vote("missing", "0xV1", True)
        with pytest.raises(RequestNotFoundError):
            orchestrator.resolve_expired("missing")

    def test_duplicate_request_id(self, orchestrator, open_request):
        with pytest.raises(StateConflictError):
            orchestrator.open_request(open_request, "PROD-001", "0xBuyer")


# ============================================================
# EXPIRY TESTS
# ============================================================

class TestExpiry:

    def test_not_expired_before_timeout(self, orchestrator, open_request, clock):
        clock.advance(days=3)

        with pytest.raises(NotExpiredError):
            orchestrator.resolve_expired(open_request)

    def test_expires_after_timeout(self, orchestrator, open_request, clock):
        orchestrator.submit_vote(open_request, "0xV1", True)
        clock.advance(days=3, seconds=1)

        # no implicit transition
        assert orchestrator.get_request(open_request).state == RequestState.PENDING
        assert orchestrator.resolve_expired(open_request) == RequestState.EXPIRED

    def test_expired_is_terminal(self, orchestrator, open_request, clock):
        clock.advance(days=4)
        orchestrator.resolve_expired(open_request)

        with pytest.raises(AlreadyResolvedError):
            orchestrator.submit_vote(open_request, "0xV1", True)
        with pytest.raises(AlreadyResolvedError):
            orchestrator.resolve_expired(open_request)

    def test_resolved_request_cannot_expire(self, orchestrator, open_request, clock):
        orchestrator.submit_vote(open_request, "0xV1", False)
        orchestrator.submit_vote(open_request, "0xV2", False)
        clock.advance(days=10)

        with pytest.raises(AlreadyResolvedError):
            orchestrator.resolve_expired(open_request)

    def test_custom_timeout(self, clock):
        orchestrator = VerificationRequestOrchestrator(OrchestratorConfig(timeout_seconds=60), clock)
        orchestrator.open_request("R", "P", "0xBuyer")
        clock.advance(seconds=61)

        assert orchestrator.resolve_expired("R") == RequestState.EXPIRED


# ============================================================
# LEDGER SYNC TESTS
# ============================================================

class TestSyncFromLedger:

    def test_completed_verification(self, orchestrator, open_request):
        record = VerificationAttemptRecord(request_id=open_request, product_id="PROD-001",
                                           verifier="0xV1", result=True)

        assert orchestrator.sync_from_ledger(record) == RequestState.APPROVED
        assert orchestrator.history(open_request)[-1].triggered_by == "ledger"

    def test_pending_verification_no_change(self, orchestrator, open_request):
        record = VerificationAttemptRecord(request_id=open_request, product_id="PROD-001",
                                           verifier="", result=False)

        assert orchestrator.sync_from_ledger(record) == RequestState.PENDING
        assert orchestrator.history(open_request) == []

    def test_resolved_dispute(self, orchestrator):
        orchestrator.open_request("7", "PROD-001", "0xBuyer", RequestKind.DISPUTE)

        record = DisputeRecord("7", "PROD-001", "0xBuyer", status=1, votes_for=1, votes_against=2)

        assert orchestrator.sync_from_ledger(record) == RequestState.REJECTED

    def test_active_dispute_no_change(self, orchestrator):
        orchestrator.open_request("8", "PROD-001", "0xBuyer", RequestKind.DISPUTE)

        record = DisputeRecord("8", "PROD-001", "0xBuyer", status=0, votes_for=2)

        assert orchestrator.sync_from_ledger(record) == RequestState.PENDING

    def test_same_outcome_is_noop(self, orchestrator, open_request):
        orchestrator.submit_vote(open_request, "0xV1", True)
        orchestrator.submit_vote(open_request, "0xV2", True)
        record = VerificationAttemptRecord(open_request, "PROD-001", "0xV1", True)

        assert orchestrator.sync_from_ledger(record) == RequestState.APPROVED
        assert len(orchestrator.history(open_request)) == 1

    def test_contradicting_outcome_raises(self, orchestrator, open_request):
        orchestrator.submit_vote(open_request, "0xV1", True)
        orchestrator.submit_vote(open_request, "0xV2", True)
        record = VerificationAttemptRecord(open_request, "PROD-001", "0xV1", False)

        with pytest.raises(InvalidTransitionError):
            orchestrator.sync_from_ledger(record)


# ============================================================
# LISTENER AND HISTORY TESTS
# ============================================================

class TestTransitions:

    def test_terminal_states_have_no_exits(self):
        for state in (RequestState.APPROVED, RequestState.REJECTED, RequestState.EXPIRED):
            assert state.is_terminal()
            assert VALID_TRANSITIONS[state] == set()

    def test_listener_receives_transition(self, orchestrator, open_request):
        seen = []
        orchestrator.add_listener(seen.append)

        orchestrator.submit_vote(open_request, "0xV1", True)
        orchestrator.submit_vote(open_request, "0xV2", True)

        assert len(seen) == 1
        assert seen[0].from_state == RequestState.PENDING
        assert seen[0].to_state == RequestState.APPROVED
        assert seen[0].triggered_by == "0xV2"

    def test_failing_listener_does_not_block(self, orchestrator, open_request):
        def broken(_):
            raise RuntimeError("listener down")

        orchestrator.add_listener(broken)
        orchestrator.submit_vote(open_request, "0xV1", True)

        assert orchestrator.submit_vote(open_request, "0xV2", True) == RequestState.APPROVED

    def test_history_and_pending(self, orchestrator, open_request, clock):
        orchestrator.open_request("REQ-2", "PROD-002", "0xBuyer")
        clock.advance(days=5)
        orchestrator.resolve_expired(open_request)

        assert [t.to_state for t in orchestrator.history(open_request)] == [RequestState.EXPIRED]
        assert [r.request_id for r in orchestrator.pending_requests()] == ["REQ-2"]

    def test_request_to_dict(self, orchestrator, open_request):
        orchestrator.submit_vote(open_request, "0xV2", False)

        data = orchestrator.get_request(open_request).to_dict()

        assert data["state"] == "PENDING"
        assert data["reject_count"] == 1
        assert data["voters"] == ["0xV2"]


# ============================================================
# CONFIG TESTS
# ============================================================

class TestOrchestratorConfig:

    def test_defaults(self):
        config = OrchestratorConfig()

        assert config.approval_threshold == 2
        assert config.rejection_threshold == 2
        assert config.timeout == timedelta(days=3)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("REQUEST_APPROVAL_THRESHOLD", "3")
        monkeypatch.setenv("REQUEST_TIMEOUT_SECONDS", "3600")

        config = OrchestratorConfig.from_env()

        assert config.approval_threshold == 3
        assert config.timeout == timedelta(hours=1)

    def test_from_env_invalid(self, monkeypatch):
        from core.exceptions import ConfigurationError

        monkeypatch.setenv("REQUEST_REJECTION_THRESHOLD", "0")

        with pytest.raises(ConfigurationError):
            OrchestratorConfig.from_env()
