"""
Timeline Merger, Oracle Consensus and Data Quality Tests.

============================================================
PURPOSE
============================================================
TEST CATEGORIES:
- Ordering and tie-breaking
- De-duplication, idempotence, batch-order independence
- Missing Registration
- Aggregates (counts, age)
- Weighted oracle consensus
- Snapshot/timeline consistency checks

============================================================
"""

import random
from datetime import timedelta

import pytest

from core.clock import MockClock
from core.exceptions import DataIncompleteError
from provenance.consensus import aggregate_oracle_consensus
from provenance.quality import check_status_consistency
from provenance.timeline import TimelineMerger, merge
from provenance.types import EventKind, ProductSnapshot, ProductStatus, ProvenanceEvent


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def registration(t0):
    return ProvenanceEvent(kind=EventKind.REGISTRATION, timestamp=t0, actor="0xMaker",
                           payload={"product_id": "P1"})


@pytest.fixture
def transfers(t0):
    return [
        ProvenanceEvent(
            kind=EventKind.CUSTODY_TRANSFER,
            timestamp=t0 + timedelta(days=i + 1),
            actor=f"0xHolder{i}",
            counterparty=f"0xHolder{i + 1}",
            payload={"location": f"Hub {i}"},
            source_order=i,
        )
        for i in range(3)
    ]


def _verification(ts, verdict=True, actor="0xVerifier", order=0):
    return ProvenanceEvent(kind=EventKind.VERIFICATION_OUTCOME, timestamp=ts, actor=actor,
                           payload={"verdict": verdict, "fee": 0, "request_id": "1"}, source_order=order)


def _attestation(ts, signer, verdict, weight, request_id="q1"):
    return ProvenanceEvent(kind=EventKind.ORACLE_ATTESTATION, timestamp=ts, actor=signer,
                           payload={"request_id": request_id, "verdict": verdict, "weight": weight})


# ============================================================
# ORDERING TESTS
# ============================================================

class TestTimelineOrdering:

    def test_sorted_by_timestamp(self, registration, transfers, t0):
        timeline = merge([list(reversed(transfers)), [registration]], now=t0 + timedelta(days=5))

        timestamps = [e.timestamp for e in timeline]
        assert timestamps == sorted(timestamps)
        assert timeline.events[0] is registration

    def test_ties_broken_by_kind_then_source_order(self, registration, t0):
        ts = t0 + timedelta(days=1)
        a = ProvenanceEvent(kind=EventKind.CUSTODY_TRANSFER, timestamp=ts, actor="0xA", source_order=1)
        b = ProvenanceEvent(kind=EventKind.CUSTODY_TRANSFER, timestamp=ts, actor="0xB", source_order=0)
        verdict = _verification(ts)

        timeline = merge([[verdict, a], [b], [registration]], now=ts)

        assert [e.actor for e in timeline.events[1:]] == ["0xB", "0xA", "0xVerifier"]

    def test_missing_registration_raises(self, transfers, t0):
        with pytest.raises(DataIncompleteError) as exc_info:
            TimelineMerger().merge([transfers], now=t0, product_id="P9")

        assert exc_info.value.product_id == "P9"

    def test_empty_input_raises(self, t0):
        with pytest.raises(DataIncompleteError):
            merge([], now=t0)


# ============================================================
# IDEMPOTENCE TESTS
# ============================================================

class TestTimelineIdempotence:

    def test_merging_twice_is_identical(self, registration, transfers, t0):
        now = t0 + timedelta(days=10)
        batches = [[registration], transfers]

        assert merge(batches, now=now) == merge(batches, now=now)

    def test_duplicate_batches_collapse(self, registration, transfers, t0):
        now = t0 + timedelta(days=10)

        once = merge([[registration], transfers], now=now)
        twice = merge([[registration], transfers, transfers, [registration]], now=now)

        assert once == twice
        assert twice.aggregates.transfer_count == 3

    def test_shuffled_batches_identical(self, registration, transfers, t0):
        now = t0 + timedelta(days=10)
        events = [registration] + transfers + [_verification(t0 + timedelta(days=2))]
        expected = merge([events], now=now)

        rng = random.Random(7)
        for _ in range(5):
            shuffled = events[:]
            rng.shuffle(shuffled)
            split = rng.randint(0, len(shuffled))
            assert merge([shuffled[split:], shuffled[:split]], now=now) == expected

    def test_duplicate_from_different_position_is_order_independent(self, registration, t0):
        ts = t0 + timedelta(days=1)
        first = ProvenanceEvent(kind=EventKind.CUSTODY_TRANSFER, timestamp=ts, actor="0xA", source_order=0)
        later = ProvenanceEvent(kind=EventKind.CUSTODY_TRANSFER, timestamp=ts, actor="0xA", source_order=4)

        forward = merge([[registration], [first], [later]], now=ts)
        backward = merge([[later], [first], [registration]], now=ts)

        assert forward == backward
        assert forward.events[1].source_order == 0


# ============================================================
# AGGREGATE TESTS
# ============================================================

class TestTimelineAggregates:

    def test_counts(self, registration, transfers, t0):
        events = [
            registration,
            *transfers,
            _verification(t0 + timedelta(days=1), verdict=True),
            _verification(t0 + timedelta(days=2), verdict=False, actor="0xOther"),
            ProvenanceEvent(kind=EventKind.DISPUTE, timestamp=t0 + timedelta(days=3), actor="0xC",
                            payload={"dispute_id": "1", "resolved": False}),
        ]

        aggregates = merge([events], now=t0 + timedelta(days=3)).aggregates

        assert aggregates.transfer_count == 3
        assert aggregates.verification_count == 1
        assert aggregates.failed_verification_count == 1
        assert aggregates.dispute_count == 1
        assert aggregates.open_dispute_count == 1
        assert aggregates.age_days == pytest.approx(3.0)

    def test_age_uses_clock_by_default(self, registration, t0):
        clock = MockClock(t0 + timedelta(hours=36))

        timeline = TimelineMerger(clock=clock).merge([[registration]])

        assert timeline.aggregates.age_days == pytest.approx(1.5)

    def test_age_never_negative(self, registration, t0):
        timeline = merge([[registration]], now=t0 - timedelta(days=2))

        assert timeline.aggregates.age_days == 0.0

    def test_sentinel_verification_counted(self, single_verification_bundle, t0):
        from provenance.normalizer import EventNormalizer

        normalized = EventNormalizer().normalize_bundle(single_verification_bundle)
        timeline = merge(normalized.batches, now=t0 + timedelta(days=1))

        assert timeline.aggregates.verification_count == 1
        assert timeline.aggregates.transfer_count == 1

    def test_unassigned_attempt_is_pending_not_failed(self, make_product, t0):
        from ledger_adapters.models import LedgerRecordBundle, VerificationAttemptRecord
        from provenance.normalizer import EventNormalizer

        bundle = LedgerRecordBundle(
            product=make_product(),
            verifications=[VerificationAttemptRecord(
                "5", "PROD-001", verifier="", result=False, timestamp=int(t0.timestamp()) + 60,
            )],
        )

        normalized = EventNormalizer().normalize_bundle(bundle)
        aggregates = merge(normalized.batches, now=t0 + timedelta(days=1)).aggregates

        assert normalized.dropped_count == 0
        assert aggregates.verification_count == 0
        assert aggregates.failed_verification_count == 0
        assert aggregates.pending_verification_count == 1
        assert aggregates.to_dict()["pending_verification_count"] == 1


# ============================================================
# ORACLE CONSENSUS TESTS
# ============================================================

class TestOracleConsensus:

    def test_below_threshold_fails(self, t0):
        # 119 of 200 = 59.5%
        events = [_attestation(t0, "0xS1", True, 119), _attestation(t0, "0xS2", False, 81)]

        [consensus] = aggregate_oracle_consensus(events)

        assert consensus.quorum_reached
        assert not consensus.passed
        assert consensus.pass_ratio == pytest.approx(0.595)

    def test_exact_threshold_passes(self, t0):
        events = [_attestation(t0, "0xS1", True, 120), _attestation(t0, "0xS2", False, 80)]

        [consensus] = aggregate_oracle_consensus(events)

        assert consensus.passed

    def test_no_quorum_never_passes(self, t0):
        events = [_attestation(t0, "0xS1", True, 150)]

        [consensus] = aggregate_oracle_consensus(events)

        assert not consensus.quorum_reached
        assert not consensus.passed

    def test_one_vote_per_signer(self, t0):
        events = [
            _attestation(t0, "0xS1", True, 150),
            _attestation(t0 + timedelta(minutes=1), "0xs1", True, 150),
        ]

        [consensus] = aggregate_oracle_consensus(events)

        assert consensus.count == 1
        assert consensus.total_weight == 150

    def test_grouped_by_request(self, t0):
        events = [
            _attestation(t0, "0xS1", True, 200, request_id="a"),
            _attestation(t0, "0xS1", False, 200, request_id="b"),
        ]

        results = aggregate_oracle_consensus(events)

        assert [(c.request_id, c.passed) for c in results] == [("a", True), ("b", False)]

    def test_consensus_on_timeline(self, registration, t0):
        events = [registration, _attestation(t0, "0xS1", True, 250)]

        timeline = merge([events], now=t0)

        assert timeline.aggregates.attestation_count == 1
        assert timeline.aggregates.oracle_consensus[0].passed


# ============================================================
# DATA QUALITY TESTS
# ============================================================

class TestStatusConsistency:

    def _snapshot(self, status, owner="0xHolder3"):
        return ProductSnapshot(product_id="P1", manufacturer="0xMaker", current_owner=owner, status=status)

    def test_consistent_timeline_has_no_issues(self, registration, transfers, t0):
        timeline = merge([[registration], transfers], now=t0 + timedelta(days=4))

        assert check_status_consistency(timeline, self._snapshot(ProductStatus.AT_RETAILER)) == []

    def test_status_without_transfers(self, registration, t0):
        timeline = merge([[registration]], now=t0)

        issues = check_status_consistency(timeline, self._snapshot(ProductStatus.SOLD, owner="0xMaker"))

        assert [i.code for i in issues] == ["status_without_transfers"]

    def test_owner_mismatch(self, registration, transfers, t0):
        timeline = merge([[registration], transfers], now=t0 + timedelta(days=4))

        issues = check_status_consistency(timeline, self._snapshot(ProductStatus.AT_RETAILER, owner="0xSomeoneElse"))

        assert [i.code for i in issues] == ["owner_mismatch"]

    def test_dispute_mismatches(self, registration, t0):
        dispute = ProvenanceEvent(kind=EventKind.DISPUTE, timestamp=t0, actor="0xC",
                                  payload={"dispute_id": "1", "resolved": False})

        open_timeline = merge([[registration, dispute]], now=t0)
        clean_timeline = merge([[registration]], now=t0)

        assert [i.code for i in check_status_consistency(
            open_timeline, self._snapshot(ProductStatus.REGISTERED, owner="0xMaker")
        )] == ["open_dispute_status_mismatch"]
        assert [i.code for i in check_status_consistency(
            clean_timeline, self._snapshot(ProductStatus.DISPUTED, owner="0xMaker")
        )] == ["disputed_without_open_dispute"]
