"""
Core Module Tests.

============================================================
PURPOSE
============================================================
TEST CATEGORIES:
- Exception taxonomy: kinds, hard errors, serialization
- Clock: mock time control, UTC helpers
- Logging setup

============================================================
"""

import logging
from datetime import datetime, timedelta, timezone

import pytest

from core.clock import MockClock, SystemClock, elapsed_days, ensure_utc, from_iso8601, from_unix_seconds, to_iso8601
from core.exceptions import (
    AlreadyResolvedError,
    AuthorizationDeniedError,
    ConfigurationError,
    DataIncompleteError,
    DuplicateVoteError,
    ErrorKind,
    NotExpiredError,
    ProductNotFoundError,
    ProvenanceError,
    RequestNotFoundError,
    Severity,
    StateConflictError,
)
from core.logging import ENGINE_LOGGERS, QUIET_LOGGERS, setup_logging


# ============================================================
# EXCEPTION TESTS
# ============================================================

class TestExceptionTaxonomy:
    """Tests for error kinds and classification."""

    def test_kinds_by_class(self):
        assert DataIncompleteError("x").kind == ErrorKind.DATA_INCOMPLETE
        assert ProductNotFoundError("P1").kind == ErrorKind.NOT_FOUND
        assert RequestNotFoundError("R1").kind == ErrorKind.NOT_FOUND
        assert AuthorizationDeniedError("0xA").kind == ErrorKind.AUTHORIZATION_DENIED
        assert AlreadyResolvedError("R1", "APPROVED").kind == ErrorKind.STATE_CONFLICT
        assert ConfigurationError("bad").kind == ErrorKind.CONFIGURATION

    def test_hard_errors(self):
        assert ProductNotFoundError("P1").is_hard_error
        assert AuthorizationDeniedError("0xA").is_hard_error
        assert ConfigurationError("bad").is_hard_error
        assert not DataIncompleteError("x").is_hard_error
        assert not DuplicateVoteError("R1", "0xA").is_hard_error

    def test_state_conflicts_share_base(self):
        for error in (
            AlreadyResolvedError("R1", "APPROVED"),
            DuplicateVoteError("R1", "0xA"),
            NotExpiredError("R1", datetime(2024, 1, 1, tzinfo=timezone.utc)),
        ):
            assert isinstance(error, StateConflictError)
            assert isinstance(error, ProvenanceError)
            assert error.context["request_id"] == "R1"

    def test_to_dict(self):
        error = DataIncompleteError("No Registration event", product_id="P1")
        data = error.to_dict()

        assert data["type"] == "DataIncompleteError"
        assert data["kind"] == "data_incomplete"
        assert data["context"]["product_id"] == "P1"
        assert data["severity"] == Severity.MEDIUM.value

    def test_cause_recorded_in_context(self):
        cause = ValueError("boom")
        error = ConfigurationError("Invalid setting", config_key="SCORING_AGE_CAP", cause=cause)

        assert error.context["config_key"] == "SCORING_AGE_CAP"
        assert error.context["cause_type"] == "ValueError"
        assert "boom" in error.to_log_format()


# ============================================================
# CLOCK TESTS
# ============================================================

class TestClock:
    """Tests for clock implementations and helpers."""

    def test_system_clock_is_utc(self):
        assert SystemClock().now().tzinfo == timezone.utc

    def test_mock_clock_advance(self):
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        clock = MockClock(start)

        clock.advance(days=3, seconds=1)

        assert clock.now() == start + timedelta(days=3, seconds=1)

    def test_mock_clock_only_moves_when_advanced(self):
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        clock = MockClock(start)

        assert clock.now() == clock.now() == start
        assert clock.advance(hours=1) == start + timedelta(hours=1)

    def test_elapsed_days_never_negative(self):
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)

        assert elapsed_days(start, start + timedelta(hours=36)) == pytest.approx(1.5)
        assert elapsed_days(start, start - timedelta(days=2)) == 0.0

    def test_from_unix_seconds(self):
        assert from_unix_seconds(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)

    def test_ensure_utc_on_naive(self):
        naive = datetime(2024, 1, 1, 8, 0)
        assert ensure_utc(naive).tzinfo == timezone.utc
        assert ensure_utc(naive).hour == 8

    def test_iso_roundtrip_with_z_suffix(self):
        parsed = from_iso8601("2024-03-01T12:00:00Z")
        assert parsed == datetime(2024, 3, 1, 12, tzinfo=timezone.utc)
        assert to_iso8601(parsed).startswith("2024-03-01T12:00:00")


# ============================================================
# LOGGING TESTS
# ============================================================

class TestLoggingSetup:

    @pytest.fixture(autouse=True)
    def restore_logging(self):
        root = logging.getLogger()
        names = ENGINE_LOGGERS + QUIET_LOGGERS
        saved = (root.level, list(root.handlers), {n: logging.getLogger(n).level for n in names})
        yield
        root.setLevel(saved[0])
        root.handlers = saved[1]
        for name, level in saved[2].items():
            logging.getLogger(name).setLevel(level)

    def test_setup_sets_level_and_handler(self):
        logger = setup_logging(level="DEBUG", log_format="json", correlation_id="abc")

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert logger.name == "provenance"

    def test_unknown_level_defaults_to_info(self):
        setup_logging(level="chatty")
        assert logging.getLogger().level == logging.INFO

    def test_level_from_environment(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "warning")

        setup_logging()

        assert logging.getLogger().level == logging.WARNING
        assert logging.getLogger("verification_requests").level == logging.WARNING

    def test_third_party_loggers_quieted(self):
        setup_logging(level="DEBUG")

        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
