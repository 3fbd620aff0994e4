"""
Core Module - Clock.

============================================================
RESPONSIBILITY
============================================================
Supplies "now" to everything that measures elapsed time:
product age at assessment and request expiry.

- Timestamps inside the engine are timezone-aware UTC
- Ledger seconds and ISO strings are converted at the edge
- A MockClock makes age and expiry tests deterministic

The clock is always passed explicitly; there is no global instance.

============================================================
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional
import threading


class ClockProtocol(ABC):
    """Source of the current UTC instant."""

    @abstractmethod
    def now(self) -> datetime:
        pass


class SystemClock(ClockProtocol):

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class MockClock(ClockProtocol):
    """
    Manually driven clock.

    Starts at the given instant and only moves when advanced.
    """

    def __init__(self, start: Optional[datetime] = None):
        self._current = ensure_utc(start or datetime.now(timezone.utc))
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._current

    def advance(self, seconds: float = 0, **delta) -> datetime:
        """Move forward by ``seconds`` plus any timedelta keywords (days=, hours=)."""
        with self._lock:
            self._current += timedelta(seconds=seconds, **delta)
            return self._current


# ============================================================
# CONVERSIONS
# ============================================================

def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def from_unix_seconds(seconds: float) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def to_iso8601(dt: datetime) -> str:
    return ensure_utc(dt).isoformat()


def from_iso8601(text: str) -> datetime:
    """Parse an ISO 8601 string (``Z`` suffix accepted) into UTC."""
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(text))


def elapsed_days(start: datetime, end: datetime) -> float:
    seconds = (ensure_utc(end) - ensure_utc(start)).total_seconds()
    return max(0.0, seconds / 86400.0)


__all__ = [
    "ClockProtocol",
    "SystemClock",
    "MockClock",
    "ensure_utc",
    "from_unix_seconds",
    "to_iso8601",
    "from_iso8601",
    "elapsed_days",
]
