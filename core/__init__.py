"""
Core Module Package.

Infrastructure shared by every other package.

Components:
- clock: UTC clock abstraction
- exceptions: exception taxonomy
- logging: root logger setup
"""

from .clock import ClockProtocol, SystemClock, MockClock, ensure_utc
from .exceptions import (
    ErrorKind,
    Severity,
    ProvenanceError,
    ConfigurationError,
    DataIncompleteError,
    NotFoundError,
    ProductNotFoundError,
    RequestNotFoundError,
    AuthorizationDeniedError,
    StateConflictError,
    AlreadyResolvedError,
    DuplicateVoteError,
    NotExpiredError,
    InvalidTransitionError,
)
from .logging import setup_logging


__all__ = [
    "ClockProtocol",
    "SystemClock",
    "MockClock",
    "ensure_utc",
    "ErrorKind",
    "Severity",
    "ProvenanceError",
    "ConfigurationError",
    "DataIncompleteError",
    "NotFoundError",
    "ProductNotFoundError",
    "RequestNotFoundError",
    "AuthorizationDeniedError",
    "StateConflictError",
    "AlreadyResolvedError",
    "DuplicateVoteError",
    "NotExpiredError",
    "InvalidTransitionError",
    "setup_logging",
]
