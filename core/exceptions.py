"""
Core Module - Exceptions.

============================================================
RESPONSIBILITY
============================================================
Defines the exception taxonomy shared by every package.

- Every failure is distinguishable by kind so the presentation
  layer can choose between a warning badge and a hard error
- Carries context for debugging
- Serializable for logging

============================================================
EXCEPTION HIERARCHY
============================================================
ProvenanceError (base)
├── ConfigurationError
├── DataIncompleteError
├── NotFoundError
│   ├── ProductNotFoundError
│   └── RequestNotFoundError
├── AuthorizationDeniedError
└── StateConflictError
    ├── AlreadyResolvedError
    ├── DuplicateVoteError
    ├── NotExpiredError
    └── InvalidTransitionError

Ledger adapter failures live in ledger_adapters.exceptions.

============================================================
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class Severity(Enum):
    """How loudly a failure should be reported."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorKind(Enum):
    """Caller-facing classification of a failure."""

    DATA_INCOMPLETE = "data_incomplete"
    NOT_FOUND = "not_found"
    AUTHORIZATION_DENIED = "authorization_denied"
    STATE_CONFLICT = "state_conflict"
    CONFIGURATION = "configuration"
    LEDGER_UNAVAILABLE = "ledger_unavailable"

    @property
    def is_hard_error(self) -> bool:
        """Hard errors block the action; the rest surface as warnings."""
        return self in (
            ErrorKind.NOT_FOUND,
            ErrorKind.AUTHORIZATION_DENIED,
            ErrorKind.CONFIGURATION,
        )


# ============================================================
# BASE EXCEPTION
# ============================================================

class ProvenanceError(Exception):
    """
    Root of every error raised by the engine.

    Subclasses pin ``kind`` and a default severity. Identifiers that
    help trace the failure (product, request, voter) go in ``context``.
    """

    kind: ErrorKind = ErrorKind.DATA_INCOMPLETE
    default_severity: Severity = Severity.MEDIUM

    def __init__(
        self,
        message: str,
        severity: Optional[Severity] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.severity = severity if severity is not None else self.default_severity
        self.context = dict(context or {})
        self.cause = cause
        self.raised_at = datetime.now(timezone.utc)

        if cause is not None:
            self.context.setdefault("cause_type", type(cause).__name__)
            self.context.setdefault("cause_message", str(cause))

    @property
    def is_hard_error(self) -> bool:
        return self.kind.is_hard_error

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": type(self).__name__,
            "kind": self.kind.value,
            "severity": self.severity.value,
            "message": self.message,
            "context": self.context,
            "raised_at": self.raised_at.isoformat(),
        }

    def to_log_format(self) -> str:
        """One-line rendering: ``[SEVERITY] Type: message | k=v, ...``."""
        head = f"[{self.severity.value.upper()}] {type(self).__name__}: {self.message}"
        if not self.context:
            return head
        pairs = ", ".join(f"{key}={value}" for key, value in self.context.items())
        return f"{head} | {pairs}"


# ============================================================
# CONFIGURATION ERRORS
# ============================================================

class ConfigurationError(ProvenanceError):
    """A setting is missing or outside its allowed range."""

    kind = ErrorKind.CONFIGURATION
    default_severity = Severity.HIGH

    def __init__(self, message: str, config_key: Optional[str] = None, actual_value: Any = None, **kwargs):
        context = kwargs.pop("context", None) or {}
        if config_key:
            context["config_key"] = config_key
        if actual_value is not None:
            context["actual_value"] = repr(actual_value)[:100]
        super().__init__(message, context=context, **kwargs)
        self.config_key = config_key


# ============================================================
# DATA ERRORS
# ============================================================

class DataIncompleteError(ProvenanceError):
    """
    Structurally required data is missing or malformed.

    Raised when a product has no Registration event or a record's
    timestamp cannot be resolved. Maps to the CRITICAL risk tier.
    """

    kind = ErrorKind.DATA_INCOMPLETE
    default_severity = Severity.MEDIUM

    def __init__(self, message: str, product_id: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", None) or {}
        if product_id is not None:
            context["product_id"] = product_id
        super().__init__(message, context=context, **kwargs)
        self.product_id = product_id


# ============================================================
# LOOKUP ERRORS
# ============================================================

class NotFoundError(ProvenanceError):
    """Unknown product or request identifier."""

    kind = ErrorKind.NOT_FOUND
    default_severity = Severity.HIGH


class ProductNotFoundError(NotFoundError):
    """The ledger has no record of the product."""

    def __init__(self, product_id: str):
        super().__init__(
            message=f"Product not found on ledger: {product_id}",
            context={"product_id": product_id},
        )
        self.product_id = product_id


class RequestNotFoundError(NotFoundError):
    """No verification request with this identifier is tracked."""

    def __init__(self, request_id: str):
        super().__init__(
            message=f"Verification request not found: {request_id}",
            context={"request_id": request_id},
        )
        self.request_id = request_id


# ============================================================
# AUTHORIZATION ERRORS
# ============================================================

class AuthorizationDeniedError(ProvenanceError):
    """Identity is not eligible for the attempted action."""

    kind = ErrorKind.AUTHORIZATION_DENIED
    default_severity = Severity.HIGH

    def __init__(self, identity: str, request_id: Optional[str] = None, reason: str = "not an eligible voter"):
        context = {"identity": identity, "reason": reason}
        if request_id is not None:
            context["request_id"] = request_id
        super().__init__(
            message=f"Authorization denied for {identity}: {reason}",
            context=context,
        )
        self.identity = identity


# ============================================================
# STATE CONFLICT ERRORS
# ============================================================

class StateConflictError(ProvenanceError):
    """Action conflicts with the current request state."""

    kind = ErrorKind.STATE_CONFLICT
    default_severity = Severity.MEDIUM

    def __init__(self, message: str, request_id: Optional[str] = None, state: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {})
        if request_id is not None:
            context["request_id"] = request_id
        if state is not None:
            context["state"] = state
        super().__init__(message, context=context, **kwargs)
        self.request_id = request_id
        self.state = state


class AlreadyResolvedError(StateConflictError):
    """Request is in a terminal state."""

    def __init__(self, request_id: str, state: str):
        super().__init__(
            message=f"Request {request_id} already resolved ({state})",
            request_id=request_id,
            state=state,
        )


class DuplicateVoteError(StateConflictError):
    """Voter already voted on this request."""

    def __init__(self, request_id: str, voter_id: str):
        super().__init__(
            message=f"{voter_id} already voted on request {request_id}",
            request_id=request_id,
            context={"voter_id": voter_id},
        )
        self.voter_id = voter_id


class NotExpiredError(StateConflictError):
    """Expiry processing requested before the timeout elapsed."""

    def __init__(self, request_id: str, expires_at: datetime):
        super().__init__(
            message=f"Request {request_id} has not timed out (expires {expires_at.isoformat()})",
            request_id=request_id,
            context={"expires_at": expires_at.isoformat()},
        )
        self.expires_at = expires_at


class InvalidTransitionError(StateConflictError):
    """Requested state transition is not allowed."""
    pass
