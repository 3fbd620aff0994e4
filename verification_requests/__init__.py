"""
Verification Requests - Package.

Lifecycle of verification and dispute requests:
- state_machine: VerificationRequestOrchestrator
- repository: SQLAlchemy audit trail
"""

from .config import OrchestratorConfig
from .models import RequestTransitionRecord, RequestVoteRecord, VerificationRequestRecord
from .repository import VerificationRequestRepository
from .state_machine import VALID_TRANSITIONS, VerificationRequestOrchestrator
from .types import RequestKind, RequestState, RequestTransition, VerificationRequest, Vote


__all__ = [
    "OrchestratorConfig",
    "RequestTransitionRecord",
    "RequestVoteRecord",
    "VerificationRequestRecord",
    "VerificationRequestRepository",
    "VALID_TRANSITIONS",
    "VerificationRequestOrchestrator",
    "RequestKind",
    "RequestState",
    "RequestTransition",
    "VerificationRequest",
    "Vote",
]
