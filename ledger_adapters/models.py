"""
Ledger Record Models - Raw records as returned by the ledger query layer.

These mirror the ledger's read shapes field for field. Timestamps are
left exactly as the ledger reports them (unix seconds, milliseconds,
ISO strings or datetimes); resolving them is the normalizer's job.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class ProductRecord:
    """Result of getProduct(id)."""
    product_id: str
    manufacturer: str
    current_owner: str
    status: int
    registered_at: Any
    metadata_uri: str = ""
    exists: bool = True

    @classmethod
    def from_dict(cls, product_id: str, data: Dict[str, Any]) -> "ProductRecord":
        return cls(
            product_id=product_id,
            manufacturer=data.get("manufacturer") or "",
            current_owner=data.get("currentOwner", data.get("current_owner")) or "",
            status=int(data.get("status", 0)),
            registered_at=data.get("registeredAt", data.get("registered_at")),
            metadata_uri=data.get("metadataURI", data.get("metadata_uri", "")) or "",
            exists=bool(data.get("exists", True)),
        )


@dataclass(frozen=True)
class CustodyTransferRecord:
    """One entry of getProductHistory(id)."""
    from_address: str
    to_address: str
    timestamp: Any
    location: str = ""
    verification_hash: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CustodyTransferRecord":
        return cls(
            from_address=data.get("from", data.get("from_address")) or "",
            to_address=data.get("to", data.get("to_address")) or "",
            timestamp=data.get("timestamp"),
            location=data.get("location") or "",
            verification_hash=data.get("verificationHash", data.get("verification_hash", "")) or "",
        )


@dataclass(frozen=True)
class VerificationAttemptRecord:
    """VerificationCompleted event as returned by the event filter."""
    request_id: str
    product_id: str
    verifier: str
    result: bool
    requester: str = ""
    fee: int = 0
    timestamp: Any = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VerificationAttemptRecord":
        return cls(
            request_id=str(data.get("requestId", data.get("request_id", ""))),
            product_id=str(data.get("productId", data.get("product_id", ""))),
            verifier=data.get("verifier") or "",
            result=bool(data.get("result", False)),
            requester=data.get("requester") or "",
            fee=int(data.get("fee", 0) or 0),
            timestamp=data.get("timestamp"),
        )


@dataclass(frozen=True)
class DisputeRecord:
    """Dispute as returned by the dispute event filter."""
    dispute_id: str
    product_id: str
    initiator: str
    description: str = ""
    status: int = 0
    created_at: Any = None
    resolved_at: Any = None
    votes_for: int = 0
    votes_against: int = 0
    respondent: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DisputeRecord":
        return cls(
            dispute_id=str(data.get("disputeId", data.get("dispute_id", ""))),
            product_id=str(data.get("productId", data.get("product_id", ""))),
            initiator=data.get("initiator") or "",
            description=data.get("description", "") or "",
            status=int(data.get("status", 0) or 0),
            created_at=data.get("createdAt", data.get("created_at")),
            resolved_at=data.get("resolvedAt", data.get("resolved_at")),
            votes_for=int(data.get("votesFor", data.get("votes_for", 0)) or 0),
            votes_against=int(data.get("votesAgainst", data.get("votes_against", 0)) or 0),
            respondent=data.get("respondent", "") or "",
        )


@dataclass(frozen=True)
class OracleAttestationRecord:
    """Attested event from the oracle integration contract."""
    request_id: str
    product_id: str
    signer: str
    verdict: bool
    weight: int = 0
    evidence_uri: str = ""
    timestamp: Any = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OracleAttestationRecord":
        return cls(
            request_id=str(data.get("requestId", data.get("request_id", ""))),
            product_id=str(data.get("productId", data.get("product_id", ""))),
            signer=data.get("signer") or "",
            verdict=bool(data.get("verdict", False)),
            weight=int(data.get("weight", 0) or 0),
            evidence_uri=data.get("evidenceURI", data.get("evidence_uri", "")) or "",
            timestamp=data.get("timestamp"),
        )


@dataclass(frozen=True)
class LedgerRecordBundle:
    """Everything fetched for one product, as one materialized batch."""
    product: ProductRecord
    history: List[CustodyTransferRecord] = field(default_factory=list)
    verifications: List[VerificationAttemptRecord] = field(default_factory=list)
    disputes: List[DisputeRecord] = field(default_factory=list)
    attestations: List[OracleAttestationRecord] = field(default_factory=list)
    counterparty_reputation: Optional[int] = None
