"""
Provenance - Event Normalizer.

============================================================
PURPOSE
============================================================
Converts raw ledger records of five shapes into ProvenanceEvent.

- Pure transform, no side effects beyond logging
- Records without a resolvable timestamp are dropped and counted,
  never given a fabricated time
- The "Verification Node" custody convention is resolved here into
  an explicit synthetic VERIFICATION_OUTCOME event; nothing
  downstream inspects transfer locations

============================================================
TIMESTAMP RESOLUTION
============================================================
Accepted forms:
- datetime (naive values are taken as UTC)
- int / float unix time; values above the millisecond threshold
  are milliseconds, otherwise seconds
- numeric strings, as above
- ISO 8601 strings

Zero, negative, boolean and missing values are rejected. The
ledger writes 0 for "never set".

============================================================
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from core.clock import ensure_utc, from_iso8601, from_unix_seconds
from core.exceptions import DataIncompleteError
from ledger_adapters.models import (
    CustodyTransferRecord,
    DisputeRecord,
    LedgerRecordBundle,
    OracleAttestationRecord,
    ProductRecord,
    VerificationAttemptRecord,
)

from .config import ProvenanceConfig
from .types import (
    DisputeStatus,
    EventKind,
    NormalizationResult,
    ProductSnapshot,
    ProductStatus,
    ProvenanceEvent,
)


logger = logging.getLogger(__name__)


class InvalidTimestampError(ValueError):
    """A record's timestamp cannot be resolved to an absolute time."""
    pass


def resolve_timestamp(value: Any, millisecond_threshold: int = 10_000_000_000) -> datetime:
    """
    Resolve a ledger timestamp to a UTC datetime.

    Raises:
        InvalidTimestampError: If the value is missing or malformed
    """
    if value is None or isinstance(value, bool):
        raise InvalidTimestampError(f"missing timestamp ({value!r})")

    if isinstance(value, datetime):
        return ensure_utc(value)

    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise InvalidTimestampError("empty timestamp")
        try:
            value = float(text)
        except ValueError:
            try:
                return from_iso8601(text)
            except ValueError:
                raise InvalidTimestampError(f"unparseable timestamp {text!r}")

    if isinstance(value, (int, float)):
        if value <= 0:
            raise InvalidTimestampError(f"non-positive timestamp {value!r}")
        seconds = value / 1000.0 if value > millisecond_threshold else float(value)
        try:
            return from_unix_seconds(seconds)
        except (OverflowError, OSError, ValueError):
            raise InvalidTimestampError(f"out-of-range timestamp {value!r}")

    raise InvalidTimestampError(f"unsupported timestamp type {type(value).__name__}")


@dataclass(frozen=True)
class NormalizedBundle:
    """All event batches for one product, plus what was dropped."""

    snapshot: ProductSnapshot
    results: Tuple[NormalizationResult, ...]
    counterparty_reputation: Optional[int] = None

    @property
    def batches(self) -> List[Tuple[ProvenanceEvent, ...]]:
        return [r.events for r in self.results]

    @property
    def dropped_count(self) -> int:
        return sum(r.dropped_count for r in self.results)


class EventNormalizer:
    """
    Normalizes raw ledger records into ProvenanceEvents.

    Records may be the dataclasses from ledger_adapters.models or
    plain mappings using the ledger's field names.
    """

    def __init__(self, config: Optional[ProvenanceConfig] = None):
        self.config = config or ProvenanceConfig()
        self._converters: Dict[EventKind, Callable[[Any, datetime, int], List[ProvenanceEvent]]] = {
            EventKind.REGISTRATION: self._from_registration,
            EventKind.CUSTODY_TRANSFER: self._from_transfer,
            EventKind.VERIFICATION_OUTCOME: self._from_verification,
            EventKind.DISPUTE: self._from_dispute,
            EventKind.ORACLE_ATTESTATION: self._from_attestation,
        }

    # --------------------------------------------------------
    # Public API
    # --------------------------------------------------------

    def normalize(self, source_records: Iterable[Any], kind: EventKind) -> NormalizationResult:
        """
        Normalize one source's records.

        Args:
            source_records: Raw records of a single kind
            kind: The kind of all records in the batch

        Returns:
            NormalizationResult with events and the dropped count
        """
        converter = self._converters[kind]
        events: List[ProvenanceEvent] = []
        dropped: List[str] = []

        for index, raw in enumerate(source_records):
            try:
                record = self._coerce(raw, kind)
                timestamp = resolve_timestamp(
                    self._timestamp_of(record, kind),
                    self.config.millisecond_threshold,
                )
                converted = converter(record, timestamp, index)
            except (TypeError, ValueError, AttributeError) as e:
                dropped.append(f"{kind.value}[{index}]: {e}")
                continue

            events.extend(converted)

        if dropped:
            logger.warning(f"Dropped {len(dropped)} {kind.value} record(s): {'; '.join(dropped)}")

        return NormalizationResult(
            kind=kind,
            events=tuple(events),
            dropped_count=len(dropped),
            dropped_reasons=tuple(dropped),
        )

    def normalize_bundle(self, bundle: LedgerRecordBundle) -> NormalizedBundle:
        """Normalize everything fetched for one product."""
        results = (
            self.normalize([bundle.product], EventKind.REGISTRATION),
            self.normalize(bundle.history, EventKind.CUSTODY_TRANSFER),
            self.normalize(bundle.verifications, EventKind.VERIFICATION_OUTCOME),
            self.normalize(bundle.disputes, EventKind.DISPUTE),
            self.normalize(bundle.attestations, EventKind.ORACLE_ATTESTATION),
        )
        return NormalizedBundle(
            snapshot=self.build_snapshot(bundle.product),
            results=results,
            counterparty_reputation=bundle.counterparty_reputation,
        )

    def build_snapshot(self, product: ProductRecord) -> ProductSnapshot:
        """
        Build the ProductSnapshot from the registry record.

        Raises:
            DataIncompleteError: If the status code is unknown
        """
        try:
            status = ProductStatus(product.status)
        except ValueError:
            raise DataIncompleteError(
                f"Unknown product status code {product.status}",
                product_id=product.product_id,
            )

        try:
            registered_at: Optional[datetime] = resolve_timestamp(
                product.registered_at, self.config.millisecond_threshold
            )
        except InvalidTimestampError:
            registered_at = None

        return ProductSnapshot(
            product_id=product.product_id,
            manufacturer=product.manufacturer,
            current_owner=product.current_owner,
            status=status,
            registered_at=registered_at,
            metadata_uri=product.metadata_uri,
        )

    # --------------------------------------------------------
    # Record coercion
    # --------------------------------------------------------

    @staticmethod
    def _coerce(raw: Any, kind: EventKind) -> Any:
        if not isinstance(raw, Mapping):
            return raw
        if kind == EventKind.REGISTRATION:
            return ProductRecord.from_dict(str(raw.get("productId", raw.get("product_id", ""))), raw)
        if kind == EventKind.CUSTODY_TRANSFER:
            return CustodyTransferRecord.from_dict(raw)
        if kind == EventKind.VERIFICATION_OUTCOME:
            return VerificationAttemptRecord.from_dict(raw)
        if kind == EventKind.DISPUTE:
            return DisputeRecord.from_dict(raw)
        return OracleAttestationRecord.from_dict(raw)

    @staticmethod
    def _require_identity(value: Any, field_name: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"missing {field_name} ({value!r})")
        return value

    @staticmethod
    def _timestamp_of(record: Any, kind: EventKind) -> Any:
        if kind == EventKind.REGISTRATION:
            return record.registered_at
        if kind == EventKind.DISPUTE:
            return record.created_at
        return record.timestamp

    # --------------------------------------------------------
    # Converters
    # --------------------------------------------------------

    def _from_registration(self, record: ProductRecord, timestamp: datetime, index: int) -> List[ProvenanceEvent]:
        return [ProvenanceEvent(
            kind=EventKind.REGISTRATION,
            timestamp=timestamp,
            actor=self._require_identity(record.manufacturer, "manufacturer"),
            payload={"product_id": record.product_id, "metadata_uri": record.metadata_uri},
            source_order=index,
        )]

    def _from_transfer(self, record: CustodyTransferRecord, timestamp: datetime, index: int) -> List[ProvenanceEvent]:
        sender = self._require_identity(record.from_address, "from address")
        recipient = self._require_identity(record.to_address, "to address")
        events = [ProvenanceEvent(
            kind=EventKind.CUSTODY_TRANSFER,
            timestamp=timestamp,
            actor=sender,
            counterparty=recipient,
            payload={"location": record.location, "verification_hash": record.verification_hash},
            source_order=index,
        )]

        if record.location == self.config.verification_sentinel:
            events.append(ProvenanceEvent(
                kind=EventKind.VERIFICATION_OUTCOME,
                timestamp=timestamp,
                actor=sender,
                counterparty=recipient,
                payload={
                    "verdict": True,
                    "fee": 0,
                    "request_id": None,
                    "verification_hash": record.verification_hash,
                },
                source_order=index,
                synthetic=True,
            ))

        return events

    def _from_verification(self, record: VerificationAttemptRecord, timestamp: datetime, index: int) -> List[ProvenanceEvent]:
        if not isinstance(record.verifier, str):
            raise TypeError(f"verifier must be a string, got {type(record.verifier).__name__}")

        # no verifier assigned yet: the result flag carries no verdict
        pending = not record.verifier.strip()
        return [ProvenanceEvent(
            kind=EventKind.VERIFICATION_OUTCOME,
            timestamp=timestamp,
            actor=record.verifier,
            counterparty=record.requester or None,
            payload={
                "verdict": None if pending else bool(record.result),
                "pending": pending,
                "fee": record.fee,
                "request_id": record.request_id,
            },
            source_order=index,
        )]

    def _from_dispute(self, record: DisputeRecord, timestamp: datetime, index: int) -> List[ProvenanceEvent]:
        resolved = record.status != DisputeStatus.ACTIVE or bool(record.resolved_at)
        return [ProvenanceEvent(
            kind=EventKind.DISPUTE,
            timestamp=timestamp,
            actor=self._require_identity(record.initiator, "initiator"),
            counterparty=record.respondent or None,
            payload={
                "dispute_id": record.dispute_id,
                "description": record.description,
                "status": record.status,
                "votes_for": record.votes_for,
                "votes_against": record.votes_against,
                "resolved": resolved,
            },
            source_order=index,
        )]

    def _from_attestation(self, record: OracleAttestationRecord, timestamp: datetime, index: int) -> List[ProvenanceEvent]:
        return [ProvenanceEvent(
            kind=EventKind.ORACLE_ATTESTATION,
            timestamp=timestamp,
            actor=self._require_identity(record.signer, "signer"),
            payload={
                "request_id": record.request_id,
                "verdict": bool(record.verdict),
                "weight": record.weight,
                "evidence_uri": record.evidence_uri,
            },
            source_order=index,
        )]


def normalize(
    source_records: Iterable[Any],
    kind: EventKind,
    config: Optional[ProvenanceConfig] = None,
) -> NormalizationResult:
    """Convenience wrapper around EventNormalizer.normalize."""
    return EventNormalizer(config).normalize(source_records, kind)
