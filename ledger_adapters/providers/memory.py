"""
In-memory ledger source.

Serves records from dictionaries. Used by tests and by callers that
already hold a ledger export.
"""

from typing import Dict, List, Optional

from ledger_adapters.base import LedgerDataSource
from ledger_adapters.models import (
    CustodyTransferRecord,
    DisputeRecord,
    OracleAttestationRecord,
    ProductRecord,
    VerificationAttemptRecord,
)


class InMemoryLedgerSource(LedgerDataSource):
    """Ledger source backed by plain dictionaries keyed by product id."""

    def __init__(self) -> None:
        self._products: Dict[str, ProductRecord] = {}
        self._history: Dict[str, List[CustodyTransferRecord]] = {}
        self._verifications: Dict[str, List[VerificationAttemptRecord]] = {}
        self._disputes: Dict[str, List[DisputeRecord]] = {}
        self._attestations: Dict[str, List[OracleAttestationRecord]] = {}
        self._reputation: Dict[str, int] = {}
        self.query_count = 0

    @property
    def name(self) -> str:
        return "memory"

    # --------------------------------------------------------
    # Loading
    # --------------------------------------------------------

    def add_product(self, product: ProductRecord) -> None:
        self._products[product.product_id] = product

    def add_transfer(self, product_id: str, record: CustodyTransferRecord) -> None:
        self._history.setdefault(product_id, []).append(record)

    def add_verification(self, record: VerificationAttemptRecord) -> None:
        self._verifications.setdefault(record.product_id, []).append(record)

    def add_dispute(self, record: DisputeRecord) -> None:
        self._disputes.setdefault(record.product_id, []).append(record)

    def add_attestation(self, record: OracleAttestationRecord) -> None:
        self._attestations.setdefault(record.product_id, []).append(record)

    def set_reputation(self, identity: str, score: int) -> None:
        self._reputation[identity] = score

    # --------------------------------------------------------
    # Queries
    # --------------------------------------------------------

    async def get_product(self, product_id: str) -> Optional[ProductRecord]:
        self.query_count += 1
        return self._products.get(product_id)

    async def get_product_history(self, product_id: str) -> List[CustodyTransferRecord]:
        self.query_count += 1
        return list(self._history.get(product_id, []))

    async def get_verification_attempts(self, product_id: str) -> List[VerificationAttemptRecord]:
        self.query_count += 1
        return list(self._verifications.get(product_id, []))

    async def get_disputes(self, product_id: str) -> List[DisputeRecord]:
        self.query_count += 1
        return list(self._disputes.get(product_id, []))

    async def get_oracle_attestations(self, product_id: str) -> List[OracleAttestationRecord]:
        self.query_count += 1
        return list(self._attestations.get(product_id, []))

    async def get_reputation(self, identity: str) -> Optional[int]:
        self.query_count += 1
        return self._reputation.get(identity)
