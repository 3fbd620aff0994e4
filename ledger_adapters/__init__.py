"""
Ledger Adapters - Read-only access to the external ledger query layer.

The engine never talks to the ledger directly; it receives a
LedgerDataSource handle and asks it for one product's records.
"""

from ledger_adapters.base import LedgerDataSource
from ledger_adapters.config import GatewayConfig
from ledger_adapters.exceptions import (
    LedgerAdapterError,
    LedgerFetchError,
    LedgerRateLimitError,
)
from ledger_adapters.models import (
    CustodyTransferRecord,
    DisputeRecord,
    LedgerRecordBundle,
    OracleAttestationRecord,
    ProductRecord,
    VerificationAttemptRecord,
)
from ledger_adapters.providers import HttpLedgerGatewaySource, InMemoryLedgerSource


__all__ = [
    "LedgerDataSource",
    "GatewayConfig",
    "LedgerAdapterError",
    "LedgerFetchError",
    "LedgerRateLimitError",
    "CustodyTransferRecord",
    "DisputeRecord",
    "LedgerRecordBundle",
    "OracleAttestationRecord",
    "ProductRecord",
    "VerificationAttemptRecord",
    "HttpLedgerGatewaySource",
    "InMemoryLedgerSource",
]
