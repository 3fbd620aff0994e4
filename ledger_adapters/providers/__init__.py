"""
Providers package - Ledger data source implementations.
"""

from ledger_adapters.providers.http_gateway import HttpLedgerGatewaySource
from ledger_adapters.providers.memory import InMemoryLedgerSource


__all__ = [
    "HttpLedgerGatewaySource",
    "InMemoryLedgerSource",
]
