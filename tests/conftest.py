"""
Shared fixtures for the provenance engine test suites.
"""

from datetime import datetime, timedelta, timezone

import pytest

from core.clock import MockClock
from ledger_adapters.models import (
    CustodyTransferRecord,
    LedgerRecordBundle,
    ProductRecord,
)
from ledger_adapters.providers.memory import InMemoryLedgerSource


T0 = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)

MANUFACTURER = "0xMaker"
DISTRIBUTOR = "0xDistributor"
RETAILER = "0xRetailer"


def unix(dt: datetime) -> int:
    return int(dt.timestamp())


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def t0():
    return T0


@pytest.fixture
def clock():
    """Clock frozen at T0."""
    return MockClock(T0)


@pytest.fixture
def make_product():
    """Factory for ProductRecord registered at T0."""
    def _make(product_id="PROD-001", status=0, owner=MANUFACTURER, registered_at=None, exists=True):
        return ProductRecord(
            product_id=product_id,
            manufacturer=MANUFACTURER,
            current_owner=owner,
            status=status,
            registered_at=unix(T0) if registered_at is None else registered_at,
            metadata_uri="ipfs://meta",
            exists=exists,
        )
    return _make


@pytest.fixture
def verification_node_transfer():
    """Transfer to the retailer one day after registration, via the verification node."""
    return CustodyTransferRecord(
        from_address=MANUFACTURER,
        to_address=RETAILER,
        timestamp=unix(T0 + timedelta(days=1)),
        location="Verification Node",
        verification_hash="0xabc",
    )


@pytest.fixture
def single_verification_bundle(make_product, verification_node_transfer):
    """Registration plus one verification-node transfer, product in transit."""
    return LedgerRecordBundle(
        product=make_product(status=1, owner=RETAILER),
        history=[verification_node_transfer],
    )


@pytest.fixture
def memory_source(make_product, verification_node_transfer):
    """In-memory ledger holding one retailer-held product."""
    source = InMemoryLedgerSource()
    source.add_product(make_product(status=2, owner=RETAILER))
    source.add_transfer("PROD-001", verification_node_transfer)
    source.set_reputation(RETAILER, 900)
    return source
