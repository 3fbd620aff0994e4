"""
Base Ledger Data Source - Abstract read-only interface to the ledger query layer.

All data sources MUST:
- Be read-only (no transaction submission)
- Return raw records untouched; normalization happens downstream
- Be passed explicitly into the engine (no ambient connection state)
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from core.exceptions import ProductNotFoundError
from ledger_adapters.exceptions import LedgerAdapterError
from ledger_adapters.models import (
    CustodyTransferRecord,
    DisputeRecord,
    LedgerRecordBundle,
    OracleAttestationRecord,
    ProductRecord,
    VerificationAttemptRecord,
)


logger = logging.getLogger(__name__)

# Ledger status code for a product held by a retailer
AT_RETAILER_STATUS = 2


class LedgerDataSource(ABC):
    """
    Abstract base class for ledger data sources.

    Each source must implement the five product queries and the
    reputation lookup. fetch_bundle() issues them concurrently and
    returns one materialized batch.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this source."""
        pass

    @abstractmethod
    async def get_product(self, product_id: str) -> Optional[ProductRecord]:
        """
        Fetch the product registration record.

        Returns:
            ProductRecord, or None if the ledger has no such product
        """
        pass

    @abstractmethod
    async def get_product_history(self, product_id: str) -> List[CustodyTransferRecord]:
        pass

    @abstractmethod
    async def get_verification_attempts(self, product_id: str) -> List[VerificationAttemptRecord]:
        pass

    @abstractmethod
    async def get_disputes(self, product_id: str) -> List[DisputeRecord]:
        pass

    @abstractmethod
    async def get_oracle_attestations(self, product_id: str) -> List[OracleAttestationRecord]:
        pass

    @abstractmethod
    async def get_reputation(self, identity: str) -> Optional[int]:
        """Retailer reputation on the 0-1000 scale, None if unknown."""
        pass

    async def fetch_bundle(self, product_id: str) -> LedgerRecordBundle:
        """
        Fetch everything needed to assess one product.

        The product lookup runs first; the four event queries then run
        concurrently. Reputation is only looked up for products held by
        a retailer, and a failed lookup degrades to "unknown".

        Raises:
            ProductNotFoundError: If the product does not exist
            LedgerAdapterError: If an event query fails or the product
                record is malformed
        """
        product = await self.get_product(product_id)
        if product is None or not product.exists:
            raise ProductNotFoundError(product_id)

        history, verifications, disputes, attestations = await asyncio.gather(
            self.get_product_history(product_id),
            self.get_verification_attempts(product_id),
            self.get_disputes(product_id),
            self.get_oracle_attestations(product_id),
        )

        reputation: Optional[int] = None
        if product.status == AT_RETAILER_STATUS and product.current_owner:
            try:
                reputation = await self.get_reputation(product.current_owner)
            except LedgerAdapterError as e:
                logger.warning(f"[{self.name}] Reputation lookup failed for {product.current_owner}: {e}")

        logger.debug(
            f"[{self.name}] Fetched {product_id}: {len(history)} transfers, "
            f"{len(verifications)} verifications, {len(disputes)} disputes, "
            f"{len(attestations)} attestations"
        )

        return LedgerRecordBundle(
            product=product,
            history=list(history),
            verifications=list(verifications),
            disputes=list(disputes),
            attestations=list(attestations),
            counterparty_reputation=reputation,
        )

    async def close(self) -> None:
        """Release resources held by the source."""
        return None

    async def __aenter__(self) -> "LedgerDataSource":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name={self.name})>"
