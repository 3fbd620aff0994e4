"""
HTTP ledger gateway source.

Reads product, custody and event-filter data from a JSON gateway that
indexes the ledger contracts. Responses are either the bare payload or
wrapped as {"result": ...}.

Endpoints (relative to base_url):
    GET /products/{id}
    GET /products/{id}/history
    GET /products/{id}/verifications
    GET /products/{id}/disputes
    GET /products/{id}/attestations
    GET /retailers/{address}
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, TypeVar

import aiohttp

from ledger_adapters.base import LedgerDataSource
from ledger_adapters.config import GatewayConfig
from ledger_adapters.exceptions import LedgerFetchError, LedgerRateLimitError
from ledger_adapters.models import (
    CustodyTransferRecord,
    DisputeRecord,
    OracleAttestationRecord,
    ProductRecord,
    VerificationAttemptRecord,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETRY_AFTER_SECONDS = 60


def _retry_after_seconds(header: Optional[str]) -> int:
    """Delay-seconds form of Retry-After; the HTTP-date form falls back to the default."""
    if not header:
        return DEFAULT_RETRY_AFTER_SECONDS
    try:
        return max(0, int(header))
    except ValueError:
        return DEFAULT_RETRY_AFTER_SECONDS


class HttpLedgerGatewaySource(LedgerDataSource):
    """
    Ledger source backed by an HTTP/JSON gateway.

    Features:
    - Bounded retries with exponential backoff
    - No retry on client errors (4xx) or rate limiting
    - Shared or owned aiohttp session
    """

    def __init__(
        self,
        config: Optional[GatewayConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self._config = config or GatewayConfig()
        self._session = session
        self._owns_session = session is None

    @property
    def name(self) -> str:
        return "http_gateway"

    # ─────────────────────────────────────────────────────────────
    # Queries
    # ─────────────────────────────────────────────────────────────

    async def get_product(self, product_id: str) -> Optional[ProductRecord]:
        path = f"/products/{product_id}"
        data = await self._get_json(path, allow_missing=True)
        if data is None:
            return None
        try:
            return ProductRecord.from_dict(product_id, data)
        except (TypeError, ValueError, AttributeError) as e:
            raise LedgerFetchError(
                message=f"Malformed product record for {product_id}: {e}",
                adapter_name=self.name,
                request_url=self._url(path),
                original_error=e,
            )

    async def get_product_history(self, product_id: str) -> List[CustodyTransferRecord]:
        path = f"/products/{product_id}/history"
        return self._convert_rows(path, await self._get_list(path), CustodyTransferRecord.from_dict)

    async def get_verification_attempts(self, product_id: str) -> List[VerificationAttemptRecord]:
        path = f"/products/{product_id}/verifications"
        return self._convert_rows(path, await self._get_list(path), VerificationAttemptRecord.from_dict)

    async def get_disputes(self, product_id: str) -> List[DisputeRecord]:
        path = f"/products/{product_id}/disputes"
        return self._convert_rows(path, await self._get_list(path), DisputeRecord.from_dict)

    async def get_oracle_attestations(self, product_id: str) -> List[OracleAttestationRecord]:
        path = f"/products/{product_id}/attestations"
        return self._convert_rows(path, await self._get_list(path), OracleAttestationRecord.from_dict)

    async def get_reputation(self, identity: str) -> Optional[int]:
        data = await self._get_json(f"/retailers/{identity}", allow_missing=True)
        if not data:
            return None
        score = data.get("reputationScore", data.get("reputation_score"))
        if score is None:
            return None
        try:
            return int(score)
        except (TypeError, ValueError):
            logger.warning(f"[{self.name}] Ignoring non-numeric reputation {score!r} for {identity}")
            return None

    # ─────────────────────────────────────────────────────────────
    # HTTP Helpers
    # ─────────────────────────────────────────────────────────────

    def _convert_rows(self, path: str, rows: List[Any], factory: Callable[[Any], T]) -> List[T]:
        """Convert rows one by one; a malformed row is logged and skipped."""
        records: List[T] = []
        for index, row in enumerate(rows):
            try:
                records.append(factory(row))
            except (TypeError, ValueError, AttributeError) as e:
                logger.warning(f"[{self.name}] Skipping malformed row {index} from {path}: {e}")
        return records

    async def _get_list(self, path: str) -> List[Dict[str, Any]]:
        data = await self._get_json(path)
        if data is None:
            return []
        if not isinstance(data, list):
            raise LedgerFetchError(
                message=f"Expected a list from {path}, got {type(data).__name__}",
                adapter_name=self.name,
                request_url=self._url(path),
            )
        return data

    async def _get_json(self, path: str, allow_missing: bool = False) -> Any:
        """GET with limited retries. Returns None on 404 when allow_missing."""
        last_error: Optional[Exception] = None

        for attempt in range(self._config.max_retries):
            try:
                return await self._make_request(path, allow_missing)

            except LedgerRateLimitError:
                raise

            except LedgerFetchError as e:
                if e.status_code and 400 <= e.status_code < 500:
                    raise
                last_error = e

            except asyncio.TimeoutError as e:
                last_error = e

            if attempt + 1 < self._config.max_retries:
                wait_time = self._config.retry_backoff_base ** attempt
                logger.warning(
                    f"[{self.name}] Retry {attempt + 1}/{self._config.max_retries} "
                    f"for {path} in {wait_time:.1f}s: {last_error}"
                )
                await asyncio.sleep(wait_time)

        raise LedgerFetchError(
            message=f"Failed after {self._config.max_retries} attempts",
            adapter_name=self.name,
            request_url=self._url(path),
            original_error=last_error,
        )

    async def _make_request(self, path: str, allow_missing: bool) -> Any:
        session = await self._get_session()
        url = self._url(path)

        try:
            async with session.get(url) as response:
                if response.status == 404 and allow_missing:
                    return None

                if response.status == 429:
                    raise LedgerRateLimitError(
                        message="Rate limit exceeded",
                        adapter_name=self.name,
                        retry_after_seconds=_retry_after_seconds(response.headers.get("Retry-After")),
                    )

                if response.status >= 400:
                    body = await response.text()
                    raise LedgerFetchError(
                        message=f"HTTP {response.status}",
                        adapter_name=self.name,
                        status_code=response.status,
                        response_body=body,
                        request_url=url,
                    )

                payload = await response.json()

        except aiohttp.ClientError as e:
            raise LedgerFetchError(
                message=f"Connection error: {e}",
                adapter_name=self.name,
                request_url=url,
                original_error=e,
            )

        if isinstance(payload, dict) and "result" in payload:
            return payload["result"]
        return payload

    def _url(self, path: str) -> str:
        return f"{self._config.base_url}{path}"

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._config.timeout_seconds),
                headers=self._get_default_headers(),
            )
            self._owns_session = True
        return self._session

    def _get_default_headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/json",
            "User-Agent": "ProvenanceConfidenceEngine/1.0",
        }
        if self._config.api_key:
            headers["X-API-Key"] = self._config.api_key
        return headers

    async def close(self) -> None:
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
