"""
Ledger Adapter Exceptions.

Failures of the external query layer, kept apart from the
data-quality errors raised by the provenance core.
"""

from typing import Any, Dict, Optional

from core.exceptions import ErrorKind, ProvenanceError, Severity


class LedgerAdapterError(ProvenanceError):
    """Base exception for all ledger adapter errors."""

    kind = ErrorKind.LEDGER_UNAVAILABLE
    default_severity = Severity.HIGH

    def __init__(
        self,
        message: str,
        adapter_name: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = dict(context or {})
        if adapter_name:
            context["adapter_name"] = adapter_name
        super().__init__(message, context=context, cause=original_error)
        self.adapter_name = adapter_name
        self.original_error = original_error

    def __str__(self) -> str:
        source = f"{self.adapter_name}: " if self.adapter_name else ""
        if self.original_error is None:
            return f"{source}{self.message}"
        return f"{source}{self.message} <- {type(self.original_error).__name__}: {self.original_error}"


class LedgerFetchError(LedgerAdapterError):
    """Error while fetching from the ledger gateway."""

    def __init__(
        self,
        message: str,
        adapter_name: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        request_url: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        context: Dict[str, Any] = {}
        if status_code is not None:
            context["status_code"] = status_code
        if request_url:
            context["request_url"] = request_url
        if response_body:
            context["response_body"] = response_body[:500]
        super().__init__(message, adapter_name, original_error, context)
        self.status_code = status_code
        self.response_body = response_body
        self.request_url = request_url


class LedgerRateLimitError(LedgerAdapterError):
    """The gateway refused the request due to rate limiting."""

    def __init__(
        self,
        message: str,
        adapter_name: Optional[str] = None,
        retry_after_seconds: Optional[int] = None,
    ) -> None:
        context = {"retry_after_seconds": retry_after_seconds} if retry_after_seconds else {}
        super().__init__(message, adapter_name, context=context)
        self.retry_after_seconds = retry_after_seconds
