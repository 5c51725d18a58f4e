"""
Fetch error classifications for fee-estimate retrieval.

Every fetch failure is treated as atomic and retryable by the refresh
controller; the subclasses only carry extra detail for rendering.
"""

from typing import Any, Optional


class FetchError(Exception):
    """Base class for failures to obtain a fee-estimate snapshot."""

    def __init__(self, message: str, endpoint: Optional[str] = None,
                 cause: Optional[BaseException] = None,
                 context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.endpoint = endpoint
        self.cause = cause
        self.context = context or {}
        self.recoverable = True

    def __str__(self) -> str:
        if self.endpoint:
            return f"{self.message} (endpoint: {self.endpoint})"
        return self.message


class FetchTransportError(FetchError):
    """Network, timeout or HTTP status failure."""

    def __init__(self, message: str, status_code: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.status_code = status_code


class FetchParseError(FetchError):
    """Response arrived but could not be turned into fees."""

    def __init__(self, message: str, raw_data: Optional[str] = None,
                 missing_fields: Optional[list] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.raw_data = raw_data
        self.missing_fields = missing_fields or []
