"""
Error classification for the FeeWatch refresh engine.

Fetch errors are recoverable and absorbed by the retry policy; system
failures such as bad configuration are raised to the caller.
"""

from .fetch_errors import (
    FetchError,
    FetchParseError,
    FetchTransportError,
)
from .system_failures import (
    ConfigurationError,
    SystemFailureError,
)

__all__ = [
    # Fetch Errors
    "FetchError",
    "FetchTransportError",
    "FetchParseError",
    # System Failures
    "SystemFailureError",
    "ConfigurationError",
]
