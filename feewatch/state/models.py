"""
State machine data models for the fee refresh lifecycle.

This module defines immutable data structures for the controller's states,
its context, the events it accepts and the transitions it produces.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Union

from ..data.models import Fees
from ..errors import FetchError
from ..models.async_value import AsyncValue, NotAsked

Endpoint = str

MAX_RETRIES = 2
POLL_INTERVAL_MS = 1000
MAX_POLL_SPAN_MS = 3000
RETRY_DELAY_MS = 1000


class RefreshState(str, Enum):
    """Refresh controller states. There is no terminal state."""
    IDLE = "idle"
    POLLING = "polling"
    FETCH_IN_FLIGHT = "fetch_in_flight"
    RETRY_PENDING = "retry_pending"


@dataclass(frozen=True)
class RefreshParameters:
    """Retry and polling parameters with defaults from the refresh policy."""

    max_retries: int = MAX_RETRIES                  # Retries after a failed attempt
    poll_interval_ms: int = POLL_INTERVAL_MS        # Tick cadence while polling
    max_poll_span_ms: int = MAX_POLL_SPAN_MS        # Span before forced re-fetch
    retry_delay_ms: int = RETRY_DELAY_MS            # Backoff step, multiplied by retry number


@dataclass(frozen=True)
class RefreshContext:
    """The controller's state data."""

    endpoint: Endpoint
    fees: AsyncValue[Fees, FetchError] = field(default_factory=NotAsked)
    ticks: int = 0                                  # Poll intervals elapsed since last fetch
    retries: int = 0                                # Retries spent in the current cycle

    def with_changes(self, **changes) -> "RefreshContext":
        return replace(self, **changes)


@dataclass(frozen=True)
class Load:
    """Request a (re)fetch now."""


@dataclass(frozen=True)
class Tick:
    """One polling interval elapsed."""


@dataclass(frozen=True)
class EndpointChanged:
    """Switch the data source used by subsequent fetches."""
    endpoint: Endpoint


@dataclass(frozen=True)
class FetchSucceeded:
    """Fetch attempt ``attempt_id`` produced fees."""
    attempt_id: int
    fees: Fees


@dataclass(frozen=True)
class FetchFailed:
    """Fetch attempt ``attempt_id`` failed."""
    attempt_id: int
    error: FetchError


@dataclass(frozen=True)
class RetryElapsed:
    """The retry backoff timer fired."""


RefreshEvent = Union[Load, Tick, EndpointChanged, FetchSucceeded, FetchFailed, RetryElapsed]


@dataclass(frozen=True)
class StateTransition:
    """Represents a state machine transition result."""

    # New state information
    new_state: RefreshState
    context: RefreshContext
    trigger: str

    # Side effects requested from the runtime
    start_fetch: bool = False
    retry_delay_ms: Optional[int] = None
