"""
Core refresh state machine logic.

This module implements the transition table for the fee refresh lifecycle as
pure functions: given the current state, context and an event it returns the
transition to apply, or ``None`` when the event is ignored. Timers, tasks and
logging of applied transitions are the runtime's job.
"""

import math
from typing import Optional

from ..logging.config import get_state_logger
from ..models.async_value import AsyncValue, fail, is_loading, succeed, to_loading
from .models import (
    EndpointChanged,
    FetchFailed,
    FetchSucceeded,
    Load,
    RefreshContext,
    RefreshEvent,
    RefreshParameters,
    RefreshState,
    RetryElapsed,
    StateTransition,
    Tick,
)

state_logger = get_state_logger(__name__)


def check_retry(context: RefreshContext, cfg: RefreshParameters) -> bool:
    """A failed attempt may be retried."""
    return context.retries < cfg.max_retries


def check_last_retry(context: RefreshContext, cfg: RefreshParameters) -> bool:
    """Retries are exhausted; the failure becomes visible."""
    return context.retries >= cfg.max_retries


def check_tick(context: RefreshContext, cfg: RefreshParameters) -> bool:
    """The incoming tick stays within the poll span."""
    return (context.ticks + 1) * cfg.poll_interval_ms < cfg.max_poll_span_ms


def check_max_tick(context: RefreshContext, cfg: RefreshParameters) -> bool:
    """The incoming tick reaches the poll span and forces a re-fetch."""
    return (context.ticks + 1) * cfg.poll_interval_ms >= cfg.max_poll_span_ms


def calc_retry_delay_ms(retries: int, cfg: RefreshParameters) -> int:
    """Linear backoff: retry N waits N * retry_delay_ms."""
    return retries * cfg.retry_delay_ms


def calc_ticks_before_refresh(cfg: RefreshParameters) -> int:
    """Number of ticks spent in polling before a forced re-fetch."""
    return max(1, math.ceil(cfg.max_poll_span_ms / cfg.poll_interval_ms))


def reload_fees(fees: AsyncValue) -> AsyncValue:
    """Loading for a new attempt; a value already loading keeps its previous."""
    if is_loading(fees):
        return fees
    return to_loading(fees)


def begin_fetch(context: RefreshContext, trigger: str) -> StateTransition:
    """Enter FETCH_IN_FLIGHT for a fresh cycle, keeping the last good value."""
    return StateTransition(
        new_state=RefreshState.FETCH_IN_FLIGHT,
        context=context.with_changes(
            fees=reload_fees(context.fees),
            retries=0,
            ticks=0
        ),
        trigger=trigger,
        start_fetch=True
    )


def eval_refresh_event(
    state: RefreshState,
    context: RefreshContext,
    event: RefreshEvent,
    cfg: RefreshParameters,
    current_attempt: int = 0
) -> Optional[StateTransition]:
    """
    Evaluate one event against the refresh transition table.

    Args:
        state: Current controller state
        context: Current controller context
        event: Incoming event
        cfg: Retry and polling parameters
        current_attempt: Id of the fetch attempt the controller is waiting on

    Returns:
        StateTransition if the event is handled, None if it is ignored
    """
    # Endpoint changes apply in every state and never start a fetch
    if isinstance(event, EndpointChanged):
        return StateTransition(
            new_state=state,
            context=context.with_changes(endpoint=event.endpoint),
            trigger="endpoint_changed"
        )

    # A load supersedes whatever is in progress
    if isinstance(event, Load):
        return begin_fetch(context, trigger="load")

    if isinstance(event, Tick):
        return _eval_tick(state, context, cfg)

    if isinstance(event, (FetchSucceeded, FetchFailed)):
        if state != RefreshState.FETCH_IN_FLIGHT or event.attempt_id != current_attempt:
            state_logger.debug(
                "Dropping stale fetch result",
                state=state.value,
                attempt_id=event.attempt_id,
                current_attempt=current_attempt
            )
            return None

        if isinstance(event, FetchSucceeded):
            return StateTransition(
                new_state=RefreshState.POLLING,
                context=context.with_changes(fees=succeed(event.fees), retries=0),
                trigger="fetch_succeeded"
            )

        return _eval_fetch_failure(context, event, cfg)

    if isinstance(event, RetryElapsed):
        if state != RefreshState.RETRY_PENDING:
            return None
        return StateTransition(
            new_state=RefreshState.FETCH_IN_FLIGHT,
            context=context,
            trigger="retry_elapsed",
            start_fetch=True
        )

    return None


def _eval_tick(
    state: RefreshState,
    context: RefreshContext,
    cfg: RefreshParameters
) -> Optional[StateTransition]:
    """Handle a poll tick; ticks outside POLLING are ignored."""
    if state != RefreshState.POLLING:
        state_logger.debug("Ignoring tick outside polling", state=state.value)
        return None

    if check_max_tick(context, cfg):
        return StateTransition(
            new_state=RefreshState.FETCH_IN_FLIGHT,
            context=context.with_changes(fees=reload_fees(context.fees), ticks=0),
            trigger="max_tick",
            start_fetch=True
        )

    return StateTransition(
        new_state=RefreshState.POLLING,
        context=context.with_changes(ticks=context.ticks + 1),
        trigger="tick"
    )


def _eval_fetch_failure(
    context: RefreshContext,
    event: FetchFailed,
    cfg: RefreshParameters
) -> StateTransition:
    """Schedule a retry while any remain, otherwise surface the failure."""
    if check_retry(context, cfg):
        retries = context.retries + 1
        return StateTransition(
            new_state=RefreshState.RETRY_PENDING,
            context=context.with_changes(retries=retries),
            trigger="fetch_failed",
            retry_delay_ms=calc_retry_delay_ms(retries, cfg)
        )

    return StateTransition(
        new_state=RefreshState.IDLE,
        context=context.with_changes(fees=fail(event.error)),
        trigger="retries_exhausted"
    )
