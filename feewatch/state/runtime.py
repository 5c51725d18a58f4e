"""
Runtime for the fee refresh lifecycle.

``RefreshController`` owns the refresh context and is its only mutator. Events
are queued in a mailbox and processed one at a time, each transition running
to completion (including its timer and fetch side effects) before the next
event is taken. Fetch outcomes and timer firings come back through the same
mailbox, stamped with the attempt id they belong to.
"""

import asyncio
import itertools
from collections import deque
from typing import Any, Awaitable, Callable, Optional

import structlog

from ..data.models import Fees
from ..errors import FetchError
from ..logging.config import get_fetch_logger, get_state_logger, log_state_transition
from ..models.async_value import Failed, last_value, status_of
from ..utils.timers import TimerHandle, Timers
from .machine import eval_refresh_event
from .models import (
    Endpoint,
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

logger = structlog.get_logger(__name__)
state_logger = get_state_logger(__name__)
fetch_logger = get_fetch_logger(__name__)

FetchFn = Callable[[Endpoint], Awaitable[Fees]]
Listener = Callable[[RefreshState, RefreshContext], None]

_controller_ids = itertools.count(1)


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


def _running_loop() -> asyncio.AbstractEventLoop:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        raise RuntimeError("Starting a fetch requires a running event loop") from None


class RefreshController:
    """Drives fetch attempts, retry backoff and periodic re-polling for one value."""

    def __init__(
        self,
        fetch: FetchFn,
        timers: Timers,
        endpoint: Endpoint,
        params: Optional[RefreshParameters] = None,
        controller_id: Optional[str] = None
    ):
        self.logger = logger
        self.params = params or RefreshParameters()
        self.controller_id = controller_id or f"refresh-{next(_controller_ids)}"

        self._fetch = fetch
        self._timers = timers
        self._state = RefreshState.IDLE
        self._context = RefreshContext(endpoint=endpoint)

        self._mailbox: deque = deque()
        self._processing = False
        self._closed = False

        self._attempt_id = 0
        self._fetch_task: Optional[asyncio.Task] = None
        self._poll_timer: Optional[TimerHandle] = None
        self._retry_timer: Optional[TimerHandle] = None

        self._listeners: list[Listener] = []

    @property
    def state(self) -> RefreshState:
        return self._state

    @property
    def context(self) -> RefreshContext:
        return self._context

    @property
    def attempt_id(self) -> int:
        """Id of the most recently issued fetch attempt (0 before the first)."""
        return self._attempt_id

    @property
    def closed(self) -> bool:
        return self._closed

    def load(self) -> None:
        """
        Request a fetch now, superseding any attempt or backoff in progress.

        Must be called from code running on an event loop.

        Raises:
            RuntimeError: If no event loop is running; state is left unchanged
        """
        self.send(Load())

    def change_endpoint(self, endpoint: Endpoint) -> None:
        self.send(EndpointChanged(endpoint))

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener called with (state, context) after every transition.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def send(self, event: RefreshEvent) -> None:
        """
        Queue an event and process the mailbox unless already processing.

        Events sent from inside a transition (or a listener) are handled after
        the current one completes.
        """
        if self._closed:
            self.logger.debug(
                "Dropping event for closed controller",
                controller_id=self.controller_id,
                event=type(event).__name__
            )
            return

        self._mailbox.append(event)
        if self._processing:
            return

        self._processing = True
        try:
            while self._mailbox and not self._closed:
                self._process(self._mailbox.popleft())
        finally:
            self._processing = False

    def close(self) -> None:
        """Cancel timers and any in-flight fetch; later events are dropped."""
        if self._closed:
            return

        self._closed = True
        self._mailbox.clear()
        self._cancel_poll_timer()
        self._cancel_retry_timer()
        self._cancel_fetch_task()
        self._listeners.clear()

        self.logger.info(
            "Refresh controller closed",
            controller_id=self.controller_id,
            final_state=self._state.value
        )

    def snapshot(self) -> dict[str, Any]:
        """Plain-data view of the current state for observers."""
        fees = self._context.fees
        current = last_value(fees)
        return {
            "controller_id": self.controller_id,
            "state": self._state.value,
            "endpoint": self._context.endpoint,
            "ticks": self._context.ticks,
            "retries": self._context.retries,
            "fees": {
                "status": status_of(fees),
                "value": current.to_dict() if current is not None else None,
                "error": str(fees.error) if isinstance(fees, Failed) else None,
            },
        }

    def _process(self, event: RefreshEvent) -> None:
        transition = eval_refresh_event(
            self._state, self._context, event, self.params, self._attempt_id
        )
        if transition is None:
            return

        # Must fail before any mutation
        loop = _running_loop() if transition.start_fetch else None

        from_state = self._state
        self._exit_state(from_state, transition)

        self._state = transition.new_state
        self._context = transition.context

        log_state_transition(
            state_logger,
            controller_id=self.controller_id,
            from_state=from_state.value,
            to_state=transition.new_state.value,
            trigger=transition.trigger,
            context={
                "endpoint": self._context.endpoint,
                "fees": status_of(self._context.fees),
                "ticks": self._context.ticks,
                "retries": self._context.retries,
                "retry_delay_ms": transition.retry_delay_ms,
            }
        )

        self._enter_state(from_state, transition, loop)
        self._notify()

    def _exit_state(self, from_state: RefreshState, transition: StateTransition) -> None:
        if from_state == transition.new_state and not transition.start_fetch:
            return

        if from_state == RefreshState.POLLING:
            self._cancel_poll_timer()
        elif from_state == RefreshState.RETRY_PENDING:
            self._cancel_retry_timer()
        elif from_state == RefreshState.FETCH_IN_FLIGHT:
            self._cancel_fetch_task()

    def _enter_state(
        self,
        from_state: RefreshState,
        transition: StateTransition,
        loop: Optional[asyncio.AbstractEventLoop] = None
    ) -> None:
        if transition.start_fetch:
            self._start_fetch(loop)
            return

        if transition.new_state == from_state:
            return

        if transition.new_state == RefreshState.POLLING:
            interval = self.params.poll_interval_ms / 1000
            self._poll_timer = self._timers.call_every(interval, lambda: self.send(Tick()))
        elif transition.new_state == RefreshState.RETRY_PENDING:
            delay = (transition.retry_delay_ms or 0) / 1000
            self._retry_timer = self._timers.call_later(delay, lambda: self.send(RetryElapsed()))

    def _start_fetch(self, loop: asyncio.AbstractEventLoop) -> None:
        self._attempt_id += 1
        attempt_id = self._attempt_id
        endpoint = self._context.endpoint

        fetch_logger.debug(
            "Starting fetch attempt",
            controller_id=self.controller_id,
            attempt_id=attempt_id,
            endpoint=endpoint,
            retries=self._context.retries
        )

        self._fetch_task = loop.create_task(self._run_fetch(attempt_id, endpoint))

    async def _run_fetch(self, attempt_id: int, endpoint: Endpoint) -> None:
        try:
            fees = await self._fetch(endpoint)
        except FetchError as e:
            fetch_logger.warning(
                "Fetch attempt failed",
                controller_id=self.controller_id,
                attempt_id=attempt_id,
                endpoint=endpoint,
                error=str(e)
            )
            self.send(FetchFailed(attempt_id, e))
        except Exception as e:
            # Unknown error - treat as retryable fetch failure
            fetch_logger.warning(
                "Fetch attempt raised unexpected error",
                controller_id=self.controller_id,
                attempt_id=attempt_id,
                endpoint=endpoint,
                error=str(e),
                error_type=type(e).__name__
            )
            self.send(FetchFailed(
                attempt_id,
                FetchError(f"Unexpected error: {e}", endpoint=endpoint, cause=e)
            ))
        else:
            self.send(FetchSucceeded(attempt_id, fees))

    def _cancel_poll_timer(self) -> None:
        if self._poll_timer is not None:
            self._poll_timer.cancel()
            self._poll_timer = None

    def _cancel_retry_timer(self) -> None:
        if self._retry_timer is not None:
            self._retry_timer.cancel()
            self._retry_timer = None

    def _cancel_fetch_task(self) -> None:
        task = self._fetch_task
        self._fetch_task = None
        if task is None or task.done():
            return

        # The task delivering its own result is finishing on its own
        if task is not _current_task():
            task.cancel()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._state, self._context)
            except Exception:
                self.logger.exception(
                    "Refresh listener failed",
                    controller_id=self.controller_id,
                    state=self._state.value
                )
