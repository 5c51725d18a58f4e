"""
Main fee refresh engine coordinator.

Wires configuration, logging, the upstream fee source and the refresh
controller together, and exposes the controller's observable state.
"""

import asyncio
from pathlib import Path
from typing import Any, Callable, Optional, Union

import structlog

from .config.defaults import DefaultConfig
from .config.loader import ConfigLoader
from .errors import ConfigurationError
from .logging.config import configure_logging
from .sources.http_source import HttpFeeSource
from .state.models import RefreshContext, RefreshParameters, RefreshState
from .state.runtime import FetchFn, Listener, RefreshController
from .utils.timers import LoopTimers, Timers

logger = structlog.get_logger(__name__)


class FeeWatchEngine:
    """
    Main coordinator for keeping one fee-estimate snapshot fresh.

    Manages the refresh pipeline:
    Config → Fee Source → Refresh Controller → Observers
    """

    def __init__(
        self,
        config_dir: Optional[Union[str, Path]] = None,
        overrides: Optional[dict[str, Any]] = None,
        fetch: Optional[FetchFn] = None,
        timers: Optional[Timers] = None,
        setup_logging: bool = False
    ) -> None:
        """Initialize the engine from configuration."""
        self.logger = logger

        self.config_loader = ConfigLoader.create(Path(config_dir) if config_dir else None)
        self.config: DefaultConfig = self.config_loader.load(overrides)

        if setup_logging:
            configure_logging(
                level=self.config.logging.level,
                format_json=self.config.logging.format_json,
                include_timestamp=self.config.logging.include_timestamp
            )

        refresh = self.config.refresh
        self.params = RefreshParameters(
            max_retries=refresh.max_retries,
            poll_interval_ms=refresh.poll_interval_ms,
            max_poll_span_ms=refresh.max_poll_span_ms,
            retry_delay_ms=refresh.retry_delay_ms
        )

        self.fetch = fetch or HttpFeeSource(self.config.fetch)
        self.controller = RefreshController(
            fetch=self.fetch,
            timers=timers or LoopTimers(),
            endpoint=self.config.fetch.default_endpoint,
            params=self.params
        )

        self.logger.info(
            "Fee watch engine initialized",
            endpoint=self.config.fetch.default_endpoint,
            max_retries=self.params.max_retries,
            poll_interval_ms=self.params.poll_interval_ms
        )

    @property
    def state(self) -> RefreshState:
        return self.controller.state

    @property
    def context(self) -> RefreshContext:
        return self.controller.context

    def start(self) -> None:
        """Issue the first load. Must be called with an event loop running."""
        self.controller.load()

    def refresh(self) -> None:
        self.controller.load()

    def change_endpoint(self, endpoint: str) -> None:
        """
        Switch to another configured endpoint.

        Raises:
            ConfigurationError: If the endpoint is not configured
        """
        if endpoint not in self.config.fetch.endpoints:
            raise ConfigurationError(
                f"Unknown endpoint: {endpoint}",
                context={"known_endpoints": sorted(self.config.fetch.endpoints)}
            )
        self.controller.change_endpoint(endpoint)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self.controller.subscribe(listener)

    def snapshot(self) -> dict[str, Any]:
        return self.controller.snapshot()

    def close(self) -> None:
        self.controller.close()

    async def run_forever(self, stop_event: asyncio.Event) -> None:
        """Start refreshing and keep going until ``stop_event`` is set."""
        self.start()
        try:
            await stop_event.wait()
        finally:
            self.close()
