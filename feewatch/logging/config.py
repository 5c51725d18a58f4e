"""
structlog setup for feewatch.

Structured events are routed through the standard library ``logging``
module so the level set here applies to every feewatch logger. The state
machine and fetch loggers carry a ``subsystem`` field that downstream
filters can key on.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import FilteringBoundLogger, Processor

from ..errors import ConfigurationError


def _resolve_level(level: str) -> int:
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ConfigurationError(f"Unknown log level: {level}", context={"level": level})
    return resolved


def _build_processors(
    format_json: bool,
    include_timestamp: bool,
    include_caller: bool,
    extra_processors: Optional[list[Processor]]
) -> list[Processor]:
    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
    ]

    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso", utc=True))

    if include_caller:
        processors.append(structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
            ]
        ))

    processors.extend(extra_processors or [])

    # Exceptions from logger.exception() are rendered last, before output
    processors.extend([
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ])

    if format_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    return processors


def configure_logging(
    level: str = "INFO",
    format_json: bool = False,
    include_timestamp: bool = True,
    include_caller: bool = False,
    extra_processors: Optional[list[Processor]] = None
) -> None:
    """
    Route structlog through stdlib logging at the given level.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_json: Emit one JSON object per line instead of console output
        include_timestamp: Add an ISO-8601 UTC ``timestamp`` field
        include_caller: Add ``filename`` and ``lineno`` fields
        extra_processors: Processors run after the standard fields are added

    Raises:
        ConfigurationError: If ``level`` is not a known level name
    """
    log_level = _resolve_level(level)

    logging.basicConfig(stream=sys.stdout, format="%(message)s")
    # basicConfig is a no-op when handlers already exist
    logging.getLogger().setLevel(log_level)

    structlog.configure(
        processors=_build_processors(format_json, include_timestamp, include_caller, extra_processors),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> FilteringBoundLogger:
    """Lazy logger resolved against the configuration in effect at first use."""
    return structlog.get_logger(name)


def get_state_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger specifically configured for state transitions.

    Binding is deferred until first use so module-level loggers pick up
    the configuration applied by configure_logging.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger for state transitions
    """
    return structlog.get_logger(
        name,
        subsystem="state_machine",
        audit_trail=True
    )


def get_fetch_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger for fee fetch attempts and their outcomes.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger for the fetch subsystem
    """
    return structlog.get_logger(name, subsystem="fetch")


def log_state_transition(
    logger: FilteringBoundLogger,
    controller_id: str,
    from_state: str,
    to_state: str,
    trigger: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Emit one ``State transition`` event for an applied transition.

    The controller id, both state names and the trigger are bound as top-level
    fields; ``context`` (counters, fees status, backoff) is nested under a
    single key and omitted when empty.
    """
    bound_logger = logger.bind(
        controller_id=controller_id,
        from_state=from_state,
        to_state=to_state,
        trigger=trigger
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    bound_logger.info("State transition")
