"""Default configuration parameters for the fee refresh engine."""

from dataclasses import dataclass, field


DEFAULT_ENDPOINTS = {
    "mempool": {
        "url": "https://mempool.space/api/v1/fees/recommended",
        "format": "mempool",
    },
    "mempool_testnet": {
        "url": "https://mempool.space/testnet/api/v1/fees/recommended",
        "format": "mempool",
    },
    "blockstream": {
        "url": "https://blockstream.info/api/fee-estimates",
        "format": "esplora",
    },
}


@dataclass(frozen=True)
class RefreshParams:
    """Retry and polling parameters matching RefreshParameters from state.models."""
    max_retries: int = 2                # Retries after the first failed attempt
    poll_interval_ms: int = 1000        # Tick cadence while polling
    max_poll_span_ms: int = 3000        # Polling span before a forced re-fetch
    retry_delay_ms: int = 1000          # Linear backoff step per retry


@dataclass(frozen=True)
class FetchParams:
    """Upstream fee source parameters."""
    default_endpoint: str = "mempool"
    timeout_seconds: float = 10.0
    user_agent: str = "feewatch/0.1"
    endpoints: dict = field(default_factory=lambda: {
        name: dict(spec) for name, spec in DEFAULT_ENDPOINTS.items()
    })


@dataclass(frozen=True)
class LoggingParams:
    """Logging output parameters."""
    level: str = "INFO"
    format_json: bool = False
    include_timestamp: bool = True


@dataclass(frozen=True)
class DefaultConfig:
    """Complete default configuration."""
    refresh: RefreshParams
    fetch: FetchParams
    logging: LoggingParams


def get_default_config() -> DefaultConfig:
    """Get the default configuration instance."""
    return DefaultConfig(
        refresh=RefreshParams(),
        fetch=FetchParams(),
        logging=LoggingParams(),
    )
