"""
Parsers converting upstream fee-estimate payloads into ``Fees``.

Two payload formats are supported:

- ``mempool``: mempool.space ``/api/v1/fees/recommended``, an object with
  ``fastestFee``, ``halfHourFee``, ``hourFee``, ``economyFee`` and
  ``minimumFee`` keys.
- ``esplora``: Esplora ``/api/fee-estimates``, an object mapping confirmation
  targets (in blocks) to fee rates.
"""

import math
from datetime import datetime
from typing import Any, Optional, Union

import orjson

from ..errors import FetchParseError
from .models import Fees

MEMPOOL_FIELDS = {
    "fastestFee": "fastest_fee",
    "halfHourFee": "half_hour_fee",
    "hourFee": "hour_fee",
    "economyFee": "economy_fee",
    "minimumFee": "minimum_fee",
}

# Confirmation target (blocks) used for each Fees field
ESPLORA_TARGETS = {
    "fastest_fee": 1,
    "half_hour_fee": 3,
    "hour_fee": 6,
    "economy_fee": 144,
}

PAYLOAD_FORMATS = ("mempool", "esplora")


def parse_json_payload(raw_data: Union[bytes, str], endpoint: Optional[str] = None) -> Any:
    """
    Parse raw JSON into Python objects.

    Raises:
        FetchParseError: If the body is not valid JSON
    """
    try:
        return orjson.loads(raw_data)
    except orjson.JSONDecodeError as e:
        preview = raw_data[:200] if isinstance(raw_data, str) else raw_data[:200].decode("utf-8", "replace")
        raise FetchParseError(f"Invalid JSON: {e}", raw_data=preview, endpoint=endpoint)


def _parse_rate(value: Any, field: str, endpoint: Optional[str]) -> float:
    if isinstance(value, bool):
        raise FetchParseError(f"Invalid fee rate for {field}: {value!r}", endpoint=endpoint)
    try:
        rate = float(value)
    except (TypeError, ValueError):
        raise FetchParseError(f"Invalid fee rate for {field}: {value!r}", endpoint=endpoint)

    if rate < 0 or not math.isfinite(rate):
        raise FetchParseError(f"Invalid fee rate for {field}: {value!r}", endpoint=endpoint)
    return rate


def parse_mempool_fees(
    payload: Any,
    endpoint: Optional[str] = None,
    fetched_at: Optional[datetime] = None
) -> Fees:
    """Parse a mempool.space recommended-fees object."""
    if not isinstance(payload, dict):
        raise FetchParseError(
            f"Expected JSON object, got {type(payload).__name__}", endpoint=endpoint
        )

    missing = [key for key in MEMPOOL_FIELDS if key not in payload]
    if missing:
        raise FetchParseError(
            f"Fee payload missing fields: {', '.join(missing)}",
            missing_fields=missing,
            endpoint=endpoint
        )

    rates = {
        attr: _parse_rate(payload[key], key, endpoint)
        for key, attr in MEMPOOL_FIELDS.items()
    }
    return Fees(endpoint=endpoint, fetched_at=fetched_at, **rates)


def parse_esplora_fees(
    payload: Any,
    endpoint: Optional[str] = None,
    fetched_at: Optional[datetime] = None
) -> Fees:
    """
    Parse an Esplora fee-estimates object.

    Each field uses the estimate for the smallest available target that is
    at least the wanted one, falling back to the largest target published.
    ``minimum_fee`` is the lowest rate in the payload.
    """
    if not isinstance(payload, dict) or not payload:
        raise FetchParseError("Expected non-empty JSON object of fee estimates", endpoint=endpoint)

    estimates: dict[int, float] = {}
    for key, value in payload.items():
        try:
            target = int(key)
        except (TypeError, ValueError):
            raise FetchParseError(f"Invalid confirmation target: {key!r}", endpoint=endpoint)
        estimates[target] = _parse_rate(value, str(key), endpoint)

    targets = sorted(estimates)

    def pick(wanted: int) -> float:
        for target in targets:
            if target >= wanted:
                return estimates[target]
        return estimates[targets[-1]]

    rates = {attr: pick(wanted) for attr, wanted in ESPLORA_TARGETS.items()}
    return Fees(
        minimum_fee=min(estimates.values()),
        endpoint=endpoint,
        fetched_at=fetched_at,
        **rates
    )


def parse_fee_payload(
    raw_data: Union[bytes, str],
    payload_format: str = "mempool",
    endpoint: Optional[str] = None,
    fetched_at: Optional[datetime] = None
) -> Fees:
    """
    Parse a raw response body in the given payload format.

    Raises:
        FetchParseError: On invalid JSON, unknown format or bad fields
    """
    payload = parse_json_payload(raw_data, endpoint=endpoint)

    if payload_format == "mempool":
        return parse_mempool_fees(payload, endpoint=endpoint, fetched_at=fetched_at)
    if payload_format == "esplora":
        return parse_esplora_fees(payload, endpoint=endpoint, fetched_at=fetched_at)

    raise FetchParseError(f"Unknown payload format: {payload_format}", endpoint=endpoint)
