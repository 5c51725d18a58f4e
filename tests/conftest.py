"""Pytest configuration and shared fixtures."""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict

import pytest

from feewatch.data.models import Fees
from feewatch.errors import FetchError
from feewatch.utils.timers import ManualTimers


class FakeFeeSource:
    """
    Fee source whose calls stay pending until the test resolves them.

    Each call records ``(endpoint, future)``; ``resolve``/``reject`` complete
    the most recent call unless an index is given.
    """

    def __init__(self):
        self.calls = []

    async def __call__(self, endpoint: str) -> Fees:
        future = asyncio.get_running_loop().create_future()
        self.calls.append((endpoint, future))
        return await future

    @property
    def endpoints(self):
        return [endpoint for endpoint, _ in self.calls]

    def resolve(self, fees: Fees, index: int = -1) -> None:
        future = self.calls[index][1]
        if not future.done():
            future.set_result(fees)

    def reject(self, error: BaseException, index: int = -1) -> None:
        future = self.calls[index][1]
        if not future.done():
            future.set_exception(error)


async def _settle(rounds: int = 10) -> None:
    """Let pending tasks and callbacks on the running loop run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def make_fees(fastest: float = 20.0, endpoint: str = "mempool") -> Fees:
    return Fees(
        fastest_fee=fastest,
        half_hour_fee=fastest - 5,
        hour_fee=fastest - 10,
        economy_fee=3.0,
        minimum_fee=1.0,
        endpoint=endpoint,
        fetched_at=datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def fake_source() -> FakeFeeSource:
    return FakeFeeSource()


@pytest.fixture
def timers() -> ManualTimers:
    return ManualTimers()


@pytest.fixture
def settle():
    return _settle


@pytest.fixture
def fees_factory():
    return make_fees


@pytest.fixture
def sample_fees() -> Fees:
    return make_fees(20.0)


@pytest.fixture
def fetch_error() -> FetchError:
    return FetchError("HTTP 503: Service Unavailable", endpoint="mempool")


@pytest.fixture
def mempool_payload() -> Dict[str, Any]:
    """Sample mempool.space recommended-fees payload."""
    return {
        "fastestFee": 21,
        "halfHourFee": 15,
        "hourFee": 11,
        "economyFee": 4,
        "minimumFee": 1,
    }


@pytest.fixture
def esplora_payload() -> Dict[str, Any]:
    """Sample Esplora fee-estimates payload."""
    return {
        "1": 25.3,
        "2": 22.1,
        "3": 18.0,
        "4": 16.4,
        "6": 12.2,
        "10": 9.8,
        "144": 3.1,
        "504": 1.6,
        "1008": 1.2,
    }
