#!/usr/bin/env python3
"""
State Machine Demo - FeeWatch Refresh Engine

This script walks the refresh controller through its lifecycle on a virtual
clock, with a fake fee source that fails on demand:
- IDLE → FETCH_IN_FLIGHT → POLLING
- Forced re-fetch after the poll span
- Retries with linear backoff, then terminal failure
- Recovery through an explicit load

Run: python examples/state_machine_demo.py
"""

import asyncio
from datetime import datetime, timezone

from feewatch.data.models import Fees
from feewatch.errors import FetchTransportError
from feewatch.models.async_value import last_value, status_of
from feewatch.state.machine import calc_ticks_before_refresh
from feewatch.state.models import RefreshContext, RefreshState
from feewatch.state.runtime import RefreshController
from feewatch.utils.timers import ManualTimers


class ScriptedFeeSource:
    """Fee source whose outcomes are scripted ahead of time."""

    def __init__(self):
        self.outcomes = []
        self.calls = 0

    async def __call__(self, endpoint: str) -> Fees:
        self.calls += 1
        outcome = self.outcomes.pop(0) if self.outcomes else "ok"
        if outcome == "fail":
            raise FetchTransportError("HTTP 503: Service Unavailable", status_code=503, endpoint=endpoint)
        rate = 10.0 + self.calls
        return Fees(
            fastest_fee=rate,
            half_hour_fee=rate - 2,
            hour_fee=rate - 4,
            economy_fee=2.0,
            minimum_fee=1.0,
            endpoint=endpoint,
            fetched_at=datetime.now(timezone.utc)
        )


def print_transition(state: RefreshState, context: RefreshContext) -> None:
    fees = last_value(context.fees)
    shown = f"fastest={fees.fastest_fee:g}" if fees else "-"
    print(f"  {state.value:<16} fees={status_of(context.fees):<9} {shown:<14} "
          f"ticks={context.ticks} retries={context.retries}")


async def settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


async def main() -> None:
    timers = ManualTimers()
    source = ScriptedFeeSource()
    controller = RefreshController(fetch=source, timers=timers, endpoint="mempool")
    controller.subscribe(print_transition)

    print("📡 Initial load")
    controller.load()
    await settle()

    ticks = calc_ticks_before_refresh(controller.params)
    print(f"\n⏱  {ticks} poll intervals force a re-fetch")
    for _ in range(ticks):
        timers.advance(1.0)
        await settle()

    print("\n💥 Upstream outage: every attempt fails")
    source.outcomes = ["fail", "fail", "fail"]
    controller.load()
    await settle()
    timers.advance(1.0)     # first retry after 1s
    await settle()
    timers.advance(2.0)     # second retry after 2s
    await settle()

    print("\n🔁 Manual recovery")
    controller.load()
    await settle()

    print("\n📊 Final snapshot")
    print(f"  {controller.snapshot()}")
    controller.close()


if __name__ == "__main__":
    asyncio.run(main())
