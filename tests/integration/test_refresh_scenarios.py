"""End-to-end refresh scenarios on a virtual clock."""

import asyncio

from feewatch.models.async_value import Failed, Loading, Success
from feewatch.state.models import MAX_RETRIES, RefreshState, Tick
from feewatch.state.runtime import RefreshController


class TestRefreshScenarios:
    """Scenario coverage of the refresh lifecycle."""

    def test_fresh_load_success(self, fake_source, timers, settle, fees_factory):
        """Load → fetch resolves F1 → POLLING with Success(F1)."""
        async def scenario():
            f1 = fees_factory(11.0)
            controller = RefreshController(fetch=fake_source, timers=timers, endpoint="mempool")

            controller.load()
            await settle()
            fake_source.resolve(f1)
            await settle()

            assert controller.state == RefreshState.POLLING
            assert controller.context.fees == Success(f1)
            assert controller.context.retries == 0
            assert controller.context.ticks == 0

        asyncio.run(scenario())

    def test_success_on_last_retry(self, fake_source, timers, settle, fees_factory, fetch_error):
        """Two failures then success within the ceiling ends POLLING/Success."""
        async def scenario():
            f2 = fees_factory(22.0)
            controller = RefreshController(fetch=fake_source, timers=timers, endpoint="mempool")
            retries_seen = []
            controller.subscribe(
                lambda state, ctx: retries_seen.append(ctx.retries)
                if state == RefreshState.RETRY_PENDING else None
            )

            controller.load()
            await settle()
            fake_source.reject(fetch_error)
            await settle()
            timers.advance(1.0)
            await settle()
            fake_source.reject(fetch_error)
            await settle()
            timers.advance(2.0)
            await settle()
            fake_source.resolve(f2)
            await settle()

            assert retries_seen == [1, 2]
            assert controller.state == RefreshState.POLLING
            assert controller.context.fees == Success(f2)
            assert controller.context.retries == 0

        asyncio.run(scenario())

    def test_all_retries_exhausted(self, fake_source, timers, settle, fetch_error):
        """Failures on every attempt end IDLE/Failed after MAX_RETRIES retries."""
        async def scenario():
            controller = RefreshController(fetch=fake_source, timers=timers, endpoint="mempool")

            controller.load()
            await settle()
            for retry in range(1, MAX_RETRIES + 1):
                fake_source.reject(fetch_error)
                await settle()
                assert controller.state == RefreshState.RETRY_PENDING
                timers.advance(float(retry))
                await settle()

            fake_source.reject(fetch_error)
            await settle()

            assert controller.state == RefreshState.IDLE
            assert controller.context.fees == Failed(fetch_error)
            assert len(fake_source.calls) == MAX_RETRIES + 1

        asyncio.run(scenario())

    def test_load_after_terminal_failure(self, fake_source, timers, settle, fetch_error):
        """Load from IDLE/Failed always starts a clean cycle."""
        async def scenario():
            controller = RefreshController(fetch=fake_source, timers=timers, endpoint="mempool")
            controller.load()
            await settle()
            for retry in range(1, MAX_RETRIES + 1):
                fake_source.reject(fetch_error)
                await settle()
                timers.advance(float(retry))
                await settle()
            fake_source.reject(fetch_error)
            await settle()
            assert isinstance(controller.context.fees, Failed)

            controller.load()

            assert controller.state == RefreshState.FETCH_IN_FLIGHT
            assert controller.context.retries == 0
            assert controller.context.ticks == 0
            assert controller.context.fees == Loading(previous=None)

        asyncio.run(scenario())

    def test_three_ticks_force_refetch(self, fake_source, timers, settle, fees_factory):
        """Injected ticks: the third one forces a re-fetch keeping the last value."""
        async def scenario():
            f1 = fees_factory(8.0)
            controller = RefreshController(fetch=fake_source, timers=timers, endpoint="mempool")
            controller.load()
            await settle()
            fake_source.resolve(f1)
            await settle()

            controller.send(Tick())
            controller.send(Tick())
            assert controller.state == RefreshState.POLLING
            assert controller.context.ticks == 2

            controller.send(Tick())
            assert controller.state == RefreshState.FETCH_IN_FLIGHT
            assert controller.context.ticks == 0
            assert controller.context.fees == Loading(previous=f1)

        asyncio.run(scenario())

    def test_stale_result_after_supersede(self, fake_source, timers, settle, fees_factory):
        """A superseded attempt's late result leaves the context untouched."""
        async def scenario():
            controller = RefreshController(fetch=fake_source, timers=timers, endpoint="mempool")
            controller.load()
            await settle()
            controller.load()
            await settle()
            before = (controller.state, controller.context)

            fake_source.resolve(fees_factory(1.0), index=0)
            await settle()

            assert (controller.state, controller.context) == before

        asyncio.run(scenario())

    def test_long_running_poll_cycle(self, fake_source, timers, settle, fees_factory):
        """Each poll span issues exactly one re-fetch."""
        async def scenario():
            controller = RefreshController(fetch=fake_source, timers=timers, endpoint="mempool")
            controller.load()
            await settle()

            for cycle in range(4):
                fake_source.resolve(fees_factory(10.0 + cycle))
                await settle()
                assert controller.state == RefreshState.POLLING
                timers.advance(3.0)
                await settle()
                assert controller.state == RefreshState.FETCH_IN_FLIGHT

            assert len(fake_source.calls) == 5

        asyncio.run(scenario())
