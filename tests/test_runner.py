"""Tests for the background simulation runner."""

import asyncio
import threading
import time

import pytest

from bizcase.engine.errors import SimulationCancelled
from bizcase.engine.runner import SimulationRunner
from bizcase.models.inputs import MonteCarloConfig


@pytest.fixture
def runner():
    pool = SimulationRunner(max_workers=1)
    yield pool
    pool.shutdown(wait=True)


class _Gate:
    """Progress callback that parks the worker after its first chunk."""

    def __init__(self):
        self.reached = threading.Event()
        self.release = threading.Event()

    def __call__(self, done, total):
        self.reached.set()
        self.release.wait(timeout=10)


class TestSimulationRunner:
    def test_submit_and_result(self, runner, mixed_case, seeded_config):
        handle = runner.submit(mixed_case, seeded_config)
        results = handle.result(timeout=30)
        assert results.iterations == seeded_config.iterations
        assert handle.done()
        assert not handle.cancelled

    def test_cancel_running_simulation(self, runner, mixed_case):
        """A running simulation stops at the next chunk boundary."""
        gate = _Gate()
        config = MonteCarloConfig(iterations=5_000, chunk_size=1_000, seed=1)
        handle = runner.submit(mixed_case, config, progress=gate)
        assert gate.reached.wait(timeout=10)

        handle.cancel()
        gate.release.set()

        with pytest.raises(SimulationCancelled) as exc_info:
            handle.result(timeout=30)
        assert exc_info.value.completed == 1_000
        assert handle.cancelled

    def test_cancel_queued_simulation(self, runner, mixed_case):
        """A run still waiting for a worker never starts."""
        gate = _Gate()
        config = MonteCarloConfig(iterations=2_000, chunk_size=1_000, seed=1)
        first = runner.submit(mixed_case, config, progress=gate)
        assert gate.reached.wait(timeout=10)

        second = runner.submit(mixed_case, config)
        second.cancel()
        gate.release.set()

        with pytest.raises(SimulationCancelled) as exc_info:
            second.result(timeout=30)
        assert exc_info.value.completed == 0
        assert first.result(timeout=30).iterations == 2_000

    def test_runs_are_independent(self, mixed_case, seeded_config):
        pool = SimulationRunner(max_workers=2)
        try:
            a = pool.submit(mixed_case, seeded_config)
            b = pool.submit(mixed_case, seeded_config)
            assert a.result(timeout=30).roi == b.result(timeout=30).roi
        finally:
            pool.shutdown()

    def test_active_count_drops_when_done(self, runner, mixed_case, seeded_config):
        handle = runner.submit(mixed_case, seeded_config)
        handle.result(timeout=30)
        # done callbacks run on the worker thread right after the result is set
        for _ in range(100):
            if runner.active == 0:
                break
            time.sleep(0.01)
        assert runner.active == 0


class TestAsyncRunner:
    @pytest.mark.asyncio
    async def test_run_async(self, runner, mixed_case, seeded_config):
        results = await runner.run_async(mixed_case, seeded_config)
        assert results.roi.total_count == seeded_config.iterations

    @pytest.mark.asyncio
    async def test_await_handle(self, runner, mixed_case, seeded_config):
        handle = runner.submit(mixed_case, seeded_config)
        results = await handle
        assert results.iterations == seeded_config.iterations

    @pytest.mark.asyncio
    async def test_event_loop_stays_responsive(self, runner, mixed_case):
        """Other coroutines keep running while a simulation is in flight."""
        ticks = 0

        async def ticker():
            nonlocal ticks
            while True:
                ticks += 1
                await asyncio.sleep(0)

        task = asyncio.create_task(ticker())
        try:
            await runner.run_async(mixed_case, MonteCarloConfig(iterations=20_000, seed=2))
        finally:
            task.cancel()
        assert ticks > 0

    @pytest.mark.asyncio
    async def test_cancelled_handle_raises_when_awaited(self, runner, mixed_case):
        gate = _Gate()
        config = MonteCarloConfig(iterations=3_000, chunk_size=1_000, seed=1)
        handle = runner.submit(mixed_case, config, progress=gate)
        await asyncio.get_running_loop().run_in_executor(None, gate.reached.wait, 10)

        handle.cancel()
        gate.release.set()

        with pytest.raises(SimulationCancelled):
            await handle
