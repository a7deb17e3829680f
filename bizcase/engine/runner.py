"""Background execution of simulation runs.

The simulator is CPU-bound, so runs are handed to a thread pool and the
caller's thread (or event loop) stays free for cancellation requests and
unrelated work. Every run gets its own cancellation token; nothing is shared
between runs.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from typing import Optional

from bizcase.engine.errors import SimulationCancelled
from bizcase.engine.simulator import (
    CancellationToken,
    MonteCarloSimulator,
    ProgressCallback,
)
from bizcase.models.inputs import AnalysisInputs, MonteCarloConfig
from bizcase.models.results import MonteCarloResults

logger = logging.getLogger(__name__)


class SimulationHandle:
    """A submitted run: await or block on its result, or cancel it."""

    def __init__(self, future: Future, token: CancellationToken, iterations: int) -> None:
        self._future = future
        self._token = token
        self.iterations = iterations

    def cancel(self) -> None:
        """Discard the run. Queued runs never start; running ones stop at the next chunk."""
        self._token.cancel()
        self._future.cancel()

    @property
    def cancelled(self) -> bool:
        return self._token.cancelled

    def done(self) -> bool:
        return self._future.done()

    def result(self, timeout: Optional[float] = None) -> MonteCarloResults:
        """Block for the result; raises SimulationCancelled if discarded."""
        try:
            return self._future.result(timeout=timeout)
        except CancelledError:
            # cancelled before a worker picked it up
            raise SimulationCancelled(0, self.iterations) from None

    async def wait(self) -> MonteCarloResults:
        try:
            return await asyncio.wrap_future(self._future)
        except asyncio.CancelledError:
            if self._future.cancelled():
                raise SimulationCancelled(0, self.iterations) from None
            raise

    def __await__(self):
        return self.wait().__await__()


class SimulationRunner:
    """Thread pool that owns in-flight simulation runs."""

    def __init__(self, max_workers: int = 2) -> None:
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="bizcase-sim"
        )
        self._handles: set[SimulationHandle] = set()
        self._lock = threading.Lock()

    def submit(
        self,
        inputs: AnalysisInputs,
        config: Optional[MonteCarloConfig] = None,
        *,
        progress: Optional[ProgressCallback] = None,
    ) -> SimulationHandle:
        """Start a run in the background and return immediately."""
        token = CancellationToken()
        simulator = MonteCarloSimulator(config)
        future = self._executor.submit(
            simulator.run, inputs, cancel_token=token, progress=progress
        )
        handle = SimulationHandle(future, token, simulator.config.iterations)
        with self._lock:
            self._handles.add(handle)
        future.add_done_callback(lambda _: self._forget(handle))
        logger.info(f"Submitted simulation ({simulator.config.iterations} iterations)")
        return handle

    async def run_async(
        self,
        inputs: AnalysisInputs,
        config: Optional[MonteCarloConfig] = None,
        *,
        progress: Optional[ProgressCallback] = None,
    ) -> MonteCarloResults:
        """Await a run without blocking the event loop.

        Cancelling the awaiting task cancels the run.
        """
        handle = self.submit(inputs, config, progress=progress)
        try:
            return await handle
        except asyncio.CancelledError:
            handle.cancel()
            raise

    def _forget(self, handle: SimulationHandle) -> None:
        with self._lock:
            self._handles.discard(handle)

    @property
    def active(self) -> int:
        with self._lock:
            return len(self._handles)

    def shutdown(self, wait: bool = True) -> None:
        """Cancel outstanding runs and release the worker threads."""
        with self._lock:
            handles = list(self._handles)
        for handle in handles:
            handle.cancel()
        self._executor.shutdown(wait=wait)
