"""StreamManager: per-run event buffering and SSE subscriber management."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import Any, AsyncGenerator, Optional

from .events import RunEventType, SSEEvent


class StreamManager:
    """Manages SSE event distribution for simulation runs.

    Each run_id has:
    - A list of subscriber queues (asyncio.Queue instances)
    - A buffer of all emitted events for replay on reconnect
    - A sequence counter so events are numbered per run

    A stream ends after its terminal event (completed, cancelled or error).
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[asyncio.Queue[SSEEvent]]] = defaultdict(list)
        self._buffers: dict[str, list[SSEEvent]] = defaultdict(list)
        self._sequences: dict[str, int] = defaultdict(int)

    async def subscribe(self, run_id: str) -> asyncio.Queue[SSEEvent]:
        """Create and return a new subscriber queue for a run."""
        queue: asyncio.Queue[SSEEvent] = asyncio.Queue()
        self._subscribers[run_id].append(queue)
        return queue

    async def unsubscribe(self, run_id: str, queue: asyncio.Queue[SSEEvent]) -> None:
        """Remove a subscriber queue from a run."""
        subs = self._subscribers.get(run_id, [])
        if queue in subs:
            subs.remove(queue)

    def next_sequence(self, run_id: str) -> int:
        self._sequences[run_id] += 1
        return self._sequences[run_id]

    def publish_nowait(
        self, run_id: str, event_type: RunEventType, data: dict[str, Any]
    ) -> Optional[SSEEvent]:
        """Number, buffer and broadcast an event from the event loop thread.

        Events published after a run's terminal event are dropped.
        """
        if self.is_finished(run_id):
            return None
        event = SSEEvent(
            event_type=event_type,
            data={"run_id": run_id, **data},
            sequence_id=self.next_sequence(run_id),
        )
        self._buffers[run_id].append(event)
        for queue in self._subscribers[run_id]:
            queue.put_nowait(event)
        return event

    async def publish(
        self, run_id: str, event_type: RunEventType, data: dict[str, Any]
    ) -> Optional[SSEEvent]:
        return self.publish_nowait(run_id, event_type, data)

    def is_finished(self, run_id: str) -> bool:
        buffer = self._buffers.get(run_id)
        return bool(buffer) and buffer[-1].event_type.is_terminal

    def discard(self, run_id: str) -> None:
        """Drop everything held for a finished run."""
        self._buffers.pop(run_id, None)
        self._sequences.pop(run_id, None)
        self._subscribers.pop(run_id, None)

    async def event_generator(
        self, run_id: str, last_event_id: int | None = None
    ) -> AsyncGenerator[str, None]:
        """Async generator yielding SSE strings for a run.

        If last_event_id is provided, replays buffered events with
        sequence_id > last_event_id before switching to live events.
        A finished run replays its buffer and closes.
        """
        queue = await self.subscribe(run_id)
        try:
            # SSE comment as connection heartbeat (ignored by browsers)
            yield ": connected\n\n"

            seen = last_event_id or 0
            if last_event_id is not None or self.is_finished(run_id):
                for event in list(self._buffers.get(run_id, [])):
                    if event.sequence_id <= seen:
                        continue
                    seen = event.sequence_id
                    yield event.to_sse_string()
                    if event.event_type.is_terminal:
                        return
            if self.is_finished(run_id):
                return

            # Stream live events
            while True:
                event = await queue.get()
                if event.sequence_id <= seen:
                    continue
                seen = event.sequence_id
                yield event.to_sse_string()
                if event.event_type.is_terminal:
                    return
        finally:
            await self.unsubscribe(run_id, queue)
