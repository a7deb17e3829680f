"""SSE event types and serialization for simulation runs."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class RunEventType(str, Enum):
    """All event types emitted while a simulation run is in flight."""

    SIMULATION_STARTED = "simulation_started"
    SIMULATION_PROGRESS = "simulation_progress"
    SIMULATION_COMPLETED = "simulation_completed"
    SIMULATION_CANCELLED = "simulation_cancelled"
    SIMULATION_ERROR = "simulation_error"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL


_TERMINAL = {
    RunEventType.SIMULATION_COMPLETED,
    RunEventType.SIMULATION_CANCELLED,
    RunEventType.SIMULATION_ERROR,
}


@dataclass
class SSEEvent:
    """A single Server-Sent Event ready for wire serialization."""

    event_type: RunEventType
    data: dict[str, Any]
    sequence_id: int
    timestamp: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))

    def to_sse_string(self) -> str:
        """Serialize to SSE wire format.

        Format:
            event: <type>
            data: <json>
            id: <seq>

            (terminated by double newline)
        """
        payload = {
            **self.data,
            "timestamp": self.timestamp.isoformat(),
        }
        data_json = json.dumps(payload, default=str)
        return f"event: {self.event_type.value}\ndata: {data_json}\nid: {self.sequence_id}\n\n"
