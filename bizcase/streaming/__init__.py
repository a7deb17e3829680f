"""SSE streaming of simulation run progress."""

from .events import RunEventType, SSEEvent
from .manager import StreamManager

__all__ = ["RunEventType", "SSEEvent", "StreamManager"]
