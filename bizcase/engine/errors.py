"""Exceptions raised by the projection engine."""

from __future__ import annotations

from typing import Any


class EngineError(Exception):
    """Base class for all engine failures."""


class ValidationError(EngineError, ValueError):
    """Malformed or out-of-range input, raised before any computation.

    Carries the offending field and the violated constraint so callers can
    explain the failure without parsing the message.
    """

    def __init__(self, field: str, constraint: str, value: Any = None) -> None:
        self.field = field
        self.constraint = constraint
        self.value = value
        super().__init__(f"{field} {constraint}, got {value!r}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "constraint": self.constraint,
            "value": self.value,
        }


class SimulationCancelled(EngineError):
    """The caller discarded an in-flight simulation run."""

    def __init__(self, completed: int, total: int) -> None:
        self.completed = completed
        self.total = total
        super().__init__(f"Simulation cancelled after {completed}/{total} iterations")
