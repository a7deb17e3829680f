from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from bizcase.models.enums import BenefitCategory

# Global registry -- maps stream_id -> BenefitStream
_REGISTRY: dict[str, BenefitStream] = {}


@dataclass(frozen=True)
class BenefitStream:
    """A monetised benefit driven by one impact projection."""

    id: str
    label: str
    description: str
    base_input: str  # BaselineMetrics field name
    projection_input: str  # ImpactProjections field name
    formula_fn: Callable
    category: BenefitCategory = BenefitCategory.REVENUE


def register_stream(
    stream_id: str,
    label: str,
    description: str,
    base_input: str,
    projection_input: str,
    category: BenefitCategory = BenefitCategory.REVENUE,
) -> Callable:
    """Decorator to register a formula function as a benefit stream."""

    def decorator(fn: Callable) -> Callable:
        definition = BenefitStream(
            id=stream_id,
            label=label,
            description=description,
            base_input=base_input,
            projection_input=projection_input,
            formula_fn=fn,
            category=category,
        )
        _REGISTRY[stream_id] = definition
        return fn

    return decorator


def get_stream(stream_id: str) -> Optional[BenefitStream]:
    """Look up a benefit stream by ID."""
    return _REGISTRY.get(stream_id)


def get_all_streams() -> dict[str, BenefitStream]:
    """Return the full registry (read-only copy)."""
    return dict(_REGISTRY)


def streams_in(category: BenefitCategory) -> list[BenefitStream]:
    return [s for s in _REGISTRY.values() if s.category == category]
