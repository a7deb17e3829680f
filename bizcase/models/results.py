"""Immutable result structures for scenario and simulation runs.

Every result is fully derived from its inputs and exposes ``to_dict()`` so
collaborators can serialise it as plain structured data. A payback period
of ``None`` means the investment never pays back.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Iterator, Optional

from .enums import Degeneracy, Scenario
from .inputs import MonteCarloConfig


def _plain(value: Any) -> Any:
    """Recursively replace enums with their values."""
    if isinstance(value, dict):
        return {_plain(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    return value


@dataclass(frozen=True)
class CalculatedMetrics:
    """Output of one deterministic scenario."""

    roi: float
    npv: float
    payback_months: Optional[float]
    revenue_impact: float
    cost_savings: float
    net_benefit: float
    degeneracies: tuple[Degeneracy, ...] = ()

    @property
    def pays_back(self) -> bool:
        return self.payback_months is not None

    def to_dict(self) -> dict[str, Any]:
        return _plain(asdict(self))


@dataclass(frozen=True)
class ScenarioResults:
    conservative: CalculatedMetrics
    realistic: CalculatedMetrics
    optimistic: CalculatedMetrics

    def __getitem__(self, scenario: Scenario) -> CalculatedMetrics:
        return getattr(self, Scenario(scenario).value)

    def __iter__(self) -> Iterator[tuple[Scenario, CalculatedMetrics]]:
        for scenario in Scenario:
            yield scenario, self[scenario]

    def to_dict(self) -> dict[str, Any]:
        return {scenario.value: metrics.to_dict() for scenario, metrics in self}


@dataclass(frozen=True)
class ConfidenceInterval:
    """Percentile summary of one output dimension across all iterations."""

    p10: float
    p25: float
    p50: float
    p75: float
    p90: float
    mean: float
    std_dev: float
    min: float
    max: float


@dataclass(frozen=True)
class HistogramBucket:
    """Half-open ``[min, max)`` range; the last bucket also holds ``max``."""

    min: float
    max: float
    count: int
    frequency: float


@dataclass(frozen=True)
class DimensionSummary:
    """Interval and histogram for one output dimension.

    ``excluded`` counts iterations with no value in this dimension (draws
    that never pay back), so ``sum(counts) + excluded == iterations``.
    """

    interval: Optional[ConfidenceInterval]
    histogram: list[HistogramBucket]
    excluded: int = 0

    @property
    def total_count(self) -> int:
        return sum(bucket.count for bucket in self.histogram) + self.excluded


@dataclass(frozen=True)
class SimulationIteration:
    roi: float
    npv: float
    payback_months: Optional[float]
    net_benefit: float


@dataclass(frozen=True)
class TargetProbabilities:
    roi_above_50: float
    roi_above_100: float
    payback_under_12_months: float
    payback_under_18_months: float


@dataclass(frozen=True)
class MonteCarloResults:
    iterations: int
    config: MonteCarloConfig
    roi: DimensionSummary
    npv: DimensionSummary
    payback_months: DimensionSummary
    net_benefit: DimensionSummary
    probability_positive_roi: float
    probability_positive_npv: float
    probability_payback_within_timeline: float
    probability_exceeding_threshold: float
    target_probabilities: TargetProbabilities
    execution_time_ms: float
    sample: list[SimulationIteration] = field(default_factory=list)
    degeneracies: tuple[Degeneracy, ...] = ()

    def dimensions(self) -> dict[str, DimensionSummary]:
        return {
            "roi": self.roi,
            "npv": self.npv,
            "payback_months": self.payback_months,
            "net_benefit": self.net_benefit,
        }

    def probabilities(self) -> dict[str, float]:
        return {
            "positive_roi": self.probability_positive_roi,
            "positive_npv": self.probability_positive_npv,
            "payback_within_timeline": self.probability_payback_within_timeline,
            "exceeding_threshold": self.probability_exceeding_threshold,
            **asdict(self.target_probabilities),
        }

    def to_dict(self) -> dict[str, Any]:
        data = _plain(asdict(self))
        data["config"] = self.config.to_dict()
        return data
