from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Optional

from .enums import DistributionType, ThresholdMetric


@dataclass(frozen=True)
class BaselineMetrics:
    """Pre-investment snapshot of the business, supplied by the caller.

    Missing revenue or cost figures are treated as zero, so a business case
    can be built from whichever side of the P&L the investment touches.
    """

    current_revenue: float = 0.0
    current_costs: float = 0.0
    employee_count: Optional[int] = None
    current_assets: Optional[float] = None
    current_cash_flow: Optional[float] = None


@dataclass(frozen=True)
class ImpactProjections:
    """User-asserted impact percentages (5.0 means 5%)."""

    revenue_growth_rate: float = 0.0
    cost_reduction: float = 0.0
    efficiency_gain: float = 0.0
    # Carried for collaborators; not a monetised benefit stream.
    time_to_market_improvement: float = 0.0


@dataclass(frozen=True)
class InvestmentParameters:
    amount: float
    timeline_months: float

    @property
    def timeline_years(self) -> float:
        return self.timeline_months / 12


@dataclass(frozen=True)
class AnalysisInputs:
    """Everything a simulation run is derived from."""

    baseline: BaselineMetrics
    projections: ImpactProjections
    investment: InvestmentParameters

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class StrategicFactors:
    """Qualitative 1-5 scores read by the advisory collaborator."""

    competitive_differentiation: float = 3
    risk_mitigation: float = 3
    customer_experience: float = 3
    employee_productivity: float = 3
    regulatory_compliance: float = 3
    innovation_enablement: float = 3

    def scores(self) -> dict[str, float]:
        return asdict(self)

    @property
    def overall(self) -> float:
        values = list(self.scores().values())
        return sum(values) / len(values)


@dataclass(frozen=True)
class MonteCarloConfig:
    """Iteration count and variability model for one simulation run.

    Spreads are percentages of the value they perturb: with
    ``variance_percent=20`` a 10% growth assumption is drawn from the
    range 8%..12%. ``multiplier_spread`` is an absolute spread around the
    realistic multiplier of 1.0, so the default of 0.3 spans the
    conservative (0.7) to optimistic (1.3) scenarios.
    """

    iterations: int = 10_000
    variance_percent: float = 20.0
    investment_variance_percent: Optional[float] = None
    multiplier_spread: float = 0.3
    distribution: DistributionType = DistributionType.TRIANGULAR
    bucket_count: int = 20
    threshold_metric: ThresholdMetric = ThresholdMetric.ROI
    threshold: float = 50.0
    seed: Optional[int] = None
    chunk_size: int = 1_000
    sample_size: int = 1_000

    @property
    def effective_investment_variance(self) -> float:
        if self.investment_variance_percent is None:
            return self.variance_percent / 2
        return self.investment_variance_percent

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["distribution"] = self.distribution.value
        data["threshold_metric"] = self.threshold_metric.value
        return data


DEFAULT_CONFIG = MonteCarloConfig()
PREVIEW_CONFIG = MonteCarloConfig(iterations=1_000)
