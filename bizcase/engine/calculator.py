"""Deterministic scenario calculator.

Takes baseline metrics + impact projections + investment parameters ->
produces one CalculatedMetrics per scenario (conservative / realistic /
optimistic).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Union

import numpy as np

from bizcase.engine.errors import ValidationError
# Ensure all benefit streams are registered on import
import bizcase.engine.formulas  # noqa: F401
from bizcase.engine.formulas import (
    Number,
    net_present_value,
    payback_months,
    return_on_investment,
)
from bizcase.engine.streams import get_all_streams
from bizcase.engine.validation import validate_inputs
from bizcase.models.enums import BenefitCategory, Degeneracy, Scenario
from bizcase.models.inputs import BaselineMetrics, ImpactProjections, InvestmentParameters
from bizcase.models.results import CalculatedMetrics, ScenarioResults

logger = logging.getLogger(__name__)

DISCOUNT_RATE = 0.10
ROI_DECIMALS = 1
PAYBACK_DECIMALS = 1
CURRENCY_DECIMALS = 0


@dataclass(frozen=True)
class ScenarioDefinition:
    """Fixed multiplier and discount rate for a named scenario."""

    scenario: Scenario
    multiplier: float
    discount_rate: float = DISCOUNT_RATE


SCENARIO_DEFINITIONS: Mapping[Scenario, ScenarioDefinition] = MappingProxyType(
    {
        Scenario.CONSERVATIVE: ScenarioDefinition(Scenario.CONSERVATIVE, 0.7),
        Scenario.REALISTIC: ScenarioDefinition(Scenario.REALISTIC, 1.0),
        Scenario.OPTIMISTIC: ScenarioDefinition(Scenario.OPTIMISTIC, 1.3),
    }
)


@dataclass(frozen=True)
class Projection:
    """Unrounded figures for one evaluation of the benefit model.

    Fields hold floats for a single scenario or arrays for a batch of
    simulation draws. ``payback_months`` is NaN where there is no payback.
    """

    revenue_impact: Number
    cost_savings: Number
    total_benefits: Number
    net_benefit: Number
    annual_benefit: Number
    roi: Number
    npv: Number
    payback_months: Number


def project(
    bases: Mapping[str, Number],
    percentages: Mapping[str, Number],
    investment: Number,
    timeline_months: float,
    multiplier: Number = 1.0,
    discount_rate: float = DISCOUNT_RATE,
) -> Projection:
    """Evaluate every registered benefit stream and the financial metrics.

    ``bases`` maps BaselineMetrics field names to values and
    ``percentages`` maps ImpactProjections field names to values.
    """
    years = timeline_months / 12
    by_category: dict[BenefitCategory, Number] = {c: 0.0 for c in BenefitCategory}

    for stream in get_all_streams().values():
        value = stream.formula_fn(
            bases[stream.base_input],
            percentages[stream.projection_input],
            multiplier,
            years,
        )
        by_category[stream.category] = by_category[stream.category] + value

    revenue_impact = by_category[BenefitCategory.REVENUE]
    cost_savings = by_category[BenefitCategory.COST_SAVINGS]
    total_benefits = revenue_impact + cost_savings
    net_benefit = total_benefits - investment
    annual_benefit = total_benefits / years

    return Projection(
        revenue_impact=revenue_impact,
        cost_savings=cost_savings,
        total_benefits=total_benefits,
        net_benefit=net_benefit,
        annual_benefit=annual_benefit,
        roi=return_on_investment(net_benefit, investment),
        npv=net_present_value(annual_benefit, investment, years, discount_rate),
        payback_months=payback_months(investment, annual_benefit),
    )


def baseline_bases(baseline: BaselineMetrics) -> dict[str, float]:
    return {
        "current_revenue": float(baseline.current_revenue),
        "current_costs": float(baseline.current_costs),
    }


def projection_percentages(projections: ImpactProjections) -> dict[str, float]:
    return {
        "revenue_growth_rate": float(projections.revenue_growth_rate),
        "cost_reduction": float(projections.cost_reduction),
        "efficiency_gain": float(projections.efficiency_gain),
    }


# Checked in order so the earliest figure to overflow names its input
_OVERFLOW_FIGURES = (
    "revenue_impact",
    "cost_savings",
    "total_benefits",
    "net_benefit",
    "annual_benefit",
    "roi",
    "npv",
)


def _overflow_source(
    figure: str, baseline: BaselineMetrics, investment: InvestmentParameters
) -> tuple[str, Any]:
    if figure in ("total_benefits", "net_benefit"):
        figure = (
            "revenue_impact"
            if baseline.current_revenue >= baseline.current_costs
            else "cost_savings"
        )
    if figure == "revenue_impact":
        return "baseline.current_revenue", baseline.current_revenue
    if figure == "cost_savings":
        return "baseline.current_costs", baseline.current_costs
    if figure == "roi":
        return "investment.amount", investment.amount
    return "investment.timeline_months", investment.timeline_months


def check_overflow(
    raw: Projection, baseline: BaselineMetrics, investment: InvestmentParameters
) -> None:
    """Reject finite inputs whose figures leave the float range.

    Works on single evaluations and on batches of draws alike.
    """
    for figure in _OVERFLOW_FIGURES:
        if not np.all(np.isfinite(getattr(raw, figure))):
            field, value = _overflow_source(figure, baseline, investment)
            raise ValidationError(field, f"result overflows ({figure})", value)
    # NaN is the no-payback marker, only infinity is an overflow
    if np.any(np.isinf(raw.payback_months)):
        raise ValidationError(
            "investment.amount", "result overflows (payback_months)", investment.amount
        )


def _round(value: float, decimals: int) -> float:
    # Avoid reporting -0.0 for tiny negative noise
    return round(value, decimals) + 0.0


class ScenarioCalculator:
    """Stateless calculator for the three fixed scenarios.

    ``definitions`` exists for tests that vary the multiplier or discount
    rate; callers use the fixed SCENARIO_DEFINITIONS.
    """

    def __init__(
        self, definitions: Mapping[Scenario, ScenarioDefinition] = SCENARIO_DEFINITIONS
    ) -> None:
        self._definitions = definitions

    def compute_scenario(
        self,
        baseline: BaselineMetrics,
        projections: ImpactProjections,
        investment: Union[InvestmentParameters, float],
        timeline_months: float | None = None,
        scenario: Scenario = Scenario.REALISTIC,
    ) -> CalculatedMetrics:
        """Compute one scenario; rounding happens once, on the way out."""
        params = _investment_params(investment, timeline_months)
        validate_inputs(baseline, projections, params)
        definition = self._definitions[Scenario(scenario)]

        raw = project(
            baseline_bases(baseline),
            projection_percentages(projections),
            params.amount,
            params.timeline_months,
            multiplier=definition.multiplier,
            discount_rate=definition.discount_rate,
        )
        check_overflow(raw, baseline, params)

        degeneracies: list[Degeneracy] = []
        if params.amount == 0:
            degeneracies.append(Degeneracy.ZERO_INVESTMENT)

        payback = None
        if math.isnan(raw.payback_months):
            degeneracies.append(Degeneracy.NO_PAYBACK)
        else:
            payback = _round(raw.payback_months, PAYBACK_DECIMALS)

        return CalculatedMetrics(
            roi=_round(raw.roi, ROI_DECIMALS),
            npv=_round(raw.npv, CURRENCY_DECIMALS),
            payback_months=payback,
            revenue_impact=_round(raw.revenue_impact, CURRENCY_DECIMALS),
            cost_savings=_round(raw.cost_savings, CURRENCY_DECIMALS),
            net_benefit=_round(raw.net_benefit, CURRENCY_DECIMALS),
            degeneracies=tuple(degeneracies),
        )

    def compute_all_scenarios(
        self,
        baseline: BaselineMetrics,
        projections: ImpactProjections,
        investment: Union[InvestmentParameters, float],
        timeline_months: float | None = None,
    ) -> ScenarioResults:
        """Run the calculation across all three scenarios."""
        results = {
            scenario.value: self.compute_scenario(
                baseline, projections, investment, timeline_months, scenario
            )
            for scenario in Scenario
        }
        logger.debug(
            "Computed scenarios: realistic roi=%s npv=%s",
            results["realistic"].roi,
            results["realistic"].npv,
        )
        return ScenarioResults(**results)


def _investment_params(
    investment: Union[InvestmentParameters, float],
    timeline_months: float | None,
) -> InvestmentParameters:
    if isinstance(investment, InvestmentParameters):
        if timeline_months is not None and timeline_months != investment.timeline_months:
            raise ValidationError(
                "timeline_months",
                f"conflicts with investment.timeline_months ({investment.timeline_months})",
                timeline_months,
            )
        return investment
    return InvestmentParameters(amount=investment, timeline_months=timeline_months)


_default_calculator = ScenarioCalculator()


def compute_scenario(
    baseline: BaselineMetrics,
    projections: ImpactProjections,
    investment: Union[InvestmentParameters, float],
    timeline_months: float | None = None,
    scenario: Scenario = Scenario.REALISTIC,
) -> CalculatedMetrics:
    return _default_calculator.compute_scenario(
        baseline, projections, investment, timeline_months, scenario
    )


def compute_all_scenarios(
    baseline: BaselineMetrics,
    projections: ImpactProjections,
    investment: Union[InvestmentParameters, float],
    timeline_months: float | None = None,
) -> ScenarioResults:
    return _default_calculator.compute_all_scenarios(
        baseline, projections, investment, timeline_months
    )
