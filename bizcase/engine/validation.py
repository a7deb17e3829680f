"""Fail-fast input checks shared by the calculator and the simulator."""

from __future__ import annotations

import math
from numbers import Real
from typing import Any

from bizcase.engine.errors import ValidationError
from bizcase.models.enums import DistributionType, ThresholdMetric
from bizcase.models.inputs import (
    BaselineMetrics,
    ImpactProjections,
    InvestmentParameters,
    MonteCarloConfig,
)


def require_finite(field: str, value: Any) -> float:
    # bool is a Real subclass but never a meaningful amount
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ValidationError(field, "must be a number", value)
    if not math.isfinite(value):
        raise ValidationError(field, "must be finite", value)
    return float(value)


def require_non_negative(field: str, value: Any) -> float:
    number = require_finite(field, value)
    if number < 0:
        raise ValidationError(field, "cannot be negative", value)
    return number


def require_positive(field: str, value: Any) -> float:
    number = require_finite(field, value)
    if number <= 0:
        raise ValidationError(field, "must be greater than 0", value)
    return number


def require_positive_int(field: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(field, "must be an integer", value)
    if value <= 0:
        raise ValidationError(field, "must be greater than 0", value)
    return value


def validate_baseline(baseline: BaselineMetrics) -> None:
    require_non_negative("baseline.current_revenue", baseline.current_revenue)
    require_non_negative("baseline.current_costs", baseline.current_costs)
    for name in ("employee_count", "current_assets", "current_cash_flow"):
        value = getattr(baseline, name)
        if value is not None:
            require_finite(f"baseline.{name}", value)


def validate_projections(projections: ImpactProjections) -> None:
    for name in (
        "revenue_growth_rate",
        "cost_reduction",
        "efficiency_gain",
        "time_to_market_improvement",
    ):
        require_non_negative(f"projections.{name}", getattr(projections, name))


def validate_investment(investment: InvestmentParameters) -> None:
    require_non_negative("investment.amount", investment.amount)
    require_positive("investment.timeline_months", investment.timeline_months)


def validate_config(config: MonteCarloConfig) -> None:
    """Reject a configuration before any draw is made."""
    require_positive_int("config.iterations", config.iterations)
    require_positive_int("config.bucket_count", config.bucket_count)
    require_positive_int("config.chunk_size", config.chunk_size)
    require_non_negative("config.variance_percent", config.variance_percent)
    require_non_negative(
        "config.investment_variance_percent", config.effective_investment_variance
    )
    require_non_negative("config.multiplier_spread", config.multiplier_spread)
    require_finite("config.threshold", config.threshold)
    if isinstance(config.sample_size, bool) or not isinstance(config.sample_size, int):
        raise ValidationError("config.sample_size", "must be an integer", config.sample_size)
    if config.sample_size < 0:
        raise ValidationError("config.sample_size", "cannot be negative", config.sample_size)
    if not isinstance(config.distribution, DistributionType):
        raise ValidationError(
            "config.distribution",
            f"must be one of {[d.value for d in DistributionType]}",
            config.distribution,
        )
    if not isinstance(config.threshold_metric, ThresholdMetric):
        raise ValidationError(
            "config.threshold_metric",
            f"must be one of {[m.value for m in ThresholdMetric]}",
            config.threshold_metric,
        )
    if config.seed is not None and (isinstance(config.seed, bool) or not isinstance(config.seed, int)):
        raise ValidationError("config.seed", "must be an integer or None", config.seed)


def validate_inputs(
    baseline: BaselineMetrics,
    projections: ImpactProjections,
    investment: InvestmentParameters,
) -> None:
    validate_baseline(baseline)
    validate_projections(projections)
    validate_investment(investment)
