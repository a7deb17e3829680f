"""Benefit-stream and financial formulas.

Each function is a pure calculation with no side effects. Arguments may be
plain floats (the scenario calculator) or numpy arrays of draws (the
simulator); scalars in give floats out. All monetary values are in the
currency of the inputs.
"""

from __future__ import annotations

import math
from typing import Union

import numpy as np

from bizcase.engine.streams import register_stream
from bizcase.models.enums import BenefitCategory

Number = Union[float, np.ndarray]


def _unwrap(values: np.ndarray) -> Number:
    return float(values) if values.ndim == 0 else values


def _check_non_negative(name: str, value: Number) -> None:
    if np.any(np.asarray(value) < 0):
        raise ValueError(f"{name} cannot be negative")


def _stream_value(base: Number, percentage: Number, multiplier: Number, years: float) -> Number:
    values = np.asarray(base, dtype=float) * (np.asarray(percentage, dtype=float) / 100.0)
    return _unwrap(values * multiplier * years)


@register_stream(
    stream_id="revenue_growth",
    label="Revenue Growth",
    description=(
        "Incremental revenue from the investment over the timeline. "
        "Formula: current_revenue * growth% * multiplier * years."
    ),
    base_input="current_revenue",
    projection_input="revenue_growth_rate",
    category=BenefitCategory.REVENUE,
)
def calc_revenue_growth(
    current_revenue: Number,
    revenue_growth_rate: Number,
    multiplier: Number,
    years: float,
) -> Number:
    """Revenue_Impact = Current_Revenue x Growth_% x Multiplier x Years"""
    _check_non_negative("current_revenue", current_revenue)
    _check_non_negative("revenue_growth_rate", revenue_growth_rate)
    return _stream_value(current_revenue, revenue_growth_rate, multiplier, years)


@register_stream(
    stream_id="cost_reduction",
    label="Cost Reduction",
    description=(
        "Operating cost removed by the investment. "
        "Formula: current_costs * reduction% * multiplier * years."
    ),
    base_input="current_costs",
    projection_input="cost_reduction",
    category=BenefitCategory.COST_SAVINGS,
)
def calc_cost_reduction(
    current_costs: Number,
    cost_reduction: Number,
    multiplier: Number,
    years: float,
) -> Number:
    """Cost_Savings = Current_Costs x Reduction_% x Multiplier x Years"""
    _check_non_negative("current_costs", current_costs)
    _check_non_negative("cost_reduction", cost_reduction)
    return _stream_value(current_costs, cost_reduction, multiplier, years)


@register_stream(
    stream_id="efficiency_gain",
    label="Efficiency Gain",
    description=(
        "Cost avoided through productivity and process efficiency. "
        "Formula: current_costs * efficiency% * multiplier * years."
    ),
    base_input="current_costs",
    projection_input="efficiency_gain",
    category=BenefitCategory.COST_SAVINGS,
)
def calc_efficiency_gain(
    current_costs: Number,
    efficiency_gain: Number,
    multiplier: Number,
    years: float,
) -> Number:
    """Efficiency_Benefit = Current_Costs x Efficiency_% x Multiplier x Years"""
    _check_non_negative("current_costs", current_costs)
    _check_non_negative("efficiency_gain", efficiency_gain)
    return _stream_value(current_costs, efficiency_gain, multiplier, years)


def discount_periods(years: float) -> int:
    """Whole years discounted for NPV: 1..ceil(years)."""
    return int(math.ceil(years))


def annuity_factor(years: float, discount_rate: float) -> float:
    """Sum of 1 / (1 + r)^t for t = 1..ceil(years)."""
    if discount_rate <= -1:
        raise ValueError(f"discount_rate must be greater than -1, got {discount_rate}")
    return sum(
        1.0 / (1.0 + discount_rate) ** t for t in range(1, discount_periods(years) + 1)
    )


def return_on_investment(net_benefit: Number, investment: Number) -> Number:
    """ROI % = net_benefit / investment x 100, defined as 0 for zero investment."""
    net = np.asarray(net_benefit, dtype=float)
    inv = np.asarray(investment, dtype=float)
    shape = np.broadcast(net, inv).shape
    ratio = np.divide(net, inv, out=np.zeros(shape), where=inv > 0)
    return _unwrap(ratio * 100.0)


def net_present_value(
    annual_benefit: Number,
    investment: Number,
    years: float,
    discount_rate: float,
) -> Number:
    """NPV = -investment + sum(annual_benefit / (1 + r)^t), t = 1..ceil(years)."""
    factor = annuity_factor(years, discount_rate)
    npv = -np.asarray(investment, dtype=float) + np.asarray(annual_benefit, dtype=float) * factor
    return _unwrap(npv)


def payback_months(investment: Number, annual_benefit: Number) -> Number:
    """Months to recover the investment; NaN where the annual benefit is <= 0."""
    inv = np.asarray(investment, dtype=float)
    annual = np.asarray(annual_benefit, dtype=float)
    shape = np.broadcast(inv, annual).shape
    monthly = annual / 12.0
    months = np.divide(inv, monthly, out=np.full(shape, np.nan), where=annual > 0)
    return _unwrap(months)
