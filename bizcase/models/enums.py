from enum import Enum


class Scenario(str, Enum):
    CONSERVATIVE = "conservative"
    REALISTIC = "realistic"
    OPTIMISTIC = "optimistic"


class BenefitCategory(str, Enum):
    REVENUE = "revenue"
    COST_SAVINGS = "cost_savings"


class DistributionType(str, Enum):
    TRIANGULAR = "triangular"
    NORMAL = "normal"
    UNIFORM = "uniform"


class ThresholdMetric(str, Enum):
    ROI = "roi"
    NET_BENEFIT = "net_benefit"


class Degeneracy(str, Enum):
    """Mathematically valid conditions that were handled explicitly."""

    ZERO_INVESTMENT = "zero_investment"
    NO_PAYBACK = "no_payback"
    ZERO_VARIANCE = "zero_variance"


class RunStatus(str, Enum):
    STARTED = "started"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ERROR = "error"
