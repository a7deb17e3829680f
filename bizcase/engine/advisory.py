"""Read-only view handed to the external narrative/recommendation generator.

The advisory collaborator sees the realistic scenario's headline figures and
the strategic scores, nothing else. It never receives simulator objects, so
it cannot recompute or influence a simulation.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Optional

from bizcase.engine.errors import ValidationError
from bizcase.engine.validation import require_finite
from bizcase.models.inputs import StrategicFactors
from bizcase.models.results import ScenarioResults

STRATEGIC_SCORE_MIN = 1
STRATEGIC_SCORE_MAX = 5


@dataclass(frozen=True)
class AdvisoryInputs:
    roi: float
    npv: float
    payback_months: Optional[float]
    net_benefit: float
    strategic_scores: dict[str, float]
    strategic_score: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def validate_strategic_factors(factors: StrategicFactors) -> None:
    for name, score in factors.scores().items():
        value = require_finite(f"strategic_factors.{name}", score)
        if not STRATEGIC_SCORE_MIN <= value <= STRATEGIC_SCORE_MAX:
            raise ValidationError(
                f"strategic_factors.{name}",
                f"must be between {STRATEGIC_SCORE_MIN} and {STRATEGIC_SCORE_MAX}",
                score,
            )


def build_advisory_inputs(
    scenarios: ScenarioResults,
    strategic_factors: StrategicFactors,
) -> AdvisoryInputs:
    validate_strategic_factors(strategic_factors)
    realistic = scenarios.realistic
    return AdvisoryInputs(
        roi=realistic.roi,
        npv=realistic.npv,
        payback_months=realistic.payback_months,
        net_benefit=realistic.net_benefit,
        strategic_scores=strategic_factors.scores(),
        strategic_score=strategic_factors.overall,
    )
