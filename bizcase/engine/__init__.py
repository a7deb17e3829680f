from .errors import EngineError, SimulationCancelled, ValidationError
from .calculator import (
    DISCOUNT_RATE,
    SCENARIO_DEFINITIONS,
    ScenarioCalculator,
    ScenarioDefinition,
    compute_all_scenarios,
    compute_scenario,
)
from .simulator import CancellationToken, MonteCarloSimulator, run_simulation, simulate
from .runner import SimulationHandle, SimulationRunner
from .advisory import AdvisoryInputs, build_advisory_inputs

__all__ = [
    "EngineError",
    "SimulationCancelled",
    "ValidationError",
    "DISCOUNT_RATE",
    "SCENARIO_DEFINITIONS",
    "ScenarioCalculator",
    "ScenarioDefinition",
    "compute_all_scenarios",
    "compute_scenario",
    "CancellationToken",
    "MonteCarloSimulator",
    "run_simulation",
    "simulate",
    "SimulationHandle",
    "SimulationRunner",
    "AdvisoryInputs",
    "build_advisory_inputs",
]
