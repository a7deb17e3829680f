"""FastAPI application for the projection engine: REST endpoints and SSE streaming."""

from __future__ import annotations

import asyncio
import logging
import math
from contextlib import asynccontextmanager
from typing import Any, Optional
from uuid import uuid4

from fastapi import BackgroundTasks, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field

from bizcase.config.settings import Settings
from bizcase.engine import (
    SimulationCancelled,
    SimulationHandle,
    SimulationRunner,
    ValidationError,
    build_advisory_inputs,
    compute_all_scenarios,
)
from bizcase.engine.validation import validate_config, validate_inputs
from bizcase.models.enums import DistributionType, RunStatus, ThresholdMetric
from bizcase.models.inputs import (
    AnalysisInputs,
    BaselineMetrics,
    ImpactProjections,
    InvestmentParameters,
    MonteCarloConfig,
    StrategicFactors,
)
from bizcase.streaming import RunEventType, StreamManager

settings = Settings()

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

# Singletons: SSE fan-out and the simulation thread pool
stream_manager = StreamManager()
runner = SimulationRunner(max_workers=settings.max_workers)

# In-memory run store; runs are not persisted and only the newest
# settings.max_retained_runs finished runs are kept
_runs: dict[str, dict[str, Any]] = {}
_handles: dict[str, SimulationHandle] = {}


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    runner.shutdown(wait=False)


app = FastAPI(title="Bizcase Projection API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class BaselineBody(BaseModel):
    current_revenue: float = 0.0
    current_costs: float = 0.0
    employee_count: Optional[int] = None
    current_assets: Optional[float] = None
    current_cash_flow: Optional[float] = None


class ProjectionsBody(BaseModel):
    revenue_growth_rate: float = 0.0
    cost_reduction: float = 0.0
    efficiency_gain: float = 0.0
    time_to_market_improvement: float = 0.0


class InvestmentBody(BaseModel):
    amount: float
    timeline_months: float


class StrategicFactorsBody(BaseModel):
    competitive_differentiation: float = 3
    risk_mitigation: float = 3
    customer_experience: float = 3
    employee_productivity: float = 3
    regulatory_compliance: float = 3
    innovation_enablement: float = 3


class SimulationConfigBody(BaseModel):
    iterations: Optional[int] = None
    preview: bool = False
    variance_percent: float = 20.0
    investment_variance_percent: Optional[float] = None
    multiplier_spread: float = 0.3
    distribution: DistributionType = DistributionType.TRIANGULAR
    bucket_count: Optional[int] = None
    threshold_metric: ThresholdMetric = ThresholdMetric.ROI
    threshold: float = 50.0
    seed: Optional[int] = None


class ScenarioRequest(BaseModel):
    baseline: BaselineBody = Field(default_factory=BaselineBody)
    projections: ProjectionsBody = Field(default_factory=ProjectionsBody)
    investment: InvestmentBody

    def to_inputs(self) -> AnalysisInputs:
        return AnalysisInputs(
            baseline=BaselineMetrics(**self.baseline.model_dump()),
            projections=ImpactProjections(**self.projections.model_dump()),
            investment=InvestmentParameters(**self.investment.model_dump()),
        )


class AdvisoryRequest(ScenarioRequest):
    strategic_factors: StrategicFactorsBody = Field(default_factory=StrategicFactorsBody)


class SimulationRequest(ScenarioRequest):
    config: SimulationConfigBody = Field(default_factory=SimulationConfigBody)

    def to_config(self) -> MonteCarloConfig:
        body = self.config
        if body.iterations is not None:
            iterations = body.iterations
        elif body.preview:
            iterations = settings.preview_iterations
        else:
            iterations = settings.default_iterations
        return MonteCarloConfig(
            iterations=iterations,
            variance_percent=body.variance_percent,
            investment_variance_percent=body.investment_variance_percent,
            multiplier_spread=body.multiplier_spread,
            distribution=body.distribution,
            bucket_count=settings.bucket_count if body.bucket_count is None else body.bucket_count,
            threshold_metric=body.threshold_metric,
            threshold=body.threshold,
            seed=body.seed,
        )


class CreateSimulationResponse(BaseModel):
    run_id: str
    status: str


def _json_safe(value: Any) -> Any:
    # JSON has no inf/nan literals
    if isinstance(value, float) and not math.isfinite(value):
        return str(value)
    return value


@app.exception_handler(ValidationError)
async def engine_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    detail = exc.to_dict()
    detail["value"] = _json_safe(detail["value"])
    return JSONResponse(status_code=422, content={"detail": detail})


@app.post("/api/scenarios")
async def create_scenarios(body: ScenarioRequest):
    """Compute the conservative / realistic / optimistic scenarios."""
    inputs = body.to_inputs()
    results = compute_all_scenarios(inputs.baseline, inputs.projections, inputs.investment)
    return results.to_dict()


@app.post("/api/advisory")
async def create_advisory(body: AdvisoryRequest):
    """Realistic-scenario figures and strategic scores for the narrative generator."""
    inputs = body.to_inputs()
    scenarios = compute_all_scenarios(inputs.baseline, inputs.projections, inputs.investment)
    factors = StrategicFactors(**body.strategic_factors.model_dump())
    return build_advisory_inputs(scenarios, factors).to_dict()


def _on_progress(run_id: str, done: int, total: int) -> None:
    """Record progress on the event loop thread."""
    run = _runs.get(run_id)
    if run is None or run["status"] not in (RunStatus.STARTED.value, RunStatus.RUNNING.value):
        return
    run["status"] = RunStatus.RUNNING.value
    run["progress"] = {"completed": done, "total": total}
    stream_manager.publish_nowait(
        run_id,
        RunEventType.SIMULATION_PROGRESS,
        {"completed": done, "total": total, "fraction": done / total},
    )


async def watch_simulation(run_id: str, handle: SimulationHandle) -> None:
    """Background task: await a submitted run and emit its terminal SSE event."""
    run = _runs[run_id]
    try:
        result = await handle
    except SimulationCancelled as e:
        logger.info(f"Simulation {run_id} cancelled")
        run["status"] = RunStatus.CANCELLED.value
        await stream_manager.publish(
            run_id,
            RunEventType.SIMULATION_CANCELLED,
            {"completed": e.completed, "total": e.total},
        )
    except ValidationError as e:
        logger.warning(f"Simulation {run_id} rejected: {e}")
        run["status"] = RunStatus.ERROR.value
        run["error"] = str(e)
        await stream_manager.publish(
            run_id, RunEventType.SIMULATION_ERROR, {"error": str(e), "detail": e.to_dict()}
        )
    except Exception as e:
        logger.exception(f"Simulation failed for run {run_id}")
        run["status"] = RunStatus.ERROR.value
        run["error"] = str(e)
        await stream_manager.publish(run_id, RunEventType.SIMULATION_ERROR, {"error": str(e)})
    else:
        run["status"] = RunStatus.COMPLETED.value
        run["result"] = result.to_dict()
        await stream_manager.publish(
            run_id,
            RunEventType.SIMULATION_COMPLETED,
            {"execution_time_ms": result.execution_time_ms, "result": run["result"]},
        )
    finally:
        _handles.pop(run_id, None)
        _evict_finished_runs()


_FINISHED = (RunStatus.COMPLETED.value, RunStatus.CANCELLED.value, RunStatus.ERROR.value)


def _evict_finished_runs() -> None:
    """Drop the oldest finished runs beyond the retention limit."""
    finished = [run_id for run_id, run in _runs.items() if run["status"] in _FINISHED]
    for run_id in finished[: max(0, len(finished) - settings.max_retained_runs)]:
        del _runs[run_id]
        stream_manager.discard(run_id)
        logger.debug(f"Evicted finished simulation {run_id}")


@app.post("/api/simulations", response_model=CreateSimulationResponse)
async def create_simulation(body: SimulationRequest, background_tasks: BackgroundTasks):
    """Validate, submit a Monte Carlo run to the worker pool and return its id."""
    inputs = body.to_inputs()
    config = body.to_config()
    # Reject bad input with a 422 before a run id exists
    validate_inputs(inputs.baseline, inputs.projections, inputs.investment)
    validate_config(config)

    run_id = str(uuid4())
    _runs[run_id] = {
        "run_id": run_id,
        "status": RunStatus.STARTED.value,
        "iterations": config.iterations,
        "progress": {"completed": 0, "total": config.iterations},
        "result": None,
    }
    stream_manager.publish_nowait(
        run_id,
        RunEventType.SIMULATION_STARTED,
        {"iterations": config.iterations, "config": config.to_dict()},
    )

    loop = asyncio.get_running_loop()

    def progress(done: int, total: int) -> None:
        # Called on a worker thread
        loop.call_soon_threadsafe(_on_progress, run_id, done, total)

    handle = runner.submit(inputs, config, progress=progress)
    _handles[run_id] = handle
    background_tasks.add_task(watch_simulation, run_id, handle)

    return CreateSimulationResponse(run_id=run_id, status=RunStatus.STARTED.value)


@app.get("/api/simulations/{run_id}")
async def get_simulation(run_id: str):
    """Return run status and, once complete, the result (polling fallback)."""
    run = _runs.get(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail="Simulation not found")
    return run


@app.get("/api/simulations/{run_id}/stream")
async def stream_simulation(run_id: str, request: Request):
    """SSE endpoint: streams simulation progress events."""
    if run_id not in _runs:
        raise HTTPException(status_code=404, detail="Simulation not found")

    last_event_id: int | None = None
    raw = request.headers.get("Last-Event-ID") or request.headers.get("last-event-id")
    if raw is not None:
        try:
            last_event_id = int(raw)
        except ValueError:
            pass

    generator = stream_manager.event_generator(run_id, last_event_id=last_event_id)
    return StreamingResponse(generator, media_type="text/event-stream")


@app.delete("/api/simulations/{run_id}")
async def cancel_simulation(run_id: str):
    """Cancel an in-flight run; finished runs are left as they are."""
    run = _runs.get(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail="Simulation not found")
    handle = _handles.get(run_id)
    if handle is not None:
        handle.cancel()
        logger.info(f"Cancellation requested for simulation {run_id}")
    return {"run_id": run_id, "status": run["status"], "cancel_requested": handle is not None}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok", "active_simulations": runner.active}
