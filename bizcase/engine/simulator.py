"""
Monte Carlo simulator: the distribution of ROI / NPV / payback outcomes.

The deterministic scenarios answer "what if the assumptions hold exactly,
scaled by a fixed pessimism/optimism factor?". The simulator instead treats
every assumption as uncertain:

  Draw i:  growth=5.6%, reduction=3.1%, efficiency=9.4%, investment=$1.04M,
           multiplier=0.91  ->  ROI, NPV, payback, net benefit

Each draw is evaluated with the same benefit model as the calculator
(bizcase.engine.calculator.project) and the results are aggregated into
percentile intervals, histograms and probability-of-outcome scalars.

Draws are generated and evaluated in vectorised chunks. Between chunks the
run checks its cancellation token and reports progress, so a caller on
another thread can discard it at any time.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

import numpy as np

from bizcase.engine.calculator import DISCOUNT_RATE, baseline_bases, check_overflow, project
from bizcase.engine.errors import SimulationCancelled
from bizcase.engine.sampling import draw, draw_multiplier, make_rng
from bizcase.engine.statistics import build_histogram, confidence_interval, fraction
from bizcase.engine.streams import get_all_streams
from bizcase.engine.validation import validate_config, validate_inputs
from bizcase.models.enums import Degeneracy, ThresholdMetric
from bizcase.models.inputs import (
    AnalysisInputs,
    BaselineMetrics,
    ImpactProjections,
    InvestmentParameters,
    MonteCarloConfig,
)
from bizcase.models.results import (
    DimensionSummary,
    MonteCarloResults,
    SimulationIteration,
    TargetProbabilities,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class CancellationToken:
    """Thread-safe flag a caller sets to discard an in-flight run."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class MonteCarloSimulator:
    """Runs one simulation per call; holds no state between runs."""

    def __init__(self, config: Optional[MonteCarloConfig] = None) -> None:
        self.config = config or MonteCarloConfig()

    def run(
        self,
        inputs: AnalysisInputs,
        *,
        cancel_token: Optional[CancellationToken] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> MonteCarloResults:
        cfg = self.config
        validate_inputs(inputs.baseline, inputs.projections, inputs.investment)
        validate_config(cfg)

        started = time.perf_counter()
        rng = make_rng(cfg.seed)
        n = cfg.iterations
        timeline_months = float(inputs.investment.timeline_months)
        bases = baseline_bases(inputs.baseline)
        streams = list(get_all_streams().values())

        roi = np.empty(n, dtype=float)
        npv = np.empty(n, dtype=float)
        payback = np.empty(n, dtype=float)
        net_benefit = np.empty(n, dtype=float)

        # ========= MAIN DRAW LOOP =========
        done = 0
        while done < n:
            _check_cancelled(cancel_token, done, n)
            size = min(cfg.chunk_size, n - done)

            percentages = {
                s.projection_input: draw(
                    rng,
                    float(getattr(inputs.projections, s.projection_input)),
                    cfg.variance_percent,
                    cfg.distribution,
                    size,
                )
                for s in streams
            }
            amount = draw(
                rng,
                float(inputs.investment.amount),
                cfg.effective_investment_variance,
                cfg.distribution,
                size,
            )
            multiplier = draw_multiplier(rng, cfg.multiplier_spread, cfg.distribution, size)

            raw = project(
                bases,
                percentages,
                amount,
                timeline_months,
                multiplier=multiplier,
                discount_rate=DISCOUNT_RATE,
            )
            check_overflow(raw, inputs.baseline, inputs.investment)

            chunk = slice(done, done + size)
            roi[chunk] = raw.roi
            npv[chunk] = raw.npv
            payback[chunk] = raw.payback_months
            net_benefit[chunk] = raw.net_benefit

            done += size
            if progress is not None:
                progress(done, n)

        _check_cancelled(cancel_token, done, n)

        results = self._aggregate(
            roi=roi,
            npv=npv,
            payback=payback,
            net_benefit=net_benefit,
            inputs=inputs,
            elapsed_ms=(time.perf_counter() - started) * 1000.0,
        )
        logger.info(
            "Monte Carlo run: %d iterations in %.1f ms (P(ROI>0)=%.3f)",
            n,
            results.execution_time_ms,
            results.probability_positive_roi,
        )
        return results

    def _aggregate(
        self,
        *,
        roi: np.ndarray,
        npv: np.ndarray,
        payback: np.ndarray,
        net_benefit: np.ndarray,
        inputs: AnalysisInputs,
        elapsed_ms: float,
    ) -> MonteCarloResults:
        cfg = self.config
        n = cfg.iterations
        timeline_months = float(inputs.investment.timeline_months)

        pays_back = ~np.isnan(payback)
        paid_values = payback[pays_back]
        no_payback = n - int(np.count_nonzero(pays_back))

        roi_summary = _summarize(roi, cfg.bucket_count)
        npv_summary = _summarize(npv, cfg.bucket_count)
        net_summary = _summarize(net_benefit, cfg.bucket_count)
        payback_summary = _summarize(paid_values, cfg.bucket_count, excluded=no_payback)

        def payback_within(months: float) -> np.ndarray:
            return np.less_equal(
                payback, months, out=np.zeros(n, dtype=bool), where=pays_back
            )

        threshold_values = roi if cfg.threshold_metric == ThresholdMetric.ROI else net_benefit

        degeneracies: list[Degeneracy] = []
        if inputs.investment.amount == 0:
            degeneracies.append(Degeneracy.ZERO_INVESTMENT)
        if no_payback:
            degeneracies.append(Degeneracy.NO_PAYBACK)
        if any(
            s.interval is not None and s.interval.min == s.interval.max
            for s in (roi_summary, npv_summary, payback_summary, net_summary)
        ):
            degeneracies.append(Degeneracy.ZERO_VARIANCE)

        sample = [
            SimulationIteration(
                roi=float(roi[i]),
                npv=float(npv[i]),
                payback_months=None if np.isnan(payback[i]) else float(payback[i]),
                net_benefit=float(net_benefit[i]),
            )
            for i in range(min(cfg.sample_size, n))
        ]

        return MonteCarloResults(
            iterations=n,
            config=cfg,
            roi=roi_summary,
            npv=npv_summary,
            payback_months=payback_summary,
            net_benefit=net_summary,
            probability_positive_roi=fraction(roi > 0, n),
            probability_positive_npv=fraction(npv > 0, n),
            probability_payback_within_timeline=fraction(payback_within(timeline_months), n),
            probability_exceeding_threshold=fraction(threshold_values >= cfg.threshold, n),
            target_probabilities=TargetProbabilities(
                roi_above_50=fraction(roi > 50, n),
                roi_above_100=fraction(roi > 100, n),
                payback_under_12_months=fraction(payback_within(12), n),
                payback_under_18_months=fraction(payback_within(18), n),
            ),
            execution_time_ms=elapsed_ms,
            sample=sample,
            degeneracies=tuple(degeneracies),
        )


def _summarize(values: np.ndarray, bucket_count: int, excluded: int = 0) -> DimensionSummary:
    return DimensionSummary(
        interval=confidence_interval(values) if values.size else None,
        histogram=build_histogram(values, bucket_count),
        excluded=excluded,
    )


def _check_cancelled(token: Optional[CancellationToken], done: int, total: int) -> None:
    if token is not None and token.cancelled:
        logger.info("Monte Carlo run cancelled after %d/%d iterations", done, total)
        raise SimulationCancelled(done, total)


def run_simulation(
    inputs: AnalysisInputs,
    config: Optional[MonteCarloConfig] = None,
    *,
    cancel_token: Optional[CancellationToken] = None,
    progress: Optional[ProgressCallback] = None,
) -> MonteCarloResults:
    """Run a full simulation synchronously on the calling thread."""
    simulator = MonteCarloSimulator(config)
    return simulator.run(inputs, cancel_token=cancel_token, progress=progress)


def simulate(
    baseline: BaselineMetrics,
    projections: ImpactProjections,
    investment_amount: float,
    timeline_months: float,
    config: Optional[MonteCarloConfig] = None,
    **kwargs,
) -> MonteCarloResults:
    """Convenience form taking the same arguments as the scenario calculator."""
    inputs = AnalysisInputs(
        baseline=baseline,
        projections=projections,
        investment=InvestmentParameters(amount=investment_amount, timeline_months=timeline_months),
    )
    return run_simulation(inputs, config, **kwargs)
