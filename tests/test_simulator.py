"""Tests for the Monte Carlo simulator -- aggregation, probabilities, cancellation."""

from dataclasses import replace

import pytest

from bizcase.engine.calculator import compute_scenario
from bizcase.engine.errors import SimulationCancelled, ValidationError
from bizcase.engine.simulator import (
    CancellationToken,
    MonteCarloSimulator,
    run_simulation,
    simulate,
)
from bizcase.models.enums import Degeneracy, DistributionType, ThresholdMetric
from bizcase.models.inputs import (
    AnalysisInputs,
    BaselineMetrics,
    ImpactProjections,
    InvestmentParameters,
    MonteCarloConfig,
)


class TestAggregation:
    def test_percentiles_ordered(self, mixed_case, seeded_config):
        results = run_simulation(mixed_case, seeded_config)
        for name, summary in results.dimensions().items():
            ci = summary.interval
            assert ci.p10 <= ci.p25 <= ci.p50 <= ci.p75 <= ci.p90, name
            assert ci.min <= ci.p10 and ci.p90 <= ci.max, name

    def test_histograms_account_for_every_iteration(self, mixed_case, seeded_config):
        results = run_simulation(mixed_case, seeded_config)
        for name, summary in results.dimensions().items():
            assert summary.total_count == seeded_config.iterations, name
            assert len(summary.histogram) == seeded_config.bucket_count, name

    def test_probabilities_are_fractions(self, mixed_case, seeded_config):
        results = run_simulation(mixed_case, seeded_config)
        for name, value in results.probabilities().items():
            assert 0.0 <= value <= 1.0, name

    def test_strong_case_is_likely_positive(self, mixed_case, seeded_config):
        results = run_simulation(mixed_case, seeded_config)
        assert results.probability_positive_roi == 1.0
        assert results.probability_positive_npv == 1.0
        assert results.target_probabilities.roi_above_100 > 0.5

    def test_sample_retained(self, mixed_case, seeded_config):
        results = run_simulation(mixed_case, seeded_config)
        assert len(results.sample) == seeded_config.sample_size
        small = run_simulation(mixed_case, replace(seeded_config, iterations=250))
        assert len(small.sample) == 250

    def test_each_distribution_runs(self, mixed_case):
        for distribution in DistributionType:
            config = MonteCarloConfig(iterations=500, seed=3, distribution=distribution)
            results = run_simulation(mixed_case, config)
            assert results.iterations == 500
            assert results.config.distribution == distribution


class TestZeroSpread:
    def test_single_bucket_and_equal_percentiles(self, revenue_case, zero_spread_config):
        """10,000 identical draws collapse to one bucket with p10 == p50 == p90."""
        results = run_simulation(revenue_case, zero_spread_config)
        for name, summary in results.dimensions().items():
            assert len(summary.histogram) == 1, name
            assert summary.histogram[0].count == 10_000, name
            assert summary.histogram[0].frequency == 1.0, name
            assert summary.interval.p10 == summary.interval.p50 == summary.interval.p90, name
            assert summary.interval.std_dev == 0.0, name
        assert Degeneracy.ZERO_VARIANCE in results.degeneracies

    def test_matches_realistic_scenario(self, mixed_case, zero_spread_config):
        realistic = compute_scenario(
            mixed_case.baseline, mixed_case.projections, mixed_case.investment
        )
        results = run_simulation(mixed_case, zero_spread_config)
        assert results.roi.interval.p50 == pytest.approx(realistic.roi, abs=0.05)
        assert results.npv.interval.p50 == pytest.approx(realistic.npv, abs=0.5)
        assert results.payback_months.interval.p50 == pytest.approx(
            realistic.payback_months, abs=0.05
        )

    def test_break_even_roi_is_zero(self, revenue_case, zero_spread_config):
        results = run_simulation(revenue_case, zero_spread_config)
        assert results.roi.interval.p50 == pytest.approx(0.0, abs=1e-9)
        assert results.probability_positive_roi == 0.0


class TestThreshold:
    def test_roi_threshold(self, mixed_case, zero_spread_config):
        realistic = compute_scenario(
            mixed_case.baseline, mixed_case.projections, mixed_case.investment
        )
        below = replace(zero_spread_config, threshold=realistic.roi - 1)
        above = replace(zero_spread_config, threshold=realistic.roi + 1)
        assert run_simulation(mixed_case, below).probability_exceeding_threshold == 1.0
        assert run_simulation(mixed_case, above).probability_exceeding_threshold == 0.0

    def test_net_benefit_threshold(self, cost_case, zero_spread_config):
        # realistic net benefit is -200K
        config = replace(
            zero_spread_config,
            threshold_metric=ThresholdMetric.NET_BENEFIT,
            threshold=-250_000,
        )
        assert run_simulation(cost_case, config).probability_exceeding_threshold == 1.0


class TestNoPayback:
    def test_never_paying_draws_are_excluded(self, revenue_case, seeded_config):
        inputs = replace(revenue_case, projections=ImpactProjections())
        results = run_simulation(inputs, seeded_config)
        payback = results.payback_months
        assert payback.interval is None
        assert payback.histogram == []
        assert payback.excluded == seeded_config.iterations
        assert payback.total_count == seeded_config.iterations
        assert results.probability_payback_within_timeline == 0.0
        assert Degeneracy.NO_PAYBACK in results.degeneracies
        assert all(it.payback_months is None for it in results.sample)


class TestReproducibility:
    def test_same_seed_same_results(self, mixed_case, seeded_config):
        a = run_simulation(mixed_case, seeded_config)
        b = run_simulation(mixed_case, seeded_config)
        assert a.roi == b.roi
        assert a.npv == b.npv
        assert a.payback_months == b.payback_months
        assert a.probabilities() == b.probabilities()
        assert a.sample == b.sample

    def test_different_seed_differs(self, mixed_case, seeded_config):
        a = run_simulation(mixed_case, seeded_config)
        b = run_simulation(mixed_case, replace(seeded_config, seed=43))
        assert a.roi.interval != b.roi.interval


class TestValidation:
    @pytest.mark.parametrize("iterations", [0, -10])
    def test_non_positive_iterations(self, mixed_case, iterations):
        with pytest.raises(ValidationError) as exc_info:
            run_simulation(mixed_case, MonteCarloConfig(iterations=iterations))
        assert exc_info.value.field == "config.iterations"

    def test_negative_variance(self, mixed_case):
        with pytest.raises(ValidationError) as exc_info:
            run_simulation(mixed_case, MonteCarloConfig(variance_percent=-1))
        assert exc_info.value.field == "config.variance_percent"

    def test_overflowing_draws_rejected(self):
        # every draw overflows, even at the lowest growth and multiplier
        inputs = AnalysisInputs(
            baseline=BaselineMetrics(current_revenue=1.7e308),
            projections=ImpactProjections(revenue_growth_rate=100.0),
            investment=InvestmentParameters(amount=1_000_000, timeline_months=24),
        )
        with pytest.raises(ValidationError) as exc_info:
            run_simulation(inputs, MonteCarloConfig(iterations=100, seed=1))
        assert exc_info.value.field == "baseline.current_revenue"

    def test_sub_resolution_variance_runs(self, revenue_case):
        config = MonteCarloConfig(
            iterations=100, variance_percent=1e-17, multiplier_spread=1e-19, seed=1
        )
        results = run_simulation(revenue_case, config)
        assert results.iterations == 100
        assert Degeneracy.ZERO_VARIANCE in results.degeneracies

    def test_bad_inputs_fail_before_any_draw(self, mixed_case, seeded_config):
        calls = []
        bad = replace(
            mixed_case,
            investment=replace(mixed_case.investment, timeline_months=0),
        )
        with pytest.raises(ValidationError):
            run_simulation(bad, seeded_config, progress=lambda done, total: calls.append(done))
        assert calls == []


class TestCancellation:
    def test_cancelled_before_start(self, mixed_case, seeded_config):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(SimulationCancelled) as exc_info:
            run_simulation(mixed_case, seeded_config, cancel_token=token)
        assert exc_info.value.completed == 0
        assert exc_info.value.total == seeded_config.iterations

    def test_cancelled_between_chunks(self, mixed_case):
        token = CancellationToken()
        config = MonteCarloConfig(iterations=5_000, chunk_size=1_000, seed=1)

        def progress(done, total):
            token.cancel()

        with pytest.raises(SimulationCancelled) as exc_info:
            run_simulation(mixed_case, config, cancel_token=token, progress=progress)
        assert exc_info.value.completed == 1_000
        assert exc_info.value.total == 5_000

    def test_progress_reported_per_chunk(self, mixed_case):
        calls = []
        config = MonteCarloConfig(iterations=2_500, chunk_size=1_000, seed=1)
        run_simulation(mixed_case, config, progress=lambda done, total: calls.append((done, total)))
        assert calls == [(1_000, 2_500), (2_000, 2_500), (2_500, 2_500)]


class TestEntryPoints:
    def test_simulate_matches_run_simulation(self, mixed_case, seeded_config):
        a = simulate(
            mixed_case.baseline,
            mixed_case.projections,
            mixed_case.investment.amount,
            mixed_case.investment.timeline_months,
            seeded_config,
        )
        b = MonteCarloSimulator(seeded_config).run(mixed_case)
        assert a.roi == b.roi

    def test_default_config(self, mixed_case):
        simulator = MonteCarloSimulator()
        assert simulator.config.iterations == 10_000
