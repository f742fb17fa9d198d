"""
Tests for the adaptive sampling runner.
"""
import numpy as np
import pytest

from conftest import FakeClient, FailingClient
from turtlenekko.calibration.data import ModelFit, ProbeConfig
from turtlenekko.calibration.runners import AdaptiveSamplingRunner, update_best_results
from turtlenekko.config.bench_config import SamplingConfig
from turtlenekko.core.interfaces import CompletionResult
from turtlenekko.errors import BenchmarkError


SHORT = [ProbeConfig(100, 1), ProbeConfig(100, 100), ProbeConfig(500, 1), ProbeConfig(500, 100)]


def make_runner(client, **overrides):
    sampling = SamplingConfig(request_delay_s=0.0, **overrides)
    return AdaptiveSamplingRunner(client, sampling, rng=np.random.default_rng(0), sleep=lambda s: None)


class TestUpdateBestResults:
    def test_new_signature_is_stored(self):
        best = {}
        r = CompletionResult(10, 1, 100.0)
        assert update_best_results(best, r)
        assert best[(10, 0, 1)] is r

    def test_slower_duplicate_does_not_replace(self):
        fast = CompletionResult(10, 1, 100.0)
        slow = CompletionResult(10, 1, 150.0)
        best = {}
        update_best_results(best, fast)
        assert not update_best_results(best, slow)
        assert best[fast.signature] is fast
        assert len(best) == 1

    def test_faster_duplicate_replaces(self):
        slow = CompletionResult(10, 1, 150.0)
        fast = CompletionResult(10, 1, 100.0)
        best = {}
        update_best_results(best, slow)
        assert update_best_results(best, fast)
        assert best[fast.signature] is fast
        assert len(best) == 1

    def test_equal_time_keeps_existing(self):
        first = CompletionResult(10, 1, 100.0)
        best = {}
        update_best_results(best, first)
        assert not update_best_results(best, CompletionResult(10, 1, 100.0))
        assert best[first.signature] is first


class TestRunWithPromptLength:
    def test_cold_then_cached_with_same_content(self, fake_client):
        runner = make_runner(fake_client)
        results = runner.run_with_prompt_length(ProbeConfig(400, 10), postfix="")

        assert len(fake_client.calls) == 2
        assert fake_client.calls[0].messages == fake_client.calls[1].messages
        cold, cached = results
        assert cold.cached_prompt_tokens == 0 and cold.prompt_tokens > 0
        assert cached.prompt_tokens == 0
        assert cached.cached_prompt_tokens == cold.prompt_tokens
        assert cached.response_time_ms < cold.response_time_ms

    def test_request_parameters(self, fake_client):
        runner = make_runner(fake_client)
        runner.run_with_prompt_length(ProbeConfig(100, 7), postfix="!")
        params = fake_client.calls[0]
        assert params.max_tokens == 7
        assert params.temperature == 0.0
        assert params.top_p == 1.0
        assert params.seed == 42
        assert params.messages[0]["content"].endswith("!")

    def test_delay_after_every_request(self, fake_client):
        sleeps = []
        runner = AdaptiveSamplingRunner(fake_client, SamplingConfig(request_delay_s=0.5), sleep=sleeps.append)
        runner.run_with_prompt_length(ProbeConfig(100, 1))
        assert sleeps == [0.5, 0.5]

    def test_delay_also_after_failed_request(self):
        sleeps = []
        runner = AdaptiveSamplingRunner(FailingClient(), SamplingConfig(request_delay_s=0.25), sleep=sleeps.append)
        assert runner.run_with_prompt_length(ProbeConfig(100, 1)) == []
        assert sleeps == [0.25]

    def test_cold_failure_skips_repeat(self):
        client = FakeClient(fail_on={0})
        results = make_runner(client).run_with_prompt_length(ProbeConfig(100, 1))
        assert results == []
        assert len(client.calls) == 1

    def test_repeat_failure_keeps_cold_result(self):
        client = FakeClient(fail_on={1})
        results = make_runner(client).run_with_prompt_length(ProbeConfig(100, 1))
        assert len(results) == 1
        assert results[0].cached_prompt_tokens == 0

    def test_fresh_prefix_for_each_probe(self, fake_client):
        runner = make_runner(fake_client)
        runner.run_with_prompt_length(ProbeConfig(100, 1))
        runner.run_with_prompt_length(ProbeConfig(100, 1))
        assert fake_client.calls[0].messages != fake_client.calls[2].messages


class TestRunContext:
    def test_stops_early_on_good_fit(self, fake_client):
        run = make_runner(fake_client).run_context("short", SHORT, postfix="")

        assert run.converged
        assert run.iterations == 1
        assert run.configs_run == 4
        assert len(fake_client.calls) == 8
        assert len(run.results) == 8
        assert run.model_fit.r_squared >= 0.99
        assert run.model_fit.prompt_rate == pytest.approx(2.0, abs=1e-6)
        assert run.model_fit.cached_prompt_rate == pytest.approx(0.5, abs=1e-6)
        assert run.model_fit.completion_rate == pytest.approx(30.0, abs=1e-6)

    def test_early_stop_before_remaining_configs(self, fake_client):
        configs = SHORT + [ProbeConfig(1000, 1), ProbeConfig(1000, 100)]
        run = make_runner(fake_client).run_context("short", configs, postfix="")

        assert run.converged
        assert run.configs_run == 4
        assert len(fake_client.calls) == 8

    def test_runs_all_iterations_when_fit_stays_poor(self, fake_client):
        fits = []

        def poor_fitter(results):
            fits.append(len(results))
            return ModelFit(3.0, 0.01, 25.0, r_squared=0.5)

        runner = AdaptiveSamplingRunner(fake_client, SamplingConfig(request_delay_s=0.0),
                                        sleep=lambda s: None, fitter=poor_fitter)
        run = runner.run_context("short", SHORT, postfix="")

        assert not run.converged
        assert run.iterations == 3
        assert run.model_fit is not None and run.model_fit.r_squared == 0.5
        # Visited configs are never re-probed in later iterations
        assert len(fake_client.calls) == 8
        # One intermediate check after the 4th config, one final fit
        assert fits == [8, 8]

    def test_single_iteration_returns_final_fit(self, fake_client):
        def poor_fitter(results):
            return ModelFit(3.0, 0.01, 25.0, r_squared=0.2, n_points=len(results))

        runner = AdaptiveSamplingRunner(fake_client, SamplingConfig(request_delay_s=0.0, max_iterations=1),
                                        sleep=lambda s: None, fitter=poor_fitter)
        run = runner.run_context("short", SHORT, postfix="")

        assert run.iterations == 1
        assert not run.converged
        assert run.model_fit.n_points == 8
        assert len(fake_client.calls) == 8

    def test_custom_thresholds(self, fake_client):
        runner = make_runner(fake_client, min_points_intermediate_fit=4, max_iterations=1)
        run = runner.run_context("short", SHORT, postfix="")
        assert run.converged
        assert run.configs_run == 2
        assert len(fake_client.calls) == 4

    def test_too_few_signatures_gives_no_fit(self):
        client = FakeClient(fail_on={0, 1, 2})
        run = make_runner(client).run_context("short", SHORT, postfix="")

        assert run.iterations == 1
        assert run.model_fit is None
        assert len(run.results) == 2

    def test_all_failures(self):
        client = FailingClient()
        run = make_runner(client).run_context("long", SHORT, postfix="")
        assert run.results == []
        assert run.model_fit is None
        assert client.calls == 4

    def test_failed_config_is_not_retried(self):
        client = FakeClient(fail_on={0})

        def poor_fitter(results):
            return ModelFit(3.0, 0.01, 25.0, r_squared=0.1)

        runner = AdaptiveSamplingRunner(client, SamplingConfig(request_delay_s=0.0),
                                        sleep=lambda s: None, fitter=poor_fitter)
        run = runner.run_context("short", SHORT, postfix="")
        assert run.iterations == 3
        # 1 failed cold request, then 3 configs x 2 requests
        assert len(client.calls) == 7
        assert len(run.results) == 6

    def test_no_duplicate_signatures_retained(self, fake_client):
        configs = SHORT + SHORT
        run = make_runner(fake_client, min_points_intermediate_fit=100).run_context("short", configs, postfix="")
        signatures = [r.signature for r in run.results]
        assert len(signatures) == len(set(signatures)) == 8


class TestScalingBenchmark:
    def test_end_to_end_short_and_long(self, fake_client):
        result = make_runner(fake_client).run_scaling_benchmark()

        assert result.warmup_ok
        assert result.short_context_fit is not None
        assert result.long_context_fit is not None
        assert result.short_context.iterations <= 3
        assert result.long_context.iterations <= 3
        assert len(result.results) == 16
        # warmup (2) + short (8) + long (8)
        assert len(fake_client.calls) == 18

    def test_warmup_failure_is_not_fatal(self):
        client = FakeClient(fail_on={0})
        result = make_runner(client).run_scaling_benchmark()
        assert not result.warmup_ok
        assert result.short_context_fit is not None

    def test_warmup_can_be_disabled(self, fake_client):
        make_runner(fake_client, warmup=False).run_scaling_benchmark()
        assert len(fake_client.calls) == 16

    def test_all_probes_failing_raises(self):
        with pytest.raises(BenchmarkError, match="all benchmark configurations failed"):
            make_runner(FailingClient()).run_scaling_benchmark()
