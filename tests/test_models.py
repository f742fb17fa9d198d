"""
Tests for the completion time regression model.
"""

import numpy as np
import pytest

from turtlenekko.calibration.data import ModelFit
from turtlenekko.core.interfaces import CompletionResult
from turtlenekko.calibration.models import (
    CompletionTimeModel,
    SingularMatrixError,
    fit_completion_time_model,
    solve_normal_equations,
    FALLBACK_PROMPT_RATE,
    FALLBACK_CACHED_PROMPT_RATE,
    FALLBACK_COMPLETION_RATE,
    MIN_PROMPT_RATE,
    MIN_CACHED_PROMPT_RATE,
    MIN_COMPLETION_RATE,
)


def synthetic(points, a=2.0, b=0.5, c=30.0):
    return [
        CompletionResult(prompt_tokens=p, cached_prompt_tokens=cp, completion_tokens=g,
                         response_time_ms=a * p + b * cp + c * g)
        for p, cp, g in points
    ]


@pytest.fixture
def noiseless_points():
    return synthetic([
        (100, 0, 1), (100, 0, 100), (500, 0, 1), (500, 0, 100),
        (0, 100, 1), (0, 100, 100), (0, 500, 1), (0, 500, 100),
    ])


class TestSolveNormalEquations:
    def test_solves_well_conditioned_system(self):
        A = np.array([[4.0, 1.0, 2.0], [1.0, 5.0, 1.0], [2.0, 1.0, 6.0]])
        beta = np.array([1.0, -2.0, 3.0])
        assert solve_normal_equations(A, A @ beta) == pytest.approx(beta, abs=1e-9)

    def test_partial_pivoting_handles_zero_leading_entry(self):
        A = np.array([[0.0, 2.0, 0.0], [3.0, 0.0, 0.0], [0.0, 0.0, 1.0]])
        beta = np.array([1.0, 2.0, 3.0])
        assert solve_normal_equations(A, A @ beta) == pytest.approx(beta)

    def test_zero_column_is_singular(self):
        A = np.array([[1.0, 0.0, 2.0], [2.0, 0.0, 1.0], [1.0, 0.0, 1.0]])
        with pytest.raises(SingularMatrixError, match="column 1"):
            solve_normal_equations(A, np.ones(3))

    def test_rank_deficient_is_singular(self):
        v = np.array([4.0, 2.0, 1.0])
        with pytest.raises(SingularMatrixError, match="pivot"):
            solve_normal_equations(np.outer(v, v), v)


class TestCompletionTimeModel:
    def test_recovers_noiseless_coefficients(self, noiseless_points):
        fit = fit_completion_time_model(noiseless_points)

        assert fit.prompt_rate == pytest.approx(2.0, abs=1e-6)
        assert fit.cached_prompt_rate == pytest.approx(0.5, abs=1e-6)
        assert fit.completion_rate == pytest.approx(30.0, abs=1e-6)
        assert fit.r_squared == pytest.approx(1.0, abs=1e-9)
        assert fit.n_points == 8
        assert not fit.is_fallback

    def test_identical_token_counts_use_fallback(self):
        points = [CompletionResult(4, 1, 100.0 + i, cached_prompt_tokens=2) for i in range(5)]
        fit = fit_completion_time_model(points)

        assert fit.prompt_rate == FALLBACK_PROMPT_RATE
        assert fit.cached_prompt_rate == FALLBACK_CACHED_PROMPT_RATE
        assert fit.completion_rate == FALLBACK_COMPLETION_RATE
        assert fit.r_squared == 0.5
        assert fit.is_fallback

    def test_missing_token_type_uses_fallback(self):
        # No cached observations at all -> zero column in X^T X
        points = synthetic([(100, 0, 1), (200, 0, 5), (300, 0, 7), (400, 0, 50)])
        fit = fit_completion_time_model(points)
        assert fit.is_fallback
        assert fit.r_squared == 0.5

    def test_insufficient_data_returns_degenerate_fit(self):
        fit = fit_completion_time_model(synthetic([(100, 0, 1)]))
        assert fit.is_degenerate
        assert fit.r_squared == 0.0
        assert fit_completion_time_model([]).is_degenerate

    def test_coefficients_are_clamped_to_floors(self):
        # Times fall with more prompt tokens -> negative raw prompt coefficient
        points = [
            CompletionResult(100, 10, 1000.0),
            CompletionResult(200, 10, 900.0),
            CompletionResult(300, 10, 800.0),
            CompletionResult(0, 20, 950.0, cached_prompt_tokens=100),
            CompletionResult(0, 5, 300.0, cached_prompt_tokens=400),
        ]
        fit = fit_completion_time_model(points)

        assert fit.prompt_rate >= MIN_PROMPT_RATE
        assert fit.cached_prompt_rate >= MIN_CACHED_PROMPT_RATE
        assert fit.completion_rate >= MIN_COMPLETION_RATE
        assert 0.0 <= fit.r_squared <= 1.0

    def test_r_squared_is_zero_when_all_times_equal(self):
        points = [
            CompletionResult(100, 1, 500.0),
            CompletionResult(0, 10, 500.0, cached_prompt_tokens=100),
            CompletionResult(300, 20, 500.0),
            CompletionResult(0, 40, 500.0, cached_prompt_tokens=300),
        ]
        fit = fit_completion_time_model(points)
        assert not fit.is_fallback
        assert fit.r_squared == 0.0

    def test_r_squared_within_bounds_for_noisy_data(self):
        rng = np.random.default_rng(7)
        base = synthetic([
            (100, 0, 1), (100, 0, 100), (500, 0, 1), (500, 0, 100),
            (0, 100, 1), (0, 100, 100), (0, 500, 1), (0, 500, 100),
        ])
        noisy = [
            CompletionResult(r.prompt_tokens, r.completion_tokens,
                             max(0.0, r.response_time_ms + rng.normal(0, 200)),
                             cached_prompt_tokens=r.cached_prompt_tokens)
            for r in base
        ]
        fit = fit_completion_time_model(noisy)
        assert 0.0 <= fit.r_squared <= 1.0
        assert fit.mae is not None and fit.rmse is not None

    def test_none_entries_are_skipped(self, noiseless_points):
        fit = fit_completion_time_model(noiseless_points + [None])
        assert fit.n_points == 8

    def test_fit_returns_accuracy_metrics(self, noiseless_points):
        model = CompletionTimeModel()
        metrics = model.fit(noiseless_points)

        assert metrics["n_points"] == 8
        assert metrics["r2_score"] == pytest.approx(1.0, abs=1e-9)
        assert metrics["mae"] == pytest.approx(0.0, abs=1e-6)
        assert model.is_fitted and not model.is_fallback


def test_model_fit_tokens_per_sec():
    tps = ModelFit(2.0, 0.0, 40.0, r_squared=0.9).tokens_per_sec()
    assert tps == {"prompt": 500.0, "cached_prompt": None, "completion": 25.0}
