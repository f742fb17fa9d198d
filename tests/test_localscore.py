import pytest

from turtlenekko.calibration.data import ModelFit
from turtlenekko.config.bench_config import ScoreConfig
from turtlenekko.metrics.localscore import calculate_local_score


def _fit(prompt_rate, completion_rate):
    return ModelFit(prompt_rate, 0.01, completion_rate, r_squared=0.99)


def test_reference_value():
    # prompt 3 ms/token, generation 25 ms/token on both contexts
    score = calculate_local_score([_fit(3.0, 25.0), _fit(3.0, 25.0)])
    assert score == pytest.approx(149.45, abs=1e-9)


def test_single_fit_matches_duplicated_fit():
    assert calculate_local_score([_fit(3.0, 25.0)]) == calculate_local_score([_fit(3.0, 25.0)] * 2)


def test_averages_tokens_per_second():
    # 1000/2 and 1000/4 average to the same TPS as 1000/(8/3)
    mixed = calculate_local_score([_fit(2.0, 25.0), _fit(4.0, 25.0)])
    single = calculate_local_score([_fit(8.0 / 3.0, 25.0)])
    assert mixed == pytest.approx(single, abs=0.011)


def test_no_fits_returns_none():
    assert calculate_local_score([]) is None
    assert calculate_local_score([None, None]) is None


def test_invalid_fits_are_ignored():
    valid = calculate_local_score([_fit(3.0, 25.0)])
    assert calculate_local_score([None, _fit(0.0, 25.0), _fit(3.0, 25.0)]) == valid
    assert calculate_local_score([_fit(3.0, 0.0)]) is None


def test_scaling_factor():
    base = calculate_local_score([_fit(3.0, 25.0)], ScoreConfig(scaling_factor=1.0))
    assert base == pytest.approx(14.94, abs=1e-9)


def test_faster_model_scores_higher():
    slow = calculate_local_score([_fit(3.0, 25.0)])
    fast = calculate_local_score([_fit(1.0, 10.0)])
    assert fast > slow
