"""
Benchmark orchestration: one run per parameter combination of the matrix.
"""

from __future__ import annotations
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import numpy as np

from .calibration.data import ModelFit
from .calibration.runners import AdaptiveSamplingRunner, ScalingResult
from .config.bench_config import ParameterConfig, SamplingConfig, ScoreConfig, expand_matrix, output_flags
from .core.engines import create_openai_client
from .core.interfaces import CompletionClient, CompletionResult
from .drivers import Driver, create_driver
from .errors import BenchmarkError, DriverError, TurtlenekkoError
from .logs.benchmark_logger import get_logger
from .metrics.localscore import calculate_local_score

ClientFactory = Callable[[str, str, SamplingConfig], CompletionClient]


def default_client_factory(url: str, model: str, sampling: SamplingConfig) -> CompletionClient:
    return create_openai_client(url, model, timeout=sampling.timeout_s)


@dataclass
class MatrixResult:
    """Everything produced for one parameter combination."""
    params: Dict[str, str]
    output_flags: Dict[str, bool] = field(default_factory=dict)
    results: List[CompletionResult] = field(default_factory=list)
    short_context_fit: Optional[ModelFit] = None
    long_context_fit: Optional[ModelFit] = None
    local_score: Optional[float] = None
    error: Optional[Exception] = None

    def output_params(self) -> Dict[str, str]:
        """Params whose output flag is set."""
        return {k: v for k, v in self.params.items() if self.output_flags.get(k, False)}


def _teardown(driver: Driver) -> None:
    try:
        driver.teardown()
    except DriverError as e:
        get_logger().log_error("driver teardown failed", e)


def run(driver: Optional[Driver],
        params: Dict[str, Any],
        sampling: Optional[SamplingConfig] = None,
        client_factory: ClientFactory = default_client_factory,
        rng: Optional[np.random.Generator] = None,
        sleep: Callable[[float], None] = time.sleep) -> ScalingResult:
    """
    Run the scaling benchmark for a single parameter set.

    The driver (when given) is set up first and always torn down afterwards,
    including when setup itself failed.

    Raises:
        BenchmarkError: setup failure, missing URL, or every probe failed
    """
    sampling = sampling or SamplingConfig()

    if driver is not None:
        try:
            driver.setup(params)
        except DriverError as e:
            _teardown(driver)
            raise BenchmarkError(f"driver setup failed: {e}") from e

    try:
        url = (driver.get_url() if driver is not None else "") or str(params.get("url") or "")
        model = (driver.get_model().name if driver is not None else "") or str(params.get("model") or "")
        if not url:
            raise BenchmarkError("no chat-completion URL configured")

        client = client_factory(url, model, sampling)
        runner = AdaptiveSamplingRunner(client, sampling, rng=rng, sleep=sleep)
        return runner.run_scaling_benchmark()
    finally:
        if driver is not None:
            _teardown(driver)


def run_matrix(driver_type: str,
               base_params: Optional[Dict[str, Any]],
               matrix: Dict[str, ParameterConfig],
               sampling: Optional[SamplingConfig] = None,
               score_config: Optional[ScoreConfig] = None,
               client_factory: ClientFactory = default_client_factory,
               rng: Optional[np.random.Generator] = None,
               sleep: Callable[[float], None] = time.sleep) -> List[MatrixResult]:
    """
    Run the benchmark for every combination of matrix parameters.

    A failure in one combination is recorded on its `MatrixResult` and never
    stops the remaining combinations.

    Raises:
        DriverError: unknown driver type
        BenchmarkError: the matrix yields no combinations
    """
    logger = get_logger()
    driver = create_driver(driver_type) if driver_type else None

    combinations = expand_matrix(matrix)
    if not combinations:
        raise BenchmarkError("no parameter combinations generated from matrix")
    flags = output_flags(matrix)

    matrix_results: List[MatrixResult] = []
    for i, combo in enumerate(combinations, 1):
        params: Dict[str, Any] = dict(base_params or {})
        params.update(combo)
        logger.info(f"Matrix combination {i}/{len(combinations)}")
        logger.log_benchmark_start(combo)

        result = MatrixResult(params=combo, output_flags=flags)
        try:
            scaling = run(driver, params, sampling, client_factory, rng=rng, sleep=sleep)
        except TurtlenekkoError as e:
            logger.log_error(f"benchmark failed for {combo}", e)
            result.error = e
        else:
            result.results = scaling.results
            result.short_context_fit = scaling.short_context_fit
            result.long_context_fit = scaling.long_context_fit
            if result.short_context_fit is not None or result.long_context_fit is not None:
                result.local_score = calculate_local_score(
                    [result.short_context_fit, result.long_context_fit], score_config)

        logger.log_benchmark_end(combo, result.local_score, result.error)
        matrix_results.append(result)

    return matrix_results
