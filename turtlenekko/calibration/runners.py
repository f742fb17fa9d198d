"""
Adaptive sampling runners for latency calibration.
"""

from __future__ import annotations
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np
from tqdm.auto import tqdm

from .content import generate_messages
from .data import ContextRun, ModelFit, ProbeConfig, TokenSignature
from .models import fit_completion_time_model
from ..config.bench_config import SamplingConfig
from ..core.interfaces import CompletionClient, CompletionParams, CompletionResult
from ..errors import BenchmarkError, CompletionError
from ..logs.benchmark_logger import get_logger

WARMUP_CONFIG = ProbeConfig(prompt_length=100, max_tokens=100)
WARMUP_POSTFIX = "Just a warmup request."


def update_best_results(best: Dict[TokenSignature, CompletionResult], result: CompletionResult) -> bool:
    """
    Keep only the fastest observation per token signature.

    Returns:
        True if `result` was stored (new signature or faster than the existing one)
    """
    existing = best.get(result.signature)
    if existing is None or result.response_time_ms < existing.response_time_ms:
        best[result.signature] = result
        return True
    return False


@dataclass
class ScalingResult:
    """Outcome of warmup + short context + long context sampling."""
    short_context: ContextRun
    long_context: ContextRun
    warmup_ok: bool = True
    results: List[CompletionResult] = field(default_factory=list)

    @property
    def short_context_fit(self) -> Optional[ModelFit]:
        return self.short_context.model_fit

    @property
    def long_context_fit(self) -> Optional[ModelFit]:
        return self.long_context.model_fit


class AdaptiveSamplingRunner:
    """
    Drives probe requests for one endpoint and fits the completion time model.

    Each context class (short / long) is sampled independently:
    1. Every not-yet-visited probe config is run once cold and once as an
       identical repeat that should hit the prompt cache
    2. Only the fastest observation per token signature is retained
    3. After each config, once enough signatures exist, an intermediate fit is
       checked against the R² target and sampling stops early when it is met
    4. Otherwise sampling ends after `max_iterations` or when too few
       signatures were collected for a final fit
    """

    def __init__(self,
                 client: CompletionClient,
                 sampling: Optional[SamplingConfig] = None,
                 rng: Optional[np.random.Generator] = None,
                 sleep: Callable[[float], None] = time.sleep,
                 fitter: Callable[[List[CompletionResult]], ModelFit] = fit_completion_time_model):
        """
        Args:
            client: Chat-completion transport
            sampling: Loop thresholds, delays and probe sets
            rng: Random source for probe prefixes
            sleep: Throttle function called after every request
            fitter: Regression fitter used for intermediate and final fits
        """
        self.client = client
        self.sampling = sampling or SamplingConfig()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.sleep = sleep
        self.fitter = fitter

    def _throttle(self) -> None:
        if self.sampling.request_delay_s > 0:
            self.sleep(self.sampling.request_delay_s)

    def _request(self, params: CompletionParams) -> CompletionResult:
        try:
            return self.client.complete(params)
        finally:
            # Small delay between requests to avoid overwhelming the server
            self._throttle()

    def run_with_prompt_length(self, config: ProbeConfig, postfix: str = "", context_type: str = "probe") -> List[CompletionResult]:
        """
        Run one probe config: a cold request followed by the identical request.

        The repeat's prompt tokens are reclassified as cached. Failures are
        logged and the affected observation is omitted; a failed cold request
        skips the repeat.
        """
        logger = get_logger()
        sampling = self.sampling
        messages = generate_messages(config.prompt_length, sampling.random_prefix_length, postfix, self.rng)
        params = CompletionParams(
            messages=messages,
            temperature=sampling.temperature,
            top_p=sampling.top_p,
            max_tokens=config.max_tokens,
            seed=sampling.seed,
        )

        results: List[CompletionResult] = []
        try:
            cold = self._request(params)
        except CompletionError as e:
            logger.error(f"{context_type} probe failed (prompt_length={config.prompt_length}, "
                         f"max_tokens={config.max_tokens}): {e}")
            return results
        logger.log_probe(context_type, config.prompt_length, config.max_tokens, cold.response_time_ms)
        results.append(cold)

        try:
            repeat = self._request(params)
        except CompletionError as e:
            logger.error(f"{context_type} cached probe failed (prompt_length={config.prompt_length}, "
                         f"max_tokens={config.max_tokens}): {e}")
            return results
        cached = repeat.as_cached()
        logger.log_probe(context_type, config.prompt_length, config.max_tokens, cached.response_time_ms, cached=True)
        results.append(cached)

        return results

    def run_context(self, context_type: str, configs: Sequence[ProbeConfig], postfix: Optional[str] = None) -> ContextRun:
        """Adaptive sampling for one context class. State is local to the call."""
        logger = get_logger()
        sampling = self.sampling
        postfix = sampling.postfix if postfix is None else postfix
        logger.info(f"Running {context_type} context benchmarks ({len(configs)} configs)")

        best_results: Dict[TokenSignature, CompletionResult] = {}
        configs_run = set()
        iterations_done = 0

        for iteration in range(1, sampling.max_iterations + 1):
            logger.log_iteration(context_type, iteration, sampling.max_iterations)

            pending = [c for c in configs if not (iteration > 1 and c in configs_run)]
            pbar = tqdm(total=len(pending), desc=f"{context_type} context (iteration {iteration})",
                        unit="config", disable=not sampling.show_progress)
            try:
                for config in pending:
                    configs_run.add(config)
                    for result in self.run_with_prompt_length(config, postfix, context_type):
                        if update_best_results(best_results, result):
                            logger.debug(f"New best result for {result.signature}: {result.response_time_ms:.1f} ms")
                    pbar.update(1)

                    if len(best_results) >= sampling.min_points_intermediate_fit:
                        current = list(best_results.values())
                        fit = self.fitter(current)
                        logger.log_model_fit(
                            f"Intermediate {context_type} fit after {len(configs_run)} configs", fit)
                        if fit.r_squared >= sampling.min_acceptable_r_squared:
                            logger.info(f"Achieved acceptable R-squared for {context_type} context "
                                        f"(iteration {iteration}, R²={fit.r_squared:.4f})")
                            return ContextRun(context_type, current, fit, iteration, len(configs_run), converged=True)
            finally:
                pbar.close()

            iterations_done = iteration
            logger.info(f"Completed iteration {iteration} for {context_type} context with {len(best_results)} results")
            if len(best_results) < sampling.min_points_final_fit:
                break
            if iteration < sampling.max_iterations:
                logger.info(f"R-squared not acceptable for {context_type} context, running another iteration")

        current = list(best_results.values())
        fit = None
        if len(current) >= sampling.min_points_final_fit:
            fit = self.fitter(current)
            logger.log_model_fit(f"Final {context_type} fit after {iterations_done} iterations", fit)
        else:
            logger.warning(f"Not enough data points for {context_type} model fit: {len(current)}")
        return ContextRun(context_type, current, fit, iterations_done, len(configs_run))

    def warmup(self) -> bool:
        logger = get_logger()
        logger.info("Running warmup request")
        results = self.run_with_prompt_length(WARMUP_CONFIG, WARMUP_POSTFIX, "warmup")
        if not results:
            logger.warning("Warmup request failed (continuing with benchmark)")
            return False
        logger.info("Warmup request completed successfully")
        return True

    def run_scaling_benchmark(self, postfix: Optional[str] = None) -> ScalingResult:
        """
        Warmup, then short and long context sampling.

        Raises:
            BenchmarkError: if neither context class retained a single observation
        """
        logger = get_logger()
        sampling = self.sampling

        warmup_ok = self.warmup() if sampling.warmup else True
        short = self.run_context("short", sampling.short_context_configs, postfix)
        long = self.run_context("long", sampling.long_context_configs, postfix)

        if not short.results and not long.results:
            raise BenchmarkError("all benchmark configurations failed")

        logger.info(f"Scaling benchmark completed: short={len(short.results)} results, long={len(long.results)} results")
        return ScalingResult(short, long, warmup_ok, short.results + long.results)
