from __future__ import annotations
from typing import Iterable, Optional

from ..calibration.data import ModelFit
from ..config.bench_config import ScoreConfig


def calculate_local_score(model_fits: Iterable[Optional[ModelFit]], config: Optional[ScoreConfig] = None) -> Optional[float]:
    """Estimated LocalScore from fitted per-token rates.

    score = (prompt_tps * gen_tps * (1000 / ttft_ms)) ** (1/3) * scaling_factor
    ttft_ms = avg_prompt_tokens / prompt_tps * 1000

    TPS values are averaged over every fit with positive prompt and completion
    rates. Returns None when no fit qualifies, which is distinct from a score of 0.
    """
    config = config or ScoreConfig()

    prompt_tps = 0.0
    gen_tps = 0.0
    valid = 0
    for fit in model_fits:
        if fit is not None and fit.prompt_rate > 0 and fit.completion_rate > 0:
            prompt_tps += 1000.0 / fit.prompt_rate
            gen_tps += 1000.0 / fit.completion_rate
            valid += 1

    if valid == 0:
        return None

    prompt_tps /= valid
    gen_tps /= valid
    ttft_ms = config.avg_prompt_tokens / prompt_tps * 1000.0

    score = (prompt_tps * gen_tps * (1000.0 / ttft_ms)) ** (1.0 / 3.0) * config.scaling_factor
    return round(score, 2)
