"""
Data structures for probe configurations, model fits and context runs.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ..core.interfaces import CompletionResult

# (prompt_tokens, cached_prompt_tokens, completion_tokens)
TokenSignature = Tuple[int, int, int]


@dataclass(frozen=True)
class ProbeConfig:
    """A single probe to execute: filler length in characters and completion cap."""
    prompt_length: int
    max_tokens: int

    def __post_init__(self):
        if self.prompt_length <= 0:
            raise ValueError("prompt_length must be positive")
        if self.max_tokens < 0:
            raise ValueError("max_tokens must be non-negative")


@dataclass
class ModelFit:
    """
    Fitted completion time model:
        response_time_ms ≈ prompt_rate·P + cached_prompt_rate·C + completion_rate·G
    Rates are in ms/token.
    """
    prompt_rate: float
    cached_prompt_rate: float
    completion_rate: float
    r_squared: float
    n_points: int = 0
    mae: Optional[float] = None
    rmse: Optional[float] = None
    is_fallback: bool = False

    @property
    def is_degenerate(self) -> bool:
        """True for the all-zero fit returned when there was too little data."""
        return self.prompt_rate == 0 and self.cached_prompt_rate == 0 and self.completion_rate == 0

    def tokens_per_sec(self) -> dict:
        """Rates inverted to tokens/sec (None where the rate is not positive)."""
        def inv(rate: float) -> Optional[float]:
            return 1000.0 / rate if rate > 0 else None
        return {
            "prompt": inv(self.prompt_rate),
            "cached_prompt": inv(self.cached_prompt_rate),
            "completion": inv(self.completion_rate),
        }


@dataclass
class ContextRun:
    """Terminal output of one adaptive sampling run for a context class."""
    context_type: str
    results: List[CompletionResult] = field(default_factory=list)
    model_fit: Optional[ModelFit] = None
    iterations: int = 0
    configs_run: int = 0
    converged: bool = False


DEFAULT_SHORT_CONTEXT_CONFIGS: List[ProbeConfig] = [
    ProbeConfig(100, 1),
    ProbeConfig(100, 100),
    ProbeConfig(500, 1),
    ProbeConfig(500, 100),
]

DEFAULT_LONG_CONTEXT_CONFIGS: List[ProbeConfig] = [
    ProbeConfig(9000, 1),
    ProbeConfig(9000, 100),
    ProbeConfig(10000, 1),
    ProbeConfig(10000, 100),
]
