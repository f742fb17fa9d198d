from __future__ import annotations
from dataclasses import dataclass, replace
from typing import List, Dict, Optional, Protocol, Tuple

__all__ = ["ChatMessage", "CompletionParams", "CompletionResult", "CompletionClient"]

ChatMessage = Dict[str, str]


@dataclass
class CompletionParams:
    """Canonical chat-completion request parameters.

    Args:
        messages: Chat messages sent verbatim to the endpoint.
        temperature: Sampling temperature (0.0 = deterministic).
        top_p: Top-p nucleus sampling.
        max_tokens: Completion cap; 0 leaves it to the server.
        seed: Fixed RNG seed forwarded to the server.
    """
    messages: List[ChatMessage]
    temperature: float = 0.0
    top_p: float = 1.0
    max_tokens: int = 0
    seed: Optional[int] = 42


@dataclass(frozen=True)
class CompletionResult:
    """One observation: token usage reported by the server plus wall-clock time."""
    prompt_tokens: int
    completion_tokens: int
    response_time_ms: float
    cached_prompt_tokens: int = 0

    def __post_init__(self):
        if self.prompt_tokens < 0:
            raise ValueError("prompt_tokens must be non-negative")
        if self.cached_prompt_tokens < 0:
            raise ValueError("cached_prompt_tokens must be non-negative")
        if self.completion_tokens < 0:
            raise ValueError("completion_tokens must be non-negative")
        if self.response_time_ms < 0:
            raise ValueError("response_time_ms must be non-negative")

    @property
    def signature(self) -> Tuple[int, int, int]:
        """Token signature used to deduplicate observations."""
        return (self.prompt_tokens, self.cached_prompt_tokens, self.completion_tokens)

    def as_cached(self) -> "CompletionResult":
        """Reclassify every prompt token as served from the prompt cache."""
        return replace(
            self,
            prompt_tokens=0,
            cached_prompt_tokens=self.cached_prompt_tokens + self.prompt_tokens,
        )


class CompletionClient(Protocol):
    """Minimal protocol for chat-completion transports."""
    def complete(self, params: CompletionParams) -> CompletionResult: ...
