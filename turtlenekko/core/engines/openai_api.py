"""
OpenAI-compatible chat-completion client.
Issues exactly one request per call: no retries, no streaming.
"""

from __future__ import annotations
import time
from dataclasses import dataclass
from typing import Optional, Dict, Any

import openai
from openai import OpenAI

from .base import BaseClient
from ..interfaces import CompletionParams, CompletionResult
from ...errors import CompletionError
from ...logs.benchmark_logger import get_logger

DEFAULT_MODEL = "llama"
DEFAULT_TIMEOUT_S = 600.0
CHAT_COMPLETIONS_SUFFIX = "/chat/completions"


def base_url_from_endpoint(url: str) -> str:
    """Derive the SDK base URL from a full `.../v1/chat/completions` endpoint."""
    url = url.rstrip("/")
    if url.endswith(CHAT_COMPLETIONS_SUFFIX):
        url = url[: -len(CHAT_COMPLETIONS_SUFFIX)]
    return url


@dataclass
class OpenAIClientConfig:
    """Configuration for the chat-completion client."""
    url: str
    model: str = DEFAULT_MODEL
    api_key: str = "not-needed"
    timeout: float = DEFAULT_TIMEOUT_S


class OpenAIChatClient(BaseClient):
    """
    Chat-completion client on top of the `openai` SDK.

    Timing brackets only the HTTP round trip; token counts are taken from the
    `usage` block exactly as the server reports them.
    """

    def __init__(self, config: OpenAIClientConfig):
        if not config.url:
            raise ValueError("A chat-completion URL is required")
        self.config = config
        self.model = config.model or DEFAULT_MODEL
        self.client = OpenAI(
            api_key=config.api_key,
            base_url=base_url_from_endpoint(config.url),
            timeout=config.timeout,
            max_retries=0,
        )

    def _request_kwargs(self, params: CompletionParams) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": params.messages,
            "temperature": params.temperature,
            "top_p": params.top_p,
        }
        if params.max_tokens > 0:
            kwargs["max_tokens"] = params.max_tokens
        if params.seed is not None:
            kwargs["seed"] = params.seed
        return kwargs

    def complete(self, params: CompletionParams) -> CompletionResult:
        logger = get_logger()
        logger.debug(f"Sending request to {self.config.url}")

        kwargs = self._request_kwargs(params)
        start_time = time.perf_counter()
        try:
            response = self.client.chat.completions.create(**kwargs)
        except openai.APIStatusError as e:
            raise CompletionError(f"unexpected status code: {e.status_code}", status_code=e.status_code) from e
        except openai.APITimeoutError as e:
            raise CompletionError(f"request timed out after {self.config.timeout:.0f}s") from e
        except openai.APIError as e:
            raise CompletionError(f"error sending request: {e}") from e
        response_time_ms = (time.perf_counter() - start_time) * 1000.0

        if response.choices:
            logger.debug(f"Response content: {response.choices[0].message.content!r}")
        else:
            logger.warning("Response contains no choices")

        usage = response.usage
        if usage is None:
            raise CompletionError("response carries no token usage")

        result = CompletionResult(
            prompt_tokens=usage.prompt_tokens or 0,
            completion_tokens=usage.completion_tokens or 0,
            response_time_ms=response_time_ms,
        )
        logger.debug(
            f"Completion successful: prompt_tokens={result.prompt_tokens}, "
            f"completion_tokens={result.completion_tokens}, time_ms={response_time_ms:.1f}"
        )
        return result


def create_openai_client(url: str, model: Optional[str] = None, timeout: float = DEFAULT_TIMEOUT_S) -> OpenAIChatClient:
    """Create a client, reading the bearer token from the environment."""
    from ...utils import load_env_variables, get_env_var

    load_env_variables()
    api_key = get_env_var("TURTLENEKKO_API_KEY") or get_env_var("OPENAI_API_KEY", default="not-needed")
    config = OpenAIClientConfig(url=url, model=model or DEFAULT_MODEL, api_key=api_key, timeout=timeout)
    return OpenAIChatClient(config)
