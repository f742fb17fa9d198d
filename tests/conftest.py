import logging

import pytest

from turtlenekko.core.interfaces import CompletionParams, CompletionResult
from turtlenekko.errors import CompletionError
from turtlenekko.logs.benchmark_logger import setup_logging


@pytest.fixture(autouse=True)
def quiet_logger():
    """Fresh global logger per test, bound to the current (captured) stderr."""
    logger = setup_logging(console_level=logging.WARNING)
    yield logger
    logger.close()


class FakeClient:
    """
    Noise-free endpoint simulator.

    prompt_tokens = len(content) // 4, completion_tokens = max_tokens (50 when uncapped).
    A request identical to the previous one is served from the "cache".
    """
    def __init__(self, prompt_ms=2.0, cached_ms=0.5, completion_ms=30.0, fail_on=()):
        self.prompt_ms = prompt_ms
        self.cached_ms = cached_ms
        self.completion_ms = completion_ms
        self.fail_on = set(fail_on)
        self.calls = []
        self._last_content = None

    def complete(self, params: CompletionParams) -> CompletionResult:
        index = len(self.calls)
        content = params.messages[0]["content"]
        self.calls.append(params)
        cached = content == self._last_content
        self._last_content = content
        if index in self.fail_on:
            raise CompletionError(f"simulated failure on call {index}")

        prompt_tokens = len(content) // 4
        completion_tokens = params.max_tokens if params.max_tokens > 0 else 50
        rate = self.cached_ms if cached else self.prompt_ms
        return CompletionResult(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            response_time_ms=rate * prompt_tokens + self.completion_ms * completion_tokens,
        )


class FailingClient:
    def __init__(self):
        self.calls = 0

    def complete(self, params):
        self.calls += 1
        raise CompletionError("connection refused")


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def no_sleep():
    calls = []
    return calls.append, calls
