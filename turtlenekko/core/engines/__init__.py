from __future__ import annotations

from .base import BaseClient
from .openai_api import OpenAIChatClient, OpenAIClientConfig, create_openai_client


def create_client(engine_name: str, url: str, model: str | None = None, *, timeout: float = 600.0) -> BaseClient:
    name = (engine_name or "openai").lower()
    if name in ("openai", "chat"):
        return create_openai_client(url, model, timeout=timeout)
    raise ValueError(f"Unknown engine: {engine_name}")


__all__ = ["BaseClient", "OpenAIChatClient", "OpenAIClientConfig", "create_openai_client", "create_client"]
