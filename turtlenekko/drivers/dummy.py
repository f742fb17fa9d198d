from __future__ import annotations
from typing import Any, Dict

from .base import Driver, Model
from ..logs.benchmark_logger import get_logger


class DummyDriver(Driver):
    """Does not touch the environment; only remembers the configured URL and model."""

    def __init__(self):
        self.url = ""
        self.model = Model()

    def setup(self, params: Dict[str, Any]) -> None:
        logger = get_logger()
        url = params.get("url")
        if isinstance(url, str):
            self.url = url
            logger.info(f"[dummy] Setting URL: {url}")
        model = params.get("model")
        if isinstance(model, str):
            self.model = Model(model)
            logger.info(f"[dummy] Setting model: {model}")
        logger.info("[dummy] Driver setup completed")

    def teardown(self) -> None:
        get_logger().info("[dummy] Driver teardown completed (no-op)")

    def get_url(self) -> str:
        return self.url

    def get_model(self) -> Model:
        return self.model
