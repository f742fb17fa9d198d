from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict


@dataclass
class Model:
    """Model served by the environment under test."""
    name: str = ""


class Driver(ABC):
    """Prepares and cleans up the LLM runtime environment around a benchmark run."""

    @abstractmethod
    def setup(self, params: Dict[str, Any]) -> None:
        """Prepare the environment. Raises DriverError on failure."""
        raise NotImplementedError

    @abstractmethod
    def teardown(self) -> None:
        """Clean up the environment. Raises DriverError on failure."""
        raise NotImplementedError

    @abstractmethod
    def get_url(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def get_model(self) -> Model:
        raise NotImplementedError
