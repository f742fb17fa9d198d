from __future__ import annotations
from abc import ABC, abstractmethod
from ..interfaces import CompletionParams, CompletionResult

class BaseClient(ABC):
    """Abstract base for chat-completion clients."""
    @abstractmethod
    def complete(self, params: CompletionParams) -> CompletionResult:
        raise NotImplementedError
