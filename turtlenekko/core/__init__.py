from .interfaces import CompletionParams, CompletionResult, CompletionClient

__all__ = ["CompletionParams", "CompletionResult", "CompletionClient"]
