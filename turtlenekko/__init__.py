"""
Turtlenekko - LLM performance measurement over chat-completion endpoints.
"""

__version__ = "0.3.0"

from .errors import TurtlenekkoError, ConfigError, CompletionError, DriverError, BenchmarkError

__all__ = [
    "__version__",
    "TurtlenekkoError",
    "ConfigError",
    "CompletionError",
    "DriverError",
    "BenchmarkError",
]
