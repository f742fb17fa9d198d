"""
Exception types raised across the benchmark pipeline.
"""


class TurtlenekkoError(Exception):
    """Base class for all errors raised by turtlenekko."""


class ConfigError(TurtlenekkoError):
    """Invalid or unreadable benchmark configuration."""


class CompletionError(TurtlenekkoError):
    """A single chat-completion request failed (transport, status or payload)."""
    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class DriverError(TurtlenekkoError):
    """Environment setup or teardown failed."""
    def __init__(self, message, output: str = ""):
        super().__init__(message)
        self.output = output


class BenchmarkError(TurtlenekkoError):
    """A whole parameter-set run could not produce results."""
