"""
Centralized logging module for turtlenekko.

This module provides a unified logging interface that:
- Logs to the console (stderr) and optionally to a timestamped file
- Maintains consistent log formatting
- Offers helpers for the recurring benchmark events (probes, fits, iterations)
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional


class BenchmarkLogger:
    """
    Centralized logger for benchmarking operations.

    Features:
    - Console output, plus file output when a log directory is given
    - Automatic log file naming with timestamps
    - Configurable log levels
    """

    def __init__(self,
                 name: str = "turtlenekko",
                 log_dir: Optional[str] = None,
                 console_level: int = logging.INFO,
                 file_level: int = logging.DEBUG,
                 stream=None):
        """
        Initialize the benchmark logger.

        Args:
            name: Logger name (used in log file naming)
            log_dir: Directory to store log files; no file is written when None
            console_level: Console output level
            file_level: File output level
            stream: Console stream (defaults to stderr so stdout stays machine readable)
        """
        self.name = name
        self.log_dir = Path(log_dir) if log_dir else None
        self.console_level = console_level
        self.file_level = file_level
        self.log_filepath: Optional[Path] = None

        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG)

        # Prevent propagation to parent loggers to avoid duplicate logging
        self.logger.propagate = False
        self.logger.handlers.clear()

        self._setup_formatters()
        self._setup_console_handler(stream or sys.stderr)
        if self.log_dir is not None:
            self._setup_file_handler()

        self.logger.debug(f"Logger initialized: {name} (console level: {logging.getLevelName(console_level)})")

    def _setup_formatters(self):
        """Setup log formatters for different outputs."""
        self.console_formatter = logging.Formatter(
            fmt='%(asctime)s | %(levelname)-8s | %(message)s',
            datefmt='%H:%M:%S'
        )
        self.file_formatter = logging.Formatter(
            fmt='%(asctime)s | %(name)-12s | %(levelname)-8s | %(funcName)-20s:%(lineno)-4d | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    def _setup_console_handler(self, stream):
        console_handler = logging.StreamHandler(stream)
        console_handler.setLevel(self.console_level)
        console_handler.setFormatter(self.console_formatter)
        self.logger.addHandler(console_handler)

    def _setup_file_handler(self):
        """Setup file handler with timestamped filename."""
        self.log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        log_filepath = self.log_dir / f"{self.name}_{timestamp}.log"

        file_handler = logging.FileHandler(log_filepath, encoding='utf-8')
        file_handler.setLevel(self.file_level)
        file_handler.setFormatter(self.file_formatter)
        self.logger.addHandler(file_handler)

        self.log_filepath = log_filepath
        self.logger.info(f"Log file created: {log_filepath}")

    def get_logger(self) -> logging.Logger:
        """Get the underlying logger instance."""
        return self.logger

    def info(self, message: str):
        self.logger.info(message)

    def debug(self, message: str):
        self.logger.debug(message)

    def warning(self, message: str):
        self.logger.warning(message)

    def error(self, message: str):
        self.logger.error(message)

    def exception(self, message: str):
        """Log exception with traceback."""
        self.logger.exception(message)

    def log_probe(self, context_type: str, prompt_length: int, max_tokens: int, response_time_ms: float, cached: bool = False):
        """Log a completed probe request."""
        kind = "cached" if cached else "cold"
        self.logger.info(
            f"Probe [{context_type}/{kind}]: prompt_length={prompt_length}, "
            f"max_tokens={max_tokens}, response_time_ms={response_time_ms:.0f}"
        )

    def log_iteration(self, context_type: str, iteration: int, max_iterations: int):
        self.logger.info(f"Starting {context_type} context iteration {iteration}/{max_iterations}")

    def log_model_fit(self, label: str, fit) -> None:
        """Log fitted rates (ms/token) and goodness of fit."""
        self.logger.info(
            f"{label}: prompt={fit.prompt_rate:.4f} ms/tok, cached={fit.cached_prompt_rate:.4f} ms/tok, "
            f"completion={fit.completion_rate:.4f} ms/tok, R²={fit.r_squared:.4f}"
            + (" (fallback)" if getattr(fit, "is_fallback", False) else "")
        )

    def log_benchmark_start(self, params: dict):
        self.logger.info("=" * 80)
        self.logger.info("STARTING BENCHMARK")
        self.logger.info(f"Parameters: {params}")
        self.logger.info("=" * 80)

    def log_benchmark_end(self, params: dict, local_score: Optional[float], error: Optional[Exception] = None):
        self.logger.info("=" * 80)
        self.logger.info("BENCHMARK COMPLETED" if error is None else "BENCHMARK FAILED")
        self.logger.info(f"Parameters: {params}")
        if error is not None:
            self.logger.info(f"Error: {error}")
        else:
            self.logger.info(f"LocalScore estimate: {local_score}")
        self.logger.info("=" * 80)

    def log_error(self, error_msg: str, exception: Optional[Exception] = None):
        """Log error with optional exception details."""
        self.logger.error(f"ERROR: {error_msg}")
        if exception:
            self.logger.debug(f"Exception details: {exception!r}")

    def close(self):
        """Close the logger and all handlers."""
        for handler in list(self.logger.handlers):
            handler.close()
            self.logger.removeHandler(handler)


# Global logger instance
_global_logger: Optional[BenchmarkLogger] = None


def get_logger(name: str = "turtlenekko", **kwargs) -> BenchmarkLogger:
    """
    Get or create the global logger instance.

    Args:
        name: Logger name
        **kwargs: Additional arguments for BenchmarkLogger

    Returns:
        BenchmarkLogger instance
    """
    global _global_logger

    if _global_logger is None:
        _global_logger = BenchmarkLogger(name=name, **kwargs)

    return _global_logger


def setup_logging(name: str = "turtlenekko",
                  log_dir: Optional[str] = None,
                  console_level: int = logging.INFO,
                  file_level: int = logging.DEBUG) -> BenchmarkLogger:
    """
    (Re)configure the global logger.

    Unlike `get_logger`, this always replaces the existing instance so the
    CLI can apply `--log-level` after the first module-level use.
    """
    global _global_logger

    if _global_logger is not None:
        _global_logger.close()
    _global_logger = BenchmarkLogger(
        name=name,
        log_dir=log_dir,
        console_level=console_level,
        file_level=file_level,
    )
    return _global_logger


def parse_log_level(level: str) -> int:
    """Map a CLI log level name to a logging level; unknown names give INFO."""
    return {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "warn": logging.WARNING,
        "warning": logging.WARNING,
        "error": logging.ERROR,
    }.get((level or "").lower(), logging.INFO)
