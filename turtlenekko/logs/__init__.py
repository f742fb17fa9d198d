from .benchmark_logger import BenchmarkLogger, get_logger, setup_logging, parse_log_level

__all__ = ["BenchmarkLogger", "get_logger", "setup_logging", "parse_log_level"]
