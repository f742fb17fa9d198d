from .bench_config import (
    ParameterConfig,
    SamplingConfig,
    ScoreConfig,
    BenchConfig,
    load_bench_config,
    parse_bench_config,
    expand_matrix,
    output_flags,
    write_default_config,
    DEFAULT_CONFIG_TEMPLATE,
)

__all__ = [
    "ParameterConfig",
    "SamplingConfig",
    "ScoreConfig",
    "BenchConfig",
    "load_bench_config",
    "parse_bench_config",
    "expand_matrix",
    "output_flags",
    "write_default_config",
    "DEFAULT_CONFIG_TEMPLATE",
]
