from __future__ import annotations
from dataclasses import dataclass, field, fields
from typing import Dict, List, Any, Optional
import itertools, pathlib, yaml

from ..calibration.data import ProbeConfig, DEFAULT_SHORT_CONTEXT_CONFIGS, DEFAULT_LONG_CONTEXT_CONFIGS
from ..errors import ConfigError

DEFAULT_POSTFIX = "\nI need some filler content. Please generate as much lorem ipsum as you can."

@dataclass
class ParameterConfig:
    """Candidate values for one matrix parameter; `output` controls whether it is reported."""
    values: List[str] = field(default_factory=list)
    output: bool = True

@dataclass
class SamplingConfig:
    """Tunables of the adaptive sampling loop."""
    max_iterations: int = 3
    min_acceptable_r_squared: float = 0.99
    min_points_intermediate_fit: int = 8
    min_points_final_fit: int = 4
    request_delay_s: float = 0.5
    timeout_s: float = 600.0
    random_prefix_length: int = 10
    postfix: str = DEFAULT_POSTFIX
    temperature: float = 0.0
    top_p: float = 1.0
    seed: Optional[int] = 42
    warmup: bool = True
    show_progress: bool = False
    short_context_configs: List[ProbeConfig] = field(default_factory=lambda: list(DEFAULT_SHORT_CONTEXT_CONFIGS))
    long_context_configs: List[ProbeConfig] = field(default_factory=lambda: list(DEFAULT_LONG_CONTEXT_CONFIGS))

    def __post_init__(self):
        if self.max_iterations < 1:
            raise ConfigError("max_iterations must be at least 1")
        if not 0.0 <= self.min_acceptable_r_squared <= 1.0:
            raise ConfigError("min_acceptable_r_squared must be within [0, 1]")
        if self.request_delay_s < 0:
            raise ConfigError("request_delay_s must be non-negative")

@dataclass
class ScoreConfig:
    # (1024 + 4096 + 2048 + 2048 + 1024 + 1280 + 384 + 64 + 16) / 9, the mean prompt
    # length of the LocalScore reference workload
    avg_prompt_tokens: float = 1331.56
    scaling_factor: float = 10.0

@dataclass
class BenchConfig:
    driver: str = ""
    matrix: Dict[str, ParameterConfig] = field(default_factory=dict)
    sampling: SamplingConfig = field(default_factory=SamplingConfig)
    score: ScoreConfig = field(default_factory=ScoreConfig)

def _dict_to_dataclass(cls, d):
    # unknown keys are ignored
    names = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in (d or {}).items() if k in names})

def _parse_probe_configs(key: str, raw) -> List[ProbeConfig]:
    try:
        return [ProbeConfig(int(p), int(m)) for p, m in raw]
    except (TypeError, ValueError) as e:
        raise ConfigError(f"invalid {key}: expected a list of [prompt_length, max_tokens] pairs ({e})") from e

def _parse_parameter(key: str, value: Any) -> Optional[ParameterConfig]:
    if isinstance(value, list):
        return ParameterConfig(values=[str(v) for v in value])
    if isinstance(value, dict):
        values = value.get("values")
        if not isinstance(values, list):
            # object without a values list is ignored
            return None
        return ParameterConfig(values=[str(v) for v in values], output=bool(value.get("output", True)))
    raise ConfigError(f"invalid parameter format for key {key}: {value!r}")

def parse_bench_config(data: Dict[str, Any]) -> BenchConfig:
    if not isinstance(data, dict):
        raise ConfigError("configuration must be a mapping")

    matrix: Dict[str, ParameterConfig] = {}
    for key, value in (data.get("matrix") or {}).items():
        param = _parse_parameter(key, value)
        if param is not None:
            matrix[key] = param

    sampling_data = dict(data.get("sampling") or {})
    for key in ("short_context_configs", "long_context_configs"):
        if key in sampling_data:
            sampling_data[key] = _parse_probe_configs(key, sampling_data[key])
    sampling = _dict_to_dataclass(SamplingConfig, sampling_data)
    score = _dict_to_dataclass(ScoreConfig, data.get("score", {}))

    return BenchConfig(driver=data.get("driver") or "", matrix=matrix, sampling=sampling, score=score)

def load_bench_config(path: str | pathlib.Path) -> BenchConfig:
    path = pathlib.Path(path)
    if not path.exists():
        raise FileNotFoundError(f"configuration file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"error parsing configuration file: {e}") from e
    return parse_bench_config(data)

def output_flags(matrix: Dict[str, ParameterConfig]) -> Dict[str, bool]:
    return {k: p.output for k, p in matrix.items()}

def expand_matrix(matrix: Dict[str, ParameterConfig]) -> List[Dict[str, str]]:
    """
    Cartesian product of every parameter that has at least one value.
    The first key varies slowest.
    """
    keys = [k for k, p in matrix.items() if p.values]
    if not keys:
        return []
    return [dict(zip(keys, combo)) for combo in itertools.product(*(matrix[k].values for k in keys))]

DEFAULT_CONFIG_TEMPLATE = """# Turtlenekko Configuration File
# This is an example configuration file with common settings

# Driver configuration
# Available drivers: "dummy", "local_cmd"
driver: "dummy"

# Matrix of parameters to test
# Each parameter can be specified as:
# 1. A simple array of values: param: [value1, value2]
# 2. An object with values and output flag: param: {values: [value1, value2], output: true}
matrix:
  # URL to the LLM API endpoint
  url:
    values: ["http://localhost:8080/v1/chat/completions"]
    output: true

  # Model to use for benchmarking
  model:
    values: ["llama3"]
    output: true

# Optional sampling overrides
# sampling:
#   max_iterations: 3
#   min_acceptable_r_squared: 0.99
#   request_delay_s: 0.5
#   short_context_configs: [[100, 1], [100, 100], [500, 1], [500, 100]]
#   long_context_configs: [[9000, 1], [9000, 100], [10000, 1], [10000, 100]]

# Example configuration for local_cmd driver
# Uncomment and modify as needed
#
# driver: "local_cmd"
# matrix:
#   url:
#     values: ["http://localhost:8080/v1/chat/completions"]
#     output: false
#   model:
#     values: ["llama3"]
#     output: true
#   # Command to run before benchmarking (${param} placeholders are interpolated)
#   setup_cmd:
#     values: ["docker run -d --name llm-server -p 8080:8080 llm-image:latest"]
#     output: false
#   # Command to run after benchmarking
#   teardown_cmd:
#     values: ["docker stop llm-server && docker rm llm-server"]
#     output: false
"""

def write_default_config(path: str | pathlib.Path) -> None:
    pathlib.Path(path).write_text(DEFAULT_CONFIG_TEMPLATE, encoding="utf-8")
