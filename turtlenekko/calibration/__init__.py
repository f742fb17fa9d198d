"""
Latency calibration: probe content and the completion time model.

The adaptive sampling runner lives in `turtlenekko.calibration.runners`; it is
not re-exported here because it depends on `turtlenekko.config`, which in turn
imports the probe data types from this package.
"""

from .data import ProbeConfig, ModelFit, ContextRun, TokenSignature
from .content import generate_probe_content, generate_messages
from .models import CompletionTimeModel, fit_completion_time_model

__all__ = [
    'ProbeConfig',
    'ModelFit',
    'ContextRun',
    'TokenSignature',
    'generate_probe_content',
    'generate_messages',
    'CompletionTimeModel',
    'fit_completion_time_model',
]
