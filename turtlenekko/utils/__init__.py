"""
Utility functions for turtlenekko.
"""

from .env_loader import load_env_variables, get_env_var

__all__ = ["load_env_variables", "get_env_var"]
