"""
Environment variable loading utilities.
"""

import os
from typing import Optional

from dotenv import load_dotenv


def load_env_variables(env_file: str = ".env") -> bool:
    """
    Load environment variables from a .env file.

    Variables already present in the process environment win.

    Returns:
        True if a file was found and loaded, False otherwise
    """
    return load_dotenv(env_file, override=False)


def get_env_var(key: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
    """
    Get an environment variable with optional default and required validation.

    Raises:
        ValueError: If required variable is not set
    """
    value = os.getenv(key) or default

    if required and value is None:
        raise ValueError(f"Required environment variable {key} is not set")

    return value
