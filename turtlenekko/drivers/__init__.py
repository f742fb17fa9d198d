from __future__ import annotations

from .base import Driver, Model
from .dummy import DummyDriver
from .local_cmd import LocalCmdDriver
from ..errors import DriverError


def create_driver(driver_type: str) -> Driver:
    name = (driver_type or "").lower()
    if name == "dummy":
        return DummyDriver()
    if name == "local_cmd":
        return LocalCmdDriver()
    raise DriverError(f"unsupported driver type: {driver_type}")


__all__ = ["Driver", "Model", "DummyDriver", "LocalCmdDriver", "create_driver"]
