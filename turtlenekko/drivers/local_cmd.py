"""
Driver that runs shell commands before and after a benchmark.

`setup_cmd` and `teardown_cmd` may reference any matrix parameter as
``${name}``; unknown placeholders are left untouched so regular shell
variables keep working. When the setup command prints a single http(s) URL,
that URL becomes the benchmark endpoint.
"""

from __future__ import annotations
import subprocess
from string import Template
from typing import Any, Dict

from .base import Driver, Model
from ..errors import DriverError
from ..logs.benchmark_logger import get_logger


class LocalCmdDriver(Driver):

    def __init__(self, shell_timeout_s: float | None = None):
        self.url = ""
        self.model = Model()
        self.setup_cmd = ""
        self.teardown_cmd = ""
        self.params: Dict[str, Any] = {}
        self.shell_timeout_s = shell_timeout_s

    def interpolate_command(self, cmd_template: str) -> str:
        try:
            return Template(cmd_template).safe_substitute({k: str(v) for k, v in self.params.items()})
        except ValueError as e:
            raise DriverError(f"invalid command template: {e}") from e

    def _run(self, stage: str, cmd_template: str) -> str:
        logger = get_logger()
        cmd = self.interpolate_command(cmd_template)
        logger.info(f"[local_cmd] Running {stage} command: {cmd}")
        try:
            # undecodable bytes in the command output are replaced, not fatal
            completed = subprocess.run(
                cmd, shell=True, capture_output=True, text=True, errors="replace",
                timeout=self.shell_timeout_s,
            )
        except subprocess.TimeoutExpired as e:
            raise DriverError(f"{stage} command timed out after {e.timeout}s") from e
        except (OSError, UnicodeError) as e:
            raise DriverError(f"{stage} command could not be run: {e}") from e

        output = (completed.stdout or "") + (completed.stderr or "")
        if completed.returncode != 0:
            logger.error(f"[local_cmd] {stage.capitalize()} command failed with exit code {completed.returncode}")
            raise DriverError(
                f"{stage} command failed: exit code {completed.returncode}, output: {output.strip()}",
                output=output,
            )
        logger.info(f"[local_cmd] {stage.capitalize()} command completed successfully")
        return completed.stdout or ""

    def setup(self, params: Dict[str, Any]) -> None:
        self.params = dict(params)

        url = params.get("url")
        if isinstance(url, str) and url:
            self.url = url
        model = params.get("model")
        if isinstance(model, str) and model:
            self.model = Model(model)

        self.teardown_cmd = params.get("teardown_cmd") or ""
        self.setup_cmd = params.get("setup_cmd") or ""
        if not self.setup_cmd:
            return

        output = self._run("setup", self.setup_cmd).strip()
        if output.startswith(("http://", "https://")):
            self.url = output

    def teardown(self) -> None:
        if not self.teardown_cmd:
            return
        self._run("teardown", self.teardown_cmd)

    def get_url(self) -> str:
        return self.url

    def get_model(self) -> Model:
        return self.model
