"""Live-reload server boundary."""

from __future__ import annotations

import logging
import subprocess
from typing import Protocol, runtime_checkable

from assetkit.config.models import LiveReloadOptions
from assetkit.stages.tooling import run_tool, tool_command

logger = logging.getLogger(__name__)


@runtime_checkable
class LiveReloadServer(Protocol):
    def start(self, options: LiveReloadOptions) -> None: ...

    def reload(self) -> None: ...

    def stop(self) -> None: ...


class BrowserSyncServer:
    """Runs ``browser-sync`` as a child process serving the output directory."""

    def __init__(self) -> None:
        self._process: subprocess.Popen | None = None

    @property
    def running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def start(self, options: LiveReloadOptions) -> None:
        if self.running:
            return
        args = [
            "start",
            "--server", options.base_dir,
            "--index", options.index,
            "--reload-delay", str(options.reload_delay),
        ]
        if not options.open_browser:
            args.append("--no-open")
        command = tool_command("browser-sync", *args)
        logger.info("Starting live reload: %s", " ".join(command))
        self._process = subprocess.Popen(command)

    def reload(self) -> None:
        if not self.running:
            logger.debug("Live reload not running, ignoring reload")
            return
        run_tool(tool_command("browser-sync", "reload"), timeout=30)

    def stop(self) -> None:
        if self._process is None:
            return
        self._process.terminate()
        try:
            self._process.wait(timeout=5)
        except subprocess.TimeoutExpired:
            self._process.kill()
        self._process = None
