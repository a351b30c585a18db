"""Running external command-line tools."""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

from assetkit.errors import ToolError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 300


def tool_command(tool: str, *args: str) -> list[str]:
    """Build a command line for *tool*, going through ``npx`` when it is not on PATH."""
    if shutil.which(tool):
        return [tool, *args]
    return ["npx", "--no-install", tool, *args]


def run_tool(
    command: list[str],
    *,
    cwd: Path | None = None,
    stdin: bytes | None = None,
    timeout: int = DEFAULT_TIMEOUT,
) -> subprocess.CompletedProcess[bytes]:
    """Run *command* and return the completed process.

    Raises ToolError when the executable is missing, the call times out,
    or it exits non-zero.
    """
    logger.debug("Running %s", " ".join(command))
    try:
        result = subprocess.run(
            command,
            cwd=cwd,
            input=stdin,
            capture_output=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise ToolError(command, None, str(e)) from e
    except subprocess.TimeoutExpired as e:
        raise ToolError(command, None, f"timed out after {timeout}s") from e

    if result.returncode != 0:
        output = (result.stderr or b"").decode(errors="replace") or (result.stdout or b"").decode(
            errors="replace"
        )
        raise ToolError(command, result.returncode, output)
    return result
