"""Exception types shared across stages, graph and CLI."""

from __future__ import annotations

from pathlib import Path


class AssetkitError(Exception):
    """Base class for assetkit errors."""


class ConfigurationError(AssetkitError):
    """A required configuration resource is missing or unusable.

    Fatal to the stage invocation that needs it, not to sibling tasks.
    """

    def __init__(self, stage: str, message: str) -> None:
        self.stage = stage
        super().__init__(f"{stage}: {message}")


class ToolError(AssetkitError):
    """An external tool could not be run or exited non-zero."""

    def __init__(self, command: list[str], returncode: int | None, output: str = "") -> None:
        self.command = command
        self.returncode = returncode
        self.output = output
        tool = command[0] if command else "<none>"
        if returncode is None:
            msg = f"{tool} could not be started"
        else:
            msg = f"{tool} exited {returncode}"
        if output:
            msg += f": {output.strip()[:500]}"
        super().__init__(msg)


class RegistrationError(AssetkitError):
    """The task graph was wired incorrectly (unknown child, duplicate name)."""


class UnknownTaskError(AssetkitError):
    """A task name was run that was never registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown task '{name}'")


class BundleCollisionError(AssetkitError):
    """Two bundle entries reduce to the same unit name; only one can be bundled."""

    def __init__(self, dropped: Path, kept: Path, unit: str) -> None:
        self.dropped = dropped
        self.kept = kept
        self.unit = unit
        super().__init__(f"{dropped} is shadowed by {kept}: both bundle as '{unit}'")
