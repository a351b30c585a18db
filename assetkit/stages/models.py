"""Per-file results, run reports and the error-reporting side channel."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, Field

from assetkit.files import InputFile, OutputFile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StageSuccess:
    """One input processed; ``outputs`` may be empty for lint-only stages.

    ``source`` is None for artifacts an engine emitted that belong to no
    single input (shared chunks from a bundler, for example).
    """

    source: InputFile | None
    outputs: tuple[OutputFile, ...] = ()

    ok = True


@dataclass(frozen=True)
class StageFailure:
    source: InputFile
    error: Exception

    ok = False


StageResult = StageSuccess | StageFailure


class FailedFile(BaseModel):
    path: str
    error: str


class StageReport(BaseModel):
    """Outcome of one stage run."""

    stage: str
    processed: int = 0
    skipped: int = 0
    written: list[str] = Field(default_factory=list)
    failed: list[FailedFile] = Field(default_factory=list)
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return not self.failed


@runtime_checkable
class ErrorReporter(Protocol):
    """Receives per-file failures without stopping the batch."""

    def report(self, stage: str, failure: StageFailure) -> None: ...

    def clear(self) -> None:
        """Forget failures already delivered."""


class LoggingErrorReporter:
    """Logs each failure at ERROR and keeps them for later inspection."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.failures: list[tuple[str, StageFailure]] = []

    def report(self, stage: str, failure: StageFailure) -> None:
        with self._lock:
            self.failures.append((stage, failure))
        logger.error("%s: %s: %s", stage, failure.source.path, failure.error)

    def clear(self) -> None:
        with self._lock:
            self.failures.clear()
