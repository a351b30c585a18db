"""Transform stage: glob inputs, skip cached files, process each, write outputs."""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Mapping
from pathlib import Path
from typing import Any, ClassVar, Generic

from pydantic import BaseModel

from assetkit.config.models import OptionsT, merge_options
from assetkit.files import InputFile, OutputFile, resolve_globs
from assetkit.fingerprint import FingerprintCache
from assetkit.stages.models import (
    ErrorReporter,
    FailedFile,
    LoggingErrorReporter,
    StageFailure,
    StageReport,
    StageResult,
    StageSuccess,
)

logger = logging.getLogger(__name__)

Overrides = BaseModel | Mapping[str, Any] | None


class TransformStage(ABC, Generic[OptionsT]):
    """A named wrapper around one external processing capability.

    Subclasses set ``name``, ``options_model`` and optionally
    ``cache_bucket``, and implement :meth:`process` for a single file.
    Processing runs in worker threads, one task per file; a failure in
    one file is reported and the rest of the batch continues.
    """

    name: ClassVar[str]
    options_model: ClassVar[type[BaseModel]]
    cache_bucket: ClassVar[str | None] = None

    def __init__(
        self,
        cache: FingerprintCache | None = None,
        reporter: ErrorReporter | None = None,
        defaults: OptionsT | None = None,
        cwd: Path | None = None,
    ) -> None:
        self.cache = cache
        self.reporter = reporter if reporter is not None else LoggingErrorReporter()
        self.defaults: OptionsT = defaults if defaults is not None else self.options_model()
        self.cwd = Path(cwd) if cwd is not None else None

    @property
    def cache_eligible(self) -> bool:
        return self.cache is not None and self.cache_bucket is not None

    def resolve_options(self, overrides: Overrides = None) -> OptionsT:
        if isinstance(overrides, Mapping):
            overrides = dict(overrides)
        return merge_options(self.defaults, overrides)

    def prepare(self, options: OptionsT) -> None:
        """Check preconditions before any file is touched.

        Raise ConfigurationError here to abort the whole invocation.
        """

    @abstractmethod
    def process(self, file: InputFile, options: OptionsT) -> list[OutputFile]:
        """Process one input. Raise to report a per-file failure."""

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    def select(self, src: str | list[str]) -> tuple[list[InputFile], int]:
        """Resolve *src* and drop cached files. Returns (pending, skipped count)."""
        files = resolve_globs(src, self.cwd)
        if not self.cache_eligible:
            return files, 0
        pending = self.cache.filter_unprocessed(self.cache_bucket, files)
        return pending, len(files) - len(pending)

    async def _process_one(self, file: InputFile, options: OptionsT) -> StageResult:
        try:
            outputs = await asyncio.to_thread(self.process, file, options)
        except Exception as exc:
            return StageFailure(source=file, error=exc)
        return StageSuccess(source=file, outputs=tuple(outputs))

    async def stream(self, files: list[InputFile], options: OptionsT) -> AsyncIterator[StageResult]:
        """Yield one result per file as each completes."""
        tasks = [asyncio.create_task(self._process_one(f, options)) for f in files]
        try:
            for fut in asyncio.as_completed(tasks):
                yield await fut
        finally:
            for task in tasks:
                task.cancel()

    async def results(self, src: str | list[str], options: Overrides = None) -> AsyncIterator[StageResult]:
        """Lazily yield per-file results without writing or touching the cache.

        The caller decides what to do with failures.
        """
        opts = self.resolve_options(options)
        self.prepare(opts)
        files, _ = self.select(src)
        async for result in self.stream(files, opts):
            yield result

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def _write(self, outputs: tuple[OutputFile, ...], dest: Path | None) -> list[str]:
        if not outputs:
            return []
        if dest is None:
            raise ValueError(f"{self.name} produced output but has no destination")
        return [str(o.write(dest)) for o in outputs]

    async def run(
        self,
        src: str | list[str],
        dest: str | Path | None = None,
        options: Overrides = None,
    ) -> StageReport:
        """Process *src* into *dest* and return a report.

        Per-file failures go to the reporter and the file stays unmarked
        in the cache so the next run retries it. Configuration errors
        raised by :meth:`prepare` propagate.
        """
        start = time.monotonic()
        opts = self.resolve_options(options)
        self.prepare(opts)
        dest_path = None
        if dest is not None:
            dest_path = Path(dest) if self.cwd is None else self.cwd / dest
        files, skipped = self.select(src)
        report = StageReport(stage=self.name, skipped=skipped)
        logger.info("%s: %d file(s) to process, %d unchanged", self.name, len(files), skipped)

        async for result in self.stream(files, opts):
            if isinstance(result, StageSuccess):
                try:
                    written = await asyncio.to_thread(self._write, result.outputs, dest_path)
                    if result.source is not None and self.cache_eligible:
                        self.cache.mark_processed(self.cache_bucket, result.source)
                except OSError as exc:
                    if result.source is None:
                        raise
                    result = StageFailure(source=result.source, error=exc)
                else:
                    report.written.extend(written)
                    if result.source is not None:
                        report.processed += 1
                    continue
            self.reporter.report(self.name, result)
            report.failed.append(FailedFile(path=str(result.source.path), error=str(result.error)))

        report.duration = time.monotonic() - start
        logger.info(
            "%s: processed %d, skipped %d, failed %d (%.2fs)",
            self.name,
            report.processed,
            report.skipped,
            len(report.failed),
            report.duration,
        )
        return report
