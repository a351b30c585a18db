"""Re-run named tasks when files matching a glob change."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass, field
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from assetkit.files import expand_braces, glob_base, glob_to_regex
from assetkit.graph.graph import TaskGraph
from assetkit.stages.models import ErrorReporter

logger = logging.getLogger(__name__)

# Directories never worth reacting to
_IGNORE_PARTS = {".git", "node_modules", "__pycache__"}


def _should_ignore(path: str) -> bool:
    """Return True if the path contains any ignored directory component."""
    return any(part in _IGNORE_PARTS for part in Path(path).parts)


@dataclass
class Binding:
    pattern: str
    task: str
    root: Path
    regexes: list = field(default_factory=list)

    def matches(self, path: str) -> bool:
        posix = Path(path).as_posix()
        return any(r.match(posix) for r in self.regexes)


class _BindingHandler(FileSystemEventHandler):
    """Triggers the binder for one glob, ignoring repeats inside the debounce window."""

    def __init__(self, binder: WatchBinder, binding: Binding, debounce_seconds: float) -> None:
        super().__init__()
        self._binder = binder
        self._binding = binding
        self._debounce = debounce_seconds
        self._last_event: dict[str, float] = {}

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type in ("opened", "closed", "closed_no_write"):
            return
        paths = [event.src_path, getattr(event, "dest_path", "") or ""]
        src = next((p for p in paths if p and self._binding.matches(p)), None)
        if src is None or _should_ignore(src):
            return

        now = time.monotonic()
        self._last_event = {p: t for p, t in self._last_event.items() if now - t < self._debounce}
        if src in self._last_event:
            return
        self._last_event[src] = now

        logger.debug("%s %s -> '%s'", event.event_type, src, self._binding.task)
        try:
            self._binder.trigger(self._binding.task)
        except Exception:
            logger.exception("Watch trigger failed for %s", src)


class WatchBinder:
    """Maps glob patterns to task names on a :class:`TaskGraph`.

    Each matching create/modify/delete/move schedules ``graph.run(task)``
    on *loop*. A trigger never waits for an earlier run of the same task:
    a fresh run starts alongside it. :meth:`stop` tears down every
    subscription and leaves in-flight runs to finish on their own.
    When a *reporter* is given it is cleared after each run finishes,
    since its failures have already been logged.
    """

    def __init__(
        self,
        graph: TaskGraph,
        loop: asyncio.AbstractEventLoop | None = None,
        cwd: Path | None = None,
        debounce_seconds: float = 0.2,
        reporter: ErrorReporter | None = None,
    ) -> None:
        self._graph = graph
        self._reporter = reporter
        self._loop = loop
        self._cwd = Path(cwd).resolve() if cwd is not None else Path.cwd()
        self._debounce = debounce_seconds
        self._bindings: list[Binding] = []
        self._observer: Observer | None = None
        self._lock = threading.Lock()
        self._inflight: set[Future] = set()

    @property
    def bindings(self) -> list[Binding]:
        return list(self._bindings)

    @property
    def running(self) -> bool:
        return self._observer is not None

    def bind(self, pattern: str, task: str) -> Binding:
        """Subscribe *task* to changes matching *pattern*; the task must exist."""
        self._graph.node(task)
        absolute = pattern if Path(pattern).is_absolute() else (self._cwd / pattern).as_posix()
        expanded = expand_braces(absolute)
        binding = Binding(
            pattern=pattern,
            task=task,
            root=Path(glob_base(expanded[0])),
            regexes=[glob_to_regex(p) for p in expanded],
        )
        self._bindings.append(binding)
        if self._observer is not None:
            self._schedule(self._observer, binding)
        return binding

    def _watch_root(self, binding: Binding) -> Path:
        """Nearest existing directory at or above the binding's glob base."""
        root = binding.root
        while not root.is_dir() and root != root.parent:
            root = root.parent
        return root

    def _schedule(self, observer: Observer, binding: Binding) -> None:
        root = self._watch_root(binding)
        handler = _BindingHandler(self, binding, self._debounce)
        observer.schedule(handler, str(root), recursive=True)
        logger.info("Watching %s -> '%s'", binding.pattern, binding.task)

    def trigger(self, task: str) -> Future:
        """Start a run of *task* on the binder's loop without waiting for it."""
        if self._loop is None:
            raise RuntimeError("WatchBinder has no event loop; call start() from a running loop")
        future = asyncio.run_coroutine_threadsafe(self._graph.run(task), self._loop)
        with self._lock:
            self._inflight.add(future)
        future.add_done_callback(self._finished)
        return future

    def _finished(self, future: Future) -> None:
        with self._lock:
            self._inflight.discard(future)
        if self._reporter is not None:
            self._reporter.clear()
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Watched task failed to run: %s", exc)
            return
        outcome = future.result()
        for failure in outcome.failures():
            logger.error("'%s' failed: %s", failure.name, failure.error)

    def start(self) -> None:
        """Begin delivering events. Uses the running loop unless one was given."""
        if self._observer is not None:
            return
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        observer = Observer()
        for binding in self._bindings:
            self._schedule(observer, binding)
        observer.start()
        self._observer = observer

    def stop(self) -> None:
        """Stop watching. In-flight runs are not awaited."""
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join(timeout=5)
        self._observer = None
        logger.info("Stopped watching")
