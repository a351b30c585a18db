"""Named tasks composed into series and parallel aggregates."""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from assetkit.errors import RegistrationError, UnknownTaskError

logger = logging.getLogger(__name__)

Thunk = Callable[[], Awaitable[Any] | Any]


class TaskKind(str, Enum):
    leaf = "leaf"
    series = "series"
    parallel = "parallel"


class TaskStatus(str, Enum):
    succeeded = "succeeded"
    failed = "failed"
    skipped = "skipped"


@dataclass(frozen=True)
class TaskNode:
    name: str
    kind: TaskKind
    thunk: Thunk | None = None
    children: tuple[str, ...] = ()
    description: str = ""


class TaskOutcome(BaseModel):
    """Result of running one node, with its children's outcomes nested."""

    name: str
    kind: TaskKind
    status: TaskStatus
    error: str | None = None
    result: Any = None
    children: list[TaskOutcome] = Field(default_factory=list)
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status is TaskStatus.succeeded

    def failures(self) -> list[TaskOutcome]:
        """Leaf outcomes that failed, depth-first."""
        if self.kind is TaskKind.leaf:
            return [self] if self.status is TaskStatus.failed else []
        found: list[TaskOutcome] = []
        for child in self.children:
            found.extend(child.failures())
        return found


class TaskGraph:
    """A DAG of named tasks.

    Composite nodes may only reference names registered before them, so
    registration order is always a valid dependency order and cycles are
    impossible. Any registration error poisons the graph: later
    registrations and runs raise the same error.
    """

    def __init__(self) -> None:
        self._nodes: dict[str, TaskNode] = {}
        self._error: RegistrationError | None = None

    def __contains__(self, name: str) -> bool:
        return name in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def names(self) -> list[str]:
        return list(self._nodes)

    @property
    def runnable(self) -> bool:
        return self._error is None

    def node(self, name: str) -> TaskNode:
        try:
            return self._nodes[name]
        except KeyError:
            raise UnknownTaskError(name) from None

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def _fail(self, message: str) -> None:
        self._error = RegistrationError(message)
        raise self._error

    def _add(self, node: TaskNode) -> TaskNode:
        if self._error is not None:
            raise self._error
        if not node.name:
            self._fail("Task name must not be empty")
        if node.name in self._nodes:
            self._fail(f"Task '{node.name}' is already registered")
        self._nodes[node.name] = node
        return node

    def register_leaf(self, name: str, thunk: Thunk, description: str = "") -> TaskNode:
        if not callable(thunk):
            self._fail(f"Task '{name}' needs a callable, got {type(thunk).__name__}")
        return self._add(TaskNode(name=name, kind=TaskKind.leaf, thunk=thunk, description=description))

    def _register_composite(self, kind: TaskKind, name: str, children: tuple[str, ...], description: str) -> TaskNode:
        if not children:
            self._fail(f"{kind.value.capitalize()} task '{name}' has no children")
        missing = [c for c in children if c not in self._nodes]
        if missing:
            self._fail(f"Task '{name}' references unregistered task(s): {', '.join(missing)}")
        return self._add(TaskNode(name=name, kind=kind, children=tuple(children), description=description))

    def register_series(self, name: str, *children: str, description: str = "") -> TaskNode:
        return self._register_composite(TaskKind.series, name, children, description)

    def register_parallel(self, name: str, *children: str, description: str = "") -> TaskNode:
        return self._register_composite(TaskKind.parallel, name, children, description)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def run(self, name: str) -> TaskOutcome:
        """Run *name* and everything under it.

        Task failures are captured in the returned outcome; only unknown
        names and a poisoned graph raise.
        """
        if self._error is not None:
            raise self._error
        node = self.node(name)
        return await self._execute(node)

    async def _execute(self, node: TaskNode) -> TaskOutcome:
        start = time.monotonic()
        if node.kind is TaskKind.leaf:
            outcome = await self._run_leaf(node)
        elif node.kind is TaskKind.series:
            outcome = await self._run_series(node)
        else:
            outcome = await self._run_parallel(node)
        outcome.duration = time.monotonic() - start
        return outcome

    async def _run_leaf(self, node: TaskNode) -> TaskOutcome:
        logger.info("Starting '%s'", node.name)
        try:
            if inspect.iscoroutinefunction(node.thunk):
                result = await node.thunk()
            else:
                result = await asyncio.to_thread(node.thunk)
                if inspect.isawaitable(result):
                    result = await result
        except Exception as exc:
            logger.error("Task '%s' failed: %s", node.name, exc)
            return TaskOutcome(name=node.name, kind=node.kind, status=TaskStatus.failed, error=str(exc))
        logger.info("Finished '%s'", node.name)
        return TaskOutcome(name=node.name, kind=node.kind, status=TaskStatus.succeeded, result=result)

    async def _run_series(self, node: TaskNode) -> TaskOutcome:
        children: list[TaskOutcome] = []
        failed: TaskOutcome | None = None
        for child_name in node.children:
            if failed is not None:
                children.append(
                    TaskOutcome(name=child_name, kind=self._nodes[child_name].kind, status=TaskStatus.skipped)
                )
                continue
            outcome = await self._execute(self._nodes[child_name])
            children.append(outcome)
            if not outcome.ok:
                failed = outcome
        if failed is not None:
            return TaskOutcome(
                name=node.name,
                kind=node.kind,
                status=TaskStatus.failed,
                error=f"'{failed.name}' failed",
                children=children,
            )
        return TaskOutcome(name=node.name, kind=node.kind, status=TaskStatus.succeeded, children=children)

    async def _run_parallel(self, node: TaskNode) -> TaskOutcome:
        children = list(
            await asyncio.gather(*(self._execute(self._nodes[c]) for c in node.children))
        )
        failed = [c.name for c in children if not c.ok]
        if failed:
            return TaskOutcome(
                name=node.name,
                kind=node.kind,
                status=TaskStatus.failed,
                error=f"{', '.join(repr(f) for f in failed)} failed",
                children=children,
            )
        return TaskOutcome(name=node.name, kind=node.kind, status=TaskStatus.succeeded, children=children)
