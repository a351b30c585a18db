"""Tests for the task graph: registration, series, parallel."""

from __future__ import annotations

import asyncio

import pytest

from assetkit.errors import RegistrationError, UnknownTaskError
from assetkit.graph import TaskGraph, TaskKind, TaskStatus


def _recorder(log: list[str], name: str, delay: float = 0.0, fail: bool = False):
    async def thunk() -> str:
        log.append(f"start:{name}")
        await asyncio.sleep(delay)
        if fail:
            log.append(f"fail:{name}")
            raise RuntimeError(f"{name} broke")
        log.append(f"end:{name}")
        return name

    return thunk


# ── Registration ─────────────────────────────────────────────────────


class TestRegistration:
    def test_leaf_and_composites(self):
        graph = TaskGraph()
        graph.register_leaf("a", lambda: None)
        graph.register_leaf("b", lambda: None)
        graph.register_series("s", "a", "b", description="both")
        graph.register_parallel("p", "a", "b")

        assert graph.names == ["a", "b", "s", "p"]
        assert graph.node("s").kind is TaskKind.series
        assert graph.node("s").children == ("a", "b")
        assert graph.node("s").description == "both"
        assert graph.runnable

    def test_unknown_child_poisons_graph(self):
        graph = TaskGraph()
        graph.register_leaf("a", lambda: None)
        with pytest.raises(RegistrationError, match="unregistered"):
            graph.register_series("s", "a", "missing")
        assert not graph.runnable
        with pytest.raises(RegistrationError):
            graph.register_leaf("b", lambda: None)

    @pytest.mark.asyncio
    async def test_poisoned_graph_refuses_to_run(self):
        graph = TaskGraph()
        graph.register_leaf("a", lambda: None)
        with pytest.raises(RegistrationError):
            graph.register_parallel("p", "nope")
        with pytest.raises(RegistrationError):
            await graph.run("a")

    def test_duplicate_name(self):
        graph = TaskGraph()
        graph.register_leaf("a", lambda: None)
        with pytest.raises(RegistrationError, match="already registered"):
            graph.register_leaf("a", lambda: None)

    def test_empty_composite(self):
        graph = TaskGraph()
        with pytest.raises(RegistrationError, match="no children"):
            graph.register_series("s")

    def test_non_callable_leaf(self):
        graph = TaskGraph()
        with pytest.raises(RegistrationError, match="callable"):
            graph.register_leaf("a", "not a function")

    def test_unknown_node(self):
        with pytest.raises(UnknownTaskError):
            TaskGraph().node("ghost")

    @pytest.mark.asyncio
    async def test_run_unknown_task(self):
        graph = TaskGraph()
        graph.register_leaf("a", lambda: None)
        with pytest.raises(UnknownTaskError, match="ghost"):
            await graph.run("ghost")


# ── Leaves ───────────────────────────────────────────────────────────


class TestLeaf:
    @pytest.mark.asyncio
    async def test_async_leaf_result(self):
        log: list[str] = []
        graph = TaskGraph()
        graph.register_leaf("a", _recorder(log, "a"))
        outcome = await graph.run("a")
        assert outcome.ok
        assert outcome.result == "a"

    @pytest.mark.asyncio
    async def test_sync_leaf_runs_in_thread(self):
        graph = TaskGraph()
        graph.register_leaf("sum", lambda: 1 + 2)
        outcome = await graph.run("sum")
        assert outcome.result == 3

    @pytest.mark.asyncio
    async def test_leaf_failure_is_captured(self):
        graph = TaskGraph()
        graph.register_leaf("bad", _recorder([], "bad", fail=True))
        outcome = await graph.run("bad")
        assert outcome.status is TaskStatus.failed
        assert outcome.error == "bad broke"
        assert outcome.failures() == [outcome]

    @pytest.mark.asyncio
    async def test_no_memoization_across_runs(self):
        calls = []
        graph = TaskGraph()
        graph.register_leaf("a", lambda: calls.append(1))
        await graph.run("a")
        await graph.run("a")
        assert len(calls) == 2


# ── Series ───────────────────────────────────────────────────────────


class TestSeries:
    @pytest.mark.asyncio
    async def test_children_run_in_order(self):
        log: list[str] = []
        graph = TaskGraph()
        graph.register_leaf("a", _recorder(log, "a", delay=0.02))
        graph.register_leaf("b", _recorder(log, "b"))
        graph.register_series("s", "a", "b")

        outcome = await graph.run("s")

        assert outcome.ok
        assert log == ["start:a", "end:a", "start:b", "end:b"]

    @pytest.mark.asyncio
    async def test_failure_skips_the_rest(self):
        log: list[str] = []
        graph = TaskGraph()
        graph.register_leaf("a", _recorder(log, "a", fail=True))
        graph.register_leaf("b", _recorder(log, "b"))
        graph.register_series("s", "a", "b")

        outcome = await graph.run("s")

        assert outcome.status is TaskStatus.failed
        assert [c.status for c in outcome.children] == [TaskStatus.failed, TaskStatus.skipped]
        assert "start:b" not in log

    @pytest.mark.asyncio
    async def test_shared_child_runs_once_per_reference(self):
        calls = []
        graph = TaskGraph()
        graph.register_leaf("a", lambda: calls.append(1))
        graph.register_series("twice", "a", "a")
        await graph.run("twice")
        assert len(calls) == 2


# ── Parallel ─────────────────────────────────────────────────────────


class TestParallel:
    @pytest.mark.asyncio
    async def test_children_overlap(self):
        log: list[str] = []
        graph = TaskGraph()
        graph.register_leaf("a", _recorder(log, "a", delay=0.05))
        graph.register_leaf("b", _recorder(log, "b", delay=0.05))
        graph.register_parallel("p", "a", "b")

        await graph.run("p")

        assert log[:2] == ["start:a", "start:b"]

    @pytest.mark.asyncio
    async def test_failure_does_not_cancel_siblings(self):
        log: list[str] = []
        graph = TaskGraph()
        graph.register_leaf("bad", _recorder(log, "bad", fail=True))
        graph.register_leaf("slow", _recorder(log, "slow", delay=0.05))
        graph.register_parallel("p", "bad", "slow")

        outcome = await graph.run("p")

        assert outcome.status is TaskStatus.failed
        assert "end:slow" in log
        assert [f.name for f in outcome.failures()] == ["bad"]

    @pytest.mark.asyncio
    async def test_nested_composites(self):
        log: list[str] = []
        graph = TaskGraph()
        graph.register_leaf("copy", _recorder(log, "copy"))
        graph.register_leaf("js", _recorder(log, "js", delay=0.02))
        graph.register_leaf("css", _recorder(log, "css"))
        graph.register_leaf("dump", _recorder(log, "dump"))
        graph.register_parallel("assets", "js", "css")
        graph.register_series("build", "copy", "assets", "dump")

        outcome = await graph.run("build")

        assert outcome.ok
        assert log[0] == "start:copy"
        assert log[-2:] == ["start:dump", "end:dump"]
        assert log.index("end:js") < log.index("start:dump")
