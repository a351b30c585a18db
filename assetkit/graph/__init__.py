"""Task graph: named leaf tasks composed in series and in parallel."""

from assetkit.graph.builder import Stages, TaskSet, build_task_graph
from assetkit.graph.graph import TaskGraph, TaskKind, TaskNode, TaskOutcome, TaskStatus

__all__ = [
    "Stages",
    "TaskGraph",
    "TaskKind",
    "TaskNode",
    "TaskOutcome",
    "TaskSet",
    "TaskStatus",
    "build_task_graph",
]
