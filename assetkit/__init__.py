"""assetkit - preset build tasks for static web projects."""

from assetkit.config import AssetkitConfig, load_config
from assetkit.files import InputFile, OutputFile, resolve_globs
from assetkit.fingerprint import FingerprintCache
from assetkit.graph import TaskGraph, TaskOutcome, TaskSet, build_task_graph
from assetkit.stages import PathRecord, StageReport, TransformStage
from assetkit.watch import WatchBinder

__version__ = "0.1.0"

__all__ = [
    "AssetkitConfig",
    "FingerprintCache",
    "InputFile",
    "OutputFile",
    "PathRecord",
    "StageReport",
    "TaskGraph",
    "TaskOutcome",
    "TaskSet",
    "TransformStage",
    "WatchBinder",
    "build_task_graph",
    "load_config",
    "resolve_globs",
]
