"""Transform stages and their result types."""

from assetkit.stages.base import TransformStage
from assetkit.stages.bundle import BundlerEngine, BundleStage, PathRecord, WebpackEngine
from assetkit.stages.copy import CopyStage
from assetkit.stages.images import ImageminStage, Jpeg2Stage, SvgminStage, WebpStage
from assetkit.stages.markup import HtmlLintStage, PugStage
from assetkit.stages.models import (
    ErrorReporter,
    FailedFile,
    LoggingErrorReporter,
    StageFailure,
    StageReport,
    StageResult,
    StageSuccess,
)
from assetkit.stages.scripts import EslintStage
from assetkit.stages.styles import ScssStage, StylelintStage

__all__ = [
    "BundleStage",
    "BundlerEngine",
    "CopyStage",
    "ErrorReporter",
    "EslintStage",
    "FailedFile",
    "HtmlLintStage",
    "ImageminStage",
    "Jpeg2Stage",
    "LoggingErrorReporter",
    "PathRecord",
    "PugStage",
    "ScssStage",
    "StageFailure",
    "StageReport",
    "StageResult",
    "StageSuccess",
    "StylelintStage",
    "SvgminStage",
    "TransformStage",
    "WebpStage",
    "WebpackEngine",
]
