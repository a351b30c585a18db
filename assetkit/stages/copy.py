"""Verbatim copy, keeping paths relative to the glob base."""

from __future__ import annotations

from assetkit.config.models import CopyOptions
from assetkit.files import InputFile, OutputFile
from assetkit.stages.base import TransformStage


class CopyStage(TransformStage[CopyOptions]):
    name = "copy"
    options_model = CopyOptions

    def process(self, file: InputFile, options: CopyOptions) -> list[OutputFile]:
        return [OutputFile(relative=file.relative, contents=file.read_bytes())]
