"""Pug templates and HTML linting."""

from __future__ import annotations

from assetkit.config.models import HtmlLintOptions, PugOptions
from assetkit.files import InputFile, OutputFile
from assetkit.stages.base import TransformStage
from assetkit.stages.tooling import run_tool, tool_command


class PugStage(TransformStage[PugOptions]):
    """Render ``.pug`` to ``.html``; the file path is passed so includes resolve."""

    name = "pug"
    options_model = PugOptions

    def process(self, file: InputFile, options: PugOptions) -> list[OutputFile]:
        args = ["--path", str(file.path)]
        if options.pretty:
            args.append("--pretty")
        if options.basedir:
            args.extend(["--basedir", options.basedir])
        result = run_tool(tool_command("pug", *args), stdin=file.read_bytes(), cwd=self.cwd)
        return [OutputFile.for_input(file, result.stdout, suffix=".html")]


class HtmlLintStage(TransformStage[HtmlLintOptions]):
    name = "htmllint"
    options_model = HtmlLintOptions
    cache_bucket = "htmllint"

    def process(self, file: InputFile, options: HtmlLintOptions) -> list[OutputFile]:
        run_tool(tool_command("htmllint", "--rc", options.rc_file, str(file.path)), cwd=self.cwd)
        return []
