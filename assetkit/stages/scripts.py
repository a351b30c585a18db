"""JavaScript linting. Bundling lives in :mod:`assetkit.stages.bundle`."""

from __future__ import annotations

from assetkit.config.models import EslintOptions
from assetkit.files import InputFile, OutputFile
from assetkit.stages.base import TransformStage
from assetkit.stages.tooling import run_tool, tool_command


class EslintStage(TransformStage[EslintOptions]):
    name = "eslint"
    options_model = EslintOptions
    cache_bucket = "eslint"

    def process(self, file: InputFile, options: EslintOptions) -> list[OutputFile]:
        args: list[str] = []
        if not options.use_eslintrc:
            args.append("--no-eslintrc")
        if options.config_file:
            args.extend(["--config", options.config_file])
        run_tool(tool_command("eslint", *args, str(file.path)), cwd=self.cwd)
        return []
