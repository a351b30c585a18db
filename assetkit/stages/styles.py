"""SCSS compilation and stylelint."""

from __future__ import annotations

import json
import os
import posixpath
import re
import tempfile
from pathlib import Path, PurePosixPath
from urllib.parse import urlparse

from assetkit.config.models import ScssOptions, StylelintOptions
from assetkit.files import InputFile, OutputFile
from assetkit.stages.base import TransformStage
from assetkit.stages.tooling import run_tool, tool_command

_MAP_COMMENT_RE = re.compile(rb"/\*# sourceMappingURL=[^*]*\*/\s*$")


def relocate_source_map(raw: bytes, compiled_in: Path, css_name: str, map_dir: str) -> bytes:
    """Point a map written next to the CSS in *compiled_in* at its final home.

    Relative ``sources`` become absolute ``file://`` URLs and ``file``
    becomes the CSS path as seen from *map_dir*.
    """
    data = json.loads(raw)
    root = data.pop("sourceRoot", "") or ""
    sources = []
    for source in data.get("sources", []):
        if urlparse(source).scheme:
            sources.append(source)
            continue
        joined = os.path.join(str(compiled_in), root, source)
        sources.append(Path(os.path.normpath(joined)).as_uri())
    if "sources" in data:
        data["sources"] = sources
    data["file"] = posixpath.relpath(css_name, map_dir)
    return json.dumps(data).encode()


class ScssStage(TransformStage[ScssOptions]):
    """Compile one SCSS entry to CSS, with the source map under ``map_dir``."""

    name = "scss"
    options_model = ScssOptions

    def process(self, file: InputFile, options: ScssOptions) -> list[OutputFile]:
        css_rel = file.relative.with_suffix(".css")
        with tempfile.TemporaryDirectory(prefix="assetkit-scss-") as tmp:
            out_css = Path(tmp) / css_rel.name
            args = [f"--style={options.output_style}"]
            args.append("--source-map" if options.source_map else "--no-source-map")
            args.extend(f"--load-path={p}" for p in [str(file.base), *options.load_paths])
            run_tool(tool_command("sass", *args, str(file.path.absolute()), str(out_css)))

            if options.autoprefix:
                map_flag = "--map" if options.source_map else "--no-map"
                run_tool(
                    tool_command("postcss", str(out_css), "--use", "autoprefixer", map_flag, "--replace")
                )

            css = out_css.read_bytes()
            map_file = out_css.with_name(out_css.name + ".map")
            if not (options.source_map and map_file.is_file()):
                return [OutputFile(relative=css_rel, contents=css)]

            map_rel = css_rel.parent / options.map_dir / map_file.name
            comment = f"/*# sourceMappingURL={options.map_dir}/{map_file.name} */\n".encode()
            css = _MAP_COMMENT_RE.sub(b"", css).rstrip() + b"\n" + comment
            source_map = relocate_source_map(
                map_file.read_bytes(), out_css.parent, css_rel.name, options.map_dir
            )
            return [
                OutputFile(relative=css_rel, contents=css),
                OutputFile(relative=PurePosixPath(map_rel), contents=source_map),
            ]


class StylelintStage(TransformStage[StylelintOptions]):
    """Lint SCSS files; findings surface as per-file failures."""

    name = "stylelint"
    options_model = StylelintOptions
    cache_bucket = "stylelint"

    def process(self, file: InputFile, options: StylelintOptions) -> list[OutputFile]:
        args = [str(file.path), "--formatter", options.formatter]
        if options.config_file:
            args.extend(["--config", options.config_file])
        run_tool(tool_command("stylelint", *args), cwd=self.cwd)
        return []
