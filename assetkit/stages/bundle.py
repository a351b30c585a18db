"""Module bundling that restores each entry's directory on its outputs.

Bundlers such as webpack take named entries and emit a flat set of
artifacts (``main.js``, ``main.js.map``) keyed only by entry name. The
:class:`PathRecord` remembers where each entry came from so the
artifacts can be written back under the same relative directory.
"""

from __future__ import annotations

import asyncio
import json
import logging
import tempfile
from collections.abc import AsyncIterator
from pathlib import Path, PurePosixPath
from typing import Protocol, runtime_checkable

from assetkit.config.models import BundleOptions
from assetkit.errors import BundleCollisionError, ConfigurationError
from assetkit.files import InputFile, OutputFile
from assetkit.stages.base import TransformStage
from assetkit.stages.models import StageFailure, StageResult, StageSuccess
from assetkit.stages.tooling import run_tool, tool_command

logger = logging.getLogger(__name__)

# Suffixes of files derived from a primary artifact, e.g. main.js.map
DERIVED_SUFFIXES = (".map",)


class PathRecord:
    """Unit name -> original relative directory, for one bundle invocation.

    Two entries reducing to the same unit name is a caller error: the
    last one recorded wins and a warning is logged.
    """

    def __init__(self, derived_suffixes: tuple[str, ...] = DERIVED_SUFFIXES) -> None:
        self._dirs: dict[str, PurePosixPath] = {}
        self._derived = derived_suffixes

    def __len__(self) -> int:
        return len(self._dirs)

    def __contains__(self, unit: str) -> bool:
        return unit in self._dirs

    def record(self, file: InputFile) -> str:
        """Remember *file*'s directory under its unit name and return the name."""
        unit = file.unit_name
        directory = file.relative.parent
        previous = self._dirs.get(unit)
        if previous is not None and previous != directory:
            logger.warning(
                "Bundle entries %s and %s share the name '%s'; outputs go to %s",
                previous / file.path.name,
                directory / file.path.name,
                unit,
                directory,
            )
        self._dirs[unit] = directory
        return unit

    def unit_name(self, artifact_name: str) -> str:
        """Strip a derived suffix (if any) and the extension from *artifact_name*."""
        name = PurePosixPath(artifact_name).name
        for suffix in self._derived:
            if name.endswith(suffix) and len(name) > len(suffix):
                name = name[: -len(suffix)]
                break
        return PurePosixPath(name).stem

    def directory_for(self, artifact_name: str) -> PurePosixPath | None:
        return self._dirs.get(self.unit_name(artifact_name))

    def restore(self, artifact: OutputFile) -> OutputFile:
        """Move *artifact* under its entry's directory; unknown names pass through."""
        directory = self.directory_for(artifact.relative.name)
        if directory is None:
            return artifact
        return OutputFile(relative=directory / artifact.relative.name, contents=artifact.contents)


@runtime_checkable
class BundlerEngine(Protocol):
    """Bundles named entries into a flat list of artifacts."""

    def bundle(self, entries: dict[str, Path], config_path: Path) -> list[OutputFile]: ...


_WRAPPER_TEMPLATE = """\
const loaded = require({config});
const base = typeof loaded === 'function' ? loaded({{}}, {{ mode: process.env.NODE_ENV }}) : loaded;
module.exports = Object.assign({{}}, base, {{
  entry: {entries},
  output: Object.assign({{}}, base.output || {{}}, {{ path: {output}, filename: '[name].js' }}),
}});
"""


class WebpackEngine:
    """Runs the webpack CLI against the user's config with entries injected."""

    def __init__(self, timeout: int = 600) -> None:
        self.timeout = timeout

    def bundle(self, entries: dict[str, Path], config_path: Path) -> list[OutputFile]:
        with tempfile.TemporaryDirectory(prefix="assetkit-webpack-") as tmp:
            tmp_path = Path(tmp)
            out_dir = tmp_path / "out"
            wrapper = tmp_path / "webpack.wrapper.js"
            wrapper.write_text(
                _WRAPPER_TEMPLATE.format(
                    config=json.dumps(str(config_path.resolve())),
                    entries=json.dumps({name: str(path) for name, path in entries.items()}),
                    output=json.dumps(str(out_dir)),
                )
            )
            run_tool(
                tool_command("webpack", "--config", str(wrapper)),
                cwd=config_path.resolve().parent,
                timeout=self.timeout,
            )
            if not out_dir.is_dir():
                return []
            return [
                OutputFile(relative=PurePosixPath(p.name), contents=p.read_bytes())
                for p in sorted(out_dir.rglob("*"))
                if p.is_file()
            ]


class BundleStage(TransformStage[BundleOptions]):
    """Bundle every entry in one engine call, then restore directories."""

    name = "es6"
    options_model = BundleOptions

    def __init__(self, *args, engine: BundlerEngine | None = None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.engine = engine if engine is not None else WebpackEngine()

    def config_path(self, options: BundleOptions) -> Path:
        path = Path(options.config_path)
        if not path.is_absolute() and self.cwd is not None:
            path = self.cwd / path
        return path

    def prepare(self, options: BundleOptions) -> None:
        path = self.config_path(options)
        if not path.is_file():
            raise ConfigurationError(self.name, f"bundler config does not exist at {path}")

    def process(self, file: InputFile, options: BundleOptions) -> list[OutputFile]:
        raise TypeError(f"{self.name} bundles all entries in one engine call; use run() or results()")

    async def stream(self, files: list[InputFile], options: BundleOptions) -> AsyncIterator[StageResult]:
        if not files:
            return
        record = PathRecord()
        entries: dict[str, InputFile] = {}
        for f in files:
            shadowed = entries.get(f.unit_name)
            if shadowed is not None:
                yield StageFailure(
                    source=shadowed,
                    error=BundleCollisionError(shadowed.path, f.path, f.unit_name),
                )
            entries[record.record(f)] = f

        try:
            artifacts = await asyncio.to_thread(
                self.engine.bundle,
                {unit: f.path for unit, f in entries.items()},
                self.config_path(options),
            )
        except Exception as exc:
            for f in entries.values():
                yield StageFailure(source=f, error=exc)
            return

        grouped: dict[str, list[OutputFile]] = {unit: [] for unit in entries}
        orphans: list[OutputFile] = []
        for artifact in artifacts:
            unit = record.unit_name(artifact.relative.name)
            restored = record.restore(artifact)
            if unit in grouped:
                grouped[unit].append(restored)
            else:
                orphans.append(restored)

        for unit, outputs in grouped.items():
            yield StageSuccess(source=entries[unit], outputs=tuple(outputs))
        if orphans:
            yield StageSuccess(source=None, outputs=tuple(orphans))
