"""The preset task set for a static web project."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

from assetkit.config.models import (
    AssetkitConfig,
    BundleOptions,
    DumpOptions,
    LiveReloadOptions,
)
from assetkit.fingerprint import FingerprintCache
from assetkit.graph.graph import TaskGraph
from assetkit.livereload import BrowserSyncServer, LiveReloadServer
from assetkit.manifest import DependencyDumper, HeaderDependencyDumper
from assetkit.stages import (
    BundlerEngine,
    BundleStage,
    CopyStage,
    ErrorReporter,
    EslintStage,
    HtmlLintStage,
    ImageminStage,
    Jpeg2Stage,
    LoggingErrorReporter,
    PugStage,
    ScssStage,
    StageReport,
    StylelintStage,
    SvgminStage,
    TransformStage,
    WebpStage,
)
from assetkit.watch import WatchBinder

logger = logging.getLogger(__name__)


@dataclass
class Stages:
    """One instance of every stage the preset tasks use."""

    imagemin: TransformStage
    svgmin: TransformStage
    webp: TransformStage
    jpeg2: TransformStage
    bundle: TransformStage
    eslint: TransformStage
    scss: TransformStage
    stylelint: TransformStage
    pug: TransformStage
    htmllint: TransformStage
    copy: TransformStage

    @classmethod
    def create(
        cls,
        config: AssetkitConfig,
        cache: FingerprintCache,
        reporter: ErrorReporter,
        cwd: Path | None = None,
        engine: BundlerEngine | None = None,
    ) -> Stages:
        common = {"cache": cache, "reporter": reporter, "cwd": cwd}
        return cls(
            imagemin=ImageminStage(defaults=config.images, **common),
            svgmin=SvgminStage(**common),
            webp=WebpStage(defaults=config.webp, **common),
            jpeg2=Jpeg2Stage(**common),
            bundle=BundleStage(
                defaults=BundleOptions(config_path=config.js.webpack_config), engine=engine, **common
            ),
            eslint=EslintStage(defaults=config.eslint, **common),
            scss=ScssStage(defaults=config.scss, **common),
            stylelint=StylelintStage(defaults=config.stylelint, **common),
            pug=PugStage(defaults=config.pug, **common),
            htmllint=HtmlLintStage(defaults=config.htmllint, **common),
            copy=CopyStage(**common),
        )


class TaskSet:
    """Registers the preset tasks onto a :class:`TaskGraph`.

    Holds the collaborators the tasks close over (stages, live-reload
    server, dependency dumper and the watch binder) so callers can stop
    watching later.
    """

    def __init__(
        self,
        config: AssetkitConfig | None = None,
        *,
        cache: FingerprintCache | None = None,
        reporter: ErrorReporter | None = None,
        stages: Stages | None = None,
        server: LiveReloadServer | None = None,
        dumper: DependencyDumper | None = None,
        cwd: Path | None = None,
    ) -> None:
        self.config = config if config is not None else AssetkitConfig()
        self.cwd = Path(cwd) if cwd is not None else None
        self.cache = cache if cache is not None else FingerprintCache()
        self.reporter = reporter if reporter is not None else LoggingErrorReporter()
        self.stages = stages or Stages.create(self.config, self.cache, self.reporter, self.cwd)
        self.server = server if server is not None else BrowserSyncServer()
        self.dumper = dumper if dumper is not None else HeaderDependencyDumper(self.cwd)
        self.binder: WatchBinder | None = None
        self.graph: TaskGraph | None = None

    def _path(self, path: str) -> Path:
        return self.cwd / path if self.cwd is not None else Path(path)

    def _binder(self) -> WatchBinder:
        if self.binder is None:
            self.binder = WatchBinder(
                self.graph, asyncio.get_running_loop(), cwd=self.cwd, reporter=self.reporter
            )
        return self.binder

    def stop(self) -> None:
        """Stop file watching and the live-reload server."""
        if self.binder is not None:
            self.binder.stop()
        self.server.stop()

    @staticmethod
    def _stage_task(stage: TransformStage, src: str | list[str], dest: str | None = None):
        async def run() -> StageReport:
            return await stage.run(src, dest)

        run.__name__ = f"run_{stage.name}"
        return run

    # ------------------------------------------------------------------
    # Task groups
    # ------------------------------------------------------------------

    def image_tasks(self, graph: TaskGraph, src: str, dist: str) -> None:
        s = self.stages
        graph.register_leaf("imagemin:misc", self._stage_task(s.imagemin, f"{src}/**/*.{{jpg,jpeg,png,gif}}", dist))
        graph.register_leaf("imagemin:svg", self._stage_task(s.svgmin, f"{src}/**/*.svg", dist))
        graph.register_leaf("imagemin:webp", self._stage_task(s.webp, f"{dist}/**/*.{{jpg,png,jpeg}}", dist))
        graph.register_leaf("imagemin:jpeg2", self._stage_task(s.jpeg2, f"{dist}/**/*.{{jpg,jpeg}}", dist))
        graph.register_parallel("imagemin:source", "imagemin:misc", "imagemin:svg")
        graph.register_series("imagemin", "imagemin:source", "imagemin:webp", description="Minify all images")

    def js_tasks(self, graph: TaskGraph, src: str, dist: str) -> None:
        s = self.stages
        graph.register_leaf("js:es6", self._stage_task(s.bundle, [f"{src}/**/*.js", f"!{src}/**/_*.js"], dist))
        graph.register_leaf("js:eslint", self._stage_task(s.eslint, f"{src}/**/*.js"))
        graph.register_parallel("js", "js:es6", "js:eslint", description="Bundle and lint scripts")

    def css_tasks(self, graph: TaskGraph, src: str, dist: str) -> None:
        s = self.stages
        graph.register_leaf("css:generate", self._stage_task(s.scss, [f"{src}/**/*.scss", f"!{src}/**/_*.scss"], dist))
        graph.register_leaf("css:stylelint", self._stage_task(s.stylelint, f"{src}/**/*.scss"))
        graph.register_parallel("css", "css:generate", "css:stylelint", description="Compile and lint stylesheets")

    def html_tasks(self, graph: TaskGraph, src: str, dist: str) -> None:
        s = self.stages
        graph.register_leaf("html:pug", self._stage_task(s.pug, [f"{src}/html/**/*.pug", f"!{src}/html/**/_*.pug"], dist))
        graph.register_leaf("html:lint", self._stage_task(s.htmllint, f"{dist}/**/*.html"))
        graph.register_series("html", "html:pug", "html:lint", description="Render and lint HTML")

    def copy_task(self, graph: TaskGraph) -> None:
        pairs = list(self.config.copy_pairs)

        async def copy() -> list[StageReport]:
            if not pairs:
                logger.info("Nothing to copy.")
                return []
            return list(await asyncio.gather(*(self.stages.copy.run(p.src, p.dist) for p in pairs)))

        graph.register_leaf("copy", copy, description="Copy configured files")

    def dump_task(self, graph: TaskGraph, options: DumpOptions) -> None:
        def dump():
            return self.dumper.dump(self._path(options.target), self._path(options.dump_file))

        graph.register_leaf("dump", dump, description="Write the dependency manifest")

    def bs_tasks(self, graph: TaskGraph, options: LiveReloadOptions) -> None:
        def bs_start() -> None:
            self.server.start(options)

        def bs_reload() -> None:
            self.server.reload()

        async def bs_watch() -> None:
            binder = self._binder()
            binder.bind(options.watch, "bs-reload")
            binder.start()

        graph.register_leaf("bs-start", bs_start)
        graph.register_leaf("bs-reload", bs_reload)
        graph.register_leaf("bs-watch", bs_watch)
        graph.register_series("bs", "bs-start", "bs-watch", description="Serve the output with live reload")

    def watch_all(self, binder: WatchBinder, src: str, dist: str) -> None:
        binder.bind(f"{src}/js/**/*.js", "js")
        binder.bind(f"{src}/scss/**/*.scss", "css")
        binder.bind(f"{src}/html/**/*.{{pug,html}}", "html")
        binder.bind(f"{src}/img/**/*", "imagemin:source")
        binder.bind(f"{dist}/img/**/*.{{jpg,png,jpeg}}", "imagemin:webp")
        binder.bind(f"{dist}/**/*.{{js,css}}", "dump")

    def watch_task(self, graph: TaskGraph, src: str, dist: str) -> None:
        async def watch() -> None:
            binder = self._binder()
            self.watch_all(binder, src, dist)
            binder.start()

        graph.register_leaf("watch", watch, description="Rebuild on change")

    # ------------------------------------------------------------------
    # Everything
    # ------------------------------------------------------------------

    def register(self, graph: TaskGraph | None = None) -> TaskGraph:
        """Register every preset task and the ``build``/``lint`` aggregates."""
        graph = graph if graph is not None else TaskGraph()
        self.graph = graph
        src = self.config.paths.src
        dist = self.config.paths.dist

        self.image_tasks(graph, f"{src}/img", f"{dist}/img")
        self.js_tasks(graph, f"{src}/js", f"{dist}/js")
        self.css_tasks(graph, f"{src}/scss", f"{dist}/css")
        self.html_tasks(graph, src, dist)
        self.copy_task(graph)
        self.dump_task(graph, self.config.dump or DumpOptions(target=dist))
        self.bs_tasks(
            graph,
            self.config.livereload or LiveReloadOptions(base_dir=dist, watch=f"{dist}/**/*"),
        )
        self.watch_task(graph, src, dist)

        graph.register_parallel("build:assets", "js:es6", "css:generate", "imagemin", "html:pug")
        graph.register_series("build", "copy", "build:assets", "dump", description="Build everything")
        graph.register_parallel(
            "lint", "css:stylelint", "js:eslint", "html:lint", description="Run every linter"
        )
        return graph


def build_task_graph(config: AssetkitConfig | None = None, **kwargs) -> TaskGraph:
    """Return a fresh graph with the preset tasks registered."""
    return TaskSet(config, **kwargs).register()
