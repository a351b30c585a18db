"""CLI entry point for assetkit."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich import print as rprint
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from assetkit.config import AssetkitConfig, load_config
from assetkit.errors import AssetkitError
from assetkit.fingerprint import FingerprintCache
from assetkit.graph import TaskKind, TaskOutcome, TaskSet, TaskStatus
from assetkit.scaffold import scaffold
from assetkit.stages import LoggingErrorReporter

app = typer.Typer(
    name="assetkit",
    help="Preset build tasks for static web projects.",
)

# Global state
_config: AssetkitConfig | None = None

_LEVELS = {"debug": logging.DEBUG, "info": logging.INFO, "warn": logging.WARNING, "error": logging.ERROR}


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": self.formatTime(record),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def _configure_logging(cfg: AssetkitConfig) -> None:
    if cfg.log_format == "json":
        handler: logging.Handler = logging.StreamHandler()
        handler.setFormatter(_JsonFormatter())
    else:
        handler = RichHandler(show_path=False, markup=False)
    logging.basicConfig(level=_LEVELS[cfg.log_level], handlers=[handler], force=True)


def _get_config() -> AssetkitConfig:
    if _config is None:
        return load_config()
    return _config


@app.callback()
def main(
    config: Annotated[
        str | None, typer.Option("--config", "-c", help="Path to assetkit.yaml")
    ] = None,
) -> None:
    """Global options."""
    global _config
    try:
        _config = load_config(config)
    except ValueError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    _configure_logging(_config)


def _load_cache(cfg: AssetkitConfig) -> FingerprintCache:
    if cfg.cache_file:
        return FingerprintCache.load(Path(cfg.cache_file))
    return FingerprintCache()


_STATUS_STYLE = {
    TaskStatus.succeeded: "[green]ok[/green]",
    TaskStatus.failed: "[red]failed[/red]",
    TaskStatus.skipped: "[dim]skipped[/dim]",
}


def _outcome_tree(outcome: TaskOutcome, tree: Tree | None = None) -> Tree:
    label = f"[bold]{outcome.name}[/bold] {_STATUS_STYLE[outcome.status]} [dim]{outcome.duration:.2f}s[/dim]"
    if outcome.kind is TaskKind.leaf and outcome.error:
        label += f"\n[red]{escape(outcome.error)}[/red]"
    branch = tree.add(label) if tree is not None else Tree(label)
    for child in outcome.children:
        _outcome_tree(child, branch)
    return branch


async def _run_tasks(taskset: TaskSet, names: list[str]) -> list[TaskOutcome]:
    graph = taskset.graph
    outcomes = []
    for name in names:
        outcomes.append(await graph.run(name))
    return outcomes


@app.command()
def run(
    tasks: Annotated[list[str], typer.Argument(help="Task names, run in order")],
) -> None:
    """Run one or more tasks (build, lint, js, css, html, imagemin, copy, dump)."""
    cfg = _get_config()
    cache = _load_cache(cfg)
    reporter = LoggingErrorReporter()
    taskset = TaskSet(cfg, cache=cache, reporter=reporter)
    try:
        taskset.register()
        outcomes = asyncio.run(_run_tasks(taskset, tasks))
    except AssetkitError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    for outcome in outcomes:
        rprint(_outcome_tree(outcome))

    if cfg.cache_file:
        cache.save(Path(cfg.cache_file))

    failed_files = len(reporter.failures)
    if failed_files:
        rprint(f"\n[yellow]{failed_files} file(s) failed; see the log above.[/yellow]")
    if any(not o.ok for o in outcomes):
        raise typer.Exit(1)


@app.command(name="tasks")
def list_tasks() -> None:
    """List registered tasks."""
    taskset = TaskSet(_get_config())
    graph = taskset.register()
    table = Table(title=f"Tasks ({len(graph)})")
    table.add_column("Name", style="cyan")
    table.add_column("Kind")
    table.add_column("Runs", style="dim")
    table.add_column("Description")
    for name in graph.names:
        node = graph.node(name)
        table.add_row(name, node.kind.value, ", ".join(node.children) or "-", node.description)
    rprint(table)


async def _watch(taskset: TaskSet, serve: bool) -> None:
    graph = taskset.graph
    names = ["watch", "bs"] if serve else ["watch"]
    for name in names:
        outcome = await graph.run(name)
        if not outcome.ok:
            rprint(_outcome_tree(outcome))
            return
    rprint("[bold]Watching for changes.[/bold] Press Ctrl+C to stop.")
    try:
        await asyncio.Event().wait()
    finally:
        taskset.stop()


@app.command()
def watch(
    serve: bool = typer.Option(True, "--serve/--no-serve", help="Start the live-reload server"),
) -> None:
    """Watch sources and rebuild on change."""
    cfg = _get_config()
    cache = _load_cache(cfg)
    taskset = TaskSet(cfg, cache=cache)
    taskset.register()
    try:
        asyncio.run(_watch(taskset, serve))
    except KeyboardInterrupt:
        rprint("\n[dim]Stopped.[/dim]")
    finally:
        if cfg.cache_file:
            cache.save(Path(cfg.cache_file))


@app.command()
def init(
    webpack: bool = typer.Option(False, "--webpack", "-w", help="webpack.config.js"),
    stylelint: bool = typer.Option(False, "--stylelint", "-s", help="stylelint.config.js"),
    eslint: bool = typer.Option(False, "--eslint", "-e", help=".eslintrc"),
    editorconfig: bool = typer.Option(False, "--editorconfig", help=".editorconfig"),
    browserslist: bool = typer.Option(False, "--browserslist", "-b", help=".browserslistrc"),
    config_file: bool = typer.Option(False, "--config-file", "-g", help="assetkit.yaml"),
    path: Annotated[str, typer.Argument(help="Project directory")] = ".",
) -> None:
    """Copy starter config files. No flags copies all of them."""
    selected = {
        "webpack": webpack,
        "stylelint": stylelint,
        "eslint": eslint,
        "editorconfig": editorconfig,
        "browserslist": browserslist,
        "config": config_file,
    }
    keys = [k for k, on in selected.items() if on]
    result = scaffold(Path(path), keys or None)
    for dest in result.written:
        rprint(f"[green]Created:[/green] {dest}")
    for dest in result.skipped:
        rprint(f"[yellow]Target path {dest} already exists. Skipped.[/yellow]")


if __name__ == "__main__":
    app()
