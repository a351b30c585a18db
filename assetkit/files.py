"""File models and glob resolution for stage inputs."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from functools import cached_property
from pathlib import Path, PurePosixPath

from assetkit.fingerprint.hashing import compute_hash

_MAGIC_RE = re.compile(r"[*?\[\]{}]")


@dataclass(frozen=True)
class InputFile:
    """A file picked up by glob resolution.

    ``base`` is the non-wildcard prefix of the pattern that matched it;
    outputs keep the path relative to that base.
    """

    path: Path
    base: Path

    @property
    def relative(self) -> PurePosixPath:
        return PurePosixPath(self.path.relative_to(self.base).as_posix())

    @property
    def unit_name(self) -> str:
        """Base filename without extension."""
        return self.path.stem

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()

    @cached_property
    def fingerprint(self) -> str:
        return compute_hash(self.path.read_bytes())


@dataclass
class OutputFile:
    """Bytes destined for ``<output_dir>/<relative>``."""

    relative: PurePosixPath
    contents: bytes = field(repr=False)

    @classmethod
    def for_input(cls, source: InputFile, contents: bytes, suffix: str | None = None) -> OutputFile:
        relative = source.relative
        if suffix is not None:
            relative = relative.with_suffix(suffix)
        return cls(relative=relative, contents=contents)

    def write(self, output_dir: Path) -> Path:
        dest = Path(output_dir) / self.relative
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(self.contents)
        return dest


# ------------------------------------------------------------------
# Glob resolution
# ------------------------------------------------------------------


def expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` alternatives, innermost-first, into plain patterns."""
    match = re.search(r"\{([^{}]*)\}", pattern)
    if match is None:
        return [pattern]
    head, tail = pattern[: match.start()], pattern[match.end():]
    expanded: list[str] = []
    for option in match.group(1).split(","):
        expanded.extend(expand_braces(head + option + tail))
    return expanded


def glob_base(pattern: str) -> str:
    """Return the leading path segments of *pattern* that contain no wildcards."""
    parts = PurePosixPath(pattern).parts
    literal: list[str] = []
    for part in parts:
        if _MAGIC_RE.search(part):
            break
        literal.append(part)
    if len(literal) == len(parts):
        # A plain file path: its directory is the base
        literal = literal[:-1]
    return str(PurePosixPath(*literal)) if literal else "."


def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Compile a brace-free glob to a regex over POSIX paths.

    ``**`` spans directory levels (including none), ``*`` and ``?`` stay
    within one segment, ``[...]`` classes pass through.
    """
    out: list[str] = []
    i = 0
    n = len(pattern)
    while i < n:
        c = pattern[i]
        if pattern.startswith("**/", i):
            out.append("(?:[^/]+/)*")
            i += 3
        elif pattern.startswith("**", i):
            out.append(".*")
            i += 2
        elif c == "*":
            out.append("[^/]*")
            i += 1
        elif c == "?":
            out.append("[^/]")
            i += 1
        elif c == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                out.append(re.escape(c))
                i += 1
            else:
                body = pattern[i + 1:end]
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append(f"[{body}]")
                i = end + 1
        else:
            out.append(re.escape(c))
            i += 1
    return re.compile("".join(out) + r"\Z")


def _absolute(pattern: str, cwd: Path) -> str:
    if os.path.isabs(pattern):
        return PurePosixPath(pattern).as_posix()
    return (PurePosixPath(cwd.as_posix()) / pattern).as_posix()


def _is_hidden(path: Path, base: Path) -> bool:
    return any(part.startswith(".") for part in path.relative_to(base).parts)


def _match(pattern: str, cwd: Path) -> list[InputFile]:
    """Resolve one brace-free inclusion pattern."""
    absolute = _absolute(pattern, cwd)
    base = Path(glob_base(absolute))
    if not _MAGIC_RE.search(absolute):
        path = Path(absolute)
        return [InputFile(path=path, base=base)] if path.is_file() else []
    if not base.is_dir():
        return []
    regex = glob_to_regex(absolute)
    matches: list[InputFile] = []
    for path in sorted(base.rglob("*")):
        if not path.is_file() or _is_hidden(path, base):
            continue
        if regex.match(path.as_posix()):
            matches.append(InputFile(path=path, base=base))
    return matches


def resolve_globs(patterns: str | list[str], cwd: Path | None = None) -> list[InputFile]:
    """Resolve inclusion and ``!``-prefixed exclusion patterns in listed order.

    Each exclusion removes matches collected by the inclusions before it.
    A file matched by several inclusions keeps its first base.
    """
    if isinstance(patterns, str):
        patterns = [patterns]
    cwd = Path(cwd) if cwd is not None else Path.cwd()

    selected: dict[Path, InputFile] = {}
    for raw in patterns:
        if raw.startswith("!"):
            regexes = [glob_to_regex(_absolute(p, cwd)) for p in expand_braces(raw[1:])]
            for path in list(selected):
                if any(r.match(path.as_posix()) for r in regexes):
                    del selected[path]
            continue
        for pattern in expand_braces(raw):
            for found in _match(pattern, cwd):
                selected.setdefault(found.path, found)
    return list(selected.values())
