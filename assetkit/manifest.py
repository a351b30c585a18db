"""Dependency manifest for built scripts and stylesheets.

Reads tags from the first doc comment of every ``.js``/``.css`` file in a
directory and writes them as a JSON array, e.g.::

    /*!
     * @handle my-slider
     * @deps jquery, swiper
     */
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, Field

from assetkit.fingerprint import compute_hash

logger = logging.getLogger(__name__)

_HEADER_RE = re.compile(r"\A\s*(?:(?:'use strict'|\"use strict\");?\s*)?/\*[!*]?(.*?)\*/", re.DOTALL)
_TAG_RE = re.compile(r"^\s*\*?\s*@(\w+)\s*(.*?)\s*$", re.MULTILINE)


class DependencyEntry(BaseModel):
    handle: str
    path: str
    ext: str
    deps: list[str] = Field(default_factory=list)
    hash: str
    version: str
    footer: bool | None = None
    strategy: str | None = None
    media: str | None = None


@runtime_checkable
class DependencyDumper(Protocol):
    def dump(self, target: Path, dump_file: Path) -> list[DependencyEntry]: ...


def parse_header(source: str) -> dict[str, str]:
    """Return ``@tag value`` pairs from the leading comment of *source*."""
    match = _HEADER_RE.match(source)
    if match is None:
        return {}
    return {tag: value for tag, value in _TAG_RE.findall(match.group(1))}


def _default_handle(rel: Path) -> str:
    return "-".join(rel.with_suffix("").parts).lower()


class HeaderDependencyDumper:
    """Build entries from doc-comment tags and write them as JSON."""

    def __init__(self, root: Path | None = None) -> None:
        self.root = Path(root) if root is not None else None

    def entry_for(self, path: Path, target: Path) -> DependencyEntry:
        raw = path.read_bytes()
        tags = parse_header(raw.decode("utf-8", errors="replace"))
        ext = path.suffix.lstrip(".")
        digest = compute_hash(raw)
        root = self.root or Path.cwd()
        try:
            display = path.resolve().relative_to(root.resolve()).as_posix()
        except ValueError:
            display = path.as_posix()
        entry = DependencyEntry(
            handle=tags.get("handle") or _default_handle(path.relative_to(target)),
            path=display,
            ext=ext,
            deps=[d.strip() for d in tags.get("deps", "").split(",") if d.strip()],
            hash=digest,
            version=tags.get("version") or digest,
        )
        if ext == "js":
            entry.footer = tags.get("footer", "true").lower() not in ("false", "0", "no")
            entry.strategy = tags.get("strategy") or None
        else:
            entry.media = tags.get("media") or "all"
        return entry

    def dump(self, target: Path, dump_file: Path) -> list[DependencyEntry]:
        target = Path(target)
        entries: list[DependencyEntry] = []
        if target.is_dir():
            for path in sorted(target.rglob("*")):
                if path.is_file() and path.suffix in (".js", ".css"):
                    entries.append(self.entry_for(path, target))
        else:
            logger.warning("Dump target %s does not exist; writing an empty manifest", target)
        dump_file = Path(dump_file)
        dump_file.parent.mkdir(parents=True, exist_ok=True)
        dump_file.write_text(
            json.dumps([e.model_dump(exclude_none=True) for e in entries], indent=2) + "\n"
        )
        logger.info("Wrote %d dependency entries to %s", len(entries), dump_file)
        return entries
