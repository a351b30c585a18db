"""Per-bucket record of which files were processed at which content hash."""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from assetkit.files import InputFile

logger = logging.getLogger(__name__)


class FingerprintCache:
    """Remembers successfully processed files by content fingerprint.

    Each bucket is independent: a file processed under ``"imagemin"`` is
    still unprocessed under ``"webp"``. Comparison is by content hash, so
    touching a file without changing its bytes does not make it eligible
    again. Buckets are created lazily; a missing bucket means nothing
    was processed yet.
    """

    version: int = 1

    def __init__(self) -> None:
        self._buckets: dict[str, dict[str, str]] = {}
        self._lock = threading.Lock()

    def filter_unprocessed(self, bucket: str, files: Iterable[InputFile]) -> list[InputFile]:
        """Return the files whose current fingerprint differs from the recorded one."""
        with self._lock:
            seen = dict(self._buckets.get(bucket, {}))
        pending: list[InputFile] = []
        for f in files:
            key = str(f.path)
            try:
                fingerprint = f.fingerprint
            except OSError as e:
                # Left pending so processing reports it as a per-file failure
                logger.debug("[%s] cannot fingerprint %s: %s", bucket, key, e)
                pending.append(f)
                continue
            if seen.get(key) == fingerprint:
                logger.debug("[%s] unchanged, skipping %s", bucket, key)
                continue
            pending.append(f)
        return pending

    def mark_processed(self, bucket: str, file: InputFile) -> None:
        """Record *file* at its current fingerprint. Call only after it succeeded."""
        with self._lock:
            self._buckets.setdefault(bucket, {})[str(file.path)] = file.fingerprint

    def forget(self, bucket: str, file: InputFile) -> None:
        """Drop *file* from *bucket* so the next run processes it again."""
        with self._lock:
            self._buckets.get(bucket, {}).pop(str(file.path), None)

    def fingerprint_of(self, bucket: str, path: Path | str) -> str | None:
        with self._lock:
            return self._buckets.get(bucket, {}).get(str(path))

    def buckets(self) -> list[str]:
        with self._lock:
            return sorted(self._buckets)

    def clear(self, bucket: str | None = None) -> None:
        with self._lock:
            if bucket is None:
                self._buckets.clear()
            else:
                self._buckets.pop(bucket, None)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        with self._lock:
            return {
                "version": self.version,
                "buckets": {name: dict(entries) for name, entries in self._buckets.items()},
            }

    def save(self, path: Path) -> None:
        """Write all buckets to *path* as JSON."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2, sort_keys=True))

    @classmethod
    def load(cls, path: Path) -> FingerprintCache:
        """Load buckets saved by :meth:`save`.

        A missing or unreadable file yields an empty cache.
        """
        cache = cls()
        path = Path(path)
        if not path.is_file():
            return cache
        try:
            data = json.loads(path.read_text())
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Failed to read fingerprint cache %s: %s; starting empty", path, e)
            return cache
        buckets = data.get("buckets") if isinstance(data, dict) else None
        if not isinstance(buckets, dict) or data.get("version") != cls.version:
            logger.warning("Ignoring fingerprint cache %s with unknown layout", path)
            return cache
        for name, entries in buckets.items():
            if isinstance(entries, dict):
                cache._buckets[name] = {str(k): str(v) for k, v in entries.items()}
        return cache
