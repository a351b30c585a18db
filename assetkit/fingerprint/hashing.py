"""Content fingerprints."""

from __future__ import annotations

import hashlib
from pathlib import Path


def compute_hash(content: bytes) -> str:
    """SHA-256 hash, truncated to the first 12 hex characters."""
    return hashlib.sha256(content).hexdigest()[:12]


def compute_file_hash(path: Path) -> str:
    """Read a file from disk and return its truncated SHA-256 hash."""
    return compute_hash(path.read_bytes())
