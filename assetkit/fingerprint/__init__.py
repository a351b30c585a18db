"""Content-fingerprint cache used to skip unchanged inputs."""

from assetkit.fingerprint.cache import FingerprintCache
from assetkit.fingerprint.hashing import compute_file_hash, compute_hash

__all__ = [
    "FingerprintCache",
    "compute_file_hash",
    "compute_hash",
]
