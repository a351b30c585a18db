"""Tests for the fingerprint cache."""

from __future__ import annotations

import json
import os
import time
from pathlib import Path

from assetkit.files import InputFile
from assetkit.fingerprint import FingerprintCache, compute_file_hash, compute_hash


def _input(path: Path) -> InputFile:
    """A fresh InputFile, as a new stage run would create it."""
    return InputFile(path=path, base=path.parent)


class TestHashing:
    def test_hash_is_truncated_sha256(self):
        assert compute_hash(b"abc") == "ba7816bf8f01"

    def test_file_hash_matches_content_hash(self, tmp_path: Path):
        p = tmp_path / "f.txt"
        p.write_bytes(b"abc")
        assert compute_file_hash(p) == compute_hash(b"abc")


class TestFingerprintCache:
    def test_everything_is_unprocessed_initially(self, tmp_path: Path, cache: FingerprintCache):
        p = tmp_path / "a.js"
        p.write_text("a")
        assert cache.filter_unprocessed("eslint", [_input(p)]) == [_input(p)]

    def test_unchanged_file_skipped_on_next_run(self, tmp_path: Path, cache: FingerprintCache):
        p = tmp_path / "a.js"
        p.write_text("a")
        cache.mark_processed("eslint", _input(p))
        assert cache.filter_unprocessed("eslint", [_input(p)]) == []

    def test_changed_content_is_reprocessed(self, tmp_path: Path, cache: FingerprintCache):
        p = tmp_path / "a.js"
        p.write_text("a")
        cache.mark_processed("eslint", _input(p))
        stat = p.stat()
        p.write_text("b")
        # Same mtime, different bytes
        os.utime(p, ns=(stat.st_atime_ns, stat.st_mtime_ns))
        assert cache.filter_unprocessed("eslint", [_input(p)]) == [_input(p)]

    def test_touch_without_change_is_still_skipped(self, tmp_path: Path, cache: FingerprintCache):
        p = tmp_path / "a.js"
        p.write_text("a")
        cache.mark_processed("eslint", _input(p))
        future = time.time() + 60
        os.utime(p, (future, future))
        assert cache.filter_unprocessed("eslint", [_input(p)]) == []

    def test_buckets_are_independent(self, tmp_path: Path, cache: FingerprintCache):
        p = tmp_path / "img.png"
        p.write_bytes(b"png")
        cache.mark_processed("imagemin", _input(p))
        assert cache.filter_unprocessed("imagemin", [_input(p)]) == []
        assert cache.filter_unprocessed("webp", [_input(p)]) == [_input(p)]

    def test_only_marked_files_are_skipped(self, tmp_path: Path, cache: FingerprintCache):
        done = tmp_path / "done.js"
        todo = tmp_path / "todo.js"
        done.write_text("1")
        todo.write_text("2")
        cache.mark_processed("eslint", _input(done))
        pending = cache.filter_unprocessed("eslint", [_input(done), _input(todo)])
        assert [f.path for f in pending] == [todo]

    def test_forget(self, tmp_path: Path, cache: FingerprintCache):
        p = tmp_path / "a.js"
        p.write_text("a")
        cache.mark_processed("eslint", _input(p))
        cache.forget("eslint", _input(p))
        assert cache.fingerprint_of("eslint", p) is None

    def test_clear_single_bucket(self, tmp_path: Path, cache: FingerprintCache):
        p = tmp_path / "a.js"
        p.write_text("a")
        cache.mark_processed("eslint", _input(p))
        cache.mark_processed("stylelint", _input(p))
        cache.clear("eslint")
        assert cache.buckets() == ["stylelint"]


class TestFingerprintPersistence:
    def test_save_and_load(self, tmp_path: Path, cache: FingerprintCache):
        p = tmp_path / "a.js"
        p.write_text("a")
        cache.mark_processed("eslint", _input(p))
        out = tmp_path / "cache" / "fingerprints.json"
        cache.save(out)

        loaded = FingerprintCache.load(out)
        assert loaded.fingerprint_of("eslint", p) == compute_hash(b"a")
        assert loaded.filter_unprocessed("eslint", [_input(p)]) == []

    def test_load_missing_file_is_empty(self, tmp_path: Path):
        loaded = FingerprintCache.load(tmp_path / "missing.json")
        assert loaded.buckets() == []

    def test_load_corrupt_file_is_empty(self, tmp_path: Path):
        bad = tmp_path / "bad.json"
        bad.write_text("{not json")
        assert FingerprintCache.load(bad).buckets() == []

    def test_load_unknown_version_is_empty(self, tmp_path: Path):
        old = tmp_path / "old.json"
        old.write_text(json.dumps({"version": 99, "buckets": {"eslint": {"x": "y"}}}))
        assert FingerprintCache.load(old).buckets() == []
