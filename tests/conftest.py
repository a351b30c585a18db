"""Shared test fixtures for assetkit."""

from pathlib import Path

import pytest

from assetkit.config.models import AssetkitConfig
from assetkit.fingerprint import FingerprintCache
from assetkit.stages import LoggingErrorReporter


def _write(root: Path, rel: str, content: str | bytes = "") -> Path:
    """Create *rel* under *root* (with parents) and return its path."""
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content)
    return path


@pytest.fixture
def sample_config():
    return AssetkitConfig()


@pytest.fixture
def cache():
    return FingerprintCache()


@pytest.fixture
def reporter():
    return LoggingErrorReporter()


@pytest.fixture
def project(tmp_path):
    """A small assets/ tree with entries, partials and nested directories."""
    _write(tmp_path, "assets/js/main.js", "console.log('main');")
    _write(tmp_path, "assets/js/_partial.js", "export const x = 1;")
    _write(tmp_path, "assets/js/admin/panel.js", "console.log('panel');")
    _write(tmp_path, "assets/js/admin/_helpers.js", "export default {};")
    _write(tmp_path, "assets/scss/style.scss", "body { color: red; }")
    _write(tmp_path, "assets/scss/_vars.scss", "$c: red;")
    _write(tmp_path, "assets/html/index.pug", "p hello")
    _write(tmp_path, "assets/html/_layout.pug", "block content")
    return tmp_path
