"""Tests for image optimization and conversion stages."""

from __future__ import annotations

import io
import subprocess
from pathlib import Path

import pytest
from PIL import Image, features

from assetkit.errors import ToolError
from assetkit.stages import ImageminStage, Jpeg2Stage, SvgminStage, WebpStage


def _gradient(size: int = 64) -> Image.Image:
    img = Image.new("RGB", (size, size))
    img.putdata([(x * 4 % 256, y * 4 % 256, (x + y) % 256) for y in range(size) for x in range(size)])
    return img


def _save(img: Image.Image, path: Path, fmt: str, **params) -> bytes:
    path.parent.mkdir(parents=True, exist_ok=True)
    buf = io.BytesIO()
    img.save(buf, fmt, **params)
    path.write_bytes(buf.getvalue())
    return buf.getvalue()


def _completed(stdout: bytes) -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=[], returncode=0, stdout=stdout, stderr=b"")


# ── imagemin ─────────────────────────────────────────────────────────


class TestImagemin:
    @pytest.mark.asyncio
    async def test_jpeg_recompressed(self, tmp_path: Path, cache, reporter):
        original = _save(_gradient(), tmp_path / "img" / "photo.jpg", "JPEG", quality=100)
        stage = ImageminStage(cache=cache, reporter=reporter, cwd=tmp_path)

        report = await stage.run("img/*.jpg", "dist", {"jpg_quality": 40})

        assert report.ok
        out = (tmp_path / "dist" / "photo.jpg").read_bytes()
        assert len(out) < len(original)
        with Image.open(io.BytesIO(out)) as img:
            assert img.format == "JPEG"

    @pytest.mark.asyncio
    async def test_png_quality_flags(self, tmp_path: Path, cache, reporter, monkeypatch):
        _save(_gradient(), tmp_path / "img" / "a.png", "PNG")
        commands = []

        def fake_run(command, **kwargs):
            commands.append(command)
            return _completed(b"tiny")

        monkeypatch.setattr("assetkit.stages.images.run_tool", fake_run)
        stage = ImageminStage(cache=cache, reporter=reporter, cwd=tmp_path)

        await stage.run("img/*.png", "dist")

        assert "--quality=65-80" in commands[0]
        assert "--speed=1" in commands[0]
        assert "--nofs" in commands[0]
        assert (tmp_path / "dist" / "a.png").read_bytes() == b"tiny"

    @pytest.mark.asyncio
    async def test_png_quality_miss_keeps_original(self, tmp_path: Path, cache, reporter, monkeypatch):
        original = _save(_gradient(), tmp_path / "img" / "a.png", "PNG")

        def fake_run(command, **kwargs):
            raise ToolError(command, 99, "")

        monkeypatch.setattr("assetkit.stages.images.run_tool", fake_run)
        stage = ImageminStage(cache=cache, reporter=reporter, cwd=tmp_path)

        report = await stage.run("img/*.png", "dist")

        assert report.ok
        assert (tmp_path / "dist" / "a.png").read_bytes() == original

    @pytest.mark.asyncio
    async def test_larger_result_is_discarded(self, tmp_path: Path, cache, reporter, monkeypatch):
        original = _save(_gradient(8), tmp_path / "img" / "a.png", "PNG")
        monkeypatch.setattr(
            "assetkit.stages.images.run_tool", lambda command, **kw: _completed(original * 2)
        )
        stage = ImageminStage(cache=cache, reporter=reporter, cwd=tmp_path)

        await stage.run("img/*.png", "dist")

        assert (tmp_path / "dist" / "a.png").read_bytes() == original

    @pytest.mark.asyncio
    async def test_pngquant_crash_is_per_file_failure(self, tmp_path: Path, cache, reporter, monkeypatch):
        _save(_gradient(), tmp_path / "img" / "a.png", "PNG")
        _save(_gradient(), tmp_path / "img" / "b.gif", "GIF")

        def fake_run(command, **kwargs):
            raise ToolError(command, 2, "bad png")

        monkeypatch.setattr("assetkit.stages.images.run_tool", fake_run)
        stage = ImageminStage(cache=cache, reporter=reporter, cwd=tmp_path)

        report = await stage.run("img/*.{png,gif}", "dist")

        assert len(report.failed) == 1
        assert report.failed[0].path.endswith("a.png")
        assert (tmp_path / "dist" / "b.gif").exists()

    @pytest.mark.asyncio
    async def test_unchanged_images_skipped(self, tmp_path: Path, cache, reporter):
        _save(_gradient(), tmp_path / "img" / "photo.jpg", "JPEG", quality=95)
        stage = ImageminStage(cache=cache, reporter=reporter, cwd=tmp_path)

        await stage.run("img/*.jpg", "dist")
        report = await stage.run("img/*.jpg", "dist")

        assert report.skipped == 1
        assert report.processed == 0


# ── Format conversion ────────────────────────────────────────────────


class TestConversions:
    @pytest.mark.asyncio
    async def test_webp_sibling(self, tmp_path: Path, cache, reporter):
        _save(_gradient(), tmp_path / "dist" / "img" / "sub" / "a.jpg", "JPEG")
        stage = WebpStage(cache=cache, reporter=reporter, cwd=tmp_path)

        await stage.run("dist/img/**/*.jpg", "dist/img")

        out = tmp_path / "dist" / "img" / "sub" / "a.jpg.webp"
        with Image.open(out) as img:
            assert img.format == "WEBP"
        assert (tmp_path / "dist" / "img" / "sub" / "a.jpg").exists()

    @pytest.mark.asyncio
    @pytest.mark.skipif(not features.check("jpg_2000"), reason="Pillow built without OpenJPEG")
    async def test_jpeg2000_sibling(self, tmp_path: Path, reporter):
        _save(_gradient(), tmp_path / "dist" / "img" / "a.jpg", "JPEG")
        stage = Jpeg2Stage(reporter=reporter, cwd=tmp_path)

        report = await stage.run("dist/img/*.jpg", "dist/img")

        assert report.ok
        assert (tmp_path / "dist" / "img" / "a.jpg.jp2").stat().st_size > 0

    @pytest.mark.asyncio
    async def test_svgo_stdout_written(self, tmp_path: Path, cache, reporter, monkeypatch):
        (tmp_path / "img").mkdir()
        (tmp_path / "img" / "icon.svg").write_text("<svg>  <g/>  </svg>")
        seen = {}

        def fake_run(command, stdin=None, **kwargs):
            seen["stdin"] = stdin
            seen["command"] = command
            return _completed(b"<svg/>")

        monkeypatch.setattr("assetkit.stages.images.run_tool", fake_run)
        stage = SvgminStage(cache=cache, reporter=reporter, cwd=tmp_path)

        await stage.run("img/*.svg", "dist", {"multipass": True})

        assert seen["stdin"] == b"<svg>  <g/>  </svg>"
        assert "--multipass" in seen["command"]
        assert (tmp_path / "dist" / "icon.svg").read_bytes() == b"<svg/>"
