"""Image optimization and format conversion."""

from __future__ import annotations

import io
import logging

from PIL import Image

from assetkit.config.models import ImageminOptions, Jpeg2Options, SvgminOptions, WebpOptions
from assetkit.errors import ToolError
from assetkit.files import InputFile, OutputFile
from assetkit.stages.base import TransformStage
from assetkit.stages.tooling import run_tool, tool_command

logger = logging.getLogger(__name__)

# pngquant exits with this code when it cannot reach the minimum quality
_PNGQUANT_QUALITY_TOO_LOW = 99


def _appended(file: InputFile, extension: str, contents: bytes) -> OutputFile:
    """Output named ``<name><ext><extension>``, e.g. ``a.jpg`` -> ``a.jpg.webp``."""
    relative = file.relative.with_name(file.relative.name + extension)
    return OutputFile(relative=relative, contents=contents)


class ImageminStage(TransformStage[ImageminOptions]):
    """Lossy PNG/JPEG and lossless GIF optimization.

    The smaller of the original and the optimized bytes is kept.
    """

    name = "imagemin"
    options_model = ImageminOptions
    cache_bucket = "imagemin"

    def process(self, file: InputFile, options: ImageminOptions) -> list[OutputFile]:
        original = file.read_bytes()
        suffix = file.path.suffix.lower()
        if suffix == ".png":
            optimized = self._pngquant(original, options)
        elif suffix in (".jpg", ".jpeg"):
            optimized = self._jpeg(original, options)
        elif suffix == ".gif":
            optimized = self._gif(original)
        else:
            optimized = original
        if len(optimized) >= len(original):
            optimized = original
        return [OutputFile(relative=file.relative, contents=optimized)]

    def _pngquant(self, data: bytes, options: ImageminOptions) -> bytes:
        low, high = (round(q * 100) for q in options.png_quality)
        args = [f"--quality={low}-{high}", f"--speed={options.png_speed}"]
        args.append("--nofs" if options.floyd == 0 else f"--floyd={options.floyd}")
        try:
            result = run_tool(tool_command("pngquant", *args, "-"), stdin=data)
        except ToolError as e:
            if e.returncode == _PNGQUANT_QUALITY_TOO_LOW:
                logger.debug("pngquant could not reach quality %d-%d, keeping original", low, high)
                return data
            raise
        return result.stdout

    def _jpeg(self, data: bytes, options: ImageminOptions) -> bytes:
        with Image.open(io.BytesIO(data)) as img:
            buf = io.BytesIO()
            img.save(
                buf,
                "JPEG",
                quality=options.jpg_quality,
                progressive=options.progressive,
                optimize=True,
            )
        return buf.getvalue()

    def _gif(self, data: bytes) -> bytes:
        with Image.open(io.BytesIO(data)) as img:
            buf = io.BytesIO()
            img.save(buf, "GIF", save_all=getattr(img, "n_frames", 1) > 1, optimize=True)
        return buf.getvalue()


class SvgminStage(TransformStage[SvgminOptions]):
    name = "svgmin"
    options_model = SvgminOptions
    cache_bucket = "svgmin"

    def process(self, file: InputFile, options: SvgminOptions) -> list[OutputFile]:
        args = ["--input", "-", "--output", "-"]
        if options.multipass:
            args.append("--multipass")
        result = run_tool(tool_command("svgo", *args), stdin=file.read_bytes())
        return [OutputFile(relative=file.relative, contents=result.stdout)]


class WebpStage(TransformStage[WebpOptions]):
    """Write a ``.webp`` sibling next to each raster image."""

    name = "webp"
    options_model = WebpOptions
    cache_bucket = "webp"

    def process(self, file: InputFile, options: WebpOptions) -> list[OutputFile]:
        with Image.open(file.path) as img:
            buf = io.BytesIO()
            img.save(buf, "WEBP", quality=options.quality, lossless=options.lossless)
        return [_appended(file, ".webp", buf.getvalue())]


class Jpeg2Stage(TransformStage[Jpeg2Options]):
    """Write a JPEG 2000 (``.jp2``) sibling next to each JPEG."""

    name = "jpeg2"
    options_model = Jpeg2Options

    def process(self, file: InputFile, options: Jpeg2Options) -> list[OutputFile]:
        params = {}
        if options.quality_layers:
            params = {"quality_mode": "rates", "quality_layers": options.quality_layers}
        with Image.open(file.path) as img:
            buf = io.BytesIO()
            img.convert("RGB").save(buf, "JPEG2000", **params)
        return [_appended(file, ".jp2", buf.getvalue())]
