from .loader import load_config
from .models import (
    AssetkitConfig,
    BundleOptions,
    CopyOptions,
    CopyPair,
    DumpOptions,
    EslintOptions,
    HtmlLintOptions,
    ImageminOptions,
    Jpeg2Options,
    LiveReloadOptions,
    PathsConfig,
    PugOptions,
    ScssOptions,
    StageOptions,
    StylelintOptions,
    SvgminOptions,
    WebpOptions,
    merge_options,
)

__all__ = [
    "AssetkitConfig",
    "BundleOptions",
    "CopyOptions",
    "CopyPair",
    "DumpOptions",
    "EslintOptions",
    "HtmlLintOptions",
    "ImageminOptions",
    "Jpeg2Options",
    "LiveReloadOptions",
    "PathsConfig",
    "PugOptions",
    "ScssOptions",
    "StageOptions",
    "StylelintOptions",
    "SvgminOptions",
    "WebpOptions",
    "load_config",
    "merge_options",
]
