from typing import Any, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field

OptionsT = TypeVar("OptionsT", bound=BaseModel)


class StageOptions(BaseModel):
    """Base for per-stage option structs. Unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid")


class ScssOptions(StageOptions):
    output_style: Literal["compressed", "expanded"] = "compressed"
    source_map: bool = True
    map_dir: str = "map"
    load_paths: list[str] = Field(default_factory=list)
    autoprefix: bool = True


class StylelintOptions(StageOptions):
    formatter: str = "string"
    config_file: str | None = None


class EslintOptions(StageOptions):
    use_eslintrc: bool = True
    config_file: str | None = None


class ImageminOptions(StageOptions):
    png_quality: tuple[float, float] = (0.65, 0.8)
    jpg_quality: int = Field(default=85, ge=0, le=100)
    png_speed: int = Field(default=1, ge=1, le=11)
    floyd: float = Field(default=0, ge=0, le=1)
    progressive: bool = True


class WebpOptions(StageOptions):
    quality: int = Field(default=80, ge=0, le=100)
    lossless: bool = False


class SvgminOptions(StageOptions):
    multipass: bool = False


class Jpeg2Options(StageOptions):
    quality_layers: list[int] | None = None


class PugOptions(StageOptions):
    pretty: bool = True
    basedir: str | None = None


class HtmlLintOptions(StageOptions):
    rc_file: str = ".htmllintrc"


class BundleOptions(StageOptions):
    config_path: str = "./webpack.config.js"


class CopyOptions(StageOptions):
    pass


class PathsConfig(BaseModel):
    src: str = "assets"
    dist: str = "dist"


class JsConfig(BaseModel):
    webpack_config: str = "./webpack.config.js"


class LiveReloadOptions(StageOptions):
    base_dir: str = "dist"
    index: str = "index.html"
    reload_delay: int = Field(default=500, ge=0)
    watch: str = "dist/**/*"
    open_browser: bool = False


class DumpOptions(StageOptions):
    target: str = "dist"
    dump_file: str = "./wp-dependencies.json"


class CopyPair(BaseModel):
    src: str | list[str]
    dist: str


class AssetkitConfig(BaseModel):
    paths: PathsConfig = Field(default_factory=PathsConfig)
    scss: ScssOptions = Field(default_factory=ScssOptions)
    stylelint: StylelintOptions = Field(default_factory=StylelintOptions)
    js: JsConfig = Field(default_factory=JsConfig)
    eslint: EslintOptions = Field(default_factory=EslintOptions)
    images: ImageminOptions = Field(default_factory=ImageminOptions)
    webp: WebpOptions = Field(default_factory=WebpOptions)
    pug: PugOptions = Field(default_factory=PugOptions)
    htmllint: HtmlLintOptions = Field(default_factory=HtmlLintOptions)
    livereload: LiveReloadOptions | None = None
    dump: DumpOptions | None = None
    copy_pairs: list[CopyPair] = Field(default_factory=list, alias="copy")
    cache_file: str | None = None
    log_level: Literal["debug", "info", "warn", "error"] = "info"
    log_format: Literal["text", "json"] = "text"

    model_config = ConfigDict(populate_by_name=True)


def merge_options(defaults: OptionsT, overrides: BaseModel | dict[str, Any] | None) -> OptionsT:
    """Shallow-merge *overrides* onto *defaults*.

    Every key present in *overrides* wins; absent keys keep the default.
    The merged result is validated again by the defaults' model, so
    unknown keys and out-of-range values raise ``ValidationError``.
    """
    if overrides is None:
        return defaults
    if isinstance(overrides, BaseModel):
        overrides = overrides.model_dump(exclude_unset=True)
    merged = {**defaults.model_dump(), **overrides}
    return type(defaults).model_validate(merged)
