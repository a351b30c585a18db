"""Find, read and validate ``assetkit.yaml``."""

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .models import AssetkitConfig

CONFIG_FILENAME = "assetkit.yaml"

# ${VAR} or ${VAR:-fallback}
_ENV_REF = re.compile(r"\$\{(\w+)(?::-([^}]*))?\}")


def _candidates(cli_path: str | None) -> list[Path]:
    found = [Path(cli_path)] if cli_path else []
    found.append(Path.cwd() / CONFIG_FILENAME)
    return [p for p in found if p.is_file()]


def _read_yaml(path: Path) -> Any:
    try:
        return yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e


def load_config(cli_path: str | None = None) -> AssetkitConfig:
    """Return the first non-empty config among --config and ./assetkit.yaml.

    Falls back to built-in defaults when neither exists. Raises ValueError
    naming the file when it cannot be parsed or validated.
    """
    for path in _candidates(cli_path):
        raw = _read_yaml(path)
        if raw is None:
            continue
        if not isinstance(raw, dict):
            raise ValueError(f"Invalid config in {path}: expected a mapping, got {type(raw).__name__}")
        try:
            return AssetkitConfig.model_validate(expand_env(raw))
        except ValidationError as e:
            raise ValueError(f"Invalid config in {path}: {e}") from e
    return AssetkitConfig()


def expand_env(value: Any) -> Any:
    """Substitute ``${VAR}`` / ``${VAR:-fallback}`` in every string of *value*."""
    if isinstance(value, str):
        return _ENV_REF.sub(lambda m: os.environ.get(m.group(1), m.group(2) or ""), value)
    if isinstance(value, dict):
        return {key: expand_env(item) for key, item in value.items()}
    if isinstance(value, list):
        return [expand_env(item) for item in value]
    return value


# Default YAML template for `assetkit init --config-file`
DEFAULT_CONFIG_TEMPLATE = """\
# assetkit.yaml

paths:
  src: "assets"
  dist: "dist"

# Stylesheets
scss:
  output_style: "compressed"   # compressed | expanded
  source_map: true
  map_dir: "map"
  autoprefix: true

# Scripts
js:
  webpack_config: "./webpack.config.js"

# Images
images:
  png_quality: [0.65, 0.8]
  jpg_quality: 85

# Extra files to copy before building
# copy:
#   - src: "node_modules/jquery/dist/jquery.min.js"
#     dist: "dist/vendor"

# Dependency manifest
# dump:
#   target: "dist"
#   dump_file: "./wp-dependencies.json"

# Keep fingerprints between runs
# cache_file: ".assetkit-cache.json"

# Logging
log_level: "info"              # debug | info | warn | error
log_format: "text"             # text | json
"""
