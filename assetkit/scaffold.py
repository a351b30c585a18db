"""Copy starter config files into a project."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from assetkit.config.loader import CONFIG_FILENAME, DEFAULT_CONFIG_TEMPLATE

logger = logging.getLogger(__name__)

WEBPACK_TEMPLATE = """\
module.exports = {
  mode: process.env.NODE_ENV === 'development' ? 'development' : 'production',
  devtool: 'source-map',
  module: {
    rules: [
      {
        test: /\\.js$/,
        exclude: /node_modules/,
        use: { loader: 'babel-loader', options: { presets: [ '@babel/preset-env' ] } },
      },
    ],
  },
  externals: {
    jquery: 'jQuery',
  },
};
"""

STYLELINT_TEMPLATE = """\
module.exports = {
  extends: [ 'stylelint-config-standard-scss' ],
  rules: {},
};
"""

ESLINT_TEMPLATE = """\
{
  "root": true,
  "env": { "browser": true, "es6": true },
  "extends": "eslint:recommended",
  "parserOptions": { "ecmaVersion": 2020, "sourceType": "module" }
}
"""

EDITORCONFIG_TEMPLATE = """\
root = true

[*]
charset = utf-8
end_of_line = lf
insert_final_newline = true
indent_style = tab

[*.{yml,yaml,json}]
indent_style = space
indent_size = 2
"""

BROWSERSLIST_TEMPLATE = """\
> 1%
last 2 versions
not dead
"""


@dataclass(frozen=True)
class Template:
    key: str
    target: str
    content: str


TEMPLATES: dict[str, Template] = {
    t.key: t
    for t in (
        Template("webpack", "webpack.config.js", WEBPACK_TEMPLATE),
        Template("stylelint", "stylelint.config.js", STYLELINT_TEMPLATE),
        Template("eslint", ".eslintrc", ESLINT_TEMPLATE),
        Template("editorconfig", ".editorconfig", EDITORCONFIG_TEMPLATE),
        Template("browserslist", ".browserslistrc", BROWSERSLIST_TEMPLATE),
        Template("config", CONFIG_FILENAME, DEFAULT_CONFIG_TEMPLATE),
    )
}


@dataclass
class ScaffoldResult:
    written: list[Path]
    skipped: list[Path]


def scaffold(directory: Path, keys: list[str] | None = None) -> ScaffoldResult:
    """Write the selected templates into *directory*; none selected means all.

    Existing files are left alone and reported as skipped.
    """
    unknown = [k for k in keys or [] if k not in TEMPLATES]
    if unknown:
        raise ValueError(f"Unknown template(s): {', '.join(unknown)}")
    selected = keys or list(TEMPLATES)
    result = ScaffoldResult(written=[], skipped=[])
    for key in selected:
        template = TEMPLATES[key]
        dest = Path(directory) / template.target
        if dest.exists():
            logger.info("Target path %s already exists. Skipped.", dest)
            result.skipped.append(dest)
            continue
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_text(template.content)
        result.written.append(dest)
    return result
