"""Tests for configuration loading."""

import pytest

from assetkit.config import AssetkitConfig, load_config
from assetkit.config.loader import DEFAULT_CONFIG_TEMPLATE


class TestConfigDefaults:
    def test_defaults(self, sample_config: AssetkitConfig):
        assert sample_config.paths.src == "assets"
        assert sample_config.paths.dist == "dist"
        assert sample_config.scss.output_style == "compressed"
        assert sample_config.scss.map_dir == "map"
        assert sample_config.js.webpack_config == "./webpack.config.js"
        assert sample_config.images.png_quality == (0.65, 0.8)
        assert sample_config.copy_pairs == []
        assert sample_config.livereload is None
        assert sample_config.cache_file is None

    def test_no_file_gives_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert load_config() == AssetkitConfig()

    def test_template_is_valid(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "assetkit.yaml").write_text(DEFAULT_CONFIG_TEMPLATE)
        assert load_config() == AssetkitConfig()


class TestConfigLoading:
    def test_project_local_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "assetkit.yaml").write_text("paths:\n  src: src\n  dist: public\n")
        cfg = load_config()
        assert cfg.paths.src == "src"
        assert cfg.paths.dist == "public"

    def test_cli_path_wins(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "assetkit.yaml").write_text("paths:\n  src: local\n")
        other = tmp_path / "other.yaml"
        other.write_text("paths:\n  src: cli\n")
        assert load_config(str(other)).paths.src == "cli"

    def test_copy_pairs_alias(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text(
            "copy:\n"
            "  - src: node_modules/jquery/dist/jquery.min.js\n"
            "    dist: dist/vendor\n"
            "  - src: [fonts/*.woff, fonts/*.woff2]\n"
            "    dist: dist/fonts\n"
        )
        cfg = load_config(str(path))
        assert len(cfg.copy_pairs) == 2
        assert cfg.copy_pairs[1].src == ["fonts/*.woff", "fonts/*.woff2"]

    def test_stage_option_override(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("images:\n  jpg_quality: 70\n")
        cfg = load_config(str(path))
        assert cfg.images.jpg_quality == 70
        assert cfg.images.png_quality == (0.65, 0.8)

    def test_env_var_expansion(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ASSET_DIST", "build")
        path = tmp_path / "c.yaml"
        path.write_text("paths:\n  dist: ${ASSET_DIST}\n")
        assert load_config(str(path)).paths.dist == "build"

    def test_env_var_fallback(self, tmp_path, monkeypatch):
        monkeypatch.delenv("ASSET_SRC", raising=False)
        path = tmp_path / "c.yaml"
        path.write_text("paths:\n  src: ${ASSET_SRC:-source}\n")
        assert load_config(str(path)).paths.src == "source"

    def test_empty_file_falls_through(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "assetkit.yaml").write_text("")
        assert load_config() == AssetkitConfig()


class TestConfigErrors:
    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("paths: [unclosed\n")
        with pytest.raises(ValueError, match="Invalid YAML"):
            load_config(str(path))

    def test_unknown_stage_option(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("scss:\n  outputStyle: nested\n")
        with pytest.raises(ValueError, match="Invalid config"):
            load_config(str(path))

    def test_bad_log_level(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("log_level: loud\n")
        with pytest.raises(ValueError, match="Invalid config"):
            load_config(str(path))

    def test_top_level_list(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="Invalid config"):
            load_config(str(path))
