"""
Tests for settings loading — mode.yml discovery and base directory
precedence.
"""

from pathlib import Path

import pytest

from modehub.core.config.loader import (
    ConfigError,
    Settings,
    find_settings_file,
    load_settings,
)


class TestSettings:
    def test_derived_dirs(self, tmp_path: Path):
        s = Settings(base_dir=tmp_path)
        assert s.index_dir == tmp_path / "index"
        assert s.installed_dir == tmp_path / "installed"
        assert s.active_dir == tmp_path / "active"
        assert s.default_branch == "master"

    def test_relative_dirs_are_under_base(self, tmp_path: Path):
        s = Settings(base_dir=tmp_path, active_dir=Path("links"))
        assert s.active_dir == tmp_path / "links"

    def test_is_manifest(self, tmp_path: Path):
        s = Settings(base_dir=tmp_path)
        assert s.is_manifest("foo.yml")
        assert s.is_manifest("foo.yaml")
        assert not s.is_manifest("foo.js")


class TestFindSettingsFile:
    def test_walks_up(self, tmp_path: Path):
        (tmp_path / "mode.yml").write_text("")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_settings_file(nested) == (tmp_path / "mode.yml").resolve()


# ── Loading ──────────────────────────────────────────────────────────


class TestLoadSettings:
    def test_file_directory_is_base(self, tmp_path: Path):
        config = tmp_path / "mode.yml"
        config.write_text("default_branch: main\n")
        s = load_settings(config, env={})
        assert s.base_dir == tmp_path.resolve()
        assert s.default_branch == "main"

    def test_relative_base_dir_in_file(self, tmp_path: Path):
        config = tmp_path / "mode.yml"
        config.write_text("base_dir: store\ngit_timeout: 30\n")
        s = load_settings(config, env={})
        assert s.base_dir == tmp_path.resolve() / "store"
        assert s.git_timeout == 30

    def test_env_wins_over_file(self, tmp_path: Path):
        config = tmp_path / "mode.yml"
        config.write_text("base_dir: store\n")
        s = load_settings(config, env={"MODE_HOME": str(tmp_path / "env")})
        assert s.base_dir == tmp_path / "env"

    def test_explicit_base_dir_wins(self, tmp_path: Path):
        s = load_settings(
            base_dir=tmp_path / "cli",
            env={"MODE_HOME": str(tmp_path / "env")},
            search=False,
        )
        assert s.base_dir == tmp_path / "cli"

    def test_home_default(self):
        s = load_settings(env={}, search=False)
        assert s.base_dir == Path.home() / ".modehub"

    def test_empty_file(self, tmp_path: Path):
        config = tmp_path / "mode.yml"
        config.write_text("")
        assert load_settings(config, env={}).base_dir == tmp_path.resolve()

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            load_settings(tmp_path / "nope.yml", env={})

    def test_invalid_yaml(self, tmp_path: Path):
        config = tmp_path / "mode.yml"
        config.write_text("base_dir: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_settings(config, env={})

    def test_not_a_mapping(self, tmp_path: Path):
        config = tmp_path / "mode.yml"
        config.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_settings(config, env={})

    def test_invalid_value(self, tmp_path: Path):
        config = tmp_path / "mode.yml"
        config.write_text("git_timeout: 0\n")
        with pytest.raises(ConfigError, match="Invalid settings"):
            load_settings(config, env={})
