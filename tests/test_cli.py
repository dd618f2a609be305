"""
Tests for CLI commands — search, install, uninstall, activate,
deactivate, update, version and global options.
"""

import json
import logging
import os
from pathlib import Path

import pytest
from click.testing import CliRunner

from modehub.core.models.action import Receipt
from modehub.main import cli


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def index(write_manifest):
    write_manifest("foo.yml", {"description": "Foo", "version": "1.0", "repo": "git://example/foo.git"})
    write_manifest("web/foo-bar.yml", {"description": "Foo bar", "repo": "git://example/foo-bar.git"})
    write_manifest("bar.yml", {"description": "Bar", "repo": "git://example/bar.git"})


@pytest.fixture
def mode(base_dir: Path, monkeypatch, git):
    """Invoke the CLI against the temporary base dir and the mock git."""
    monkeypatch.delenv("MODE_HOME", raising=False)
    monkeypatch.setattr("modehub.adapters.vcs.git.GitAdapter", lambda: git)
    config = base_dir / "mode.yml"
    config.write_text("default_branch: master\n")
    runner = CliRunner()

    def _invoke(*args: str):
        return runner.invoke(cli, ["--config", str(config), *args])

    return _invoke


class TestCLIGlobal:
    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "modehub" in result.output
        for command in ("search", "install", "uninstall", "activate", "deactivate", "update"):
            assert command in result.output

    def test_version_option(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.3.0" in result.output

    def test_bad_config(self, tmp_path: Path):
        config = tmp_path / "mode.yml"
        config.write_text("- not a mapping\n")
        result = CliRunner().invoke(cli, ["--config", str(config), "search", "foo"])
        assert result.exit_code == 1


# ── Search ───────────────────────────────────────────────────────────


class TestSearchCommand:
    def test_lists_matches_sorted(self, index, mode):
        result = mode("search", "foo")
        assert result.exit_code == 0
        lines = result.output.strip().splitlines()
        assert lines == ["foo (1.0) — Foo.", "web/foo-bar — Foo bar."]

    def test_verbose_is_detailed(self, index, mode):
        result = mode("--verbose", "search", "bar")
        assert result.exit_code == 0
        assert "Description: Bar." in result.output

    def test_json(self, index, mode):
        result = mode("search", "/^web//", "--json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert [m["id"] for m in data["modules"]] == ["web/foo-bar"]

    def test_malformed_regexp(self, index, mode):
        result = mode("search", "/foo")
        assert result.exit_code == 1
        assert "missing ending" in result.output

    def test_no_index(self, mode, base_dir):
        (base_dir / "index").rmdir()
        result = mode("search", "foo")
        assert result.exit_code == 1
        assert "modehub update" in result.output


# ── Install ──────────────────────────────────────────────────────────


class TestInstallCommand:
    def test_install(self, index, mode, base_dir, git):
        result = mode("install", "foo")
        assert result.exit_code == 0, result.output
        assert "Installing foo@master" in result.output
        assert "Fetching foo@master from git://example/foo.git" in result.output
        assert "Activating foo@master" in result.output
        assert "Installed foo@master" in result.output
        assert git.operations == ["clone"]
        assert (base_dir / "active" / "foo").is_symlink()

    def test_reinstall(self, index, mode, git):
        mode("install", "foo")
        result = mode("install", "foo")
        assert result.exit_code == 0
        assert "Updating foo@master" in result.output
        assert "Keeping already active foo@master" in result.output

    def test_revision_suffix(self, index, mode, base_dir, git):
        result = mode("install", "foo@v1.0")
        assert result.exit_code == 0, result.output
        assert git.operations == ["clone", "checkout"]
        assert (base_dir / "installed" / "foo" / "master-v1.0").is_dir()
        assert (base_dir / "active" / "foo@v1.0").is_symlink()

    def test_branch_option(self, index, mode, base_dir):
        result = mode("install", "bar", "--repo-branch", "devel")
        assert result.exit_code == 0, result.output
        assert (base_dir / "active" / "bar@devel").is_symlink()

    def test_unknown_module(self, index, mode):
        result = mode("install", "nothing")
        assert result.exit_code == 1
        assert "No modules matching 'nothing'" in result.output

    def test_failure_stops_run(self, index, mode, git):
        git.set_failure("bar:clone", error="fatal: could not read from remote")
        result = mode("install", "bar", "foo", "--json")
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["report"]["failed_module"] == "bar"
        statuses = [m["status"] for m in data["report"]["modules"]]
        assert statuses == ["failed", "pending"]

    def test_install_path_with_many_modules(self, index, mode, tmp_path):
        result = mode("install", "foo", "bar", "-i", str(tmp_path / "x"))
        assert result.exit_code == 1
        assert "can not be used for multiple modules" in result.output

    def test_quiet(self, index, mode):
        result = mode("--quiet", "install", "foo")
        assert result.exit_code == 0
        assert "Installing" not in result.output


# ── Uninstall / activate / deactivate ────────────────────────────────


class TestLifecycleCommands:
    def test_uninstall(self, index, mode, base_dir):
        mode("install", "foo")
        result = mode("uninstall", "foo")
        assert result.exit_code == 0
        assert "Uninstalled foo@master" in result.output
        assert not (base_dir / "installed" / "foo" / "master").exists()

    def test_uninstall_absent(self, index, mode):
        result = mode("uninstall", "foo")
        assert result.exit_code == 0
        assert "foo is not installed" in result.output

    def test_activate_conflict_and_force(self, index, mode, base_dir):
        mode("install", "foo")
        alias = base_dir / "active" / "foo"
        alias.unlink()
        alias.write_text("occupied")

        result = mode("activate", "foo")
        assert result.exit_code == 1
        assert "--force" in result.output
        assert alias.read_text() == "occupied"

        result = mode("activate", "foo", "--force")
        assert result.exit_code == 0, result.output
        assert alias.is_symlink()

    def test_deactivate(self, index, mode, base_dir):
        mode("install", "foo")
        result = mode("deactivate", "foo")
        assert result.exit_code == 0
        assert not os.path.lexists(base_dir / "active" / "foo")
        assert (base_dir / "installed" / "foo" / "master").is_dir()

        result = mode("deactivate", "foo")
        assert "foo is not active" in result.output


# ── Index maintenance ────────────────────────────────────────────────


class TestMaintenanceCommands:
    def test_update_pulls_index(self, mode, base_dir, git):
        result = mode("update")
        assert result.exit_code == 0
        action = git.call_log[0].action
        assert action.operation == "pull"
        assert action.args == ["origin", "master", "--quiet"]
        assert action.work_tree == str(base_dir / "index")

    def test_update_failure(self, mode, git):
        git.set_failure("pull", error="fatal: not a git repository")
        result = mode("update")
        assert result.exit_code == 1
        assert "not a git repository" in result.output

    def test_version(self, mode, git):
        git.set_response("describe", Receipt.success(adapter="git", action_id="index:describe", output="v2.1-4-gabc\n"))
        result = mode("version")
        assert result.exit_code == 0
        assert result.output.strip() == "modehub 0.3.0 (index v2.1-4-gabc)"
