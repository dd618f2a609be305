"""
Shared test fixtures and configuration.
"""

from pathlib import Path
from typing import Any

import pytest
import yaml

from modehub.adapters.base import ExecutionContext
from modehub.adapters.mock import MockAdapter
from modehub.core.config.loader import Settings
from modehub.core.models.module import Module


@pytest.fixture
def base_dir(tmp_path: Path) -> Path:
    """Return an empty base directory with an index/ subdirectory."""
    base = tmp_path / "mode"
    (base / "index").mkdir(parents=True)
    return base


@pytest.fixture
def settings(base_dir: Path) -> Settings:
    return Settings(base_dir=base_dir)


@pytest.fixture
def write_manifest(settings: Settings):
    """Write a manifest into the index: ``write_manifest("web/foo.yml", {...})``."""

    def _write(relpath: str, content: str | dict[str, Any] = "") -> Path:
        assert settings.index_dir is not None
        path = settings.index_dir / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, dict):
            content = yaml.safe_dump(content)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def make_module(settings: Settings):
    """Build a module with manifest info already applied."""

    def _make(module_id: str = "web/foo", **info: Any) -> Module:
        module = Module(id=module_id, settings=settings)
        if info:
            module.apply_index_content(info)
        return module

    return _make


def _clone_creates_tree(context: ExecutionContext) -> None:
    # clone's last argument is the destination
    Path(context.action.args[-1]).mkdir(parents=True, exist_ok=True)


@pytest.fixture
def git() -> MockAdapter:
    """Mock git executor whose clone leaves a directory behind."""
    mock = MockAdapter()
    mock.on("clone", _clone_creates_tree)
    return mock
