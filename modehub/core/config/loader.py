"""
Settings loader — reads mode.yml into a Settings model.

Settings are an explicit value threaded through the index scanner, the
module entities and the install pipeline; nothing reads a process-wide
base directory.

Base directory precedence:
    explicit argument  >  MODE_HOME env var  >  ``base_dir`` in mode.yml
    >  directory holding mode.yml  >  ~/.modehub
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from modehub.core.errors import ModeError

logger = logging.getLogger(__name__)

SETTINGS_FILE = "mode.yml"
ENV_HOME = "MODE_HOME"
DEFAULT_BRANCH = "master"


class ConfigError(ModeError):
    """Raised when mode.yml is invalid or unreadable."""


class Settings(BaseModel):
    """Where the index, the installed trees and the active aliases live."""

    base_dir: Path
    default_branch: str = DEFAULT_BRANCH
    index_dir: Path | None = None
    installed_dir: Path | None = None
    active_dir: Path | None = None
    manifest_suffixes: tuple[str, ...] = (".yml", ".yaml")
    git_timeout: int = Field(default=600, ge=1)

    @model_validator(mode="after")
    def _derive_dirs(self) -> Settings:
        base = self.base_dir.expanduser()
        self.base_dir = base
        self.index_dir = _under(base, self.index_dir, "index")
        self.installed_dir = _under(base, self.installed_dir, "installed")
        self.active_dir = _under(base, self.active_dir, "active")
        return self

    def is_manifest(self, name: str) -> bool:
        return name.endswith(self.manifest_suffixes)


def _under(base: Path, value: Path | None, default: str) -> Path:
    if value is None:
        return base / default
    value = value.expanduser()
    return value if value.is_absolute() else base / value


def find_settings_file(start_dir: Path | None = None) -> Path | None:
    """Search for mode.yml starting from ``start_dir`` (default: cwd), walking up."""
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / SETTINGS_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def _read_settings_file(path: Path) -> dict:
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading settings from %s", path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")
    return data


def load_settings(
    path: Path | None = None,
    base_dir: Path | None = None,
    env: Mapping[str, str] | None = None,
    search: bool = True,
) -> Settings:
    """Load and validate settings.

    Args:
        path: Explicit path to mode.yml. If None and ``search`` is set,
            searches upward from the working directory.
        base_dir: Explicit base directory, wins over everything else.
        env: Environment mapping (default: ``os.environ``).
        search: Whether to look for mode.yml when ``path`` is None.

    Raises:
        ConfigError: If the file is unreadable or invalid.
    """
    env = os.environ if env is None else env
    if path is None and search:
        path = find_settings_file()

    data: dict = {}
    if path is not None:
        data = _read_settings_file(path)
        root = path.parent.resolve()
        if "base_dir" in data and data["base_dir"] is not None:
            configured = Path(str(data["base_dir"])).expanduser()
            data["base_dir"] = configured if configured.is_absolute() else root / configured
        else:
            data["base_dir"] = root

    if base_dir is not None:
        data["base_dir"] = base_dir
    elif env.get(ENV_HOME):
        data["base_dir"] = Path(env[ENV_HOME])
    elif "base_dir" not in data:
        data["base_dir"] = Path.home() / ".modehub"

    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}") from e

    logger.debug("Using base directory %s", settings.base_dir)
    return settings
