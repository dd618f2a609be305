"""
Caller-supplied options for queries and install runs.

These are the topmost layer of configuration resolution: anything set
here wins over what a module already resolved and over its manifest.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel

# Option fields that override a module's resolved configuration
CONFIG_OVERRIDES = ("install_dir", "repo_uri", "repo_branch", "repo_revision")


class QueryOptions(BaseModel):
    """How a module query string is matched against the index."""

    regexp: bool = False
    substr: bool = False
    case_sensitive: bool | None = None   # None = matcher default


class InstallOptions(BaseModel):
    """Options for fetch / configure / build / activate."""

    force: bool = False
    verbose: bool = False
    quiet: bool = False

    repo_uri: str | None = None
    repo_branch: str | None = None
    repo_revision: str | None = None
    install_dir: Path | None = None

    def overrides(self) -> dict[str, object]:
        """The configuration overrides actually supplied by the caller."""
        return {
            name: getattr(self, name)
            for name in CONFIG_OVERRIDES
            if getattr(self, name)
        }

    def merged(self, **changes: object) -> InstallOptions:
        """A copy with the non-empty ``changes`` applied on top."""
        update = {k: v for k, v in changes.items() if v is not None}
        return self.model_copy(update=update)
