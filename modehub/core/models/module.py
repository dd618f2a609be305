"""
Module model — one installable unit described by the index.

A module has three layers of state:

    identity   id / short_id, fixed at discovery
    info       metadata merged from one or more manifest fragments
    config     the resolved install configuration, produced by
               ``prepare_config`` and replaced (never mutated) on change

Every path the pipeline touches (``install_dir``, ``active_path``) is
derived from these three and the Settings the module was created with.
"""

from __future__ import annotations

import logging
import re
import textwrap
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    ValidationError,
    field_validator,
)

from modehub.core.config.loader import Settings
from modehub.core.errors import ManifestError
from modehub.core.events import INFO, EventEmitter
from modehub.core.models.options import InstallOptions

logger = logging.getLogger(__name__)

_DESCRIPTION_TRIM = re.compile(r"^[\s._-]+|[\s._-]+$")


class ModuleInfo(BaseModel):
    """Manifest-declared metadata. Unknown manifest keys are kept as extras."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    description: str | None = None
    categories: list[str] = Field(default_factory=list)
    depends: list[str] = Field(default_factory=list)
    repo: str | None = None
    url: str | None = None
    repo_branch: str | None = Field(
        default=None, validation_alias=AliasChoices("repo_branch", "repoBranch")
    )
    version: str | None = None
    configure: str | None = None   # configure hook reference
    product: str | None = None     # activation target, relative to install_dir

    @field_validator("description")
    @classmethod
    def _normalize_description(cls, value: str | None) -> str | None:
        if value is None:
            return None
        trimmed = _DESCRIPTION_TRIM.sub("", str(value))
        return f"{trimmed}." if trimmed else None

    @field_validator("version", mode="before")
    @classmethod
    def _version_as_text(cls, value: Any) -> Any:
        return str(value) if isinstance(value, (int, float)) else value


class ModuleConfig(BaseModel):
    """Resolved install configuration. Immutable; replaced on re-resolution."""

    model_config = ConfigDict(frozen=True)

    install_dir: Path | None = None
    product: Path | None = None
    repo_uri: str | None = None
    repo_branch: str | None = None
    repo_revision: str | None = None
    is_setup: bool = False


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


def _ref_tag(ref: str) -> str:
    return ref.replace("/", "-")


def make_install_id(module_id: str, branch: str, revision: str | None = None) -> str:
    """``<id>/<branch>[-<revision>]`` — the versioned directory name."""
    tag = branch
    if revision:
        tag = f"{tag}-{_ref_tag(revision)}"
    return f"{module_id}/{tag}"


class Module(BaseModel):
    """A module known to the index, plus its resolved configuration.

    Created empty by discovery, filled by ``apply_index_content``, and
    acted upon by the install pipeline. Lifecycle transitions are
    announced through ``events``.
    """

    id: str
    settings: Settings
    info: ModuleInfo = Field(default_factory=ModuleInfo)
    config: ModuleConfig = Field(default_factory=ModuleConfig)

    _events: EventEmitter = PrivateAttr()

    def model_post_init(self, __context: Any) -> None:
        self._events = EventEmitter(self)

    # ── Events ──────────────────────────────────────────────────

    @property
    def events(self) -> EventEmitter:
        return self._events

    def emit(self, event: str, *args: Any) -> None:
        self._events.emit(event, *args)

    # ── Identity ────────────────────────────────────────────────

    @property
    def short_id(self) -> str:
        return self.id.rsplit("/", 1)[-1]

    @property
    def categories(self) -> list[str]:
        return self.info.categories

    @property
    def depends(self) -> list[str]:
        return self.info.depends

    @property
    def repo_branch(self) -> str:
        return self.config.repo_branch or self.info.repo_branch or self.settings.default_branch

    @property
    def uses_explicit_branch(self) -> bool:
        """Whether the branch differs from the one the manifest implies."""
        if self.info.repo_branch:
            return self.repo_branch != self.info.repo_branch
        return self.repo_branch != self.settings.default_branch

    @property
    def install_id(self) -> str:
        return make_install_id(self.id, self.repo_branch, self.config.repo_revision)

    @property
    def active_id(self) -> str:
        name = self.short_id
        if self.config.repo_revision:
            return f"{name}@{_ref_tag(self.config.repo_revision)}"
        if self.uses_explicit_branch:
            return f"{name}@{self.repo_branch}"
        return name

    @property
    def install_dir(self) -> Path:
        if self.config.install_dir is not None:
            return self.config.install_dir
        assert self.settings.installed_dir is not None
        return self.settings.installed_dir / self.install_id

    @property
    def active_path(self) -> Path:
        assert self.settings.active_dir is not None
        return self.settings.active_dir / self.active_id

    def __str__(self) -> str:
        return f"{self.short_id}@{self.repo_branch}"

    def __repr__(self) -> str:
        return f"<Module {self.id!r} branch={self.repo_branch!r}>"

    def describe(self, detailed: bool = False) -> str:
        """Human-readable description, one line or a detailed block."""
        version = f" ({self.info.version})" if self.info.version else ""
        if not detailed:
            text = f"{self.id}{version}"
            if self.info.description:
                text += f" — {self.info.description}"
            return text

        lines = [f"{self.id}{version}"]
        if self.categories:
            lines.append("  Categories:  " + ", ".join(self.categories))
        if self.depends:
            lines.append("  Depends:     " + ", ".join(self.depends))
        if self.info.url:
            lines.append("  Website:     " + self.info.url)
        if self.info.description:
            label = "  Description: "
            body = textwrap.fill(
                self.info.description,
                width=79,
                initial_indent=label,
                subsequent_indent=" " * len(label),
            )
            lines.append(body)
        return "\n".join(lines)

    # ── Manifest ────────────────────────────────────────────────

    def apply_index_content(
        self,
        content: str | Mapping[str, Any] | Iterable[Mapping[str, Any]],
        filename: Path | str | None = None,
    ) -> None:
        """Merge one manifest (text or parsed fragments) into ``info``.

        Cumulative: categories and depends are appended, every other key
        replaces the previous value.
        """
        from modehub.core.services.manifest import parse_fragments

        source = filename or "(string)"
        if isinstance(content, str):
            fragments = parse_fragments(content, source)
        elif isinstance(content, Mapping):
            fragments = [content]
        else:
            fragments = list(content)

        for fragment in fragments:
            self.info = self._merge_fragment(fragment, source)
        self.emit(INFO)

    def _merge_fragment(self, fragment: Mapping[str, Any], source: Path | str) -> ModuleInfo:
        data = dict(fragment)
        categories = _as_list(data.pop("categories", None))
        depends = _as_list(data.pop("depends", None))

        github = data.pop("github", None)
        if github:
            data["repo"] = f"git://github.com/{github}.git"
            data["url"] = f"https://github.com/{github}"

        try:
            update = ModuleInfo.model_validate(data)
        except ValidationError as e:
            raise ManifestError(source, f"Invalid manifest for {self.id}: {e}") from e

        merged = self.info.model_dump()
        merged.update(update.model_dump(exclude_unset=True))
        merged["categories"] = [*self.info.categories, *categories]
        merged["depends"] = [*self.info.depends, *depends]
        return ModuleInfo.model_validate(merged)

    # ── Configuration ───────────────────────────────────────────

    def prepare_config(self, options: InstallOptions | None = None) -> ModuleConfig:
        """Resolve ``config`` from options, previous config, manifest and defaults.

        Precedence, highest first:
            caller option  >  previously resolved value  >  manifest  >  default

        A no-op once resolved, unless the caller supplies an override.
        """
        overrides = (options or InstallOptions()).overrides()
        if self.config.is_setup and not overrides:
            return self.config
        self.config = resolve_config(self, overrides)
        logger.debug("Resolved config for %s: %s", self.id, self.config)
        return self.config


def resolve_config(module: Module, overrides: Mapping[str, Any]) -> ModuleConfig:
    """Compute a module's configuration without touching the module."""
    current, info, settings = module.config, module.info, module.settings

    branch = (
        overrides.get("repo_branch")
        or current.repo_branch
        or info.repo_branch
        or settings.default_branch
    )
    revision = overrides.get("repo_revision") or current.repo_revision
    repo_uri = overrides.get("repo_uri") or current.repo_uri or info.repo

    install_dir = overrides.get("install_dir")
    if install_dir is None and not ({"repo_branch", "repo_revision"} & overrides.keys()):
        install_dir = current.install_dir
    if install_dir is None:
        assert settings.installed_dir is not None
        install_dir = settings.installed_dir / make_install_id(module.id, branch, revision)
    install_dir = Path(install_dir)

    product = install_dir
    if info.product:
        product = install_dir / info.product

    return ModuleConfig(
        install_dir=install_dir,
        product=product,
        repo_uri=repo_uri,
        repo_branch=branch,
        repo_revision=revision,
        is_setup=True,
    )
