"""
Module use cases — install, uninstall, activate, deactivate by name.

Each resolves the names given on the command line against the index,
hands the matched modules to an Installer, and returns a ModulesResult.
Engine errors are caught here and reported as ``error``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from modehub.adapters.base import Adapter
from modehub.core.config.loader import Settings, load_settings
from modehub.core.engine.executor import Installer, RunReport
from modehub.core.errors import ModeError
from modehub.core.models.module import Module
from modehub.core.models.options import InstallOptions
from modehub.core.services.index import IndexScanner, name_query

logger = logging.getLogger(__name__)

Observer = Callable[[Installer, list[Module]], None]

OPERATIONS = ("install", "uninstall", "activate", "deactivate")


@dataclass
class ModulesResult:
    """Result of running an operation over named modules."""

    operation: str = ""
    modules: list[Module] = field(default_factory=list)
    report: RunReport | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        result: dict = {"operation": self.operation}
        if self.error:
            result["error"] = self.error
        result["modules"] = [m.id for m in self.modules]
        if self.report:
            result["report"] = self.report.to_dict()
        return result


async def _run(
    operation: str,
    names: Sequence[str],
    options: InstallOptions,
    settings: Settings,
    executor: Adapter | None,
    case_sensitive: bool,
    observe: Observer | None,
    result: ModulesResult,
) -> None:
    pattern, per_module = name_query(names, settings, case_sensitive)
    modules = await IndexScanner(settings).find(pattern)
    result.modules = modules
    if not modules:
        result.error = "No modules matching " + ", ".join(repr(n) for n in names)
        return

    if executor is None:
        from modehub.adapters.vcs.git import GitAdapter

        executor = GitAdapter()

    # TODO: order modules by their declared depends once dependency
    # resolution exists; for now the index walk order is used.
    installer = Installer(settings, executor)
    if observe is not None:
        observe(installer, modules)

    run_all = getattr(installer, f"{operation}_all")
    report: RunReport = await run_all(modules, options, per_module)
    result.report = report
    if report.error is not None:
        result.error = str(report.error)


def run_modules(
    operation: str,
    names: Sequence[str],
    options: InstallOptions | None = None,
    settings: Settings | None = None,
    config_path: Path | None = None,
    executor: Adapter | None = None,
    case_sensitive: bool = False,
    observe: Observer | None = None,
) -> ModulesResult:
    """Run ``operation`` over the modules named by ``names``.

    Args:
        operation: One of 'install', 'uninstall', 'activate', 'deactivate'.
        names: Module names, optionally namespaced and suffixed ``@ref``.
        options: Install options shared by every module.
        settings: Pre-loaded settings (default: load from mode.yml).
        config_path: Explicit mode.yml path when loading settings.
        executor: Version-control executor (default: GitAdapter).
        case_sensitive: Match names case-sensitively.
        observe: Called with the installer and the matched modules before
            the run starts, to attach event listeners.
    """
    if operation not in OPERATIONS:
        raise ValueError(f"Unknown operation {operation!r}")

    result = ModulesResult(operation=operation)
    try:
        settings = settings or load_settings(config_path)
        asyncio.run(
            _run(
                operation,
                names,
                options or InstallOptions(),
                settings,
                executor,
                case_sensitive,
                observe,
                result,
            )
        )
    except ModeError as e:
        result.error = str(e)
    return result
