"""
Maintenance use cases — refresh the index, report versions.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path

from modehub import __version__
from modehub.adapters.base import Adapter, ExecutionContext
from modehub.core.config.loader import Settings, load_settings
from modehub.core.errors import ModeError
from modehub.core.models.action import Action


@dataclass
class MaintenanceResult:
    output: str = ""
    error: str | None = None

    def to_dict(self) -> dict:
        return {"output": self.output, "error": self.error}


def _executor(executor: Adapter | None) -> Adapter:
    if executor is not None:
        return executor
    from modehub.adapters.vcs.git import GitAdapter

    return GitAdapter()


def update_index(
    settings: Settings | None = None,
    config_path: Path | None = None,
    executor: Adapter | None = None,
    verbose: bool = False,
) -> MaintenanceResult:
    """Pull the latest index from its origin's default branch."""
    result = MaintenanceResult()
    try:
        settings = settings or load_settings(config_path)
    except ModeError as e:
        result.error = str(e)
        return result

    assert settings.index_dir is not None
    args = ["origin", settings.default_branch]
    if not verbose:
        args.append("--quiet")
    context = ExecutionContext(
        action=Action(
            id="index:pull",
            operation="pull",
            args=args,
            work_tree=str(settings.index_dir),
        ),
        buffered=not verbose,
        verbose=verbose,
        timeout=settings.git_timeout,
    )
    receipt = asyncio.run(_executor(executor).execute(context))
    if receipt.failed:
        result.error = receipt.error
    else:
        result.output = receipt.output.strip()
    return result


def describe_version(
    settings: Settings | None = None,
    config_path: Path | None = None,
    executor: Adapter | None = None,
) -> MaintenanceResult:
    """modehub's own version, plus the index revision when it is a git tree."""
    result = MaintenanceResult(output=f"modehub {__version__}")
    try:
        settings = settings or load_settings(config_path)
    except ModeError as e:
        result.error = str(e)
        return result

    assert settings.index_dir is not None
    if not settings.index_dir.is_dir():
        return result

    context = ExecutionContext(
        action=Action(
            id="index:describe",
            operation="describe",
            args=["--always", "--tags"],
            work_tree=str(settings.index_dir),
        ),
        forward_errors=False,
        timeout=settings.git_timeout,
    )
    receipt = asyncio.run(_executor(executor).execute(context))
    if receipt.succeeded and receipt.output.strip():
        result.output += f" (index {receipt.output.strip()})"
    return result
