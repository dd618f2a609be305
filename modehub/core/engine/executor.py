"""
Install orchestrator — the module lifecycle, composed from job queues.

Per module, one inner queue bound to the module:

    fetch → configure → build → activate

Across modules, one outer queue with one task per module, each task
running that module's inner queue. A failing module raises out of its
outer task, which closes the outer queue: modules queued after it are
never started.

Flow:
    modules → outer queue → (inner queue per module) → InstallReport
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from modehub.adapters.base import Adapter
from modehub.core.config.loader import Settings
from modehub.core.engine.queue import JobQueue
from modehub.core.errors import ResolutionError
from modehub.core.events import DID_UNINSTALL, WILL_UNINSTALL, EventEmitter
from modehub.core.models.module import Module
from modehub.core.models.options import InstallOptions
from modehub.core.observability.logging_config import module_context
from modehub.core.services import activation, configure, fetch
from modehub.core.services.configure import BuildStep, HookRegistry

logger = logging.getLogger(__name__)

# Installer-level events, emitted with the module as argument
WILL_INSTALL = "will-install"
DID_INSTALL = "did-install"


@dataclass
class ModuleOutcome:
    """What happened to one module during a run."""

    module_id: str
    status: str = "pending"   # installed, kept, uninstalled, absent, failed
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"module": self.module_id, "status": self.status, "error": self.error}


@dataclass
class RunReport:
    """Result of running an operation over a sequence of modules."""

    operation_id: str = ""
    operation: str = ""
    outcomes: list[ModuleOutcome] = field(default_factory=list)
    error: BaseException | None = None
    failed_module: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def attempted(self) -> list[str]:
        return [o.module_id for o in self.outcomes if o.status != "pending"]

    @property
    def skipped(self) -> list[str]:
        """Modules never started because an earlier one failed."""
        return [o.module_id for o in self.outcomes if o.status == "pending"]

    def count(self, status: str) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation_id": self.operation_id,
            "operation": self.operation,
            "status": "ok" if self.ok else "failed",
            "error": str(self.error) if self.error else None,
            "failed_module": self.failed_module,
            "modules": [o.to_dict() for o in self.outcomes],
        }


class Installer:
    """Runs the module lifecycle against one Settings value and executor."""

    def __init__(
        self,
        settings: Settings,
        executor: Adapter,
        hooks: HookRegistry | None = None,
        build_step: BuildStep | None = None,
    ) -> None:
        self.settings = settings
        self.executor = executor
        self.hooks = hooks or configure.default_hooks
        self.build_step = build_step
        self.events = EventEmitter(self)

    def __str__(self) -> str:
        return f"installer {self.settings.base_dir}"

    # ── Stages ──────────────────────────────────────────────────

    async def fetch(self, module: Module, options: InstallOptions) -> None:
        await fetch.fetch(module, self.executor, options)

    async def configure(self, module: Module, options: InstallOptions) -> None:
        await configure.configure(module, options, self.hooks)

    async def build(self, module: Module, options: InstallOptions) -> None:
        await configure.build(module, options, self.build_step)

    async def activate(self, module: Module, options: InstallOptions) -> bool:
        return await activation.activate(module, options)

    async def deactivate(self, module: Module, options: InstallOptions) -> bool:
        return await activation.deactivate(module, options)

    # ── Per module ──────────────────────────────────────────────

    def install_queue(self, module: Module, options: InstallOptions) -> tuple[JobQueue, dict]:
        """Compose the inner queue for one module (not started)."""
        state: dict[str, bool] = {}
        jobs = JobQueue(module, name=f"install {module}")

        async def do_activate(mod: Module) -> None:
            state["already_active"] = await self.activate(mod, options)

        jobs.push(lambda mod: self.fetch(mod, options))
        jobs.push(lambda mod: self.configure(mod, options))
        jobs.push(lambda mod: self.build(mod, options))
        jobs.push(do_activate)
        return jobs, state

    async def install(self, module: Module, options: InstallOptions | None = None) -> bool:
        """Install one module. Returns True if it was already active."""
        options = options or InstallOptions()
        module.prepare_config(options)
        jobs, state = self.install_queue(module, options)
        await jobs.run()
        return state.get("already_active", False)

    async def uninstall(self, module: Module, options: InstallOptions | None = None) -> bool:
        """Remove the module's install directory. Returns whether it existed."""
        config = module.prepare_config(options)
        install_dir = config.install_dir
        assert install_dir is not None
        if not await asyncio.to_thread(install_dir.is_dir):
            logger.debug("%s is not installed (%s)", module, install_dir)
            return False
        module.emit(WILL_UNINSTALL)
        await asyncio.to_thread(shutil.rmtree, install_dir)
        module.emit(DID_UNINSTALL)
        return True

    # ── Across modules ──────────────────────────────────────────

    async def install_all(
        self,
        modules: Sequence[Module],
        options: InstallOptions | None = None,
        per_module: Mapping[str, Mapping[str, Any]] | None = None,
    ) -> RunReport:
        """Install modules in order, stopping at the first failure.

        ``per_module`` holds option overrides keyed by lower-cased short id
        (e.g. a revision given as ``name@ref``).

        Raises:
            ResolutionError: An install path override was given for more
                than one module.
        """
        options = options or InstallOptions()
        if options.install_dir and len(modules) > 1:
            raise ResolutionError("--install-path can not be used for multiple modules")

        async def step(module: Module, opts: InstallOptions, outcome: ModuleOutcome) -> None:
            self.events.emit(WILL_INSTALL, module)
            already = await self.install(module, opts)
            outcome.status = "kept" if already else "installed"
            self.events.emit(DID_INSTALL, module, already)

        return await self._run_all("install", modules, options, per_module, step)

    async def uninstall_all(
        self,
        modules: Sequence[Module],
        options: InstallOptions | None = None,
        per_module: Mapping[str, Mapping[str, Any]] | None = None,
    ) -> RunReport:
        """Uninstall modules in order, stopping at the first failure."""

        async def step(module: Module, opts: InstallOptions, outcome: ModuleOutcome) -> None:
            existed = await self.uninstall(module, opts)
            outcome.status = "uninstalled" if existed else "absent"

        return await self._run_all("uninstall", modules, options or InstallOptions(), per_module, step)

    async def activate_all(
        self,
        modules: Sequence[Module],
        options: InstallOptions | None = None,
        per_module: Mapping[str, Mapping[str, Any]] | None = None,
    ) -> RunReport:
        """Activate already-installed modules in order."""

        async def step(module: Module, opts: InstallOptions, outcome: ModuleOutcome) -> None:
            already = await self.activate(module, opts)
            outcome.status = "kept" if already else "activated"

        return await self._run_all("activate", modules, options or InstallOptions(), per_module, step)

    async def deactivate_all(
        self,
        modules: Sequence[Module],
        options: InstallOptions | None = None,
        per_module: Mapping[str, Mapping[str, Any]] | None = None,
    ) -> RunReport:
        """Remove the active alias of each module."""

        async def step(module: Module, opts: InstallOptions, outcome: ModuleOutcome) -> None:
            removed = await self.deactivate(module, opts)
            outcome.status = "deactivated" if removed else "inactive"

        return await self._run_all("deactivate", modules, options or InstallOptions(), per_module, step)

    async def _run_all(self, operation, modules, options, per_module, step) -> RunReport:
        report = RunReport(operation_id=generate_operation_id(), operation=operation)
        outer = JobQueue(self, name=f"{operation} run")

        for module in modules:
            outcome = ModuleOutcome(module_id=module.id)
            report.outcomes.append(outcome)
            overrides = (per_module or {}).get(module.short_id.lower(), {})
            opts = options.merged(**overrides)

            async def task(_installer, module=module, opts=opts, outcome=outcome):
                try:
                    with module_context(module.id):
                        await step(module, opts, outcome)
                except Exception as exc:
                    outcome.status = "failed"
                    outcome.error = str(exc)
                    report.failed_module = module.id
                    raise

            outer.push(task)

        try:
            await outer.run()
        except Exception as exc:
            logger.debug("%s stopped: %s", operation, exc)
            report.error = exc

        logger.info(
            "%s: %d done, %d failed, %d not started",
            operation,
            len(report.attempted) - report.count("failed"),
            report.count("failed"),
            len(report.skipped),
        )
        return report


def generate_operation_id() -> str:
    """Generate a unique operation ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"op-{now}-{short}"
