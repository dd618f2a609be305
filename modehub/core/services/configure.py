"""
Configure and build stages.

Configure runs a module's custom configure hook, if its manifest names
one, inside a fresh JobQueue bound to the module. A hook may return
follow-up tasks; they run right after the hook, ahead of anything queued
behind it. The will-/did-configure events only fire when there is at
least one task to run.

Hooks are referenced by name from the manifest (``configure: name``) and
resolved, in order, from:

    1. hooks registered in-process with ``HookRegistry.register``
    2. the ``modehub.configure_hooks`` entry-point group
    3. ``package.module:attribute`` import syntax

Build is an extension point: a BuildStep decides whether a build is
needed (skipped when the caller forces a build) and runs it. Without a
build step the stage is a pass-through.
"""

from __future__ import annotations

import importlib
import importlib.metadata
import inspect
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Iterable, Sequence
from typing import Any

from modehub.core.engine.queue import JobQueue, Task
from modehub.core.errors import ConfigurationError
from modehub.core.events import DID_BUILD, DID_CONFIGURE, WILL_BUILD, WILL_CONFIGURE
from modehub.core.models.module import Module
from modehub.core.models.options import InstallOptions

logger = logging.getLogger(__name__)

ConfigureHook = Callable[
    [Module, InstallOptions],
    "Awaitable[Iterable[Task] | None] | Iterable[Task] | None",
]

ENTRY_POINT_GROUP = "modehub.configure_hooks"


class HookRegistry:
    """Named configure hooks available to manifests."""

    def __init__(self) -> None:
        self._hooks: dict[str, ConfigureHook] = {}

    def register(self, name: str, hook: ConfigureHook | None = None) -> Any:
        """Register ``hook`` under ``name``. Usable as a decorator."""

        def decorator(fn: ConfigureHook) -> ConfigureHook:
            if name in self._hooks:
                logger.warning("Overwriting configure hook: %s", name)
            self._hooks[name] = fn
            logger.debug("Registered configure hook: %s", name)
            return fn

        if hook is not None:
            return decorator(hook)
        return decorator

    def names(self) -> list[str]:
        return sorted(self._hooks)

    def resolve(self, reference: str) -> ConfigureHook:
        """Look up a hook reference.

        Raises:
            ConfigurationError: Nothing by that name can be found.
        """
        if reference in self._hooks:
            return self._hooks[reference]

        for ep in importlib.metadata.entry_points(group=ENTRY_POINT_GROUP):
            if ep.name == reference:
                return ep.load()

        if ":" in reference:
            module_name, _, attr = reference.partition(":")
            try:
                target: Any = importlib.import_module(module_name)
                for part in attr.split("."):
                    target = getattr(target, part)
            except (ImportError, AttributeError) as e:
                raise ConfigurationError(f"Cannot load configure hook {reference!r}: {e}") from e
            if not callable(target):
                raise ConfigurationError(f"Configure hook {reference!r} is not callable")
            return target

        raise ConfigurationError(f"Unknown configure hook {reference!r}")


default_hooks = HookRegistry()


async def configure(
    module: Module,
    options: InstallOptions | None = None,
    hooks: HookRegistry | None = None,
    extra_tasks: Sequence[Task] = (),
) -> None:
    """Run the module's configure hook and any extra configure tasks."""
    options = options or InstallOptions()
    hooks = hooks or default_hooks
    jobs = JobQueue(module, name=f"configure {module}")

    if module.info.configure:
        hook = hooks.resolve(module.info.configure)

        async def run_hook(mod: Module) -> Iterable[Task] | None:
            result = hook(mod, options)
            if inspect.isawaitable(result):
                result = await result
            return result

        jobs.push(run_hook)

    for task in extra_tasks:
        jobs.push(task)

    if not len(jobs):
        return

    module.emit(WILL_CONFIGURE)
    jobs.push(lambda mod: mod.emit(DID_CONFIGURE))
    await jobs.run()


class BuildStep(ABC):
    """How a module gets built after it is configured."""

    async def needed(self, module: Module) -> bool:
        """Whether the module's build output is stale. Default: always."""
        return True

    @abstractmethod
    async def run(self, module: Module, options: InstallOptions) -> None:
        """Build the module; raise on failure."""


async def build(
    module: Module,
    options: InstallOptions | None = None,
    step: BuildStep | None = None,
) -> bool:
    """Build the module if a step is registered. Returns whether it built."""
    options = options or InstallOptions()
    if step is None:
        return False
    if not options.force and not await step.needed(module):
        logger.debug("%s is up to date, not building", module)
        return False

    module.emit(WILL_BUILD)
    await step.run(module, options)
    module.emit(DID_BUILD)
    return True
