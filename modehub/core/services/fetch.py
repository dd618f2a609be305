"""
Fetch / checkout — bring a module's working tree to the requested ref.

    install_dir missing   → clone (recursive), then checkout if a
                            revision is pinned
    install_dir present   → pull --no-rebase from the module's branch,
                            then a forced checkout

A checkout the executor reports as benign (already on the ref) counts as
success; every other executor failure is raised as a VcsError.
"""

from __future__ import annotations

import asyncio
import logging

from modehub.adapters.base import Adapter, ExecutionContext
from modehub.core.errors import ConfigurationError, VcsError
from modehub.core.events import DID_CHECKOUT, DID_FETCH, WILL_CHECKOUT, WILL_FETCH
from modehub.core.models.action import Action, Receipt
from modehub.core.models.module import Module
from modehub.core.models.options import InstallOptions

logger = logging.getLogger(__name__)


def _verbosity(options: InstallOptions) -> str:
    return "--verbose" if options.verbose else "--quiet"


async def _git(
    executor: Adapter,
    module: Module,
    operation: str,
    args: list[str],
    options: InstallOptions,
    work_tree: str | None = None,
) -> Receipt:
    action = Action(
        id=f"{module.id}:{operation}",
        adapter=executor.name,
        operation=operation,
        args=args,
        work_tree=work_tree,
        for_module=module.id,
    )
    context = ExecutionContext(
        action=action,
        buffered=not options.verbose,
        forward_errors=True,
        verbose=options.verbose,
        timeout=module.settings.git_timeout,
    )
    receipt = await executor.execute(context)
    if receipt.failed:
        raise VcsError(receipt)
    if receipt.benign:
        logger.debug("%s: %s (%s)", module, operation, receipt.output)
    return receipt


async def checkout(module: Module, executor: Adapter, options: InstallOptions | None = None) -> None:
    """Force the working tree onto the pinned revision, else the branch."""
    options = options or InstallOptions()
    config = module.prepare_config(options)
    module.emit(WILL_CHECKOUT)

    args = ["--force"]
    if not options.verbose:
        args.append("--quiet")
    args.append(config.repo_revision or module.repo_branch)

    await _git(executor, module, "checkout", args, options, work_tree=str(config.install_dir))
    module.emit(DID_CHECKOUT)


async def fetch(module: Module, executor: Adapter, options: InstallOptions | None = None) -> None:
    """Clone or update the module's versioned install directory.

    Raises:
        ConfigurationError: The module declares no repository.
        VcsError: The executor failed.
    """
    options = options or InstallOptions()
    config = module.prepare_config(options)
    if not config.repo_uri:
        raise ConfigurationError(f"No sources for module {module}")

    install_dir = config.install_dir
    assert install_dir is not None
    exists = await asyncio.to_thread(install_dir.is_dir)

    if exists:
        module.emit(WILL_FETCH, "patch")
        args = ["--no-rebase", _verbosity(options), "origin", module.repo_branch]
        await _git(executor, module, "pull", args, options, work_tree=str(install_dir))
        await checkout(module, executor, options)
        module.emit(DID_FETCH)
        return

    module.emit(WILL_FETCH, "complete")
    args = [config.repo_uri, "--recursive", _verbosity(options)]
    if config.repo_revision:
        args.append("--no-checkout")
    elif module.repo_branch != module.settings.default_branch:
        args += ["--branch", module.repo_branch]
    args.append(str(install_dir))

    await _git(executor, module, "clone", args, options)
    if config.repo_revision:
        await checkout(module, executor, options)
    module.emit(DID_FETCH)
