"""
Activation — expose one install directory of a module at a stable path.

The active alias (``<active_dir>/<active_id>``) is a relative symlink to
the module's versioned install directory. Before touching it the current
state is inspected without following links:

    missing          create parent dirs, create the link
    link to us       nothing to do; reported as already active
    link elsewhere   stale: remove it, create the link
    anything else    ConflictError naming the path (``force`` replaces it)
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import stat
from pathlib import Path

from modehub.core.errors import ConfigurationError, ConflictError
from modehub.core.events import (
    DID_ACTIVATE,
    DID_DEACTIVATE,
    WILL_ACTIVATE,
    WILL_DEACTIVATE,
)
from modehub.core.models.module import Module
from modehub.core.models.options import InstallOptions

logger = logging.getLogger(__name__)

FORCE_HINT = "use --force to replace it"


def _lstat(path: Path) -> os.stat_result | None:
    try:
        return os.lstat(path)
    except FileNotFoundError:
        return None


def link_target(link: Path) -> Path:
    """Where the symlink at ``link`` points, normalized and absolute."""
    raw = os.readlink(link)
    return Path(os.path.normpath(os.path.join(os.path.abspath(link.parent), raw)))


def _same_path(a: Path, b: Path) -> bool:
    return os.path.normpath(os.path.abspath(a)) == os.path.normpath(os.path.abspath(b))


def _make_link(target: Path, link: Path) -> None:
    link.parent.mkdir(parents=True, exist_ok=True)
    relative = os.path.relpath(os.path.abspath(target), os.path.abspath(link.parent))
    try:
        os.symlink(relative, link, target_is_directory=True)
    except OSError as e:
        e.add_note(f"symlink({relative!r}, {str(link)!r})")
        raise


def _remove_entry(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


async def activate(module: Module, options: InstallOptions | None = None) -> bool:
    """Point the module's active alias at its install directory.

    Returns:
        True if the alias already pointed there (nothing changed).

    Raises:
        ConfigurationError: No activation product is configured.
        ConflictError: The alias path holds something that is not a link.
        OSError: Creating directories or the link failed.
    """
    options = options or InstallOptions()
    config = module.prepare_config(options)
    if not config.product:
        raise ConfigurationError(f"Nothing to activate for {module} (no product configured)")

    target = config.install_dir
    assert target is not None
    alias = module.active_path

    async def make_link() -> bool:
        module.emit(WILL_ACTIVATE, False)
        await asyncio.to_thread(_make_link, target, alias)
        logger.debug("Linked %s -> %s", alias, target)
        module.emit(DID_ACTIVATE, False)
        return False

    st = await asyncio.to_thread(_lstat, alias)
    if st is None:
        return await make_link()

    if stat.S_ISLNK(st.st_mode):
        current = await asyncio.to_thread(link_target, alias)
        if _same_path(current, target):
            module.emit(WILL_ACTIVATE, True)
            module.emit(DID_ACTIVATE, True)
            return True
        logger.debug("Replacing stale link %s -> %s", alias, current)
        await asyncio.to_thread(alias.unlink)
        return await make_link()

    if options.force:
        logger.warning("Replacing %s (forced)", alias)
        await asyncio.to_thread(_remove_entry, alias)
        return await make_link()

    raise ConflictError(alias, hint=FORCE_HINT)


async def deactivate(module: Module, options: InstallOptions | None = None) -> bool:
    """Remove the module's active alias if it points at its install directory.

    Returns:
        True if an alias was removed, False if there was nothing of ours.
    """
    config = module.prepare_config(options)
    alias = module.active_path

    st = await asyncio.to_thread(_lstat, alias)
    if st is None:
        return False
    if not stat.S_ISLNK(st.st_mode):
        logger.warning("%s is not a link, leaving it alone", alias)
        return False

    current = await asyncio.to_thread(link_target, alias)
    assert config.install_dir is not None
    if not _same_path(current, config.install_dir):
        logger.info("%s points at %s, not at %s", alias, current, config.install_dir)
        return False

    module.emit(WILL_DEACTIVATE)
    await asyncio.to_thread(alias.unlink)
    module.emit(DID_DEACTIVATE)
    return True
