"""
Console progress — event listeners that narrate an install run.

The engine only emits events; this is where they become output.
"""

from __future__ import annotations

import click

from modehub.core import events
from modehub.core.engine.executor import DID_INSTALL, WILL_INSTALL, Installer
from modehub.core.models.module import Module


def _say(message: str, **style) -> None:
    click.secho(message, **style)


def attach_progress(installer: Installer, modules: list[Module], verbose: bool = False) -> None:
    """Narrate module lifecycle events on stdout."""

    installer.events.on(
        WILL_INSTALL, lambda _i, m: _say(f"Installing {m}", fg="yellow", bold=True)
    )
    installer.events.on(
        DID_INSTALL, lambda _i, m, _already: _say(f"Installed {m}", fg="green", bold=True)
    )

    for module in modules:
        on = module.events.on

        def will_fetch(m: Module, kind: str) -> None:
            verb = "Updating" if kind == "patch" else "Fetching"
            _say(f"  {verb} {m} from {m.config.repo_uri or m.info.repo}")

        def will_activate(m: Module, already: bool) -> None:
            if already:
                _say(f"  Keeping already active {m}")
            else:
                _say(f"  Activating {m}")

        on(events.WILL_FETCH, will_fetch)
        on(events.WILL_CONFIGURE, lambda m: _say(f"  Configuring {m}"))
        on(events.WILL_BUILD, lambda m: _say(f"  Building {m}"))
        on(events.WILL_ACTIVATE, will_activate)
        on(events.DID_UNINSTALL, lambda m: _say(f"Uninstalled {m}", fg="green"))
        on(events.DID_DEACTIVATE, lambda m: _say(f"Deactivated {m}", fg="green"))

        if verbose:
            on(events.WILL_CHECKOUT, lambda m: _say(f"  Checking out {m.config.repo_revision or m.repo_branch}"))
            on(events.DID_CONFIGURE, lambda m: _say(f"  => {m.config.install_dir}"))
            on(events.DID_ACTIVATE, lambda m, _a: _say(f"  => {m.active_path}"))
