"""
modehub — CLI entrypoint.

Usage:
    python -m modehub.main --help
    python -m modehub.main search markdown
    python -m modehub.main install web/markdown@v0.2
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from modehub import __version__
from modehub.core.observability.logging_config import resolve_level, setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="modehub")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help="Path to mode.yml (default: auto-detect).",
)
@click.option(
    "--base-dir",
    "base_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Base directory holding index/, installed/ and active/.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: Path | None,
    base_dir: Path | None,
) -> None:
    """modehub — install, update and activate modules from an index."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = config_path
    ctx.obj["base_dir"] = base_dir

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(debug, verbose, quiet, os.environ.get("MODE_LOG_LEVEL")),
        log_file=os.environ.get("MODE_LOG_FILE"),
        log_file_level=os.environ.get("MODE_LOG_FILE_LEVEL"),
        quiet_third_party=not debug,
    )


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def version(ctx: click.Context, as_json: bool) -> None:
    """Show modehub and index versions."""
    from modehub.core.use_cases.maintenance import describe_version
    from modehub.ui.cli.modules import settings_from_context

    result = describe_version(settings_from_context(ctx))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red", err=True)
        sys.exit(1)
    click.echo(result.output)


# ── Register commands from modehub/ui/cli/ ──────────────────────

from modehub.ui.cli.index import search, update
from modehub.ui.cli.modules import activate, deactivate, install, uninstall

cli.add_command(search)
cli.add_command(update)
cli.add_command(install)
cli.add_command(uninstall)
cli.add_command(activate)
cli.add_command(deactivate)


if __name__ == "__main__":
    cli()
