"""
CLI commands acting on named modules.

Thin wrappers over ``modehub.core.use_cases.install``.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from modehub.core.config.loader import Settings, load_settings
from modehub.core.errors import ModeError
from modehub.core.models.options import InstallOptions


def settings_from_context(ctx: click.Context) -> Settings:
    """Load settings from the global options, exiting on error."""
    try:
        return load_settings(ctx.obj.get("config_path"), base_dir=ctx.obj.get("base_dir"))
    except ModeError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)


def _run(ctx: click.Context, operation: str, names, options: InstallOptions, as_json: bool, case_sensitive: bool) -> None:
    from modehub.core.use_cases.install import run_modules
    from modehub.ui.cli.progress import attach_progress

    settings = settings_from_context(ctx)
    quiet = ctx.obj.get("quiet", False) or as_json
    verbose = ctx.obj.get("verbose", False)

    def observe(installer, modules):
        if not quiet:
            attach_progress(installer, modules, verbose=verbose)

    result = run_modules(
        operation,
        list(names),
        options,
        settings=settings,
        case_sensitive=case_sensitive,
        observe=observe,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    elif result.report and not quiet:
        for outcome in result.report.outcomes:
            if outcome.status == "absent":
                click.echo(f"{outcome.module_id} is not installed")
            elif outcome.status == "inactive":
                click.echo(f"{outcome.module_id} is not active")

    if result.error:
        if not as_json:
            click.secho(f"❌ {result.error}", fg="red", err=True)
        sys.exit(1)


_case_sensitive = click.option(
    "--case-sensitive", "-c", is_flag=True, help="Match module names case-sensitively."
)
_as_json = click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")


@click.command()
@click.argument("names", nargs=-1, required=True)
@click.option("--force", is_flag=True, help="Force fetching and building even when not necessary.")
@click.option(
    "--repo-uri", "-u", "repo_uri", default=None,
    help="Override the repository defined by the index.",
)
@click.option(
    "--repo-branch", "-b", "repo_branch", default=None,
    help="Fetch a specific branch other than the recommended default.",
)
@click.option(
    "--repo-rev", "-r", "repo_revision", default=None,
    help="Check out a specific revision (any git refspec).",
)
@click.option(
    "--install-path", "-i", "install_dir", type=click.Path(path_type=Path), default=None,
    help="Override where the module version is unpacked (not the active location).",
)
@_case_sensitive
@_as_json
@click.pass_context
def install(
    ctx: click.Context,
    names: tuple[str, ...],
    force: bool,
    repo_uri: str | None,
    repo_branch: str | None,
    repo_revision: str | None,
    install_dir: Path | None,
    case_sensitive: bool,
    as_json: bool,
) -> None:
    """Install modules.

    Examples:

        modehub install markdown

        modehub install web/markdown@v0.2 --repo-branch devel
    """
    options = InstallOptions(
        force=force,
        verbose=ctx.obj.get("verbose", False),
        quiet=ctx.obj.get("quiet", False),
        repo_uri=repo_uri,
        repo_branch=repo_branch,
        repo_revision=repo_revision,
        install_dir=install_dir,
    )
    _run(ctx, "install", names, options, as_json, case_sensitive)


@click.command()
@click.argument("names", nargs=-1, required=True)
@click.option("--repo-branch", "-b", "repo_branch", default=None, help="Branch of the install to remove.")
@_case_sensitive
@_as_json
@click.pass_context
def uninstall(ctx: click.Context, names: tuple[str, ...], repo_branch: str | None, case_sensitive: bool, as_json: bool) -> None:
    """Remove installed module versions."""
    options = InstallOptions(repo_branch=repo_branch, verbose=ctx.obj.get("verbose", False))
    _run(ctx, "uninstall", names, options, as_json, case_sensitive)


@click.command()
@click.argument("names", nargs=-1, required=True)
@click.option("--force", is_flag=True, help="Replace whatever occupies the active path.")
@click.option("--repo-branch", "-b", "repo_branch", default=None, help="Branch of the install to activate.")
@_case_sensitive
@_as_json
@click.pass_context
def activate(
    ctx: click.Context,
    names: tuple[str, ...],
    force: bool,
    repo_branch: str | None,
    case_sensitive: bool,
    as_json: bool,
) -> None:
    """Make installed module versions the active ones."""
    options = InstallOptions(force=force, repo_branch=repo_branch, verbose=ctx.obj.get("verbose", False))
    _run(ctx, "activate", names, options, as_json, case_sensitive)


@click.command()
@click.argument("names", nargs=-1, required=True)
@click.option("--repo-branch", "-b", "repo_branch", default=None, help="Branch of the install to deactivate.")
@_case_sensitive
@_as_json
@click.pass_context
def deactivate(ctx: click.Context, names: tuple[str, ...], repo_branch: str | None, case_sensitive: bool, as_json: bool) -> None:
    """Remove the active alias of modules."""
    options = InstallOptions(repo_branch=repo_branch, verbose=ctx.obj.get("verbose", False))
    _run(ctx, "deactivate", names, options, as_json, case_sensitive)
