"""
CLI commands for the module index: search, update.
"""

from __future__ import annotations

import json
import sys

import click

from modehub.core.models.options import QueryOptions
from modehub.ui.cli.modules import settings_from_context


@click.command()
@click.argument("query")
@click.option("--regexp", is_flag=True, help="Treat QUERY as a regular expression.")
@click.option("--substr", is_flag=True, help="Treat QUERY as a substring (instead of a word or prefix).")
@click.option(
    "--case-sensitive", "-c", is_flag=True,
    help="Make the query case-sensitive (a /pattern/ query can also use the 'c' flag).",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def search(ctx: click.Context, query: str, regexp: bool, substr: bool, case_sensitive: bool, as_json: bool) -> None:
    """Find modules.

    Examples:

        modehub search markdown

        modehub search '/^web\\//'
    """
    from modehub.core.use_cases.search import search_modules

    settings = settings_from_context(ctx)
    options = QueryOptions(regexp=regexp, substr=substr, case_sensitive=case_sensitive or None)
    result = search_modules(query, options, settings=settings)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(1 if result.error else 0)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red", err=True)
        sys.exit(1)

    detailed = ctx.obj.get("verbose", False)
    for module in result.modules:
        click.echo(module.describe(detailed))


@click.command()
@click.pass_context
def update(ctx: click.Context) -> None:
    """Update the module index."""
    from modehub.core.use_cases.maintenance import update_index

    settings = settings_from_context(ctx)
    result = update_index(settings, verbose=ctx.obj.get("verbose", False))
    if result.error:
        click.secho(f"❌ {result.error}", fg="red", err=True)
        sys.exit(1)
    if result.output and not ctx.obj.get("quiet", False):
        click.echo(result.output)
