"""clauseindex CLI."""

import click

from clauseindex import __version__
from clauseindex.cli.analyze import (
    analyze_command,
    definition_command,
    outline_command,
    refs_command,
)


@click.group()
@click.version_option(version=__version__, prog_name="clauseindex")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """clauseindex - predicate definitions and call sites for Prolog sources."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


cli.add_command(analyze_command, name="analyze")
cli.add_command(outline_command, name="outline")
cli.add_command(refs_command, name="refs")
cli.add_command(definition_command, name="definition")


if __name__ == "__main__":
    cli()
