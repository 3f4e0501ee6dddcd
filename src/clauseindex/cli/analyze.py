"""Analysis commands: analyze, outline, refs, definition."""

from __future__ import annotations

import json
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from clauseindex.cli.utils import parse_indicator, run_batch
from clauseindex.core.logging import get_log_file_path
from clauseindex.index.navigation import document_symbols

_files_argument = click.argument(
    "files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path)
)


@click.command()
@_files_argument
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def analyze_command(files: tuple[Path, ...], as_json: bool) -> None:
    """Analyze FILES and report predicates and diagnostics per file."""
    _pipeline, store, results = run_batch(list(files))

    if as_json:
        payload = {
            file_id: {
                "index": index.to_dict() if index is not None else None,
                "published": [d.to_dict() for d in store.get(file_id)],
            }
            for file_id, index in results.items()
        }
        click.echo(json.dumps(payload, indent=2))
        return

    for file_id, index in results.items():
        if index is None:
            click.echo(f"{file_id}: analysis failed")
            if (log_file := get_log_file_path()) is not None:
                click.echo(f"  details in {log_file}", err=True)
        else:
            click.echo(
                f"{file_id}: {len(index.predicates)} predicates, "
                f"{len(index.diagnostics)} diagnostics"
            )
        for diagnostic in store.get(file_id):
            line = diagnostic.range.start.line + 1
            click.echo(f"  {diagnostic.severity.value}: {line}: {diagnostic.message}")


@click.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def outline_command(file: Path) -> None:
    """Show the predicate outline of FILE."""
    pipeline, _store, results = run_batch([file])
    file_id = next(iter(results))
    index = results[file_id]
    symbols = document_symbols(pipeline.cache, file_id)
    if index is None or symbols is None:
        raise click.ClickException(f"No analysis available for {file_id}")

    table = Table(title=Path(file_id).name)
    table.add_column("Predicate", style="cyan")
    table.add_column("Line", justify="right")
    table.add_column("Calls", justify="right")
    for symbol, record in zip(symbols, index.predicates, strict=True):
        table.add_row(symbol.name, str(symbol.range.start.line + 1), str(len(record.calls)))
    Console().print(table)


@click.command()
@click.argument("indicator")
@_files_argument
def refs_command(indicator: str, files: tuple[Path, ...]) -> None:
    """List calls to INDICATOR (NAME/ARITY) across FILES."""
    name, arity = parse_indicator(indicator)
    pipeline, _store, _results = run_batch(list(files))
    references = pipeline.cache.find_references(name, arity)
    if not references:
        click.echo(f"No references to {name}/{arity}")
        return
    for ref in references:
        loc = ref.call.location
        where = f"{ref.file_id}:{loc.start_line}:{loc.start_character + 1}"
        click.echo(f"{where}  in {ref.calling_predicate.key}")


@click.command()
@click.argument("indicator")
@_files_argument
def definition_command(indicator: str, files: tuple[Path, ...]) -> None:
    """Show where INDICATOR (NAME/ARITY) is defined among FILES."""
    name, arity = parse_indicator(indicator)
    pipeline, _store, _results = run_batch(list(files))
    matches = pipeline.cache.find_definitions_by_name_arity(name, arity)
    if not matches:
        raise click.ClickException(f"No definition of {name}/{arity}")
    first = matches[0]
    rng = first.predicate.definition_range
    click.echo(f"{first.file_id}:{rng.start_line}:{rng.start_character + 1}")
    if len(matches) > 1:
        others = ", ".join(m.file_id for m in matches[1:])
        click.echo(f"also defined in: {others}", err=True)
