"""Shared helpers for CLI commands."""

from __future__ import annotations

import asyncio
from pathlib import Path

import click

from clauseindex.config.loader import load_config
from clauseindex.config.models import LoggingConfig
from clauseindex.core.errors import ConfigError
from clauseindex.core.logging import configure_logging
from clauseindex.daemon.pipeline import DocumentAnalysisPipeline
from clauseindex.daemon.publisher import DiagnosticStore
from clauseindex.index.models import FileIndex


def parse_indicator(value: str) -> tuple[str, int]:
    """Split a ``name/arity`` predicate indicator."""
    name, sep, arity = value.rpartition("/")
    if not sep or not name or not arity.isdigit():
        raise click.BadParameter(f"expected NAME/ARITY, got '{value}'")
    return name, int(arity)


def apply_logging_config(config: LoggingConfig) -> None:
    """Configure logging from the loaded config; ``-v`` forces the root level to DEBUG."""
    ctx = click.get_current_context(silent=True)
    verbose = ctx is not None and bool((ctx.find_root().obj or {}).get("verbose"))
    if verbose:
        config = config.model_copy(update={"level": "DEBUG"})
    configure_logging(config=config)


async def _analyze_all(
    pipeline: DocumentAnalysisPipeline, paths: list[Path]
) -> dict[str, FileIndex | None]:
    for path in paths:
        pipeline.did_open(str(path), path.read_text(encoding="utf-8", errors="replace"))
    results = {str(path): await pipeline.analyze_document(str(path)) for path in paths}
    await pipeline.shutdown()
    return results


def run_batch(
    paths: list[Path], workspace_root: Path | None = None
) -> tuple[DocumentAnalysisPipeline, DiagnosticStore, dict[str, FileIndex | None]]:
    """Open every path in a fresh pipeline and wait for all analyses."""
    try:
        config = load_config(workspace_root)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e
    apply_logging_config(config.logging)
    store = DiagnosticStore()
    pipeline = DocumentAnalysisPipeline.from_config(config, publisher=store)
    results = asyncio.run(_analyze_all(pipeline, [p.resolve() for p in paths]))
    return pipeline, store, results
