"""Editor navigation built on the analysis cache."""

from __future__ import annotations

import structlog

from clauseindex.index.cache import AnalysisCache
from clauseindex.index.models import DefinitionHit, DocumentSymbol, Location
from clauseindex.index.ranges import Position, to_editor_range

logger = structlog.get_logger()


def find_definition(cache: AnalysisCache, file_id: str, position: Position) -> Location | None:
    """Go-to-definition for the element under the cursor."""
    hit = cache.find_element_at_position(file_id, position)
    if hit is None:
        logger.debug("definition_no_element", file_id=file_id, line=position.line)
        return None

    if isinstance(hit, DefinitionHit):
        return Location(hit.file_id, to_editor_range(hit.predicate.definition_range))

    match = cache.find_definition_by_name_arity(hit.call.name, hit.call.arity)
    if match is None:
        logger.debug("definition_not_cached", predicate=hit.call.key)
        return None
    return Location(match.file_id, to_editor_range(match.predicate.definition_range))


def find_references(
    cache: AnalysisCache,
    file_id: str,
    position: Position,
    *,
    include_declaration: bool = False,
) -> list[Location] | None:
    """Call sites of the predicate under the cursor.

    Returns None when the cursor is on neither a head nor a call.
    """
    hit = cache.find_element_at_position(file_id, position)
    if hit is None:
        return None

    if isinstance(hit, DefinitionHit):
        name, arity = hit.predicate.name, hit.predicate.arity
    else:
        name, arity = hit.call.name, hit.call.arity

    locations = [
        Location(ref.file_id, to_editor_range(ref.call.location))
        for ref in cache.find_references(name, arity)
    ]
    if include_declaration:
        match = cache.find_definition_by_name_arity(name, arity)
        if match is not None:
            declaration = to_editor_range(match.predicate.definition_range)
            locations.append(Location(match.file_id, declaration))

    logger.debug("references_found", predicate=f"{name}/{arity}", count=len(locations))
    return locations


def document_symbols(cache: AnalysisCache, file_id: str) -> list[DocumentSymbol] | None:
    """Outline of one file: a ``name/arity`` symbol per predicate."""
    index = cache.get(file_id)
    if index is None:
        return None
    symbols: list[DocumentSymbol] = []
    for record in index.predicates:
        head = to_editor_range(record.definition_range)
        symbols.append(DocumentSymbol(name=record.key, range=head, selection_range=head))
    return symbols
