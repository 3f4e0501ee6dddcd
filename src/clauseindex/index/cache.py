"""In-memory analysis cache.

Holds the latest FileIndex per file id and answers cross-file lookups by
scanning entries in insertion order. All writes come from the analysis
pipeline on the event loop thread, so no locking is needed; readers may see
a stale entry until the next analysis installs.

Each entry may carry the generation of the analysis that produced it. An
installation tagged with an older generation than the one already cached is
rejected, so a slow analysis cannot overwrite a newer one.
"""

from __future__ import annotations

from collections.abc import Iterator

import structlog

from clauseindex.index.models import (
    CallHit,
    DefinitionHit,
    DefinitionMatch,
    ElementHit,
    FileIndex,
    ReferenceHit,
)
from clauseindex.index.ranges import Position, source_range_contains

logger = structlog.get_logger()


class AnalysisCache:
    """Mapping of file id to FileIndex plus derived queries."""

    def __init__(self) -> None:
        self._entries: dict[str, FileIndex] = {}
        self._generations: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, file_id: object) -> bool:
        return file_id in self._entries

    def file_ids(self) -> list[str]:
        return list(self._entries)

    def items(self) -> Iterator[tuple[str, FileIndex]]:
        return iter(list(self._entries.items()))

    # -------------------------------------------------------------------------
    # Entry management
    # -------------------------------------------------------------------------

    def set(self, file_id: str, index: FileIndex, generation: int | None = None) -> bool:
        """Replace (or insert) the entry for ``file_id``.

        Returns False when ``generation`` is older than the cached entry's
        generation; the cache is left unchanged in that case.
        """
        if generation is not None:
            current = self._generations.get(file_id)
            if current is not None and generation < current:
                logger.debug(
                    "cache_install_rejected",
                    file_id=file_id,
                    generation=generation,
                    cached_generation=current,
                )
                return False
            self._generations[file_id] = generation
        self._entries[file_id] = index
        logger.debug(
            "cache_entry_updated",
            file_id=file_id,
            predicates=len(index.predicates),
            generation=generation,
        )
        return True

    def get(self, file_id: str) -> FileIndex | None:
        return self._entries.get(file_id)

    def generation(self, file_id: str) -> int | None:
        return self._generations.get(file_id)

    def delete(self, file_id: str) -> None:
        self._generations.pop(file_id, None)
        if self._entries.pop(file_id, None) is not None:
            logger.debug("cache_entry_deleted", file_id=file_id)

    def clear(self) -> None:
        self._entries.clear()
        self._generations.clear()
        logger.debug("cache_cleared")

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def find_definitions_by_name_arity(self, name: str, arity: int) -> list[DefinitionMatch]:
        """Every cached definition of ``name/arity``, in cache order."""
        matches: list[DefinitionMatch] = []
        for file_id, index in self._entries.items():
            record = index.predicate(name, arity)
            if record is not None:
                matches.append(DefinitionMatch(file_id=file_id, predicate=record))
        return matches

    def find_definition_by_name_arity(self, name: str, arity: int) -> DefinitionMatch | None:
        """First definition of ``name/arity`` in cache iteration order."""
        matches = self.find_definitions_by_name_arity(name, arity)
        if not matches:
            return None
        if len(matches) > 1:
            logger.debug(
                "definition_ambiguous",
                predicate=f"{name}/{arity}",
                files=[m.file_id for m in matches],
                chosen=matches[0].file_id,
            )
        return matches[0]

    def find_references(self, name: str, arity: int) -> list[ReferenceHit]:
        """Every call to ``name/arity`` across cached files, with its calling predicate."""
        results: list[ReferenceHit] = []
        for file_id, index in self._entries.items():
            for record in index.predicates:
                for call in record.calls:
                    if call.name == name and call.arity == arity:
                        results.append(
                            ReferenceHit(file_id=file_id, call=call, calling_predicate=record)
                        )
        return results

    def find_element_at_position(self, file_id: str, position: Position) -> ElementHit | None:
        """The definition head or call identifier under an editor position.

        Records are checked in stored order; within a record the head comes
        before its calls.
        """
        index = self._entries.get(file_id)
        if index is None:
            return None
        for record in index.predicates:
            if source_range_contains(record.definition_range, position):
                return DefinitionHit(file_id=file_id, predicate=record)
            for call in record.calls:
                if source_range_contains(call.location, position):
                    return CallHit(file_id=file_id, call=call, calling_predicate=record)
        return None
