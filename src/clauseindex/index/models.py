"""Per-file index models and lookup results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

from clauseindex.index.ranges import EditorRange, SourceRange


class Severity(Enum):
    """Diagnostic severity level."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    HINT = "hint"


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """Positioned message about analyzed source (1-based line, 0-based character)."""

    line: int
    character: int
    message: str
    severity: Severity = Severity.ERROR

    def to_dict(self) -> dict[str, Any]:
        return {
            "line": self.line,
            "character": self.character,
            "message": self.message,
            "severity": self.severity.value,
        }


@dataclass(frozen=True, slots=True)
class CallSite:
    """A goal inside a clause body; ``location`` covers the call identifier only."""

    name: str
    arity: int
    location: SourceRange

    @property
    def key(self) -> str:
        return f"{self.name}/{self.arity}"


@dataclass(slots=True)
class PredicateRecord:
    """All clauses of one predicate within a file, merged.

    ``definition_range`` belongs to the first clause and never moves;
    ``full_range`` widens as later clauses merge in.
    """

    name: str
    arity: int
    definition_range: SourceRange
    full_range: SourceRange
    calls: list[CallSite] = field(default_factory=list)

    @property
    def key(self) -> str:
        return f"{self.name}/{self.arity}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "arity": self.arity,
            "definition_range": self.definition_range.to_dict(),
            "full_range": self.full_range.to_dict(),
            "calls": [
                {"name": c.name, "arity": c.arity, "location": c.location.to_dict()}
                for c in self.calls
            ],
        }


@dataclass(slots=True)
class FileIndex:
    """Index of one analyzed file."""

    file_path: str
    predicates: list[PredicateRecord] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def predicate(self, name: str, arity: int) -> PredicateRecord | None:
        for record in self.predicates:
            if record.name == name and record.arity == arity:
                return record
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_path": self.file_path,
            "predicates": [p.to_dict() for p in self.predicates],
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }


# =============================================================================
# Lookup results
# =============================================================================


@dataclass(frozen=True, slots=True)
class DefinitionMatch:
    """A predicate definition found by name/arity."""

    file_id: str
    predicate: PredicateRecord


@dataclass(frozen=True, slots=True)
class ReferenceHit:
    """A call site plus the predicate whose body contains it."""

    file_id: str
    call: CallSite
    calling_predicate: PredicateRecord


@dataclass(frozen=True, slots=True)
class DefinitionHit:
    """Cursor is on a predicate head."""

    file_id: str
    predicate: PredicateRecord
    kind: Literal["definition"] = "definition"


@dataclass(frozen=True, slots=True)
class CallHit:
    """Cursor is on a call identifier."""

    file_id: str
    call: CallSite
    calling_predicate: PredicateRecord
    kind: Literal["call"] = "call"


ElementHit = DefinitionHit | CallHit


# =============================================================================
# Editor-facing results
# =============================================================================


@dataclass(frozen=True, slots=True)
class Location:
    file_id: str
    range: EditorRange


@dataclass(frozen=True, slots=True)
class DocumentSymbol:
    name: str
    range: EditorRange
    selection_range: EditorRange


@dataclass(frozen=True, slots=True)
class EditorDiagnostic:
    """Diagnostic in editor coordinates, as handed to a publisher."""

    range: EditorRange
    message: str
    severity: Severity
    source: str = "clauseindex"

    def to_dict(self) -> dict[str, Any]:
        return {
            "range": self.range.to_dict(),
            "message": self.message,
            "severity": self.severity.value,
            "source": self.source,
        }


def to_editor_diagnostic(diagnostic: Diagnostic, source: str = "clauseindex") -> EditorDiagnostic:
    """Shift a 1-based diagnostic line into editor coordinates (clamped at 0)."""
    line = max(0, diagnostic.line - 1)
    character = max(0, diagnostic.character)
    return EditorDiagnostic(
        range=EditorRange.at(line, character),
        message=diagnostic.message,
        severity=diagnostic.severity,
        source=source,
    )
