"""Index module - per-file predicate indexes and cross-file lookups.

- ``syntax``: decoded analyzer syntax tree
- ``transform``: syntax tree -> FileIndex
- ``cache``: AnalysisCache holding the latest FileIndex per file
- ``navigation``: go-to-definition, find-references, outline
"""

from clauseindex.index.cache import AnalysisCache
from clauseindex.index.models import (
    CallHit,
    CallSite,
    DefinitionHit,
    DefinitionMatch,
    Diagnostic,
    DocumentSymbol,
    EditorDiagnostic,
    FileIndex,
    Location,
    PredicateRecord,
    ReferenceHit,
    Severity,
)
from clauseindex.index.ranges import EditorRange, Position, SourceRange
from clauseindex.index.syntax import SyntaxTree, parse_syntax_tree, parse_syntax_tree_json
from clauseindex.index.transform import transform_syntax_tree

__all__ = [
    "AnalysisCache",
    "CallHit",
    "CallSite",
    "DefinitionHit",
    "DefinitionMatch",
    "Diagnostic",
    "DocumentSymbol",
    "EditorDiagnostic",
    "EditorRange",
    "FileIndex",
    "Location",
    "Position",
    "PredicateRecord",
    "ReferenceHit",
    "Severity",
    "SourceRange",
    "SyntaxTree",
    "parse_syntax_tree",
    "parse_syntax_tree_json",
    "transform_syntax_tree",
]
