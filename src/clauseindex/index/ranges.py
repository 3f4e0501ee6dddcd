"""Range and position geometry.

Two coordinate systems meet here:

- ``SourceRange`` is the analyzer's system: 1-based lines, 0-based characters,
  exclusive end character. Everything stored in the index uses it.
- ``Position`` / ``EditorRange`` are editor coordinates: 0-based lines and
  characters. Cursor queries arrive in this system.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SourceRange:
    """Span in analyzer coordinates (1-based lines, 0-based characters)."""

    start_line: int
    start_character: int
    end_line: int
    end_character: int

    @property
    def start(self) -> tuple[int, int]:
        return (self.start_line, self.start_character)

    @property
    def end(self) -> tuple[int, int]:
        return (self.end_line, self.end_character)

    def union(self, other: SourceRange) -> SourceRange:
        """Smallest range covering both ranges."""
        start_line, start_character = min(self.start, other.start)
        end_line, end_character = max(self.end, other.end)
        return SourceRange(start_line, start_character, end_line, end_character)

    def to_dict(self) -> dict[str, int]:
        return {
            "start_line": self.start_line,
            "start_character": self.start_character,
            "end_line": self.end_line,
            "end_character": self.end_character,
        }


# Substituted when a node carries no position; 1x1 at the top of the file.
FALLBACK_RANGE = SourceRange(start_line=1, start_character=0, end_line=1, end_character=1)


@dataclass(frozen=True, slots=True)
class Position:
    """Editor cursor position (0-based line and character)."""

    line: int
    character: int


@dataclass(frozen=True, slots=True)
class EditorRange:
    """Span in editor coordinates (0-based lines and characters)."""

    start: Position
    end: Position

    @classmethod
    def at(cls, line: int, character: int) -> EditorRange:
        """Zero-width range at a single point."""
        point = Position(line, character)
        return cls(point, point)

    def to_dict(self) -> dict[str, dict[str, int]]:
        return {
            "start": {"line": self.start.line, "character": self.start.character},
            "end": {"line": self.end.line, "character": self.end.character},
        }


def to_editor_range(source_range: SourceRange) -> EditorRange:
    """Convert analyzer coordinates to editor coordinates (lines shift by one)."""
    return EditorRange(
        start=Position(source_range.start_line - 1, source_range.start_character),
        end=Position(source_range.end_line - 1, source_range.end_character),
    )


def span_to_source_range(
    start_line: int, start_column: int, end_line: int, end_column: int
) -> SourceRange:
    """Build a SourceRange from an analyzer span with 1-based columns."""
    return SourceRange(
        start_line=start_line,
        start_character=max(start_column - 1, 0),
        end_line=end_line,
        end_character=max(end_column - 1, 0),
    )


def contains(editor_range: EditorRange, position: Position) -> bool:
    """Check whether ``position`` falls inside ``editor_range``.

    The end character is inclusive: a cursor sitting right after the last
    character of a token still counts as on the token.
    """
    if position.line < editor_range.start.line or position.line > editor_range.end.line:
        return False
    start, end = editor_range.start, editor_range.end
    if position.line == start.line and position.character < start.character:
        return False
    if position.line == end.line and position.character > end.character:
        return False
    return True


def source_range_contains(source_range: SourceRange, position: Position) -> bool:
    """Containment test of an editor position against an analyzer-coordinate range."""
    return contains(to_editor_range(source_range), position)
