"""Diagnostic publication targets."""

from __future__ import annotations

from typing import Protocol

from clauseindex.index.models import EditorDiagnostic


class DiagnosticPublisher(Protocol):
    """Receives the complete diagnostic set for a file; an empty list clears it."""

    def publish(self, file_id: str, diagnostics: list[EditorDiagnostic]) -> None: ...


class DiagnosticStore:
    """Publisher that keeps the latest diagnostics per file in memory."""

    def __init__(self) -> None:
        self._by_file: dict[str, list[EditorDiagnostic]] = {}

    def publish(self, file_id: str, diagnostics: list[EditorDiagnostic]) -> None:
        if diagnostics:
            self._by_file[file_id] = list(diagnostics)
        else:
            self._by_file.pop(file_id, None)

    def get(self, file_id: str) -> list[EditorDiagnostic]:
        return list(self._by_file.get(file_id, []))

    def files(self) -> list[str]:
        return list(self._by_file)
