"""Analyzer boundary: protocol and outcome model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from clauseindex.config.models import AnalyzerConfig
from clauseindex.index.models import Diagnostic, Severity
from clauseindex.index.syntax import SyntaxTree


@dataclass(frozen=True, slots=True)
class AnalyzerOutcome:
    """Result of one analyzer run.

    Exactly one of ``tree`` and ``error`` is set. ``warning`` may accompany a
    tree when the tool exited abnormally but still wrote usable output.
    """

    tree: SyntaxTree | None = None
    error: str | None = None
    warning: str | None = None

    @property
    def success(self) -> bool:
        return self.tree is not None

    @classmethod
    def ok(cls, tree: SyntaxTree, warning: str | None = None) -> AnalyzerOutcome:
        return cls(tree=tree, warning=warning)

    @classmethod
    def failed(cls, message: str) -> AnalyzerOutcome:
        return cls(error=message)

    def diagnostics(self) -> list[Diagnostic]:
        """Tool-level problems rendered as diagnostics at the top of the file."""
        if self.error is not None:
            return [Diagnostic(1, 0, self.error, Severity.ERROR)]
        if self.warning is not None:
            return [Diagnostic(1, 0, self.warning, Severity.WARNING)]
        return []


class Analyzer(Protocol):
    """External syntax analyzer.

    Implementations must not raise for tool-level failures (missing
    executable, non-zero exit, unreadable or malformed output); those come
    back as failed outcomes.
    """

    async def analyze(
        self, file_path: str, source_text: str, settings: AnalyzerConfig
    ) -> AnalyzerOutcome: ...
