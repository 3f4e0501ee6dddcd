"""Daemon module - document lifecycle handling and analysis scheduling."""

from clauseindex.daemon.debounce import KeyedDebouncer
from clauseindex.daemon.pipeline import DocumentAnalysisPipeline, OpenDocument
from clauseindex.daemon.publisher import DiagnosticPublisher, DiagnosticStore

__all__ = [
    "DiagnosticPublisher",
    "DiagnosticStore",
    "DocumentAnalysisPipeline",
    "KeyedDebouncer",
    "OpenDocument",
]
