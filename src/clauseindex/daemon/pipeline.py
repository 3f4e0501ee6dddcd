"""Document analysis pipeline.

Turns document lifecycle events into cache updates:

- open / save: analyze immediately
- content change: debounced; only the last change in the window fires
- settings change: every open document is re-triggered independently
- close: cache entry and published diagnostics are dropped

At most one analysis runs per file at a time. A trigger that arrives while
one is pending is dropped rather than queued; callers of
``analyze_document`` share the in-flight run instead of starting another.

Every run takes a generation number when it starts. The cache refuses an
install older than what it already holds, so a slow run cannot overwrite the
result of a newer one.
"""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass
from typing import Any

import structlog

from clauseindex.analyzer.blint import BlintAnalyzer
from clauseindex.analyzer.models import Analyzer
from clauseindex.config.models import AnalyzerConfig, ClauseIndexConfig
from clauseindex.config.provider import SettingsProvider, StaticSettingsProvider, fetch_settings
from clauseindex.core.errors import InternalError
from clauseindex.core.logging import clear_analysis_id, set_analysis_id
from clauseindex.daemon.debounce import KeyedDebouncer
from clauseindex.daemon.publisher import DiagnosticPublisher, DiagnosticStore
from clauseindex.index.cache import AnalysisCache
from clauseindex.index.models import (
    Diagnostic,
    EditorDiagnostic,
    FileIndex,
    Severity,
    to_editor_diagnostic,
)
from clauseindex.index.ranges import EditorRange
from clauseindex.index.transform import transform_syntax_tree

logger = structlog.get_logger()

DIAGNOSTIC_SOURCE = "clauseindex"


def _for_editor(diagnostics: list[Diagnostic]) -> list[EditorDiagnostic]:
    return [to_editor_diagnostic(d, DIAGNOSTIC_SOURCE) for d in diagnostics]


@dataclass
class OpenDocument:
    """Latest known text of an open document."""

    file_id: str
    text: str
    version: int = 0


class DocumentAnalysisPipeline:
    """Schedules per-file analyses and installs their results in the cache."""

    def __init__(
        self,
        cache: AnalysisCache,
        analyzer: Analyzer,
        settings_provider: SettingsProvider,
        publisher: DiagnosticPublisher,
        *,
        debounce_sec: float = 0.5,
    ) -> None:
        self._cache = cache
        self._analyzer = analyzer
        self._settings_provider = settings_provider
        self._publisher = publisher
        self._debouncer = KeyedDebouncer(debounce_sec)
        self._documents: dict[str, OpenDocument] = {}
        self._pending: dict[str, asyncio.Task[FileIndex | None]] = {}
        self._generations = itertools.count(1)

    @classmethod
    def from_config(
        cls,
        config: ClauseIndexConfig,
        *,
        cache: AnalysisCache | None = None,
        analyzer: Analyzer | None = None,
        publisher: DiagnosticPublisher | None = None,
    ) -> DocumentAnalysisPipeline:
        """Wire a pipeline from loaded configuration with default collaborators."""
        return cls(
            cache if cache is not None else AnalysisCache(),
            analyzer if analyzer is not None else BlintAnalyzer(),
            StaticSettingsProvider(config.analyzer),
            publisher if publisher is not None else DiagnosticStore(),
            debounce_sec=config.pipeline.debounce_sec,
        )

    @property
    def cache(self) -> AnalysisCache:
        return self._cache

    def open_documents(self) -> list[str]:
        return list(self._documents)

    def is_pending(self, file_id: str) -> bool:
        return file_id in self._pending

    # -------------------------------------------------------------------------
    # Document lifecycle events
    # -------------------------------------------------------------------------

    def did_open(self, file_id: str, text: str, version: int = 0) -> None:
        logger.info("document_opened", file_id=file_id)
        self._documents[file_id] = OpenDocument(file_id, text, version)
        self.trigger_analysis(file_id)

    def did_change(self, file_id: str, text: str, version: int | None = None) -> None:
        document = self._documents.get(file_id)
        if document is None:
            document = self._documents[file_id] = OpenDocument(file_id, text)
        document.text = text
        document.version = version if version is not None else document.version + 1
        logger.debug("document_changed", file_id=file_id, version=document.version)
        self._debouncer.debounce(file_id, lambda: self.trigger_analysis(file_id))

    def did_save(self, file_id: str, text: str | None = None) -> None:
        logger.info("document_saved", file_id=file_id)
        document = self._documents.get(file_id)
        if text is not None:
            if document is None:
                self._documents[file_id] = OpenDocument(file_id, text)
            else:
                document.text = text
        self._debouncer.cancel(file_id)
        self.trigger_analysis(file_id)

    def did_close(self, file_id: str) -> None:
        logger.info("document_closed", file_id=file_id)
        self._documents.pop(file_id, None)
        self._debouncer.cancel(file_id)
        self._cache.delete(file_id)
        self._publisher.publish(file_id, [])

    def did_change_settings(self, settings: AnalyzerConfig | None = None) -> None:
        """Re-analyze every open document, first switching to ``settings`` if given."""
        if settings is not None:
            if isinstance(self._settings_provider, StaticSettingsProvider):
                self._settings_provider.update(settings)
            else:
                self._settings_provider = StaticSettingsProvider(settings)
            logger.info("settings_replaced", args=settings.args, path=settings.path)
        self.re_analyze_all_open_documents()

    def re_analyze_all_open_documents(self) -> None:
        """Re-trigger every open document; each follows the single-flight rule on its own."""
        logger.info("reanalyze_all_open_documents", count=len(self._documents))
        for file_id in list(self._documents):
            self._debouncer.cancel(file_id)
            self.trigger_analysis(file_id)

    # -------------------------------------------------------------------------
    # Scheduling
    # -------------------------------------------------------------------------

    def trigger_analysis(self, file_id: str) -> asyncio.Task[FileIndex | None] | None:
        """Start an analysis unless one is already pending for the file.

        Returns the new task, or None if the trigger was dropped.
        """
        if file_id in self._pending:
            logger.debug("analysis_already_pending", file_id=file_id)
            return None
        if file_id not in self._documents:
            logger.warning("analysis_document_not_open", file_id=file_id)
            return None
        return self._start(file_id)

    def _start(self, file_id: str) -> asyncio.Task[FileIndex | None]:
        generation = next(self._generations)
        logger.debug("analysis_queued", file_id=file_id, generation=generation)
        task = asyncio.get_running_loop().create_task(self.perform_analysis(file_id, generation))
        self._pending[file_id] = task

        def _settled(done: asyncio.Task[FileIndex | None]) -> None:
            if self._pending.get(file_id) is done:
                del self._pending[file_id]

        task.add_done_callback(_settled)
        return task

    async def analyze_document(self, file_id: str) -> FileIndex | None:
        """Cached index, else the in-flight analysis, else a fresh one."""
        cached = self._cache.get(file_id)
        if cached is not None:
            return cached
        pending = self._pending.get(file_id)
        if pending is not None:
            return await asyncio.shield(pending)
        if file_id not in self._documents:
            logger.warning("analyze_document_not_managed", file_id=file_id)
            return None
        return await asyncio.shield(self._start(file_id))

    async def perform_analysis(
        self, file_id: str, generation: int | None = None
    ) -> FileIndex | None:
        """Analyze one document and install the result.

        Never raises: analyzer failures become a published diagnostic with
        the cache left as it was; internal failures evict the cache entry
        and, while the document is still open, publish a synthetic error at
        the top of the file.
        """
        set_analysis_id()
        try:
            document = self._documents.get(file_id)
            if document is None:
                return None
            text = document.text

            logger.info("analysis_started", file_id=file_id, generation=generation)
            settings = await fetch_settings(self._settings_provider, file_id)
            outcome = await self._analyzer.analyze(file_id, text, settings)

            if file_id not in self._documents:
                logger.info("analysis_discarded_closed", file_id=file_id)
                return None

            if outcome.tree is None:
                self._publish(file_id, _for_editor(outcome.diagnostics()))
                logger.info("analysis_tool_failed", file_id=file_id, error=outcome.error)
                return None

            index = transform_syntax_tree(outcome.tree, file_path=file_id)
            index.diagnostics.extend(outcome.diagnostics())

            if not self._cache.set(file_id, index, generation):
                logger.info("analysis_superseded", file_id=file_id, generation=generation)
                return self._cache.get(file_id)

            self._publish(file_id, _for_editor(index.diagnostics))
            logger.info(
                "analysis_complete",
                file_id=file_id,
                predicates=len(index.predicates),
                diagnostics=len(index.diagnostics),
            )
            return index
        except Exception as e:
            error = InternalError.unexpected(str(e), file_id=file_id, generation=generation)
            logger.exception("analysis_internal_error", file_id=file_id, error=error.error_name)
            self._cache.delete(file_id)
            if file_id not in self._documents:
                logger.info("analysis_error_discarded_closed", file_id=file_id)
                return None
            self._publish(
                file_id,
                [
                    EditorDiagnostic(
                        range=EditorRange.at(0, 0),
                        message=error.message,
                        severity=Severity.ERROR,
                        source=DIAGNOSTIC_SOURCE,
                    )
                ],
            )
            return None
        finally:
            clear_analysis_id()

    def _publish(self, file_id: str, diagnostics: list[EditorDiagnostic]) -> None:
        self._publisher.publish(file_id, diagnostics)

    async def get_syntax_tree(self, file_id: str) -> dict[str, Any] | None:
        """Fresh syntax tree of an open document as JSON, without ``raw`` payloads."""
        document = self._documents.get(file_id)
        if document is None:
            return None
        settings = await fetch_settings(self._settings_provider, file_id)
        outcome = await self._analyzer.analyze(file_id, document.text, settings)
        if outcome.tree is None:
            logger.info("syntax_tree_unavailable", file_id=file_id, error=outcome.error)
            return None
        return outcome.tree.to_json_dict()

    async def shutdown(self) -> None:
        """Cancel debounce timers and wait for in-flight analyses to settle."""
        self._debouncer.cancel_all()
        pending = list(self._pending.values())
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        logger.info("pipeline_stopped", drained=len(pending))
