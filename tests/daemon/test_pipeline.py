"""Tests for the document analysis pipeline.

The external analyzer is replaced by an in-process fake that turns each
``name.`` line into a fact, ``?.`` into a parse error, and can be held at a
gate to keep an analysis in flight.
"""

from __future__ import annotations

import asyncio

import pytest

from clauseindex.analyzer.models import AnalyzerOutcome
from clauseindex.config.models import AnalyzerConfig, ClauseIndexConfig, PipelineConfig
from clauseindex.config.provider import StaticSettingsProvider
from clauseindex.daemon.pipeline import DocumentAnalysisPipeline
from clauseindex.daemon.publisher import DiagnosticStore
from clauseindex.index.cache import AnalysisCache
from clauseindex.index.models import FileIndex, Severity
from clauseindex.index.ranges import EditorRange
from clauseindex.index.syntax import Atom, Fact, ParseError, SyntaxTree, TopLevelItem


def tree_for(text: str) -> SyntaxTree:
    items: list[TopLevelItem] = []
    for number, line in enumerate(text.splitlines(), start=1):
        name = line.strip().rstrip(".")
        if not name:
            continue
        if name == "?":
            items.append(ParseError(line=number, column=1))
        else:
            items.append(Fact(line=number, column=1, head=Atom(text=name, line=number, column=1)))
    return SyntaxTree(file="/tmp/clauseindex-copy/source.pl", predicates=tuple(items))


class FakeAnalyzer:
    """Records every invocation; optionally blocks on a gate or fails."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, AnalyzerConfig]] = []
        self.gate: asyncio.Event | None = None
        self.failure: str | None = None
        self.warning: str | None = None
        self.crash: Exception | None = None

    async def analyze(
        self, file_path: str, source_text: str, settings: AnalyzerConfig
    ) -> AnalyzerOutcome:
        self.calls.append((file_path, source_text, settings))
        if self.gate is not None:
            await self.gate.wait()
        if self.crash is not None:
            raise self.crash
        if self.failure is not None:
            return AnalyzerOutcome.failed(self.failure)
        return AnalyzerOutcome.ok(tree_for(source_text), warning=self.warning)

    def texts(self, file_id: str) -> list[str]:
        return [text for fid, text, _ in self.calls if fid == file_id]


async def _settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


def _names(index: FileIndex | None) -> list[str]:
    assert index is not None
    return [p.name for p in index.predicates]


@pytest.fixture
def analyzer() -> FakeAnalyzer:
    return FakeAnalyzer()


@pytest.fixture
def store() -> DiagnosticStore:
    return DiagnosticStore()


@pytest.fixture
def settings() -> StaticSettingsProvider:
    return StaticSettingsProvider()


@pytest.fixture
def pipeline(
    analyzer: FakeAnalyzer, store: DiagnosticStore, settings: StaticSettingsProvider
) -> DocumentAnalysisPipeline:
    return DocumentAnalysisPipeline(
        AnalysisCache(), analyzer, settings, store, debounce_sec=0.05
    )


class TestOpenAndAnalyze:
    """Opening documents and awaiting their index."""

    @pytest.mark.asyncio
    async def test_open_analyzes_immediately(
        self, pipeline: DocumentAnalysisPipeline, analyzer: FakeAnalyzer
    ) -> None:
        """did_open starts an analysis without waiting for the debounce."""
        pipeline.did_open("a.pl", "foo.\nbar.\n")

        assert pipeline.is_pending("a.pl")
        index = await pipeline.analyze_document("a.pl")

        assert _names(index) == ["foo", "bar"]
        assert index is not None and index.file_path == "a.pl"
        assert pipeline.cache.get("a.pl") is index
        assert len(analyzer.calls) == 1
        assert not pipeline.is_pending("a.pl")

    @pytest.mark.asyncio
    async def test_cached_result_reused(
        self, pipeline: DocumentAnalysisPipeline, analyzer: FakeAnalyzer
    ) -> None:
        """Once cached, analyze_document does not run the analyzer again."""
        pipeline.did_open("a.pl", "foo.\n")
        first = await pipeline.analyze_document("a.pl")

        second = await pipeline.analyze_document("a.pl")

        assert first is second
        assert len(analyzer.calls) == 1

    @pytest.mark.asyncio
    async def test_unopened_document(
        self, pipeline: DocumentAnalysisPipeline, analyzer: FakeAnalyzer
    ) -> None:
        """Documents that were never opened are not analyzed."""
        assert await pipeline.analyze_document("ghost.pl") is None
        assert pipeline.trigger_analysis("ghost.pl") is None
        assert analyzer.calls == []

    @pytest.mark.asyncio
    async def test_empty_file_is_cached(self, pipeline: DocumentAnalysisPipeline) -> None:
        """A file without predicates still gets an index entry."""
        pipeline.did_open("empty.pl", "")

        index = await pipeline.analyze_document("empty.pl")

        assert index is not None
        assert index.predicates == []
        assert pipeline.cache.get("empty.pl") is index


class TestSingleFlight:
    """At most one analysis per file at a time."""

    @pytest.mark.asyncio
    async def test_triggers_while_pending_are_dropped(
        self, pipeline: DocumentAnalysisPipeline, analyzer: FakeAnalyzer
    ) -> None:
        """Two triggers before the first resolves run the analyzer once."""
        analyzer.gate = asyncio.Event()
        pipeline.did_open("a.pl", "foo.\n")
        await _settle()

        assert pipeline.trigger_analysis("a.pl") is None
        pipeline.did_save("a.pl")
        await _settle()
        analyzer.gate.set()
        await pipeline.shutdown()

        assert len(analyzer.calls) == 1

    @pytest.mark.asyncio
    async def test_concurrent_requests_share_one_run(
        self, pipeline: DocumentAnalysisPipeline, analyzer: FakeAnalyzer
    ) -> None:
        """Concurrent analyze_document calls await the same in-flight analysis."""
        analyzer.gate = asyncio.Event()
        pipeline.did_open("a.pl", "foo.\n")

        waiters = [asyncio.create_task(pipeline.analyze_document("a.pl")) for _ in range(3)]
        await _settle()
        analyzer.gate.set()
        results = await asyncio.gather(*waiters)

        assert len(analyzer.calls) == 1
        assert results[0] is not None
        assert all(r is results[0] for r in results)

    @pytest.mark.asyncio
    async def test_other_files_not_blocked(
        self, pipeline: DocumentAnalysisPipeline, analyzer: FakeAnalyzer
    ) -> None:
        """The single-flight rule is per file."""
        analyzer.gate = asyncio.Event()
        pipeline.did_open("a.pl", "a.\n")
        pipeline.did_open("b.pl", "b.\n")
        await _settle()

        assert pipeline.is_pending("a.pl")
        assert pipeline.is_pending("b.pl")
        analyzer.gate.set()
        await pipeline.shutdown()

        assert sorted(fid for fid, _, _ in analyzer.calls) == ["a.pl", "b.pl"]

    @pytest.mark.asyncio
    async def test_cancelled_waiter_does_not_cancel_analysis(
        self, pipeline: DocumentAnalysisPipeline, analyzer: FakeAnalyzer
    ) -> None:
        """A caller giving up leaves the shared analysis running."""
        analyzer.gate = asyncio.Event()
        pipeline.did_open("a.pl", "foo.\n")
        waiter = asyncio.create_task(pipeline.analyze_document("a.pl"))
        await _settle()

        waiter.cancel()
        await _settle()
        analyzer.gate.set()
        await pipeline.shutdown()

        assert _names(pipeline.cache.get("a.pl")) == ["foo"]


class TestChangesAndSaves:
    """Debounced changes and immediate saves."""

    @pytest.mark.asyncio
    async def test_changes_debounced_to_last_text(
        self, pipeline: DocumentAnalysisPipeline, analyzer: FakeAnalyzer
    ) -> None:
        """A burst of changes produces one analysis of the final text."""
        pipeline.did_open("a.pl", "v0.\n")
        await pipeline.analyze_document("a.pl")

        for version in range(1, 4):
            pipeline.did_change("a.pl", f"v{version}.\n", version)
        await asyncio.sleep(0.2)
        await pipeline.shutdown()

        assert analyzer.texts("a.pl") == ["v0.\n", "v3.\n"]
        assert _names(pipeline.cache.get("a.pl")) == ["v3"]

    @pytest.mark.asyncio
    async def test_save_bypasses_debounce(
        self, analyzer: FakeAnalyzer, store: DiagnosticStore, settings: StaticSettingsProvider
    ) -> None:
        """Saving analyzes at once and drops the pending change timer."""
        pipeline = DocumentAnalysisPipeline(
            AnalysisCache(), analyzer, settings, store, debounce_sec=60
        )
        pipeline.did_open("a.pl", "v0.\n")
        await pipeline.analyze_document("a.pl")

        pipeline.did_change("a.pl", "v1.\n")
        pipeline.did_save("a.pl")
        await pipeline.shutdown()

        assert analyzer.texts("a.pl") == ["v0.\n", "v1.\n"]
        assert _names(pipeline.cache.get("a.pl")) == ["v1"]

    @pytest.mark.asyncio
    async def test_settings_change_reanalyzes_every_open_document(
        self,
        pipeline: DocumentAnalysisPipeline,
        analyzer: FakeAnalyzer,
        settings: StaticSettingsProvider,
    ) -> None:
        """Each open document is re-analyzed once with the new settings."""
        pipeline.did_open("a.pl", "a.\n")
        pipeline.did_open("b.pl", "b.\n")
        await pipeline.shutdown()

        settings.update(AnalyzerConfig(args=["-strict"]))
        pipeline.did_change_settings()
        await pipeline.shutdown()

        assert len(analyzer.texts("a.pl")) == 2
        assert len(analyzer.texts("b.pl")) == 2
        assert [s.args for _, _, s in analyzer.calls[2:]] == [["-strict"], ["-strict"]]

    @pytest.mark.asyncio
    async def test_settings_change_applies_given_settings(
        self, pipeline: DocumentAnalysisPipeline, analyzer: FakeAnalyzer
    ) -> None:
        """Settings handed to did_change_settings are used by the re-analysis."""
        pipeline.did_open("a.pl", "a.\n")
        await pipeline.shutdown()

        pipeline.did_change_settings(AnalyzerConfig(args=["-nw"]))
        await pipeline.shutdown()

        assert [s.args for _, _, s in analyzer.calls] == [[], ["-nw"]]

    @pytest.mark.asyncio
    async def test_settings_replace_non_static_provider(
        self, analyzer: FakeAnalyzer, store: DiagnosticStore
    ) -> None:
        """A custom provider is replaced by the explicit settings."""

        class FailingProvider:
            async def get_settings(self, scope_id: str) -> AnalyzerConfig:
                raise RuntimeError("no workspace")

        pipeline = DocumentAnalysisPipeline(
            AnalysisCache(), analyzer, FailingProvider(), store, debounce_sec=0.05
        )
        pipeline.did_open("a.pl", "a.\n")
        await pipeline.shutdown()

        pipeline.did_change_settings(AnalyzerConfig(path="/opt/BLint"))
        await pipeline.shutdown()

        assert [s.path for _, _, s in analyzer.calls] == [None, "/opt/BLint"]


class TestClose:
    """Closing documents."""

    @pytest.mark.asyncio
    async def test_close_removes_entry_and_diagnostics(
        self, pipeline: DocumentAnalysisPipeline, store: DiagnosticStore
    ) -> None:
        """Closing drops the index, its lookups and its diagnostics."""
        pipeline.did_open("a.pl", "helper.\n?.\n")
        await pipeline.analyze_document("a.pl")
        assert store.get("a.pl")

        pipeline.did_close("a.pl")

        assert pipeline.cache.get("a.pl") is None
        assert pipeline.cache.find_definition_by_name_arity("helper", 0) is None
        assert store.get("a.pl") == []
        assert "a.pl" not in pipeline.open_documents()

    @pytest.mark.asyncio
    async def test_result_for_closed_document_discarded(
        self, pipeline: DocumentAnalysisPipeline, analyzer: FakeAnalyzer, store: DiagnosticStore
    ) -> None:
        """An analysis finishing after close does not resurrect the entry."""
        analyzer.gate = asyncio.Event()
        pipeline.did_open("a.pl", "?.\n")
        await _settle()

        pipeline.did_close("a.pl")
        analyzer.gate.set()
        await pipeline.shutdown()

        assert pipeline.cache.get("a.pl") is None
        assert store.get("a.pl") == []

    @pytest.mark.asyncio
    async def test_close_cancels_pending_change(
        self, analyzer: FakeAnalyzer, store: DiagnosticStore, settings: StaticSettingsProvider
    ) -> None:
        """A debounced change never fires after close."""
        pipeline = DocumentAnalysisPipeline(
            AnalysisCache(), analyzer, settings, store, debounce_sec=0.05
        )
        pipeline.did_open("a.pl", "a.\n")
        await pipeline.analyze_document("a.pl")

        pipeline.did_change("a.pl", "b.\n")
        pipeline.did_close("a.pl")
        await asyncio.sleep(0.2)

        assert analyzer.texts("a.pl") == ["a.\n"]

    @pytest.mark.asyncio
    async def test_internal_error_after_close_not_published(
        self, pipeline: DocumentAnalysisPipeline, analyzer: FakeAnalyzer, store: DiagnosticStore
    ) -> None:
        """A run that crashes after close leaves the cleared diagnostics alone."""
        analyzer.gate = asyncio.Event()
        analyzer.crash = RuntimeError("boom")
        pipeline.did_open("a.pl", "a.\n")
        await _settle()

        pipeline.did_close("a.pl")
        analyzer.gate.set()
        await pipeline.shutdown()

        assert pipeline.open_documents() == []
        assert pipeline.cache.get("a.pl") is None
        assert store.get("a.pl") == []
        assert store.files() == []


class TestDiagnostics:
    """Published diagnostics."""

    @pytest.mark.asyncio
    async def test_parse_errors_published(
        self, pipeline: DocumentAnalysisPipeline, store: DiagnosticStore
    ) -> None:
        """Parse errors become editor diagnostics with 0-based lines."""
        pipeline.did_open("a.pl", "ok.\n?.\n")

        index = await pipeline.analyze_document("a.pl")

        assert _names(index) == ["ok"]
        (diagnostic,) = store.get("a.pl")
        assert diagnostic.severity == Severity.ERROR
        assert diagnostic.message == "syntax error"
        assert diagnostic.range == EditorRange.at(1, 0)

    @pytest.mark.asyncio
    async def test_clean_file_clears_diagnostics(
        self, pipeline: DocumentAnalysisPipeline, store: DiagnosticStore
    ) -> None:
        """Fixing the error clears the published set."""
        pipeline.did_open("a.pl", "?.\n")
        await pipeline.analyze_document("a.pl")
        assert store.get("a.pl")

        pipeline.did_save("a.pl", "ok.\n")
        await pipeline.shutdown()

        assert store.get("a.pl") == []

    @pytest.mark.asyncio
    async def test_analyzer_warning_published_with_index(
        self, pipeline: DocumentAnalysisPipeline, analyzer: FakeAnalyzer, store: DiagnosticStore
    ) -> None:
        """A tool warning is published and the tree is still indexed."""
        analyzer.warning = "Analyzer exited with error code 3."
        pipeline.did_open("a.pl", "ok.\n")

        index = await pipeline.analyze_document("a.pl")

        assert _names(index) == ["ok"]
        (diagnostic,) = store.get("a.pl")
        assert diagnostic.severity == Severity.WARNING
        assert diagnostic.range == EditorRange.at(0, 0)

    @pytest.mark.asyncio
    async def test_analyzer_failure_keeps_previous_index(
        self, pipeline: DocumentAnalysisPipeline, analyzer: FakeAnalyzer, store: DiagnosticStore
    ) -> None:
        """A failed run publishes the error and leaves the cache untouched."""
        pipeline.did_open("a.pl", "old.\n")
        previous = await pipeline.analyze_document("a.pl")

        analyzer.failure = "Analyzer executable could not be located"
        task = pipeline.trigger_analysis("a.pl")
        assert task is not None
        result = await task

        assert result is None
        assert pipeline.cache.get("a.pl") is previous
        (diagnostic,) = store.get("a.pl")
        assert diagnostic.message == "Analyzer executable could not be located"
        assert diagnostic.range == EditorRange.at(0, 0)

    @pytest.mark.asyncio
    async def test_internal_error_evicts_and_reports(
        self, pipeline: DocumentAnalysisPipeline, analyzer: FakeAnalyzer, store: DiagnosticStore
    ) -> None:
        """Unexpected exceptions evict the entry and publish a synthetic error."""
        pipeline.did_open("a.pl", "old.\n")
        await pipeline.analyze_document("a.pl")

        analyzer.crash = RuntimeError("boom")
        task = pipeline.trigger_analysis("a.pl")
        assert task is not None
        assert await task is None

        assert pipeline.cache.get("a.pl") is None
        (diagnostic,) = store.get("a.pl")
        assert diagnostic.message == "Internal analysis error: boom"
        assert diagnostic.severity == Severity.ERROR
        assert diagnostic.range == EditorRange.at(0, 0)
        assert not pipeline.is_pending("a.pl")


class TestGenerations:
    """Stale results never overwrite newer ones."""

    @pytest.mark.asyncio
    async def test_older_generation_not_installed(
        self, analyzer: FakeAnalyzer, store: DiagnosticStore, settings: StaticSettingsProvider
    ) -> None:
        """A run that started earlier cannot replace a later run's result."""
        pipeline = DocumentAnalysisPipeline(
            AnalysisCache(), analyzer, settings, store, debounce_sec=60
        )
        pipeline.did_open("a.pl", "first.\n")
        await pipeline.analyze_document("a.pl")

        pipeline.did_change("a.pl", "newer.\n")
        newer = await pipeline.perform_analysis("a.pl", generation=10)
        pipeline.did_change("a.pl", "stale.\n")
        stale = await pipeline.perform_analysis("a.pl", generation=9)
        await pipeline.shutdown()

        assert _names(newer) == ["newer"]
        assert stale is newer
        assert _names(pipeline.cache.get("a.pl")) == ["newer"]
        assert pipeline.cache.generation("a.pl") == 10


class TestSyntaxTreeAndWiring:
    """Auxiliary entry points."""

    @pytest.mark.asyncio
    async def test_get_syntax_tree(self, pipeline: DocumentAnalysisPipeline) -> None:
        """The raw tree of an open document is returned as JSON-ready data."""
        pipeline.did_open("a.pl", "foo.\n")
        await pipeline.shutdown()

        tree = await pipeline.get_syntax_tree("a.pl")

        assert tree is not None
        assert tree["predicates"][0]["head"]["text"] == "foo"
        assert await pipeline.get_syntax_tree("ghost.pl") is None

    def test_from_config(self, analyzer: FakeAnalyzer) -> None:
        """Configuration supplies the debounce window and analyzer settings."""
        config = ClauseIndexConfig(
            analyzer=AnalyzerConfig(args=["-x"]),
            pipeline=PipelineConfig(debounce_sec=0.25),
        )

        pipeline = DocumentAnalysisPipeline.from_config(config, analyzer=analyzer)

        assert pipeline._debouncer.delay_sec == 0.25
        assert isinstance(pipeline.cache, AnalysisCache)
