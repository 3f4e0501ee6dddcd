"""Subprocess-backed analyzer (BLint command line).

Each run writes the document text into a fresh temporary directory, invokes

    <exe> -ec -ast -o<tmpdir> [extra args] <tmpdir>/<name>

and reads ``<tmpdir>/<stem>.AST.json``. ``-ec`` keeps comments so full
ranges include them; ``-ast`` requests the JSON tree.
"""

from __future__ import annotations

import asyncio
import tempfile
from collections.abc import Callable
from pathlib import Path, PurePosixPath
from urllib.parse import unquote, urlparse

import structlog

from clauseindex.analyzer.locator import locate_executable
from clauseindex.analyzer.models import AnalyzerOutcome
from clauseindex.config.models import AnalyzerConfig
from clauseindex.core.errors import AnalyzerError
from clauseindex.index.syntax import parse_syntax_tree_json

logger = structlog.get_logger()

DEFAULT_SOURCE_NAME = "source.pl"
_STDERR_LOG_LIMIT = 500


def source_file_name(file_id: str) -> str:
    """Base file name for a file id, which may be a path or a file:// URI."""
    path = unquote(urlparse(file_id).path) if "://" in file_id else file_id
    return PurePosixPath(path.replace("\\", "/")).name or DEFAULT_SOURCE_NAME


class BlintAnalyzer:
    """Runs the analyzer executable once per request."""

    def __init__(
        self,
        locate: Callable[[AnalyzerConfig], str | None] = locate_executable,
    ) -> None:
        self._locate = locate

    async def analyze(
        self, file_path: str, source_text: str, settings: AnalyzerConfig
    ) -> AnalyzerOutcome:
        try:
            return await self._run(file_path, source_text, settings)
        except AnalyzerError as e:
            logger.warning("analyzer_failed", file=file_path, error=e.error_name, message=e.message)
            return AnalyzerOutcome.failed(e.message)
        except OSError as e:
            message = f"Critical error during analyzer setup for {file_path}: {e}"
            logger.error("analyzer_setup_failed", file=file_path, error=str(e))
            return AnalyzerOutcome.failed(message)

    async def _run(
        self, file_path: str, source_text: str, settings: AnalyzerConfig
    ) -> AnalyzerOutcome:
        executable = self._locate(settings)
        if executable is None:
            raise AnalyzerError.not_found(settings.path)

        name = source_file_name(file_path)
        with tempfile.TemporaryDirectory(prefix="clauseindex-") as tmp:
            tmp_dir = Path(tmp)
            source = tmp_dir / name
            try:
                source.write_text(source_text, encoding="utf-8")
            except UnicodeEncodeError as e:
                raise AnalyzerError.failed(
                    f"Document text for {file_path} cannot be encoded as UTF-8: {e}",
                    source=name,
                ) from e
            output = tmp_dir / f"{source.stem}.AST.json"

            cmd = [executable, "-ec", "-ast", f"-o{tmp_dir}", *settings.args, str(source)]
            logger.debug("analyzer_exec", cmd=cmd)
            exit_code, stderr = await self._execute(cmd)

            warning: str | None = None
            has_output = output.exists() and output.stat().st_size > 0
            if exit_code != 0 and (exit_code != 1 or not has_output):
                warning = (
                    f"Analyzer exited with error code {exit_code}. Check log output for details."
                )
                logger.warning(
                    "analyzer_nonzero_exit",
                    file=file_path,
                    exit_code=exit_code,
                    stderr=stderr[:_STDERR_LOG_LIMIT],
                )

            if not output.exists():
                raise AnalyzerError.no_output(output.name, exit_code)
            try:
                content = output.read_text(encoding="utf-8")
            except OSError as e:
                raise AnalyzerError.failed(
                    f"Error reading analyzer output file {output.name}. Error: {e}",
                    output=output.name,
                ) from e
            except UnicodeDecodeError as e:
                raise AnalyzerError.malformed_output(
                    f"output file {output.name} is not valid UTF-8 ({e})"
                ) from e

        tree = parse_syntax_tree_json(content)
        logger.debug("analyzer_output_parsed", file=file_path, items=len(tree.predicates))
        return AnalyzerOutcome.ok(tree, warning=warning)

    async def _execute(self, cmd: list[str]) -> tuple[int | None, str]:
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise AnalyzerError.failed(
                f"Failed to start analyzer process ({cmd[0]}): {e}", executable=cmd[0]
            ) from e
        _stdout_bytes, stderr_bytes = await proc.communicate()
        return proc.returncode, stderr_bytes.decode(errors="replace")
