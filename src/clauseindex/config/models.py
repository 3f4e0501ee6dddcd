"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (CLAUSEINDEX__SECTION__KEY)
3. Workspace YAML (.clauseindex/config.yaml)
4. Global YAML (~/.config/clauseindex/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    CLAUSEINDEX__<SECTION>__<KEY>=<VALUE>

Examples:
    CLAUSEINDEX__LOGGING__LEVEL=DEBUG
    CLAUSEINDEX__ANALYZER__PATH=/opt/blint/BLint
    CLAUSEINDEX__PIPELINE__DEBOUNCE_SEC=0.25
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        CLAUSEINDEX__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every cache write and trigger decision.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class AnalyzerConfig(BaseModel):
    """External syntax analyzer settings.

    These are the per-scope settings handed to the analyzer on every run.

    Env vars:
        CLAUSEINDEX__ANALYZER__PATH: Explicit analyzer executable
        CLAUSEINDEX__ANALYZER__ARGS: Extra invocation arguments (JSON list)
    """

    path: str | None = Field(
        default=None,
        description="Analyzer executable. None uses the bundled binary, then PATH.",
    )
    args: list[str] = Field(
        default_factory=list,
        description="Extra arguments inserted before the source file argument.",
    )

    @field_validator("path")
    @classmethod
    def blank_path_is_unset(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v


class PipelineConfig(BaseModel):
    """Document analysis pipeline configuration.

    Env vars:
        CLAUSEINDEX__PIPELINE__DEBOUNCE_SEC: Delay after the last edit before reanalysis
    """

    debounce_sec: float = Field(
        default=0.5,
        description="Debounce window for content changes. Opens and saves bypass it. "
        "Lower values run the analyzer more often during rapid edits.",
    )

    @field_validator("debounce_sec")
    @classmethod
    def validate_debounce(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"debounce_sec must be >= 0, got {v}")
        return v


class ClauseIndexConfig(BaseModel):
    """Root configuration for clauseindex."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    analyzer: AnalyzerConfig = Field(default_factory=AnalyzerConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
