"""Config module exports."""

from clauseindex.config.loader import load_config
from clauseindex.config.models import (
    AnalyzerConfig,
    ClauseIndexConfig,
    LoggingConfig,
    LogOutputConfig,
    PipelineConfig,
)
from clauseindex.config.provider import SettingsProvider, StaticSettingsProvider, fetch_settings

__all__ = [
    "load_config",
    "fetch_settings",
    "AnalyzerConfig",
    "ClauseIndexConfig",
    "LoggingConfig",
    "LogOutputConfig",
    "PipelineConfig",
    "SettingsProvider",
    "StaticSettingsProvider",
]
