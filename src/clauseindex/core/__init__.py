"""Core module exports."""

from clauseindex.core.errors import (
    AnalyzerError,
    ClauseIndexError,
    ConfigError,
    ErrorCode,
    InternalError,
)
from clauseindex.core.logging import (
    clear_analysis_id,
    configure_logging,
    get_analysis_id,
    get_logger,
    set_analysis_id,
)

__all__ = [
    # Errors
    "AnalyzerError",
    "ClauseIndexError",
    "ConfigError",
    "ErrorCode",
    "InternalError",
    # Logging
    "clear_analysis_id",
    "configure_logging",
    "get_analysis_id",
    "get_logger",
    "set_analysis_id",
]
