"""clauseindex error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Analyzer
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002

    # Analyzer (3xxx)
    ANALYZER_NOT_FOUND = 3001
    ANALYZER_FAILED = 3002
    ANALYZER_NO_OUTPUT = 3003
    ANALYZER_MALFORMED_OUTPUT = 3004

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class ClauseIndexError(Exception):
    """Base error with structured context."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'CONFIG_PARSE_ERROR')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(ClauseIndexError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )


class AnalyzerError(ClauseIndexError):
    """External analyzer failures.

    Raised inside the analyzer adapter only; the adapter converts these into
    failure outcomes so the pipeline never sees them as exceptions.
    """

    @classmethod
    def not_found(cls, configured: str | None) -> "AnalyzerError":
        where = f"configured path '{configured}'" if configured else "bundled or PATH lookup"
        return cls(
            code=ErrorCode.ANALYZER_NOT_FOUND,
            message=(
                f"Analyzer executable could not be located ({where}). "
                "Check the 'analyzer.path' setting."
            ),
            details={"configured": configured},
        )

    @classmethod
    def failed(cls, reason: str, **details: Any) -> "AnalyzerError":
        return cls(
            code=ErrorCode.ANALYZER_FAILED,
            message=reason,
            retryable=True,
            details=details,
        )

    @classmethod
    def no_output(cls, output_name: str, exit_code: int | None) -> "AnalyzerError":
        if exit_code == 0:
            message = f"Analyzer ran successfully but produced no output file ({output_name})."
        else:
            message = f"Analyzer failed (code {exit_code}) and produced no output file."
        return cls(
            code=ErrorCode.ANALYZER_NO_OUTPUT,
            message=message,
            details={"output": output_name, "exit_code": exit_code},
        )

    @classmethod
    def malformed_output(cls, reason: str) -> "AnalyzerError":
        return cls(
            code=ErrorCode.ANALYZER_MALFORMED_OUTPUT,
            message=f"Error processing analyzer output: {reason}",
            details={"reason": reason},
        )


class InternalError(ClauseIndexError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal analysis error: {reason}",
            details=details,
        )
