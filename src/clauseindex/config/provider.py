"""Settings providers for per-scope analyzer configuration."""

from __future__ import annotations

from typing import Protocol

import structlog

from clauseindex.config.models import AnalyzerConfig

logger = structlog.get_logger()


class SettingsProvider(Protocol):
    """Source of effective analyzer settings for a document scope."""

    async def get_settings(self, scope_id: str) -> AnalyzerConfig:
        """Return the settings that apply to ``scope_id``.

        May raise; callers go through :func:`fetch_settings`, which falls back
        to defaults.
        """
        ...


class StaticSettingsProvider:
    """Provider that hands every scope the same configuration."""

    def __init__(self, settings: AnalyzerConfig | None = None) -> None:
        self._settings = settings or AnalyzerConfig()

    async def get_settings(self, scope_id: str) -> AnalyzerConfig:  # noqa: ARG002
        return self._settings

    def update(self, settings: AnalyzerConfig) -> None:
        self._settings = settings


async def fetch_settings(provider: SettingsProvider, scope_id: str) -> AnalyzerConfig:
    """Fetch settings for a scope, falling back to defaults on any provider error."""
    try:
        return await provider.get_settings(scope_id)
    except Exception as e:
        logger.error("settings_fetch_failed", scope=scope_id, error=str(e))
        return AnalyzerConfig()
