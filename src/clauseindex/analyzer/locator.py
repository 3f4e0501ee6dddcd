"""Analyzer executable discovery."""

from __future__ import annotations

import os
import platform
import shutil
from pathlib import Path

import structlog

from clauseindex.config.models import AnalyzerConfig

logger = structlog.get_logger()

EXECUTABLE_NAME = "BLint"
BUNDLED_BIN_DIR = Path(__file__).parent / "bin"

_OS_FOLDERS = {"linux": "linux", "darwin": "darwin", "windows": "win32"}
_ARCH_FOLDERS = {"x86_64": "x64", "amd64": "x64", "aarch64": "arm64", "arm64": "arm64"}


def bundled_executable_path(bin_dir: Path = BUNDLED_BIN_DIR) -> Path | None:
    """Where the bundled binary for this host would live, or None if unsupported."""
    os_folder = _OS_FOLDERS.get(platform.system().lower())
    if os_folder is None:
        logger.error("analyzer_platform_unsupported", system=platform.system())
        return None
    machine = platform.machine().lower()
    arch_folder = _ARCH_FOLDERS.get(machine, machine)
    name = EXECUTABLE_NAME + (".exe" if os_folder == "win32" else "")
    return bin_dir / f"{os_folder}-{arch_folder}" / name


def _is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


def locate_executable(settings: AnalyzerConfig, bin_dir: Path = BUNDLED_BIN_DIR) -> str | None:
    """Resolve the analyzer executable for the given settings.

    Order: configured path, bundled binary, ``BLint`` on PATH. A configured
    path that is not executable is an error; it does not fall through.
    """
    if settings.path:
        configured = Path(settings.path).expanduser()
        if _is_executable(configured):
            return str(configured)
        logger.error("analyzer_configured_path_invalid", path=str(configured))
        return None

    bundled = bundled_executable_path(bin_dir)
    if bundled is not None and bundled.is_file():
        if not os.access(bundled, os.X_OK):
            try:
                bundled.chmod(0o755)
                logger.info("analyzer_bundled_chmod", path=str(bundled))
            except OSError as e:
                logger.error("analyzer_bundled_not_executable", path=str(bundled), error=str(e))
                return None
        return str(bundled)

    on_path = shutil.which(EXECUTABLE_NAME)
    if on_path:
        return on_path

    logger.warning("analyzer_not_found", bundled=str(bundled) if bundled else None)
    return None
