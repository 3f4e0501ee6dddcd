"""Analyzer module - external syntax analyzer adapters."""

from clauseindex.analyzer.blint import BlintAnalyzer
from clauseindex.analyzer.locator import locate_executable
from clauseindex.analyzer.models import Analyzer, AnalyzerOutcome

__all__ = [
    "Analyzer",
    "AnalyzerOutcome",
    "BlintAnalyzer",
    "locate_executable",
]
