"""Classify module - heuristic pattern recognition for async methods."""

from rxmigrate.classify.models import (
    Alternative,
    ClassificationResult,
    ClassificationWarning,
    PatternDistribution,
)
from rxmigrate.classify.ops import analyze_pattern_distribution, classify, classify_all

__all__ = [
    "Alternative",
    "ClassificationResult",
    "ClassificationWarning",
    "PatternDistribution",
    "analyze_pattern_distribution",
    "classify",
    "classify_all",
]
