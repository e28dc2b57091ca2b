"""Data models for pattern classification."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from rxmigrate.scan.models import PatternType

WarningKind = Literal["complexity", "performance", "manual-review", "compatibility"]


@dataclass(frozen=True)
class ClassificationWarning:
    kind: WarningKind
    message: str
    method: str
    recommendation: str | None = None

    def __str__(self) -> str:
        return f"{self.method}: {self.message}"


@dataclass(frozen=True)
class Alternative:
    pattern: PatternType
    confidence: int
    reason: str


@dataclass
class RuleScore:
    """Output of one scoring rule."""

    pattern: PatternType
    confidence: int
    warnings: list[ClassificationWarning] = field(default_factory=list)
    needs_review: bool = False


@dataclass
class ClassificationResult:
    """Recommended pattern for one method, with the runners-up."""

    pattern: PatternType
    confidence: int
    alternatives: list[Alternative] = field(default_factory=list)
    warnings: list[ClassificationWarning] = field(default_factory=list)
    requires_manual_review: bool = False
    scores: dict[PatternType, int] = field(default_factory=dict)


@dataclass
class PatternDistribution:
    """Aggregate view over many classification results."""

    distribution: dict[str, int] = field(default_factory=dict)
    average_confidence: float = 0.0
    methods_requiring_review: int = 0
    total_warnings: int = 0
    recommendations: list[str] = field(default_factory=list)
