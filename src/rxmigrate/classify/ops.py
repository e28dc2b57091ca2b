"""Pattern classification.

``classify`` is a pure function of its inputs: it performs no I/O and keeps
no state between calls, so the orchestrator may call it for many files in
the same run.
"""

from __future__ import annotations

from rxmigrate.classify.models import (
    Alternative,
    ClassificationResult,
    ClassificationWarning,
    PatternDistribution,
)
from rxmigrate.classify.rules import RULES
from rxmigrate.config.models import ClassifierThresholds
from rxmigrate.scan.models import FileContext, MethodRecord

DEFAULT_THRESHOLDS = ClassifierThresholds()


def classify(
    record: MethodRecord,
    context: FileContext,
    thresholds: ClassifierThresholds = DEFAULT_THRESHOLDS,
) -> ClassificationResult:
    """Score a method against every pattern and recommend the best one.

    Ties go to the rule evaluated first (simple-load, optimistic-update,
    bulk-operation, custom-fallback).
    """
    scores = [rule(record, context, thresholds) for rule in RULES]

    best = scores[0]
    for score in scores[1:]:
        if score.confidence > best.confidence:
            best = score

    warnings = [w for score in scores for w in score.warnings]
    alternatives = sorted(
        (
            Alternative(
                pattern=score.pattern,
                confidence=score.confidence,
                reason=f"{score.pattern} detector confidence: {score.confidence}%",
            )
            for score in scores
            if score.pattern != best.pattern
            and score.confidence > thresholds.alternative_min_confidence
        ),
        key=lambda alt: alt.confidence,
        reverse=True,
    )

    if record.name in context.existing_rx_methods:
        warnings.append(
            ClassificationWarning(
                kind="compatibility",
                message="Method already uses rxMethod - may need pattern standardization",
                method=record.name,
                recommendation="Review existing implementation for consistency",
            )
        )

    return ClassificationResult(
        pattern=best.pattern,
        confidence=best.confidence,
        alternatives=alternatives,
        warnings=warnings,
        requires_manual_review=(
            best.confidence < thresholds.manual_review_confidence
            or any(w.kind == "manual-review" for w in warnings)
        ),
        scores={score.pattern: score.confidence for score in scores},
    )


def classify_all(
    records: list[MethodRecord],
    context: FileContext,
    thresholds: ClassifierThresholds = DEFAULT_THRESHOLDS,
) -> list[tuple[MethodRecord, ClassificationResult]]:
    return [(record, classify(record, context, thresholds)) for record in records]


def analyze_pattern_distribution(
    results: list[ClassificationResult],
) -> PatternDistribution:
    """Summarise pattern counts, mean confidence and review load."""
    dist = PatternDistribution()
    if not results:
        return dist

    total_confidence = 0
    for result in results:
        key = str(result.pattern)
        dist.distribution[key] = dist.distribution.get(key, 0) + 1
        total_confidence += result.confidence
        if result.requires_manual_review:
            dist.methods_requiring_review += 1
        dist.total_warnings += len(result.warnings)
        for warning in result.warnings:
            if warning.recommendation and warning.recommendation not in dist.recommendations:
                dist.recommendations.append(warning.recommendation)

    dist.average_confidence = round(total_confidence / len(results), 1)
    return dist
