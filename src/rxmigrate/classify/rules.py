"""Scoring rules, one per pattern label.

Each rule adds weights for its own indicators and subtracts weights for
indicators that belong to competing labels, then clamps to [0, 100]. The
custom-fallback rule scores a complexity penalty instead and never drops
below CUSTOM_MIN_CONFIDENCE.
"""

from __future__ import annotations

import re
from collections.abc import Callable

from rxmigrate.classify.models import ClassificationWarning, RuleScore
from rxmigrate.config import constants as c
from rxmigrate.config.models import ClassifierThresholds
from rxmigrate.scan.models import FileContext, MethodRecord, PatternType

Rule = Callable[[MethodRecord, FileContext, ClassifierThresholds], RuleScore]

_PATCH_STATE = re.compile(r"\bpatchState\b")
_SNAPSHOT = re.compile(r"\boriginal[A-Z]\w*")
_ROLLBACK = re.compile(r"rollback|revert", re.IGNORECASE)
_COLLECTION_EDIT = re.compile(r"\.map\(\s*\(?\s*\w+\s*\)?\s*=>|\.filter\(")
_COLLABORATOR_CALL = re.compile(r"\w+Service\.\w+\s*\(")
_AWAIT = re.compile(r"\bawait\b")
_TRY_BLOCK = re.compile(r"\btry\s*\{")
_BRANCHING = {kind: re.compile(rf"\b{kind}\b") for kind in ("switch", "for", "while")}

_UNTYPED_RESULTS = frozenset({"Promise<void>", "Promise<unknown>"})


def _clamp(value: int) -> int:
    return max(0, min(100, value))


def score_simple_load(
    record: MethodRecord, context: FileContext, thresholds: ClassifierThresholds
) -> RuleScore:
    src = record.source
    warnings: list[ClassificationWarning] = []
    score = 0

    if record.has_loading_state:
        score += c.SIMPLE_LOADING_WEIGHT
    collaborators = record.collaborator_calls
    if len(collaborators) == 1:
        score += c.SIMPLE_SINGLE_COLLABORATOR_WEIGHT
    elif len(collaborators) > 1:
        score -= c.SIMPLE_MULTI_COLLABORATOR_PENALTY
    if "patchState" in src and not record.uses_optimistic_update:
        score += c.SIMPLE_PATCH_STATE_WEIGHT
    if record.has_error_handling:
        score += c.SIMPLE_ERROR_HANDLING_WEIGHT
    if record.return_type and record.return_type.replace(" ", "") not in _UNTYPED_RESULTS:
        score += c.SIMPLE_TYPED_RESULT_WEIGHT

    if "optimistic" in src or "rollback" in src:
        score -= c.SIMPLE_OPTIMISTIC_PENALTY
    fans_out = "Promise.all" in src or (record.array_parameter is not None and ".map(" in src)
    if "bulk" in src or "forEach" in src or fans_out:
        score -= c.SIMPLE_BULK_PENALTY

    if len(src) > c.LARGE_BODY_CHARS:
        warnings.append(
            ClassificationWarning(
                kind="complexity",
                message="Method is quite large and may benefit from splitting",
                method=record.name,
                recommendation="Consider breaking into smaller methods",
            )
        )
        score -= c.SIMPLE_LARGE_BODY_PENALTY

    score = _clamp(score)
    return RuleScore(
        pattern=PatternType.SIMPLE_LOAD,
        confidence=score,
        warnings=warnings,
        needs_review=score < thresholds.simple_load_review,
    )


def score_optimistic_update(
    record: MethodRecord, context: FileContext, thresholds: ClassifierThresholds
) -> RuleScore:
    src = record.source
    warnings: list[ClassificationWarning] = []
    patch_count = len(_PATCH_STATE.findall(src))
    score = 0

    if "optimistic" in src:
        score += c.OPTIMISTIC_MARKER_WEIGHT
    if _SNAPSHOT.search(src):
        score += c.OPTIMISTIC_SNAPSHOT_WEIGHT
    if _ROLLBACK.search(src):
        score += c.OPTIMISTIC_ROLLBACK_WEIGHT
    if patch_count >= 2:
        score += c.OPTIMISTIC_MULTI_PATCH_WEIGHT
        if "catch" in src:
            score += c.OPTIMISTIC_CATCH_RESTORE_WEIGHT
    lowered = record.name.lower()
    if "update" in lowered or "modify" in lowered:
        score += c.OPTIMISTIC_UPDATE_NAME_WEIGHT
    if _COLLECTION_EDIT.search(src):
        score += c.OPTIMISTIC_COLLECTION_EDIT_WEIGHT

    if patch_count == 0:
        score -= c.OPTIMISTIC_NO_PATCH_PENALTY
    if "bulk" in src or "Promise.all" in src:
        score -= c.OPTIMISTIC_BULK_PENALTY

    if patch_count > c.OPTIMISTIC_COMPLEX_PATCH_COUNT:
        warnings.append(
            ClassificationWarning(
                kind="complexity",
                message="Complex state management detected",
                method=record.name,
                recommendation="Consider simplifying state updates",
            )
        )

    score = _clamp(score)
    return RuleScore(
        pattern=PatternType.OPTIMISTIC_UPDATE,
        confidence=score,
        warnings=warnings,
        needs_review=score < thresholds.optimistic_review,
    )


def score_bulk_operation(
    record: MethodRecord, context: FileContext, thresholds: ClassifierThresholds
) -> RuleScore:
    src = record.source
    warnings: list[ClassificationWarning] = []
    has_array_param = record.array_parameter is not None
    has_promise_all = "Promise.all" in src
    has_iteration = "forEach" in src or ".map(" in src
    score = 0

    if "bulk" in record.name.lower():
        score += c.BULK_NAME_WEIGHT
    if has_promise_all:
        score += c.BULK_PROMISE_ALL_WEIGHT
    if has_iteration:
        score += c.BULK_ITERATION_WEIGHT
    if has_array_param:
        score += c.BULK_ARRAY_PARAM_WEIGHT
    if len(_COLLABORATOR_CALL.findall(src)) > 1:
        score += c.BULK_MULTI_CALL_WEIGHT
    if "progress" in src or "completed" in src:
        score += c.BULK_PROGRESS_WEIGHT
    if "batch" in src or "chunk" in src:
        score += c.BULK_BATCH_WEIGHT

    if not (has_array_param or "forEach" in src or has_promise_all):
        score -= c.BULK_NO_FANOUT_PENALTY

    if "forEach" in src and not has_promise_all:
        warnings.append(
            ClassificationWarning(
                kind="performance",
                message="Sequential operations detected - consider parallelization",
                method=record.name,
                recommendation="Use Promise.all or observable operators for better performance",
            )
        )

    score = _clamp(score)
    return RuleScore(
        pattern=PatternType.BULK_OPERATION,
        confidence=score,
        warnings=warnings,
        needs_review=score < thresholds.bulk_review,
    )


def complexity_penalty(source: str) -> int:
    """Penalty used by the custom-fallback rule; higher means harder to convert."""
    penalty = 0
    for limit, tier_penalty in c.CUSTOM_LENGTH_TIERS:
        if len(source) > limit:
            penalty += tier_penalty
            break

    awaits = len(_AWAIT.findall(source))
    penalty += awaits * c.CUSTOM_PER_AWAIT_PENALTY
    if awaits > c.CUSTOM_MANY_AWAITS:
        penalty += c.CUSTOM_MANY_AWAITS_PENALTY

    tries = len(_TRY_BLOCK.findall(source))
    penalty += tries * c.CUSTOM_PER_TRY_PENALTY
    if tries > 1:
        penalty += c.CUSTOM_MULTI_TRY_PENALTY

    branch_kinds = sum(1 for pattern in _BRANCHING.values() if pattern.search(source))
    penalty += branch_kinds * c.CUSTOM_PER_BRANCH_KIND_PENALTY
    return penalty


def score_custom(
    record: MethodRecord, context: FileContext, thresholds: ClassifierThresholds
) -> RuleScore:
    penalty = complexity_penalty(record.source)
    warnings = [
        ClassificationWarning(
            kind="manual-review",
            message="Method requires manual review for optimal conversion",
            method=record.name,
            recommendation="Consider breaking down into simpler operations "
            "or using existing utility patterns",
        )
    ]
    if penalty > c.CUSTOM_HIGH_COMPLEXITY:
        warnings.append(
            ClassificationWarning(
                kind="complexity",
                message="High complexity method detected",
                method=record.name,
                recommendation="Consider refactoring before conversion",
            )
        )
    return RuleScore(
        pattern=PatternType.CUSTOM,
        confidence=max(c.CUSTOM_MIN_CONFIDENCE, min(100, 100 - penalty)),
        warnings=warnings,
        needs_review=True,
    )


# Evaluation order doubles as the tie-break order.
RULES: tuple[Rule, ...] = (
    score_simple_load,
    score_optimistic_update,
    score_bulk_operation,
    score_custom,
)
