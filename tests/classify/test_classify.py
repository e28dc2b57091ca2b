"""Tests for pattern classification."""

from __future__ import annotations

import pytest

from rxmigrate.classify import analyze_pattern_distribution, classify, classify_all
from rxmigrate.classify.rules import RULES, complexity_penalty
from rxmigrate.config.models import ClassifierThresholds
from rxmigrate.scan import FileContext, MethodRecord, PatternType, scan_source


def _method(member: str) -> tuple[MethodRecord, FileContext]:
    """Scan one object-literal member wrapped in a minimal store."""
    source = (
        "export const S = signalStore(\n"
        "  withMethods((store, todoService = inject(TodoService)) => ({\n"
        f"{member}\n"
        "  })),\n"
        ");\n"
    )
    result = scan_source(source)
    assert len(result.methods) == 1
    return result.methods[0], result.context


OPTIMISTIC = """\
    async updateTodo(todo: Todo): Promise<void> {
      const originalTodos = store.todos();
      patchState(store, { todos: store.todos().map((t) => (t.id === todo.id ? todo : t)) });
      try {
        await todoService.update(todo);
      } catch (error) {
        patchState(store, { todos: originalTodos });
      }
    },"""

UNNAMED_BULK = """\
    async removeAll(ids: string[]): Promise<void> {
      await Promise.all(ids.map((id) => todoService.remove(id)));
    },"""

LOADING_BULK = """\
    async deleteTodos(ids: string[]): Promise<void> {
      patchState(store, { isLoading: true });
      try {
        await Promise.all(ids.map((id) => todoService.delete(id)));
        patchState(store, { isLoading: false });
      } catch (error) {
        patchState(store, { isLoading: false, error: 'Delete failed' });
      }
    },"""

TANGLED = """\
    async reconcile(): Promise<void> {
      for (const a of await todoService.a()) {
        try { await todoService.b(a); } catch { await todoService.c(); }
      }
      while (await todoService.d()) {
        try { await todoService.e(); } catch { await todoService.f(); }
      }
      switch (await todoService.g()) {
        case 1:
          try { await todoService.h(); } catch { break; }
      }
    },"""


class TestClassify:
    """Rule selection, alternatives and review flags."""

    def test_simple_load(self, user_store_source: str) -> None:
        scan = scan_source(user_store_source)
        result = classify(scan.methods[0], scan.context)

        assert result.pattern is PatternType.SIMPLE_LOAD
        assert result.confidence == 90
        assert result.scores == {
            PatternType.SIMPLE_LOAD: 90,
            PatternType.OPTIMISTIC_UPDATE: 45,
            PatternType.BULK_OPERATION: 0,
            PatternType.CUSTOM: 80,
        }

    def test_alternatives_ranked_above_thirty(self, user_store_source: str) -> None:
        scan = scan_source(user_store_source)
        result = classify(scan.methods[0], scan.context)

        assert [(a.pattern, a.confidence) for a in result.alternatives] == [
            (PatternType.CUSTOM, 80),
            (PatternType.OPTIMISTIC_UPDATE, 45),
        ]
        assert result.alternatives[0].reason == "custom-fallback detector confidence: 80%"

    def test_bulk_operation(self, bulk_store_source: str) -> None:
        scan = scan_source(bulk_store_source)
        result = classify(scan.methods[0], scan.context)

        assert result.pattern is PatternType.BULK_OPERATION
        assert result.confidence == 100
        assert result.scores[PatternType.CUSTOM] == 90

    def test_optimistic_update(self) -> None:
        record, context = _method(OPTIMISTIC)
        result = classify(record, context)

        assert result.pattern is PatternType.OPTIMISTIC_UPDATE
        assert result.confidence == 100
        assert result.scores[PatternType.SIMPLE_LOAD] == 60

    def test_tie_goes_to_earlier_rule(self) -> None:
        record, context = _method(UNNAMED_BULK)
        result = classify(record, context)

        assert result.scores[PatternType.BULK_OPERATION] == 90
        assert result.scores[PatternType.CUSTOM] == 90
        assert result.pattern is PatternType.BULK_OPERATION

    def test_fan_out_with_loading_flag_is_bulk(self) -> None:
        record, context = _method(LOADING_BULK)
        result = classify(record, context)

        assert result.pattern is PatternType.BULK_OPERATION
        assert result.scores[PatternType.BULK_OPERATION] == 90
        assert result.scores[PatternType.SIMPLE_LOAD] == 60

    def test_custom_never_below_floor(self) -> None:
        record, context = _method(TANGLED)
        result = classify(record, context)

        assert result.scores[PatternType.CUSTOM] == 20
        assert any(w.message == "High complexity method detected" for w in result.warnings)

    def test_manual_review_warning_always_present(self, user_store_source: str) -> None:
        scan = scan_source(user_store_source)
        result = classify(scan.methods[0], scan.context)

        assert result.requires_manual_review
        assert any(w.kind == "manual-review" for w in result.warnings)

    def test_compatibility_warning_for_converted_name(self, user_store_source: str) -> None:
        scan = scan_source(user_store_source)
        context = FileContext(existing_rx_methods=frozenset({"loadUsers"}))

        result = classify(scan.methods[0], context)

        assert [w.kind for w in result.warnings if w.kind == "compatibility"] == ["compatibility"]

    def test_thresholds_are_configurable(self, user_store_source: str) -> None:
        scan = scan_source(user_store_source)
        thresholds = ClassifierThresholds(alternative_min_confidence=85)

        result = classify(scan.methods[0], scan.context, thresholds)

        assert result.alternatives == []

    @pytest.mark.parametrize("member", [OPTIMISTIC, UNNAMED_BULK, TANGLED])
    def test_confidence_bounds(self, member: str) -> None:
        record, context = _method(member)
        result = classify(record, context)

        assert 0 <= result.confidence <= 100
        assert all(0 <= score <= 100 for score in result.scores.values())
        assert all(0 <= alt.confidence <= 100 for alt in result.alternatives)

    def test_pure(self, user_store_source: str) -> None:
        scan = scan_source(user_store_source)
        first = classify(scan.methods[0], scan.context)
        second = classify(scan.methods[0], scan.context)
        assert first == second


class TestRules:
    """Individual rule helpers."""

    def test_rule_order(self) -> None:
        assert [r.__name__ for r in RULES] == [
            "score_simple_load",
            "score_optimistic_update",
            "score_bulk_operation",
            "score_custom",
        ]

    def test_complexity_penalty_per_await(self) -> None:
        assert complexity_penalty("await a(); await b();") == 20

    def test_complexity_penalty_many_awaits(self) -> None:
        assert complexity_penalty("await a; " * 4) == 60

    def test_complexity_penalty_length_tier(self) -> None:
        assert complexity_penalty("x" * 1500) == 15
        assert complexity_penalty("x" * 2500) == 30

    def test_complexity_penalty_tries_and_branches(self) -> None:
        source = "try { } catch {} try { } catch {} for (;;) {} while (x) {}"
        assert complexity_penalty(source) == 10 * 2 + 15 + 10 * 2


class TestPatternDistribution:
    """Tests for analyze_pattern_distribution()."""

    def test_empty(self) -> None:
        dist = analyze_pattern_distribution([])
        assert dist.distribution == {}
        assert dist.average_confidence == 0.0

    def test_counts_and_average(self, user_store_source: str, bulk_store_source: str) -> None:
        results = []
        for source in (user_store_source, bulk_store_source):
            scan = scan_source(source)
            results.extend(r for _, r in classify_all(scan.methods, scan.context))

        dist = analyze_pattern_distribution(results)

        assert dist.distribution == {"simple-load": 1, "bulk-operation": 1}
        assert dist.average_confidence == 95.0
        assert dist.methods_requiring_review == 2
        assert dist.recommendations
