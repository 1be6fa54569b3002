"""
Tests for analytics heuristics and the per-type analytics functions.
"""

import pytest
from factories import START_MS, multiple_choice_question, repair_document

from assessflow.analytics import metrics
from assessflow.core.schemas.analytics import AtomAttempt, LogEntry, SessionContext
from assessflow.core.schemas.flow import DeclarativeDocument
from assessflow.core.schemas.questions import MultipleChoiceDocument
from assessflow.questions.types import mcq_branching, multiple_choice


def entry(type: str, at: int, payload=None) -> LogEntry:
    return LogEntry(type=type, payload=payload, timestamp=START_MS + at)


def history(*results: bool, mastery: float | None = None) -> list[AtomAttempt]:
    return [AtomAttempt(is_correct=r, mastery_after=mastery) for r in results]


# ============================================================================
# Heuristics
# ============================================================================


class TestTiming:
    def test_time_spent_from_mount_to_submit(self):
        logs = [entry("mount", 0), entry("view", 50), entry("submit", 4_000)]

        assert metrics.time_spent(logs) == 4_000

    def test_time_spent_requires_terminal_event(self):
        with pytest.raises(metrics.AnalyticsError):
            metrics.time_spent([entry("mount", 0)])

    @pytest.mark.parametrize(
        "elapsed,expected_rating",
        [
            (2_000, "RUSHED"),
            (5_000, "FAST"),
            (10_000, "STEADY"),
            (13_000, "STEADY"),
            (20_000, "SLOW"),
        ],
    )
    def test_speed_rating(self, elapsed, expected_rating):
        assert metrics.speed_rating(elapsed, 10_000) == expected_rating

    def test_data_quality(self):
        assert metrics.data_quality(50, threshold_ms=100) == "ANOMALY"
        assert metrics.data_quality(100, threshold_ms=100) == "VALID"


class TestBehaviour:
    def test_distraction_capped(self):
        logs = [entry("blur", i) for i in range(7)]

        assert metrics.distraction_score(logs) == 100
        assert metrics.distraction_score(logs[:2]) == 40
        assert metrics.focus_consistency(logs[:2]) == pytest.approx(0.8)

    @pytest.mark.parametrize(
        "changes,repairs,elapsed,load",
        [
            (0, 0, 1_000, "LOW"),
            (3, 0, 1_000, "MEDIUM"),
            (0, 1, 1_000, "MEDIUM"),
            (5, 0, 1_000, "HIGH"),
            (0, 2, 1_000, "HIGH"),
            (0, 0, 25_000, "HIGH"),
        ],
    )
    def test_cognitive_load(self, changes, repairs, elapsed, load):
        assert (
            metrics.cognitive_load(
                answer_changes=changes,
                repair_visits=repairs,
                elapsed_ms=elapsed,
                expected_ms=10_000,
            )
            == load
        )


class TestHistory:
    def test_pattern_needs_history(self):
        assert metrics.correctness_pattern(history(True), True) is None

    @pytest.mark.parametrize(
        "past,current,pattern",
        [
            ((True, True, True), True, "STABLE"),
            ((False, False), False, "STABLE"),
            ((True, False, True), False, "OSCILLATING"),
            ((False, False, True), True, "IMPROVING"),
            ((True, True, False), False, "DECLINING"),
            ((True, False, False), True, "RANDOM"),
        ],
    )
    def test_correctness_pattern(self, past, current, pattern):
        assert metrics.correctness_pattern(history(*past), current) == pattern

    def test_recovery_velocity(self):
        assert metrics.recovery_velocity([], True) is None
        assert metrics.recovery_velocity(history(False, False), True) == pytest.approx(1 / 3, 1e-3)

    def test_mastery(self):
        assert metrics.mastery_before([]) == metrics.DEFAULT_MASTERY
        assert metrics.mastery_before(history(True, mastery=0.7)) == 0.7
        assert metrics.mastery_after(0.98, True, 0.05, 0.05) == 1.0
        assert metrics.mastery_after(0.02, False, 0.05, 0.05) == 0.0

    def test_confidence_gap(self):
        assert metrics.confidence_gap(0.8, False) == pytest.approx(0.8)
        assert metrics.confidence_gap(0.8, True) == pytest.approx(-0.2)

    def test_spaced_repetition(self):
        day = 86_400_000
        assert metrics.space_repetition_due(0, True) == day
        assert metrics.space_repetition_due(0, False) == day // 2

    @pytest.mark.parametrize(
        "correct,attempt,failing,intervention",
        [
            (True, 5, True, "NONE"),
            (False, 1, False, "HINT"),
            (False, 3, False, "SCAFFOLD"),
            (False, 4, True, "INTERVENE"),
        ],
    )
    def test_suggested_intervention(self, correct, attempt, failing, intervention):
        assert (
            metrics.suggested_intervention(
                is_correct=correct, attempt_number=attempt, failing_recently=failing
            )
            == intervention
        )


# ============================================================================
# Per-type analytics
# ============================================================================


class TestMultipleChoiceAnalytics:
    def _document(self) -> MultipleChoiceDocument:
        return MultipleChoiceDocument.model_validate(multiple_choice_question())

    def _logs(self, option_id: str, is_correct: bool) -> list[LogEntry]:
        return [
            entry("mount", 0),
            entry("view", 0),
            entry("select_option", 1_000, {"stage": "main", "option_id": "a"}),
            entry("blur", 2_000),
            entry("submit_stage", 8_000, {"stage": "main", "option_id": option_id}),
            entry("submit", 8_000, {"is_correct": is_correct, "path": ["main"]}),
        ]

    def test_incorrect_answer(self):
        record = multiple_choice.compute_metrics(
            self._document(), self._logs("a", False), SessionContext(session_id="s1")
        )

        assert record.question_id == "q_half"
        assert record.session_id == "s1"
        assert record.atom_id == "A001_FRACTIONS"
        assert record.timestamp == START_MS + 8_000
        assert record.student_answer == "2/6"
        assert record.correct_answer == "3/4"
        assert record.is_correct is False
        assert record.time_spent == 8_000
        assert record.speed_rating == "STEADY"
        assert record.diagnostic_tag == "ADDS_DENOMINATORS"
        assert record.suggested_intervention == "HINT"
        assert record.distraction_score == 20
        assert record.mastery_before == 0.5
        assert record.mastery_after == 0.45
        assert record.data_quality == "VALID"

    def test_recovered_after_recent_failure(self):
        context = SessionContext(atom_history=history(False, mastery=0.4))

        record = multiple_choice.compute_metrics(
            self._document(), self._logs("b", True), context
        )

        assert record.is_correct is True
        assert record.diagnostic_tag is None
        assert record.is_recovered is True
        assert record.attempt_number == 2
        assert record.mastery_after == 0.45

    def test_pure(self):
        document = self._document()
        logs = self._logs("b", True)
        context = SessionContext()

        first = multiple_choice.compute_metrics(document, logs, context)
        second = multiple_choice.compute_metrics(document, logs, context)

        assert first == second


class TestBranchingAnalytics:
    def _document(self) -> DeclarativeDocument:
        return DeclarativeDocument.model_validate(repair_document())

    def test_recovered_via_repair(self):
        misconception = {"stage": "ST1", "is_correct": False, "diagnostic": "ADDS_DENOMINATORS"}
        outcome = {"is_correct": True, "path": ["ST1", "REPAIR"], "final_stage": "REPAIR"}
        logs = [
            entry("mount", 0),
            entry("submit_stage", 5_000, misconception),
            entry("transition", 5_000, {"from": "ST1", "action": {"type": "goto_stage"}}),
            entry("submit_stage", 20_000, {"stage": "REPAIR", "is_correct": True}),
            entry("submit", 20_000, outcome),
        ]

        record = mcq_branching.compute_metrics(self._document(), logs, SessionContext())

        assert record.is_correct is True
        assert record.question_id == "ITEM_FRACTIONS_01"
        assert record.student_answer == "ST1->REPAIR"
        assert record.is_recovered is True
        assert record.diagnostic_tag == "REPAIRED_VIA_REPAIR"
        assert record.cognitive_load == "MEDIUM"
        assert record.suggested_intervention == "NONE"

    def test_failed_path_reports_last_misconception(self):
        misconception = {"stage": "ST1", "is_correct": False, "diagnostic": "ADDS_DENOMINATORS"}
        logs = [
            entry("mount", 0),
            entry("submit_stage", 3_000, misconception),
            entry("submit", 3_000, {"is_correct": False, "path": ["ST1"]}),
        ]

        record = mcq_branching.compute_metrics(self._document(), logs, SessionContext())

        assert record.is_correct is False
        assert record.is_recovered is False
        assert record.diagnostic_tag == "ADDS_DENOMINATORS"
        assert record.suggested_intervention == "INTERVENE"

    def test_missing_terminal_event_raises(self):
        with pytest.raises(metrics.AnalyticsError):
            mcq_branching.compute_metrics(self._document(), [entry("mount", 0)], SessionContext())
