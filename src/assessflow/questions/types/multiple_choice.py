"""
multiple-choice v1

Single-select multiple choice question with text or image options.
"""

from __future__ import annotations

from collections.abc import Sequence

from assessflow.analytics import metrics
from assessflow.config import settings
from assessflow.core.schemas.analytics import AnalyticsRecord, LogEntry, SessionContext
from assessflow.core.schemas.questions import MultipleChoiceDocument
from assessflow.questions.manifest import Manifest

MASTERY_GAIN = 0.05
MASTERY_LOSS = 0.05


def compute_metrics(
    data: MultipleChoiceDocument,
    logs: Sequence[LogEntry],
    context: SessionContext,
) -> AnalyticsRecord:
    """Compute the analytics record for one multiple-choice attempt."""
    terminal = metrics.terminal_event(logs)
    last_submit = metrics.last_of(logs, "submit_stage")
    selected_id = last_submit.payload.get("option_id") if last_submit else None
    selected = data.get_option(selected_id) if selected_id else None
    correct = data.get_option(data.correct_option_id)
    is_correct = selected is not None and selected.id == data.correct_option_id

    elapsed = metrics.time_spent(logs)
    expected = settings.DEFAULT_EXPECTED_DURATION_MS
    answer_changes = metrics.count_of(logs, "select_option", "answer_select")

    history = context.atom_history
    attempt_number = len(history) + 1
    failing_recently = metrics.was_failing_recently(history)
    before = metrics.mastery_before(history)

    return AnalyticsRecord(
        question_id=data.id or f"q_{terminal.timestamp}",
        session_id=context.session_id,
        atom_id=str(data.metadata.get("atom_id", "UNKNOWN_ATOM")),
        timestamp=terminal.timestamp,
        student_answer=selected.text if selected else "NO_ANSWER",
        correct_answer=correct.text if correct else "UNKNOWN",
        is_correct=is_correct,
        time_spent=elapsed,
        speed_rating=metrics.speed_rating(elapsed, expected),
        attempt_number=attempt_number,
        diagnostic_tag=None
        if is_correct
        else str(data.metadata.get("error_tag", "GENERAL_ERROR")),
        is_recovered=failing_recently and is_correct,
        recovery_velocity=metrics.recovery_velocity(history, is_correct),
        suggested_intervention=metrics.suggested_intervention(
            is_correct=is_correct,
            attempt_number=attempt_number,
            failing_recently=failing_recently,
        ),
        cognitive_load=metrics.cognitive_load(
            answer_changes=answer_changes,
            repair_visits=0,
            elapsed_ms=elapsed,
            expected_ms=expected,
        ),
        distraction_score=metrics.distraction_score(logs),
        focus_consistency=metrics.focus_consistency(logs),
        confidence_gap=metrics.confidence_gap(before, is_correct),
        correctness_pattern=metrics.correctness_pattern(history, is_correct),
        mastery_before=before,
        mastery_after=metrics.mastery_after(before, is_correct, MASTERY_GAIN, MASTERY_LOSS),
        space_repetition_due=metrics.space_repetition_due(terminal.timestamp, is_correct),
        data_quality=metrics.data_quality(elapsed),
    )


MultipleChoiceManifestV1 = Manifest(
    id="multiple-choice",
    version=1,
    name="Multiple Choice (Standard)",
    description="Single-select multiple choice question with text or image options.",
    schema=MultipleChoiceDocument,
    runtime_binding="single_choice",
    analytics_fn=compute_metrics,
)
