"""
mcq-branching v1 and mcq-declarative v1

Multi-stage questions with remediation loops and scaffolding. Both share
one analytics function; they differ only in how the flow is authored
(explicit transitions vs unlock rules).
"""

from __future__ import annotations

from collections.abc import Sequence

from assessflow.analytics import metrics
from assessflow.core.schemas.analytics import AnalyticsRecord, LogEntry, SessionContext
from assessflow.core.schemas.flow import BranchingDocument, DeclarativeDocument
from assessflow.questions.manifest import Manifest

# Expected time per stage visited; branching questions take longer
EXPECTED_STAGE_MS = 15_000

MASTERY_GAIN = 0.1
MASTERY_LOSS = 0.1


def _visited_path(logs: Sequence[LogEntry]) -> list[str]:
    payload = metrics.terminal_event(logs).payload or {}
    path = payload.get("path")
    if path:
        return list(path)
    # Reconstruct from transitions when the terminal payload has no path
    return [
        entry.payload["from"]
        for entry in logs
        if entry.type == "transition" and entry.payload
    ]


def _last_misconception(logs: Sequence[LogEntry]) -> str | None:
    for entry in reversed(logs):
        if entry.type == "submit_stage" and entry.payload and not entry.payload.get("is_correct"):
            diagnostic = entry.payload.get("diagnostic")
            if diagnostic:
                return str(diagnostic)
    return None


def compute_metrics(
    data: BranchingDocument | DeclarativeDocument,
    logs: Sequence[LogEntry],
    context: SessionContext,
) -> AnalyticsRecord:
    """Compute the analytics record for one multi-stage session.

    Correctness is the flow's exit outcome, not the first answer.
    """
    terminal = metrics.terminal_event(logs)
    result = terminal.payload or {}
    is_correct = bool(result.get("is_correct", False))

    by_id = {stage.stage_id: stage for stage in data.stages}
    path = _visited_path(logs)
    repairs = [stage_id for stage_id in path if stage_id in by_id and by_id[stage_id].is_repair]

    if not is_correct:
        diagnostic_tag: str | None = _last_misconception(logs) or "FAILED_PATH"
    elif repairs:
        diagnostic_tag = f"REPAIRED_VIA_{repairs[0]}"
    else:
        diagnostic_tag = None

    elapsed = metrics.time_spent(logs)
    expected = EXPECTED_STAGE_MS * max(1, len(path))
    selections = metrics.count_of(logs, "select_option")
    submissions = metrics.count_of(logs, "submit_stage")

    history = context.atom_history
    attempt_number = len(history) + 1
    before = metrics.mastery_before(history)

    return AnalyticsRecord(
        question_id=data.item_id or f"branch_{terminal.timestamp}",
        session_id=context.session_id,
        atom_id=data.atom_id or "UNKNOWN",
        timestamp=terminal.timestamp,
        student_answer="->".join(path) if path else "Incomplete",
        correct_answer="Path to Success",
        is_correct=is_correct,
        time_spent=elapsed,
        speed_rating=metrics.speed_rating(elapsed, expected),
        attempt_number=attempt_number,
        diagnostic_tag=diagnostic_tag,
        is_recovered=bool(repairs) and is_correct,
        recovery_velocity=metrics.recovery_velocity(history, is_correct),
        # Failing a whole remediation path means the learner needs a human
        suggested_intervention="NONE" if is_correct else "INTERVENE",
        cognitive_load=metrics.cognitive_load(
            answer_changes=max(0, selections - submissions),
            repair_visits=len(repairs),
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


MCQBranchingManifestV1 = Manifest(
    id="mcq-branching",
    version=1,
    name="Adaptive Branching MCQ",
    description="Multi-stage question with conditional logic, remediation loops, "
    "and scaffolding.",
    schema=BranchingDocument,
    runtime_binding="branching",
    analytics_fn=compute_metrics,
)

MCQDeclarativeManifestV1 = Manifest(
    id="mcq-declarative",
    version=1,
    name="Declarative Multi-Stage MCQ",
    description="Multi-stage question authored with unlock rules; compiled into a "
    "branching flow at load time.",
    schema=DeclarativeDocument,
    runtime_binding="declarative",
    analytics_fn=compute_metrics,
)
