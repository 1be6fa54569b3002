"""
Shared analytics heuristics.

Building blocks used by every question type's analytics function. All
functions are pure: they read the log and the caller's context and never
consult the wall clock.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from assessflow.config import settings
from assessflow.core.schemas.analytics import (
    AtomAttempt,
    CognitiveLoad,
    CorrectnessPattern,
    DataQuality,
    Intervention,
    LogEntry,
    SpeedRating,
)

DEFAULT_MASTERY = 0.5

# Recent attempts considered for recovery and pattern detection
RECENT_WINDOW = 3


class AnalyticsError(Exception):
    """Raised when a log cannot be turned into an analytics record."""

    pass


# ============================================================================
# Log access
# ============================================================================


def first_of(logs: Iterable[LogEntry], *types: str) -> LogEntry | None:
    for entry in logs:
        if entry.type in types:
            return entry
    return None


def last_of(logs: Sequence[LogEntry], *types: str) -> LogEntry | None:
    for entry in reversed(logs):
        if entry.type in types:
            return entry
    return None


def count_of(logs: Iterable[LogEntry], *types: str) -> int:
    return sum(1 for entry in logs if entry.type in types)


def terminal_event(logs: Sequence[LogEntry]) -> LogEntry:
    """The `submit` event that closed the session.

    Raises:
        AnalyticsError: If the session never submitted
    """
    entry = last_of(logs, "submit")
    if entry is None:
        raise AnalyticsError("Log has no terminal submit event")
    return entry


# ============================================================================
# Timing
# ============================================================================


def time_spent(logs: Sequence[LogEntry]) -> int:
    """Milliseconds from the first mount/view event to the terminal event, floored at 0."""
    end = terminal_event(logs).timestamp
    start_entry = first_of(logs, "mount", "view")
    start = start_entry.timestamp if start_entry else end
    return max(0, end - start)


def speed_rating(elapsed_ms: int, expected_ms: int) -> SpeedRating:
    """Bucket elapsed time against the expected duration.

    < 0.3x RUSHED (likely guessing), < 0.7x FAST, <= 1.3x STEADY, else SLOW.
    """
    if elapsed_ms < expected_ms * 0.3:
        return "RUSHED"
    if elapsed_ms < expected_ms * 0.7:
        return "FAST"
    if elapsed_ms <= expected_ms * 1.3:
        return "STEADY"
    return "SLOW"


def data_quality(elapsed_ms: int, threshold_ms: int | None = None) -> DataQuality:
    limit = settings.ANOMALY_THRESHOLD_MS if threshold_ms is None else threshold_ms
    return "ANOMALY" if elapsed_ms < limit else "VALID"


# ============================================================================
# Behaviour
# ============================================================================


def distraction_score(logs: Iterable[LogEntry]) -> int:
    """20 points per blur (tab switch / hidden), capped at 100."""
    return min(100, 20 * count_of(logs, "blur"))


def focus_consistency(logs: Iterable[LogEntry]) -> float:
    return max(0.0, 1.0 - 0.1 * count_of(logs, "blur"))


def cognitive_load(
    *,
    answer_changes: int,
    repair_visits: int,
    elapsed_ms: int,
    expected_ms: int,
) -> CognitiveLoad:
    """Escalate with answer changes, remediation visited and time past 2x expected."""
    load: CognitiveLoad = "LOW"
    if answer_changes > 2 or repair_visits >= 1:
        load = "MEDIUM"
    if answer_changes > 4 or repair_visits > 1 or elapsed_ms > expected_ms * 2:
        load = "HIGH"
    return load


# ============================================================================
# History
# ============================================================================


def was_failing_recently(history: Sequence[AtomAttempt]) -> bool:
    return any(not attempt.is_correct for attempt in history[-RECENT_WINDOW:])


def correctness_pattern(
    history: Sequence[AtomAttempt], is_correct: bool
) -> CorrectnessPattern | None:
    """Classify the recent run of results including this attempt.

    Returns None when there is not enough history to say anything.
    """
    results = [attempt.is_correct for attempt in history[-RECENT_WINDOW:]] + [is_correct]
    if len(results) < RECENT_WINDOW:
        return None

    if all(results) or not any(results):
        return "STABLE"

    flips = sum(1 for a, b in zip(results, results[1:]) if a != b)
    if flips == len(results) - 1:
        return "OSCILLATING"
    if flips == 1:
        return "IMPROVING" if results[-1] else "DECLINING"
    return "RANDOM"


def recovery_velocity(history: Sequence[AtomAttempt], is_correct: bool) -> float | None:
    """(current score - mean of first three scores) / attempts."""
    if not history:
        return None
    baseline = history[:RECENT_WINDOW]
    mean = sum(1.0 if a.is_correct else 0.0 for a in baseline) / len(baseline)
    current = 1.0 if is_correct else 0.0
    return round((current - mean) / (len(history) + 1), 4)


def mastery_before(history: Sequence[AtomAttempt]) -> float:
    for attempt in reversed(history):
        if attempt.mastery_after is not None:
            return attempt.mastery_after
    return DEFAULT_MASTERY


def mastery_after(before: float, is_correct: bool, gain: float, loss: float) -> float:
    value = before + gain if is_correct else before - loss
    return round(min(1.0, max(0.0, value)), 4)


def confidence_gap(before: float, is_correct: bool) -> float:
    """Expected performance minus actual (positive = surprise failure)."""
    return round(before - (1.0 if is_correct else 0.0), 4)


def space_repetition_due(timestamp: int, is_correct: bool) -> int:
    """Correct answers are reviewed after the full interval, misses after half."""
    interval = settings.SPACED_REPETITION_INTERVAL_MS
    return timestamp + (interval if is_correct else interval // 2)


def suggested_intervention(
    *, is_correct: bool, attempt_number: int, failing_recently: bool
) -> Intervention:
    if is_correct:
        return "NONE"
    if failing_recently and attempt_number > 3:
        return "INTERVENE"
    if attempt_number > 2:
        return "SCAFFOLD"
    return "HINT"
