"""
Telemetry and Analytics Schemas

Raw interaction log entries, session context, and the standardized
analytics record computed once per completed question session.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

LogEventType = Literal[
    "mount",
    "view",
    "focus",
    "blur",
    "click",
    "keypress",
    "answer_select",
    "submit",
    "transition",
    "select_option",
    "submit_stage",
]

SpeedRating = Literal["RUSHED", "FAST", "STEADY", "SLOW"]
CognitiveLoad = Literal["LOW", "MEDIUM", "HIGH"]
Intervention = Literal["NONE", "HINT", "SCAFFOLD", "INTERVENE"]
CorrectnessPattern = Literal["STABLE", "OSCILLATING", "DECLINING", "IMPROVING", "RANDOM"]
DataQuality = Literal["VALID", "ANOMALY"]

ANALYTICS_SCHEMA_VERSION = 1


class LogEntry(BaseModel):
    """One raw, timestamped interaction event. Never mutated after append."""

    model_config = ConfigDict(frozen=True)

    type: LogEventType
    payload: Any = None
    timestamp: int  # epoch milliseconds


class AtomAttempt(BaseModel):
    """A previous attempt on the same atom, supplied by the caller."""

    is_correct: bool
    mastery_after: float | None = Field(default=None, ge=0.0, le=1.0)


class SessionContext(BaseModel):
    """Caller context, opaque to compiler and runtime."""

    user_id: str = "anon"
    session_id: str = "dev-session"
    atom_history: list[AtomAttempt] = Field(default_factory=list)


class AnalyticsRecord(BaseModel):
    """Standardized metrics for one completed question session."""

    model_config = ConfigDict(frozen=True)

    schema_version: int = ANALYTICS_SCHEMA_VERSION

    # Core identifiers
    question_id: str
    session_id: str
    atom_id: str
    timestamp: int

    # Performance
    student_answer: str | dict[str, Any]
    correct_answer: str | dict[str, Any]
    is_correct: bool
    time_spent: int = Field(ge=0)
    speed_rating: SpeedRating
    attempt_number: int = Field(ge=1)

    # Diagnostic & remediation
    diagnostic_tag: str | None
    is_recovered: bool
    recovery_velocity: float | None = None
    suggested_intervention: Intervention

    # Cognitive & behavioral
    cognitive_load: CognitiveLoad
    distraction_score: int = Field(ge=0, le=100)
    focus_consistency: float = Field(ge=0.0, le=1.0)
    confidence_gap: float = 0.0
    correctness_pattern: CorrectnessPattern | None = None
    conceptual_cohesion: list[str] = Field(default_factory=list)

    # Long term
    mastery_before: float = Field(ge=0.0, le=1.0)
    mastery_after: float = Field(ge=0.0, le=1.0)
    space_repetition_due: int

    data_quality: DataQuality
