"""Pydantic schemas for question documents, flows and analytics."""

from .analytics import (
    AnalyticsRecord,
    AtomAttempt,
    LogEntry,
    LogEventType,
    SessionContext,
)
from .flow import (
    AnswerKey,
    Branch,
    BranchingDocument,
    CompiledFlow,
    DeclarativeDocument,
    DeclarativeStage,
    Exit,
    GotoStage,
    Interaction,
    InteractionConfig,
    Loop,
    Option,
    Prompt,
    Stage,
    StageAction,
    UnlockRule,
)
from .questions import ChoiceOption, MultipleChoiceDocument

__all__ = [
    # Flow
    "AnswerKey",
    "Branch",
    "BranchingDocument",
    "CompiledFlow",
    "DeclarativeDocument",
    "DeclarativeStage",
    "Exit",
    "GotoStage",
    "Interaction",
    "InteractionConfig",
    "Loop",
    "Option",
    "Prompt",
    "Stage",
    "StageAction",
    "UnlockRule",
    # Questions
    "ChoiceOption",
    "MultipleChoiceDocument",
    # Analytics
    "AnalyticsRecord",
    "AtomAttempt",
    "LogEntry",
    "LogEventType",
    "SessionContext",
]
