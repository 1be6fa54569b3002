"""
Question Session

Runs one question for one learner from load to analytics:
resolve manifest -> validate -> build flow -> drive the stage executor ->
on exit, synthesize analytics (best effort).

The session owns the attempt counter. The compiler only encodes the edge
taken once attempts are exceeded; the session decides when that is.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterator, Mapping
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass
from typing import Any

from assessflow.config import settings
from assessflow.core.schemas.analytics import AnalyticsRecord, LogEntry, SessionContext
from assessflow.core.schemas.flow import CompiledFlow, Loop, Stage, StageAction
from assessflow.core.validation import validate_document
from assessflow.flow.runtime import RuntimeResult, StageExecutor
from assessflow.questions.bindings import build_flow
from assessflow.questions.manifest import Manifest
from assessflow.questions.registry import (
    ManifestRegistry,
    UnknownQuestionTypeError,
    get_registry,
)
from assessflow.telemetry.environment import EnvironmentEvents
from assessflow.telemetry.logger import Clock, InteractionLogger

logger = logging.getLogger(__name__)

# Legacy `type` / `template` values -> registered type id
TYPE_ALIASES: dict[str, str] = {
    "multiple-choice": "multiple-choice",
    "mcq": "multiple-choice",
    "mcq-branching": "mcq-branching",
    "branching": "mcq-branching",
    "mcq-declarative": "mcq-declarative",
    "v3-declarative-mcq": "mcq-declarative",
}


def resolve_question_type(question: Mapping[str, Any]) -> tuple[str, int | None]:
    """Determine (type id, version) for a raw question.

    `meta.type` / `meta.version` win; otherwise `template_id`, `template`
    or `type` is normalized and looked up in TYPE_ALIASES.

    Raises:
        UnknownQuestionTypeError: If no type can be determined
    """
    meta = question.get("meta") or {}
    if isinstance(meta, Mapping) and meta.get("type"):
        version = meta.get("version")
        return str(meta["type"]), int(version) if version is not None else None

    unknown = []
    for key in ("template_id", "template", "type"):
        value = question.get(key)
        if not isinstance(value, str):
            continue
        normalized = value.strip().lower().replace("_", "-")
        if normalized in TYPE_ALIASES:
            return TYPE_ALIASES[normalized], None
        unknown.append(f"{key}='{value}'")

    if unknown:
        raise UnknownQuestionTypeError(f"Unknown question type ({', '.join(unknown)})")
    raise UnknownQuestionTypeError("Question has no meta.type, template or type field")


@dataclass(frozen=True)
class SubmissionResult:
    """Final result handed back to the caller.

    Attributes:
        is_correct: Flow outcome; always present
        raw_result: Terminal runtime result (path, final stage)
        analytics: Analytics record, None in preview mode or if synthesis failed
        analytics_error: Why analytics is missing, if it failed
    """

    is_correct: bool
    raw_result: RuntimeResult
    analytics: AnalyticsRecord | None = None
    analytics_error: str | None = None


@dataclass(frozen=True)
class StepResult:
    """Outcome of submitting one stage.

    Attributes:
        stage_id: Stage that was submitted
        option_id: Submitted option
        is_correct: Correctness of this option
        feedback: Option feedback to show
        action: Transition actually applied (a loop when the repair edge is held back)
        current_stage_id: Stage shown after the transition
        attempts: Incorrect submissions on stage_id so far
        completed: Set when this step exited the flow
    """

    stage_id: str
    option_id: str
    is_correct: bool
    feedback: str | None
    action: StageAction
    current_stage_id: str
    attempts: int
    completed: SubmissionResult | None = None


class QuestionSession:
    """One learner working through one question."""

    def __init__(
        self,
        *,
        manifest: Manifest,
        document: Any,
        flow: CompiledFlow,
        context: SessionContext,
        interaction_log: InteractionLogger,
        preview: bool = False,
        attempts_before_repair: int | None = None,
    ):
        self.manifest = manifest
        self.document = document
        self.flow = flow
        self.context = context
        self.interaction_log = interaction_log
        self.preview = preview
        self.attempts_before_repair = (
            attempts_before_repair
            if attempts_before_repair is not None
            else settings.ATTEMPTS_BEFORE_REPAIR
        )
        self.executor = StageExecutor(flow=flow, interaction_log=interaction_log)
        self._attempts: Counter[str] = Counter()
        self._result: SubmissionResult | None = None
        # Environment capture; closed on the terminal transition or when start() exits
        self._resources = ExitStack()

    @classmethod
    @contextmanager
    def start(
        cls,
        question: Mapping[str, Any],
        context: SessionContext | None = None,
        *,
        registry: ManifestRegistry | None = None,
        environment: EnvironmentEvents | None = None,
        preview: bool = False,
        clock: Clock | None = None,
        attempts_before_repair: int | None = None,
    ) -> Iterator[QuestionSession]:
        """Load a question and run a session scoped to the `with` block.

        Environment listeners are released as soon as the flow exits, or
        when the block exits if the session was abandoned.

        Raises:
            UnknownQuestionTypeError: Type cannot be resolved or is not registered
            ValidationError: Document has CRITICAL schema violations
            FlowCompilationError: Flow has compile errors
        """
        registry = registry or get_registry()
        type_id, version = resolve_question_type(question)
        manifest = registry.require(type_id, version)

        validation = validate_document(manifest.schema, dict(question))
        document = validation.unwrap()
        for issue in validation.warnings:
            logger.debug(f"{manifest.key} warning at {issue.path}: {issue.message}")

        flow = build_flow(manifest, document).unwrap()

        session = cls(
            manifest=manifest,
            document=document,
            flow=flow,
            context=context or SessionContext(),
            interaction_log=InteractionLogger(clock=clock),
            preview=preview,
            attempts_before_repair=attempts_before_repair,
        )
        with session._resources:
            session._resources.enter_context(session.interaction_log.capture(environment))
            session.interaction_log.log("view", {"question_type": manifest.key})
            yield session

        if not session.is_complete:
            logger.info(
                f"Session {session.context.session_id} abandoned on stage "
                f"'{session.current_stage.stage_id}'"
            )

    # ========================================================================
    # State
    # ========================================================================

    @property
    def current_stage(self) -> Stage:
        return self.executor.current_stage

    @property
    def is_complete(self) -> bool:
        return self._result is not None

    @property
    def result(self) -> SubmissionResult | None:
        return self._result

    @property
    def logs(self) -> tuple[LogEntry, ...]:
        return self.interaction_log.get_all()

    def attempts(self, stage_id: str) -> int:
        """Incorrect submissions on a stage during this session."""
        return self._attempts[stage_id]

    # ========================================================================
    # Actions
    # ========================================================================

    def select_option(self, option_id: str) -> None:
        self.executor.select_option(option_id)

    def submit(self, option_id: str) -> StepResult:
        """Submit an option on the current stage and apply its transition.

        Args:
            option_id: Option chosen by the learner

        Returns:
            StepResult describing the applied transition
        """
        stage = self.executor.current_stage
        action = self.executor.submit_stage(option_id)
        option = self.executor.find_option(option_id)

        is_correct = stage.is_option_correct(option)
        if not is_correct:
            self._attempts[stage.stage_id] += 1

        applied: StageAction = action
        if (
            option.next_source == "attempts_exceeded"
            and self._attempts[stage.stage_id] < self.attempts_before_repair
        ):
            applied = Loop()

        outcome = self.executor.apply_transition(applied)
        completed = self._finalize(outcome) if outcome is not None else None

        return StepResult(
            stage_id=stage.stage_id,
            option_id=option_id,
            is_correct=is_correct,
            feedback=option.feedback,
            action=applied,
            current_stage_id=self.executor.current_stage_id,
            attempts=self._attempts[stage.stage_id],
            completed=completed,
        )

    def _finalize(self, outcome: RuntimeResult) -> SubmissionResult:
        self.interaction_log.log("submit", outcome.to_payload())
        # The session has ended; later host events must not reach its log
        self._resources.close()

        if self.preview:
            logger.info(f"Preview mode: skipping analytics for {self.manifest.key}")
            self._result = SubmissionResult(is_correct=outcome.is_correct, raw_result=outcome)
            return self._result

        try:
            analytics = self.manifest.analytics_fn(
                self.document, self.interaction_log.get_all(), self.context
            )
        except Exception as e:
            logger.error(f"Analytics computation failed for {self.manifest.key}: {e}", exc_info=True)
            self._result = SubmissionResult(
                is_correct=outcome.is_correct,
                raw_result=outcome,
                analytics=None,
                analytics_error=str(e),
            )
            return self._result

        self._result = SubmissionResult(
            is_correct=outcome.is_correct, raw_result=outcome, analytics=analytics
        )
        return self._result
