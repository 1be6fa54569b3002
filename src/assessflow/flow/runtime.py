"""
Stage Executor

Interprets one compiled flow for one session: holds the current stage,
applies transitions, and accumulates the traversal history.

The executor never decides what happens when an option has no transition;
the compiler has already resolved every option. Attempt counting belongs
to the caller (see assessflow.session).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from assessflow.core.schemas.flow import (
    Branch,
    CompiledFlow,
    Exit,
    GotoStage,
    Loop,
    Option,
    Stage,
    StageAction,
)
from assessflow.telemetry.logger import InteractionLogger

logger = logging.getLogger(__name__)


class UnknownStageError(RuntimeError):
    """Transition target is not part of the compiled flow.

    Only possible when the executor is handed a flow that did not pass
    compilation. Fatal: indicates a compiler/runtime mismatch.
    """

    pass


class UnknownOptionError(ValueError):
    """Option id does not exist on the current stage."""

    pass


class FlowTerminatedError(Exception):
    """Operation attempted after the flow reached an exit."""

    pass


@dataclass(frozen=True)
class RuntimeResult:
    """Terminal outcome of one run.

    Attributes:
        is_correct: True if the flow exited with outcome 'pass'
        path: Stages visited, ending with the final stage
        final_stage: Stage on which the exit was taken
    """

    is_correct: bool
    path: tuple[str, ...]
    final_stage: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "is_correct": self.is_correct,
            "path": list(self.path),
            "final_stage": self.final_stage,
        }


@dataclass
class StageExecutor:
    """Executes a compiled flow.

    Attributes:
        flow: Compiled flow to interpret
        interaction_log: Optional logger receiving select/submit/transition events
        current_stage_id: Stage currently shown
        history: Stages left via goto/branch, in order
        result: Set once an exit transition is applied
    """

    flow: CompiledFlow
    interaction_log: InteractionLogger | None = None
    current_stage_id: str = field(init=False)
    history: list[str] = field(init=False, default_factory=list)
    result: RuntimeResult | None = field(init=False, default=None)

    def __post_init__(self) -> None:
        if self.flow.get_stage(self.flow.entry_stage_id) is None:
            raise UnknownStageError(f"Entry stage '{self.flow.entry_stage_id}' not in flow")
        self.current_stage_id = self.flow.entry_stage_id

    @property
    def is_terminal(self) -> bool:
        return self.result is not None

    @property
    def current_stage(self) -> Stage:
        stage = self.flow.get_stage(self.current_stage_id)
        if stage is None:
            raise UnknownStageError(f"Stage '{self.current_stage_id}' not in flow")
        return stage

    def select_option(self, option_id: str) -> None:
        """Record a (reversible) selection on the current stage.

        Raises:
            FlowTerminatedError: If the flow already exited
            UnknownOptionError: If the option is not on the current stage
        """
        self._ensure_active()
        self.find_option(option_id)
        self._log(
            "select_option",
            {"stage": self.current_stage_id, "option_id": option_id},
        )

    def submit_stage(self, option_id: str) -> StageAction:
        """Submit an answer for the current stage.

        Args:
            option_id: Submitted option

        Returns:
            The option's resolved transition, for the caller to apply

        Raises:
            FlowTerminatedError: If the flow already exited
            UnknownOptionError: If the option is not on the current stage
        """
        self._ensure_active()
        stage = self.current_stage
        option = self.find_option(option_id)
        if option.next is None:
            raise UnknownStageError(
                f"Option '{option_id}' on stage '{stage.stage_id}' has no transition; "
                "flow was not compiled"
            )

        self._log(
            "submit_stage",
            {
                "stage": stage.stage_id,
                "option_id": option_id,
                "is_correct": stage.is_option_correct(option),
                "diagnostic": option.diagnostic,
                "next": option.next.model_dump(),
            },
        )
        return option.next

    def apply_transition(self, action: StageAction) -> RuntimeResult | None:
        """Apply a transition.

        Args:
            action: Transition returned by submit_stage (or substituted by the caller)

        Returns:
            RuntimeResult on exit, None otherwise

        Raises:
            FlowTerminatedError: If the flow already exited
            UnknownStageError: If a goto/branch target is not in the flow
        """
        self._ensure_active()
        from_stage = self.current_stage_id
        self._log("transition", {"from": from_stage, "action": action.model_dump()})

        if isinstance(action, Loop):
            return None

        if isinstance(action, GotoStage | Branch):
            if self.flow.get_stage(action.target) is None:
                raise UnknownStageError(
                    f"Transition from '{from_stage}' targets unknown stage '{action.target}'"
                )
            self.history.append(from_stage)
            self.current_stage_id = action.target
            return None

        if isinstance(action, Exit):
            self.result = RuntimeResult(
                is_correct=action.outcome == "pass",
                path=(*self.history, from_stage),
                final_stage=from_stage,
            )
            logger.debug(f"Flow {self.flow.item_id or '<unnamed>'} exited: {action.outcome}")
            return self.result

        raise TypeError(f"Unsupported transition: {action!r}")

    def _ensure_active(self) -> None:
        if self.result is not None:
            raise FlowTerminatedError(
                f"Flow already exited on stage '{self.result.final_stage}'"
            )

    def find_option(self, option_id: str) -> Option:
        """Option on the current stage.

        Raises:
            UnknownOptionError: If the option is not on the current stage
        """
        option = self.current_stage.get_option(option_id)
        if option is None:
            raise UnknownOptionError(
                f"Option '{option_id}' not found on stage '{self.current_stage_id}'"
            )
        return option

    def _log(self, type: Any, payload: dict[str, Any]) -> None:
        if self.interaction_log is not None:
            self.interaction_log.log(type, payload)
