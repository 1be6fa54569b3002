"""
Tests for the Stage Executor

Transitions, terminal finality and event logging.
"""

import pytest
from factories import build_option, build_stage, repair_document

from assessflow.core.schemas.flow import (
    CompiledFlow,
    DeclarativeDocument,
    Exit,
    GotoStage,
    Loop,
    Stage,
)
from assessflow.flow.compiler import compile_flow
from assessflow.flow.runtime import (
    FlowTerminatedError,
    RuntimeResult,
    StageExecutor,
    UnknownOptionError,
    UnknownStageError,
)
from assessflow.telemetry.logger import InteractionLogger


@pytest.fixture
def repair_flow() -> CompiledFlow:
    return compile_flow(DeclarativeDocument.model_validate(repair_document())).unwrap()


# ============================================================================
# Transitions
# ============================================================================


class TestTransitions:
    """apply_transition semantics per action."""

    def test_correct_on_entry_exits_pass(self, repair_flow):
        """submit B on ST1 -> exit(pass), path [ST1]."""
        executor = StageExecutor(flow=repair_flow)

        action = executor.submit_stage("B")
        result = executor.apply_transition(action)

        assert action == Exit(outcome="pass")
        assert result == RuntimeResult(is_correct=True, path=("ST1",), final_stage="ST1")
        assert executor.is_terminal

    def test_submit_after_exit_is_rejected(self, repair_flow):
        """Once terminal, the executor refuses further work."""
        executor = StageExecutor(flow=repair_flow)
        executor.apply_transition(executor.submit_stage("B"))

        with pytest.raises(FlowTerminatedError):
            executor.submit_stage("A")
        with pytest.raises(FlowTerminatedError):
            executor.select_option("A")
        with pytest.raises(FlowTerminatedError):
            executor.apply_transition(Loop())

    def test_goto_moves_and_records_history(self, repair_flow):
        executor = StageExecutor(flow=repair_flow)

        action = executor.submit_stage("A")
        assert action == GotoStage(target="REPAIR")
        assert executor.apply_transition(action) is None

        assert executor.current_stage_id == "REPAIR"
        assert executor.history == ["ST1"]

    def test_path_through_repair(self, repair_flow):
        executor = StageExecutor(flow=repair_flow)
        executor.apply_transition(executor.submit_stage("A"))

        result = executor.apply_transition(executor.submit_stage("R2"))

        assert result.is_correct is True
        assert result.path == ("ST1", "REPAIR")
        assert result.final_stage == "REPAIR"

    def test_loop_is_idempotent(self, repair_flow):
        """Repeated loops leave the stage and history untouched."""
        executor = StageExecutor(flow=repair_flow)
        executor.apply_transition(executor.submit_stage("A"))

        for _ in range(3):
            assert executor.apply_transition(executor.submit_stage("R1")) is None

        assert executor.current_stage_id == "REPAIR"
        assert executor.history == ["ST1"]
        assert not executor.is_terminal

    def test_exit_fail(self):
        flow = CompiledFlow(
            entry_stage_id="ONLY",
            stages=(
                Stage.model_validate(
                    build_stage(
                        "ONLY",
                        [build_option("X", next={"type": "exit", "outcome": "fail"})],
                    )
                ),
            ),
        )
        executor = StageExecutor(flow=flow)

        result = executor.apply_transition(executor.submit_stage("X"))

        assert result.is_correct is False
        assert result.path == ("ONLY",)


# ============================================================================
# Errors
# ============================================================================


class TestRuntimeErrors:
    """Invalid input and flows that bypassed the compiler."""

    def test_unknown_option(self, repair_flow):
        executor = StageExecutor(flow=repair_flow)

        with pytest.raises(UnknownOptionError):
            executor.submit_stage("Z")
        with pytest.raises(UnknownOptionError):
            executor.select_option("Z")

        assert executor.current_stage_id == "ST1"

    def test_unknown_target_in_uncompiled_flow(self):
        """A hand-built flow with a dangling target fails loudly."""
        flow = CompiledFlow(
            entry_stage_id="ST1",
            stages=(
                Stage.model_validate(
                    build_stage(
                        "ST1",
                        [build_option("A", next={"type": "goto_stage", "target": "GONE"})],
                    )
                ),
            ),
        )
        executor = StageExecutor(flow=flow)

        with pytest.raises(UnknownStageError):
            executor.apply_transition(executor.submit_stage("A"))

    def test_unknown_entry(self):
        flow = CompiledFlow(
            entry_stage_id="MISSING",
            stages=(Stage.model_validate(build_stage("ST1", [build_option("A")])),),
        )

        with pytest.raises(UnknownStageError):
            StageExecutor(flow=flow)

    def test_unresolved_option_is_rejected(self):
        flow = CompiledFlow(
            entry_stage_id="ST1",
            stages=(Stage.model_validate(build_stage("ST1", [build_option("A")])),),
        )
        executor = StageExecutor(flow=flow)

        with pytest.raises(UnknownStageError):
            executor.submit_stage("A")


# ============================================================================
# Logging
# ============================================================================


class TestExecutorLogging:
    """Executor events reach the interaction log."""

    def test_events_logged_in_order(self, repair_flow, clock):
        interaction_log = InteractionLogger(clock=clock)
        executor = StageExecutor(flow=repair_flow, interaction_log=interaction_log)

        executor.select_option("A")
        executor.apply_transition(executor.submit_stage("A"))

        entries = interaction_log.get_all()
        assert [e.type for e in entries] == ["select_option", "submit_stage", "transition"]

        submit = entries[1].payload
        assert submit["stage"] == "ST1"
        assert submit["option_id"] == "A"
        assert submit["is_correct"] is False
        assert submit["diagnostic"] == "ADDS_DENOMINATORS"
        assert submit["next"] == {"type": "goto_stage", "target": "REPAIR"}

        transition = entries[2].payload
        assert transition["from"] == "ST1"
        assert transition["action"]["target"] == "REPAIR"
