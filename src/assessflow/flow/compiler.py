"""
Flow Compiler

Turns a declarative multi-stage document ("show REPAIR after ST1 is
answered wrong") into an explicit finite-state machine in which every
option of every stage carries exactly one resolved transition.

Passes, in order:
1. ENTRY: the unique stage without a dependency (or with show_when=always)
2. SYNTHESIZE: unlock rules become goto_stage edges on the parent's options
3. DEFAULT: remaining correct options exit(pass), incorrect options loop
4. TARGETS: explicit goto/branch targets must name a stage
5. REACHABILITY: every stage must be reachable from the entry

Errors are collected across all passes so one compile reports every problem.
Compilation is pure: the same document always yields the same flow.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Literal

from assessflow.core.schemas.flow import (
    Branch,
    BranchingDocument,
    CompiledFlow,
    DeclarativeDocument,
    DeclarativeStage,
    Exit,
    GotoStage,
    Loop,
    Stage,
)

logger = logging.getLogger(__name__)

CompileSeverity = Literal["ERROR", "WARNING"]

# Error codes
NO_ENTRY_STAGE = "NO_ENTRY_STAGE"
AMBIGUOUS_ENTRY_STAGE = "AMBIGUOUS_ENTRY_STAGE"
UNKNOWN_ENTRY_STAGE = "UNKNOWN_ENTRY_STAGE"
MISSING_DEPENDENCY = "MISSING_DEPENDENCY"
UNKNOWN_TRANSITION_TARGET = "UNKNOWN_TRANSITION_TARGET"
UNREACHABLE_STAGE = "UNREACHABLE_STAGE"

# Warning codes
NO_CORRECT_OPTION = "NO_CORRECT_OPTION"
UNLOCK_SHADOWED = "UNLOCK_SHADOWED"


class FlowCompilationError(Exception):
    """Raised when a flow with blocking compile errors is about to be used."""

    def __init__(self, errors: list[CompileError]):
        self.errors = errors
        summary = "; ".join(f"{e.code}: {e.message}" for e in errors if e.severity == "ERROR")
        super().__init__(f"Flow failed to compile: {summary}")


@dataclass(frozen=True)
class CompileError:
    """One problem found while compiling.

    Attributes:
        code: Stable machine-readable code (e.g. MISSING_DEPENDENCY)
        message: Actionable description for authoring tools
        severity: ERROR blocks execution, WARNING does not
        stage_id: Stage the problem is attached to, if any
    """

    code: str
    message: str
    severity: CompileSeverity = "ERROR"
    stage_id: str | None = None


@dataclass
class CompileResult:
    """Compiled flow, or None when any ERROR was reported."""

    flow: CompiledFlow | None
    errors: list[CompileError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.flow is not None

    @property
    def warnings(self) -> list[CompileError]:
        return [e for e in self.errors if e.severity == "WARNING"]

    def unwrap(self) -> CompiledFlow:
        """Return the flow or raise FlowCompilationError."""
        if self.flow is None:
            raise FlowCompilationError(self.errors)
        return self.flow


# ============================================================================
# Public entry points
# ============================================================================


def compile_flow(document: DeclarativeDocument) -> CompileResult:
    """Compile a declarative (unlock-rule) document into an explicit FSM.

    Args:
        document: Validated declarative document

    Returns:
        CompileResult with the flow, or the full list of compile errors
    """
    errors: list[CompileError] = []
    stages = [_strip_unlock(stage) for stage in document.stages]
    _mark_explicit(stages)

    entry_id = _resolve_entry(document.stages, errors)
    dangling = _synthesize_edges(document.stages, stages, errors)
    _apply_defaults(stages)

    return _finish(
        item_id=document.item_id,
        atom_id=document.atom_id,
        entry_id=entry_id,
        stages=stages,
        errors=errors,
        already_reported=dangling,
    )


def compile_branching(document: BranchingDocument) -> CompileResult:
    """Compile a document whose transitions were authored explicitly.

    No unlock rules are involved; the entry comes from flow.entry_stage_id
    and missing transitions are defaulted exactly as in compile_flow.
    """
    errors: list[CompileError] = []
    stages = [stage.model_copy(deep=True) for stage in document.stages]
    _mark_explicit(stages)

    entry_id: str | None = document.flow.entry_stage_id
    if entry_id not in {stage.stage_id for stage in stages}:
        errors.append(
            CompileError(
                code=UNKNOWN_ENTRY_STAGE,
                message=f"Entry stage '{entry_id}' does not exist",
                stage_id=entry_id,
            )
        )
        entry_id = None

    _apply_defaults(stages)

    return _finish(
        item_id=document.item_id,
        atom_id=document.atom_id,
        entry_id=entry_id,
        stages=stages,
        errors=errors,
        already_reported=set(),
    )


# ============================================================================
# Passes
# ============================================================================


def _strip_unlock(stage: DeclarativeStage) -> Stage:
    return Stage.model_validate(stage.model_dump(exclude={"unlock_logic"}))


def _mark_explicit(stages: list[Stage]) -> None:
    for stage in stages:
        for option in stage.options:
            if option.next is not None and option.next_source is None:
                option.next_source = "explicit"


def _resolve_entry(stages: list[DeclarativeStage], errors: list[CompileError]) -> str | None:
    candidates = [
        stage.stage_id
        for stage in stages
        if stage.unlock_logic is None or stage.unlock_logic.show_when == "always"
    ]

    if not candidates:
        errors.append(
            CompileError(
                code=NO_ENTRY_STAGE,
                message="No entry stage found (expected one stage with show_when=always "
                "or no unlock_logic)",
            )
        )
        return None

    if len(candidates) > 1:
        errors.append(
            CompileError(
                code=AMBIGUOUS_ENTRY_STAGE,
                message=f"Ambiguous entry: {len(candidates)} stages have no dependency "
                f"({', '.join(candidates)})",
            )
        )
        return None

    return candidates[0]


def _synthesize_edges(
    declared: list[DeclarativeStage],
    stages: list[Stage],
    errors: list[CompileError],
) -> set[str]:
    """Wire unlock rules onto parent options.

    Returns:
        IDs of stages whose dependency is missing (already reported)
    """
    by_id = {stage.stage_id: stage for stage in stages}
    dangling: set[str] = set()

    for target in declared:
        rule = target.unlock_logic
        if rule is None or rule.show_when == "always":
            continue

        parent_id = rule.depends_on_stage_id
        parent = by_id.get(parent_id) if parent_id else None
        if parent is None:
            errors.append(
                CompileError(
                    code=MISSING_DEPENDENCY,
                    message=f"Orphan stage '{target.stage_id}' depends on missing "
                    f"stage '{parent_id}'",
                    stage_id=target.stage_id,
                )
            )
            dangling.add(target.stage_id)
            continue

        if rule.show_when == "after_stage_correct":
            source = "after_correct"
            candidates = [o for o in parent.options if parent.is_option_correct(o)]
            if not candidates:
                errors.append(
                    CompileError(
                        code=NO_CORRECT_OPTION,
                        message=f"Stage '{target.stage_id}' unlocks after '{parent.stage_id}' "
                        f"is correct, but '{parent.stage_id}' has no correct option",
                        severity="WARNING",
                        stage_id=target.stage_id,
                    )
                )
                continue
        else:
            source = "attempts_exceeded"
            candidates = [o for o in parent.options if not parent.is_option_correct(o)]

        unwired = [option for option in candidates if option.next is None]
        if not unwired:
            errors.append(
                CompileError(
                    code=UNLOCK_SHADOWED,
                    message=f"Unlock rule of '{target.stage_id}' has no free option on "
                    f"'{parent.stage_id}' to attach to",
                    severity="WARNING",
                    stage_id=target.stage_id,
                )
            )
            continue

        for option in unwired:
            option.next = GotoStage(target=target.stage_id)
            option.next_source = source

    return dangling


def _apply_defaults(stages: list[Stage]) -> None:
    for stage in stages:
        for option in stage.options:
            correct = stage.is_option_correct(option)
            if option.next is None:
                option.next = Exit(outcome="pass") if correct else Loop()
                option.next_source = "default"
            elif isinstance(option.next, Exit) and option.next.outcome is None:
                option.next = Exit(outcome="pass" if correct else "fail")


def _edges(stage: Stage) -> list[str]:
    return [
        option.next.target
        for option in stage.options
        if isinstance(option.next, GotoStage | Branch)
    ]


def _finish(
    *,
    item_id: str | None,
    atom_id: str | None,
    entry_id: str | None,
    stages: list[Stage],
    errors: list[CompileError],
    already_reported: set[str],
) -> CompileResult:
    by_id = {stage.stage_id: stage for stage in stages}

    for stage in stages:
        for target in _edges(stage):
            if target not in by_id:
                errors.append(
                    CompileError(
                        code=UNKNOWN_TRANSITION_TARGET,
                        message=f"Stage '{stage.stage_id}' transitions to unknown "
                        f"stage '{target}'",
                        stage_id=stage.stage_id,
                    )
                )

    if entry_id is not None:
        reachable = _reachable_from(entry_id, by_id)
        for stage in stages:
            if stage.stage_id in reachable or stage.stage_id in already_reported:
                continue
            errors.append(
                CompileError(
                    code=UNREACHABLE_STAGE,
                    message=f"Stage '{stage.stage_id}' is not reachable from entry "
                    f"stage '{entry_id}'",
                    stage_id=stage.stage_id,
                )
            )

    if entry_id is None or any(e.severity == "ERROR" for e in errors):
        logger.debug(f"Flow {item_id or '<unnamed>'} failed to compile: {len(errors)} issue(s)")
        return CompileResult(flow=None, errors=errors)

    flow = CompiledFlow(
        item_id=item_id,
        atom_id=atom_id,
        entry_stage_id=entry_id,
        stages=tuple(stages),
    )
    logger.debug(f"Compiled flow {item_id or '<unnamed>'}: {len(stages)} stages")
    return CompileResult(flow=flow, errors=errors)


def _reachable_from(entry_id: str, by_id: dict[str, Stage]) -> set[str]:
    seen = {entry_id}
    queue = deque([entry_id])
    while queue:
        stage = by_id.get(queue.popleft())
        if stage is None:
            continue
        for target in _edges(stage):
            if target in by_id and target not in seen:
                seen.add(target)
                queue.append(target)
    return seen
