"""
Flow Pydantic Schemas

Stages, options, transitions and unlock rules for multi-stage questions,
plus the compiled flow the runtime executes.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

StageIntent = Literal[
    "INITIAL",
    "REPAIR_CONCEPT",
    "REPAIR_VISUAL",
    "REPAIR_PROCEDURE",
    "SCAFFOLDED_PRACTICE",
    "TRANSFER",
]

REPAIR_INTENTS: frozenset[str] = frozenset(
    {"REPAIR_CONCEPT", "REPAIR_VISUAL", "REPAIR_PROCEDURE"}
)

InteractionType = Literal["mcq_concept", "mcq_procedural"]

Outcome = Literal["pass", "fail"]

# Which compiler rule produced an option's `next`
NextSource = Literal["explicit", "after_correct", "attempts_exceeded", "default"]


# ============================================================================
# Transitions
# ============================================================================


class GotoStage(BaseModel):
    """Move to an explicitly named stage."""

    model_config = ConfigDict(frozen=True)

    type: Literal["goto_stage"] = "goto_stage"
    target: str


class Branch(BaseModel):
    """Move to a named stage (authored as a branch rather than a step)."""

    model_config = ConfigDict(frozen=True)

    type: Literal["branch"] = "branch"
    target: str


class Loop(BaseModel):
    """Stay on the current stage and retry."""

    model_config = ConfigDict(frozen=True)

    type: Literal["loop"] = "loop"


class Exit(BaseModel):
    """Terminate the flow.

    `outcome` may be omitted in authored documents; the compiler fills it
    from the option's correctness.
    """

    model_config = ConfigDict(frozen=True)

    type: Literal["exit"] = "exit"
    outcome: Outcome | None = None


StageAction = Annotated[GotoStage | Branch | Loop | Exit, Field(discriminator="type")]


# ============================================================================
# Stage building blocks
# ============================================================================


class Prompt(BaseModel):
    text: str
    latex: str | None = None
    media_ref: str | None = None


class Option(BaseModel):
    """One selectable answer of a choice-based stage."""

    id: str = Field(min_length=1)
    text: str
    latex: str | None = None
    is_correct: bool | None = None
    feedback: str | None = None
    diagnostic: str | None = None
    next: StageAction | None = None
    next_source: NextSource | None = None


class InteractionConfig(BaseModel):
    options: list[Option] = Field(min_length=1)
    shuffle: bool = False
    single_select: bool = True

    @model_validator(mode="after")
    def unique_option_ids(self) -> InteractionConfig:
        seen: set[str] = set()
        for option in self.options:
            if option.id in seen:
                raise ValueError(f"Duplicate option id '{option.id}'")
            seen.add(option.id)
        return self


class Interaction(BaseModel):
    type: InteractionType
    config: InteractionConfig


class AnswerKey(BaseModel):
    correct_option_id: str | None = None
    key_points: list[str] = Field(default_factory=list)


class UnlockRule(BaseModel):
    """Declarative visibility rule consumed by the compiler."""

    show_when: Literal["always", "after_stage_correct", "after_stage_attempts_exceeded"]
    depends_on_stage_id: str | None = None

    @model_validator(mode="after")
    def dependency_required(self) -> UnlockRule:
        if self.show_when != "always" and not self.depends_on_stage_id:
            raise ValueError(f"show_when='{self.show_when}' requires depends_on_stage_id")
        return self


class Stage(BaseModel):
    """One screen of a multi-step question."""

    stage_id: str = Field(min_length=1)
    intent: StageIntent | None = None
    prompt: Prompt
    instruction: str | None = None
    interaction: Interaction
    answer_key: AnswerKey = Field(default_factory=AnswerKey)

    @property
    def options(self) -> list[Option]:
        return self.interaction.config.options

    def get_option(self, option_id: str) -> Option | None:
        for option in self.options:
            if option.id == option_id:
                return option
        return None

    def is_option_correct(self, option: Option) -> bool:
        """An option is correct if flagged, or if the answer key names it."""
        if option.is_correct:
            return True
        return (
            self.answer_key.correct_option_id is not None
            and option.id == self.answer_key.correct_option_id
        )

    @property
    def is_repair(self) -> bool:
        if self.intent in REPAIR_INTENTS:
            return True
        return self.stage_id.startswith("R_") or "REPAIR" in self.stage_id.upper()


class DeclarativeStage(Stage):
    """Stage as authored, carrying an unlock rule instead of resolved edges."""

    unlock_logic: UnlockRule | None = None

    @model_validator(mode="before")
    @classmethod
    def normalize_authored_stage(cls, data: Any) -> Any:
        """Accept stages as exported by the curriculum authoring format.

        `interaction.type` defaults to mcq_concept, and an option
        `diagnostic` given as {misconception_id, confidence} is reduced to
        its misconception_id.
        """
        if not isinstance(data, dict) or not isinstance(data.get("interaction"), dict):
            return data

        interaction = {"type": "mcq_concept", **data["interaction"]}
        config = interaction.get("config")
        if isinstance(config, dict) and isinstance(config.get("options"), list):
            interaction["config"] = {
                **config,
                "options": [_flatten_diagnostic(option) for option in config["options"]],
            }
        return {**data, "interaction": interaction}


def _flatten_diagnostic(option: Any) -> Any:
    if isinstance(option, dict) and isinstance(option.get("diagnostic"), dict):
        return {**option, "diagnostic": option["diagnostic"].get("misconception_id")}
    return option


def _check_unique_stage_ids(stages: list[Stage]) -> None:
    seen: set[str] = set()
    for stage in stages:
        if stage.stage_id in seen:
            raise ValueError(f"Duplicate stage_id '{stage.stage_id}'")
        seen.add(stage.stage_id)


# ============================================================================
# Documents
# ============================================================================


class FlowSettings(BaseModel):
    mode: Literal["branching"] = "branching"
    entry_stage_id: str
    return_behavior: Literal["reload_with_new_vars", "static"] | None = None


class DeclarativeDocument(BaseModel):
    """Multi-stage question authored with unlock rules (compiler input)."""

    item_id: str | None = None
    atom_id: str | None = None
    difficulty: int | None = None
    context_tags: list[str] = Field(default_factory=list)
    stages: list[DeclarativeStage] = Field(min_length=1)

    @model_validator(mode="after")
    def unique_stage_ids(self) -> DeclarativeDocument:
        _check_unique_stage_ids(self.stages)
        return self


class BranchingDocument(BaseModel):
    """Multi-stage question authored with explicit transitions."""

    item_id: str | None = None
    atom_id: str | None = None
    flow: FlowSettings
    stages: list[Stage] = Field(min_length=1)

    @model_validator(mode="after")
    def unique_stage_ids(self) -> BranchingDocument:
        _check_unique_stage_ids(self.stages)
        return self


class CompiledFlow(BaseModel):
    """Executable FSM: one entry stage, every option resolved."""

    model_config = ConfigDict(frozen=True)

    item_id: str | None = None
    atom_id: str | None = None
    entry_stage_id: str
    stages: tuple[Stage, ...]

    def get_stage(self, stage_id: str) -> Stage | None:
        for stage in self.stages:
            if stage.stage_id == stage_id:
                return stage
        return None

    @property
    def stage_ids(self) -> list[str]:
        return [stage.stage_id for stage in self.stages]
