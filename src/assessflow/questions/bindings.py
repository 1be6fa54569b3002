"""
Runtime bindings: validated document -> compiled flow.

Every question type runs on the same stage executor. Single-choice
questions become a one-stage flow; branching and declarative documents go
through the flow compiler so that all transition defaulting happens in
one place.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from assessflow.core.schemas.flow import (
    BranchingDocument,
    DeclarativeDocument,
    Exit,
    FlowSettings,
    Interaction,
    InteractionConfig,
    Option,
    Prompt,
    Stage,
)
from assessflow.core.schemas.questions import MultipleChoiceDocument
from assessflow.flow.compiler import CompileResult, compile_branching, compile_flow
from assessflow.questions.manifest import Manifest, RuntimeBinding

SINGLE_STAGE_ID = "main"


def single_choice_flow(document: MultipleChoiceDocument) -> CompileResult:
    """Wrap a single-choice question as a one-stage flow where any answer exits."""
    options = [
        Option(
            id=choice.id,
            text=choice.text,
            is_correct=choice.id == document.correct_option_id,
            # Outcome is filled from correctness by the compiler
            next=Exit(),
        )
        for choice in document.options
    ]
    stage = Stage(
        stage_id=SINGLE_STAGE_ID,
        intent="INITIAL",
        prompt=Prompt(text=document.prompt),
        interaction=Interaction(type="mcq_concept", config=InteractionConfig(options=options)),
    )
    wrapped = BranchingDocument(
        item_id=document.id,
        atom_id=document.metadata.get("atom_id"),
        flow=FlowSettings(entry_stage_id=SINGLE_STAGE_ID),
        stages=[stage],
    )
    return compile_branching(wrapped)


_BUILDERS: dict[RuntimeBinding, Callable[[Any], CompileResult]] = {
    "single_choice": single_choice_flow,
    "branching": compile_branching,
    "declarative": compile_flow,
}

_DOCUMENT_TYPES: dict[RuntimeBinding, type] = {
    "single_choice": MultipleChoiceDocument,
    "branching": BranchingDocument,
    "declarative": DeclarativeDocument,
}


def build_flow(manifest: Manifest, document: Any) -> CompileResult:
    """Build the executable flow for a validated document.

    Args:
        manifest: Manifest the document was validated against
        document: Instance of manifest.schema

    Returns:
        CompileResult from the binding's compiler

    Raises:
        TypeError: If the document does not match the binding
    """
    expected = _DOCUMENT_TYPES[manifest.runtime_binding]
    if not isinstance(document, expected):
        raise TypeError(
            f"{manifest.key} binding '{manifest.runtime_binding}' expects "
            f"{expected.__name__}, got {type(document).__name__}"
        )
    return _BUILDERS[manifest.runtime_binding](document)
