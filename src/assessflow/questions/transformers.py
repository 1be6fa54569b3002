"""
Question transformers.

Convert documents from older or authoring-only shapes into the document
shape of a registered question type.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from assessflow.core.schemas.flow import DeclarativeDocument
from assessflow.core.validation import validate_document
from assessflow.flow.compiler import compile_flow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransformResult:
    """Outcome of one transformation.

    Attributes:
        success: Whether data holds a usable document
        data: Transformed JSON-shaped document
        error: Reason for failure
    """

    success: bool
    data: dict[str, Any] | None = None
    error: str | None = None


@dataclass(frozen=True)
class QuestionTransformer:
    id: str
    source_type: str
    target_type: str
    description: str
    transform: Callable[[Any], TransformResult]


def _resolve_correct_option(raw: dict[str, Any], options: list[dict[str, Any]]) -> str | None:
    # A: explicit id
    if raw.get("correct_option_id"):
        return str(raw["correct_option_id"])

    # B: answer given as option text or id
    answer = raw.get("answer")
    if isinstance(answer, str):
        for option in options:
            if answer in (option["text"], option["id"]):
                return str(option["id"])
        return None

    # C: index based
    index = raw.get("correct_option_index")
    if isinstance(index, int):
        return str(options[index]["id"]) if 0 <= index < len(options) else None

    # D: per-option flag
    for original, option in zip(raw["options"], options):
        if isinstance(original, dict) and original.get("is_correct") is True:
            return str(option["id"])
    return None


def legacy_to_multiple_choice(raw: Any) -> TransformResult:
    """Convert an unstructured legacy MCQ object into a multiple-choice v1 document."""
    if not isinstance(raw, dict) or not isinstance(raw.get("options"), list):
        return TransformResult(success=False, error="Source is missing an options array")

    options = []
    for index, option in enumerate(raw["options"]):
        if isinstance(option, str):
            options.append({"id": f"opt_{index}", "text": option})
        elif not isinstance(option, dict):
            return TransformResult(
                success=False,
                error=f"Option {index} must be a string or an object, "
                f"got {type(option).__name__}",
            )
        else:
            options.append(
                {
                    "id": str(option.get("id") or f"opt_{index}"),
                    "text": str(option.get("text", "")),
                    "image_url": option.get("image_url"),
                }
            )

    correct_option_id = _resolve_correct_option(raw, options)
    if correct_option_id is None:
        return TransformResult(
            success=False, error="Could not resolve correct_option_id from legacy data"
        )

    prompt = raw.get("question") or raw.get("prompt") or raw.get("text") or "No Prompt Found"
    if isinstance(prompt, dict):
        prompt = prompt.get("text", "No Prompt Found")

    data = {
        "id": raw.get("id"),
        "type": "multiple_choice",
        "prompt": prompt,
        "options": options,
        "correct_option_id": correct_option_id,
        "explanation": raw.get("explanation") or raw.get("solution") or "",
        "metadata": {"original_id": raw.get("id"), "source": "legacy_migration"},
    }
    return TransformResult(success=True, data=data)


def declarative_to_branching(raw: Any) -> TransformResult:
    """Compile a declarative document and emit it as an mcq-branching v1 document."""
    validation = validate_document(DeclarativeDocument, raw)
    if validation.document is None:
        issues = "; ".join(f"{i.path}: {i.message}" for i in validation.critical)
        return TransformResult(success=False, error=f"Invalid declarative document: {issues}")

    result = compile_flow(validation.document)
    if result.flow is None:
        messages = "; ".join(e.message for e in result.errors if e.severity == "ERROR")
        return TransformResult(success=False, error=messages)

    flow = result.flow
    data = {
        "item_id": flow.item_id,
        "atom_id": flow.atom_id,
        "flow": {
            "mode": "branching",
            "entry_stage_id": flow.entry_stage_id,
            "return_behavior": "reload_with_new_vars",
        },
        "stages": [stage.model_dump(exclude_none=True) for stage in flow.stages],
    }
    logger.info(f"Compiled declarative item {flow.item_id or '<unnamed>'} to mcq-branching")
    return TransformResult(success=True, data=data)


TRANSFORMERS: dict[str, QuestionTransformer] = {
    t.id: t
    for t in (
        QuestionTransformer(
            id="legacy-mcq-to-v1",
            source_type="legacy",
            target_type="multiple-choice:1",
            description="Converts unstructured legacy MCQ objects into the multiple-choice v1 "
            "schema",
            transform=legacy_to_multiple_choice,
        ),
        QuestionTransformer(
            id="declarative-to-branching",
            source_type="mcq-declarative:1",
            target_type="mcq-branching:1",
            description="Compiles unlock rules into an executable branching flow",
            transform=declarative_to_branching,
        ),
    )
}
