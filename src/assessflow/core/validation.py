"""
Structural validation for question documents.

All validation follows the pattern:
1. Accept a raw JSON-shaped document
2. Parse it against the question type's pydantic schema
3. Convert every schema violation into a CRITICAL issue
4. Add non-blocking WARNING issues for suspicious but legal content

Cross-stage references (dependencies, transition targets) are checked by
the flow compiler, not here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, Literal, TypeVar

import pydantic
from pydantic import BaseModel

from assessflow.core.schemas.flow import BranchingDocument, DeclarativeDocument, Stage

Severity = Literal["CRITICAL", "WARNING"]

DocumentT = TypeVar("DocumentT", bound=BaseModel)


class ValidationError(Exception):
    """Raised when a document fails structural validation."""

    def __init__(self, message: str, issues: list[ValidationIssue] | None = None):
        super().__init__(message)
        self.issues = issues or []


@dataclass(frozen=True)
class ValidationIssue:
    """One problem found in a document.

    Attributes:
        path: Dotted field path (e.g. 'stages.0.prompt.text'), '$' for the root
        message: Human readable description
        severity: CRITICAL blocks acceptance, WARNING does not
    """

    path: str
    message: str
    severity: Severity = "CRITICAL"


@dataclass
class ValidationResult(Generic[DocumentT]):
    """Outcome of validating one raw document."""

    document: DocumentT | None
    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.document is not None

    @property
    def critical(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "CRITICAL"]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "WARNING"]

    def unwrap(self) -> DocumentT:
        """Return the typed document or raise ValidationError."""
        if self.document is None:
            summary = "; ".join(f"{i.path}: {i.message}" for i in self.critical)
            raise ValidationError(f"Invalid document: {summary}", self.issues)
        return self.document


# ============================================================================
# Entry point
# ============================================================================


def validate_document(schema: type[DocumentT], raw: Any) -> ValidationResult[DocumentT]:
    """
    Validate a raw document against a question type schema.

    Args:
        schema: Pydantic model class for the question type
        raw: Raw JSON-shaped document

    Returns:
        ValidationResult with the typed document (None if any CRITICAL issue)
        and every issue found
    """
    if not isinstance(raw, dict):
        return ValidationResult(
            document=None,
            issues=[ValidationIssue(path="$", message="Document must be a JSON object")],
        )

    try:
        document = schema.model_validate(raw)
    except pydantic.ValidationError as e:
        return ValidationResult(document=None, issues=_issues_from_pydantic(e))

    issues = _unknown_key_warnings(schema, raw)
    issues.extend(_content_warnings(document))
    return ValidationResult(document=document, issues=issues)


def _format_path(loc: tuple[int | str, ...]) -> str:
    if not loc:
        return "$"
    return ".".join(str(part) for part in loc)


def _issues_from_pydantic(error: pydantic.ValidationError) -> list[ValidationIssue]:
    issues = []
    for detail in error.errors():
        loc = tuple(detail["loc"])
        issues.append(ValidationIssue(path=_format_path(loc), message=detail["msg"]))
    return issues


# ============================================================================
# Warnings
# ============================================================================


def _unknown_key_warnings(schema: type[BaseModel], raw: dict[str, Any]) -> list[ValidationIssue]:
    known = set(schema.model_fields)
    # Routing keys consumed before validation
    known.update({"meta", "template", "template_id"})
    return [
        ValidationIssue(path=key, message="Unknown field is ignored", severity="WARNING")
        for key in raw
        if key not in known
    ]


def _content_warnings(document: BaseModel) -> list[ValidationIssue]:
    if isinstance(document, BranchingDocument | DeclarativeDocument):
        return _stage_warnings(document.stages)
    return []


def _stage_warnings(stages: list[Stage]) -> list[ValidationIssue]:
    issues = []
    for index, stage in enumerate(stages):
        if not any(stage.is_option_correct(option) for option in stage.options):
            issues.append(
                ValidationIssue(
                    path=f"stages.{index}.interaction.config.options",
                    message=f"Stage '{stage.stage_id}' has no correct option",
                    severity="WARNING",
                )
            )
        answer_id = stage.answer_key.correct_option_id
        if answer_id is not None and stage.get_option(answer_id) is None:
            issues.append(
                ValidationIssue(
                    path=f"stages.{index}.answer_key.correct_option_id",
                    message=f"Answer key names unknown option '{answer_id}'",
                    severity="WARNING",
                )
            )
        for opt_index, option in enumerate(stage.options):
            if not option.feedback:
                issues.append(
                    ValidationIssue(
                        path=f"stages.{index}.interaction.config.options.{opt_index}.feedback",
                        message=f"Option '{option.id}' has no feedback",
                        severity="WARNING",
                    )
                )
    return issues
