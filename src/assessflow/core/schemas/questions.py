"""
Question Document Schemas

Single-stage question documents. Multi-stage documents live in `flow`.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator


class ChoiceOption(BaseModel):
    id: str = Field(min_length=1)
    text: str
    image_url: str | None = None


class MultipleChoiceDocument(BaseModel):
    """Single-select multiple choice question (multiple-choice v1)."""

    id: str | None = None
    type: Literal["multiple_choice", "MULTIPLE_CHOICE"] | None = None
    prompt: str
    options: list[ChoiceOption] = Field(min_length=2)
    correct_option_id: str
    explanation: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("prompt", mode="before")
    @classmethod
    def flatten_prompt(cls, v: Any) -> Any:
        """Accept either a plain string or a {"text": ...} object."""
        if isinstance(v, dict) and "text" in v:
            return v["text"]
        return v

    @model_validator(mode="after")
    def correct_option_present(self) -> "MultipleChoiceDocument":
        ids = [option.id for option in self.options]
        if len(set(ids)) != len(ids):
            raise ValueError("Option ids must be unique")
        if self.correct_option_id not in ids:
            raise ValueError(f"correct_option_id '{self.correct_option_id}' is not an option id")
        return self

    def get_option(self, option_id: str) -> ChoiceOption | None:
        for option in self.options:
            if option.id == option_id:
                return option
        return None
