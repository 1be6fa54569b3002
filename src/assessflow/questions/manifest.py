"""
Question Manifest

The blueprint for one version of one question type: data contract,
how the runtime executes it, and how its analytics are computed.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel

from assessflow.core.schemas.analytics import AnalyticsRecord, LogEntry, SessionContext

# How a validated document becomes an executable flow
#   single_choice - one stage, any answer exits
#   branching     - stages with explicit transitions
#   declarative   - stages with unlock rules, compiled by the flow compiler
RuntimeBinding = Literal["single_choice", "branching", "declarative"]

AnalyticsFn = Callable[[Any, Sequence[LogEntry], SessionContext], AnalyticsRecord]


@dataclass(frozen=True)
class Manifest:
    """One registered (type id, version).

    Attributes:
        id: Type id, e.g. 'multiple-choice'
        version: Positive integer version of this plugin
        name: Display name for authoring tools
        schema: Pydantic model validating documents of this type
        runtime_binding: How documents are turned into a flow
        analytics_fn: Pure (document, logs, context) -> AnalyticsRecord
        description: Longer description
    """

    id: str
    version: int
    name: str
    schema: type[BaseModel]
    runtime_binding: RuntimeBinding
    analytics_fn: AnalyticsFn
    description: str = ""

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Manifest id cannot be empty")
        if self.version < 1:
            raise ValueError(f"Manifest version must be >= 1 (got {self.version})")

    @property
    def key(self) -> str:
        return f"{self.id}:{self.version}"
