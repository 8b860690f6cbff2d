"""Models for one bounded planner run."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from Gaiabot.tool_registry import ToolName


class PlannerStatus(str, Enum):
    COMPLETED = "completed"
    MAX_ITERATIONS_EXCEEDED = "max_iterations_exceeded"
    PARSE_ERROR = "parse_error"
    FAULTED = "faulted"


class ToolCallRequest(BaseModel):
    """Validated tool call extracted from a model reply.

    - tool: one of the closed set of tool names
    - argument: the single free-form string argument ("" when omitted)
    - call_id: id echoed back in the tool result message
    """

    tool: ToolName
    argument: str = ""
    call_id: str = Field(default="call_0", min_length=1)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("argument", mode="before")
    @classmethod
    def _coerce_argument(cls, v):
        if v is None:
            return ""
        if isinstance(v, int | float | bool):
            return str(v)
        return v


@dataclass(frozen=True)
class PlannerStep:
    tool_name: ToolName
    argument: str
    result: str
    ok: bool


@dataclass
class PlannerRun:
    input: str
    max_iterations: int
    steps: list[PlannerStep] = field(default_factory=list)
    status: PlannerStatus | None = None
    output: str | None = None
    # Diagnostics; parse errors count toward iterations but add no step
    iterations: int = 0
    parse_errors: int = 0
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is PlannerStatus.COMPLETED and bool(self.output)
