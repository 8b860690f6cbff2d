from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ToolName(str, Enum):
    """Closed set of world-action tools the planner may select."""

    MINE_BLOCK = "mine_block"
    PLACE_BLOCK = "place_block"
    FOLLOW_PLAYER = "follow_player"
    GO_TO_PLAYER = "go_to_player"
    STOP_MOVEMENT = "stop_movement"
    CHECK_INVENTORY = "check_inventory"
    LOOK_AROUND = "look_around"

    @classmethod
    def parse(cls, raw: str | None) -> ToolName | None:
        """Resolve a model-supplied name; unknown names yield None."""
        if not raw:
            return None
        try:
            return cls(raw.strip())
        except ValueError:
            return None


@dataclass(frozen=True)
class ToolResult:
    """Outcome of one tool attempt; ``text`` is always user-readable."""

    ok: bool
    text: str

    def __str__(self) -> str:
        return self.text


ToolHandler = Callable[[str], Awaitable[ToolResult]]


@dataclass(frozen=True)
class ToolSpec:
    name: ToolName
    description: str
    argument: str | None
    handler: ToolHandler

    def openai_schema(self) -> dict[str, Any]:
        """OpenAI-compatible function spec with a single string ``input``."""
        properties: dict[str, Any] = {}
        required: list[str] = []
        if self.argument is not None:
            properties["input"] = {"type": "string", "description": self.argument}
            required.append("input")
        return {
            "type": "function",
            "function": {
                "name": self.name.value,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": properties,
                    "required": required,
                },
            },
        }


class ToolRegistry:
    """Immutable mapping of ToolName -> ToolSpec, built once at startup."""

    def __init__(self, specs: list[ToolSpec]) -> None:
        tools: dict[ToolName, ToolSpec] = {}
        for spec in specs:
            if spec.name in tools:
                raise ValueError(f"Tool '{spec.name.value}' is already registered.")
            tools[spec.name] = spec
        missing = [n.value for n in ToolName if n not in tools]
        if missing:
            raise ValueError(f"Tool registry is missing handlers for: {', '.join(missing)}")
        self._tools = tools

    def list_tools(self) -> list[ToolSpec]:
        return list(self._tools.values())

    def get(self, name: ToolName) -> ToolSpec:
        return self._tools[name]

    def openai_tools(self) -> list[dict[str, Any]]:
        return [spec.openai_schema() for spec in self._tools.values()]

    def catalog(self) -> list[dict[str, Any]]:
        return [
            {"name": spec.name.value, "description": spec.description, "argument": spec.argument}
            for spec in self._tools.values()
        ]
