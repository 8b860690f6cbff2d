# src/Gaiabot/commanding.py
from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol

from Gaiabot.world import WorldActionExecutor


# --- Inbound chat event ---
@dataclass(frozen=True)
class ChatMessage:
    sender: str
    text: str
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def command(self) -> str:
        return normalize_command(self.text)


def normalize_command(text: str) -> str:
    """Lower-cased, trimmed view of a chat line used for all matching."""
    return (text or "").lower().strip()


# --- Transport-agnostic context the handler receives ---
class Responder(Protocol):
    async def send(self, content: str) -> None: ...


@dataclass
class Invocation:
    message: ChatMessage
    command: str
    argument: str
    world: WorldActionExecutor
    responder: Responder


# --- Command descriptor ---
@dataclass
class ChatCommand:
    name: str
    description: str
    handler: Callable[[Invocation], Awaitable[None]]
    literals: tuple[str, ...] = ()
    prefix: str | None = None
    priority: int = 100

    def match(self, command: str) -> str | None:
        """Return the argument when ``command`` matches, else None."""
        if command in self.literals:
            return ""
        if self.prefix is not None and command.startswith(self.prefix + " "):
            arg = command[len(self.prefix) + 1 :].strip()
            return arg or None
        return None


# --- Global registry (populated by decorator) ---
_REGISTRY: dict[str, ChatCommand] = {}


def chat_command(
    name: str,
    description: str,
    *,
    literals: tuple[str, ...] = (),
    prefix: str | None = None,
    priority: int = 100,
):
    if not literals and prefix is None:
        raise ValueError(f"Command '{name}' needs literals or a prefix")

    def wrap(func: Callable[[Invocation], Awaitable[None]]):
        _REGISTRY[name] = ChatCommand(name, description, func, tuple(literals), prefix, priority)
        return func

    return wrap


def all_commands() -> dict[str, ChatCommand]:
    return dict(_REGISTRY)


def match_command(command: str) -> tuple[ChatCommand, str] | None:
    """First registered command matching ``command`` in priority order."""
    for cmd in sorted(_REGISTRY.values(), key=lambda c: (c.priority, c.name)):
        arg = cmd.match(command)
        if arg is not None:
            return cmd, arg
    return None
