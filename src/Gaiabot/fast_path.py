"""Deterministic chat commands that bypass the planner."""

from __future__ import annotations

import structlog

from Gaiabot.command_loader import load_all_commands
from Gaiabot.commanding import ChatMessage, Invocation, Responder, all_commands, match_command
from Gaiabot.fallback import FAULT_APOLOGY
from Gaiabot.logging import log_event
from Gaiabot.metrics import inc_counter
from Gaiabot.world import WorldActionExecutor

log = structlog.get_logger()


def _ensure_loaded() -> None:
    if not all_commands():
        load_all_commands()


async def try_fast_path(
    message: ChatMessage,
    world: WorldActionExecutor,
    responder: Responder,
) -> bool:
    """Handle ``message`` if it is a fast-path command.

    Returns True when the message was handled (a reply has been sent, even if
    only to explain a failed precondition) and False when it should go to the
    planner.
    """
    _ensure_loaded()
    command = message.command
    matched = match_command(command)
    if matched is None:
        return False

    cmd, argument = matched
    inc_counter(f"fast_path.{cmd.name}")
    log_event("fast_path", "matched", command=cmd.name, argument=argument)
    inv = Invocation(
        message=message,
        command=command,
        argument=argument,
        world=world,
        responder=responder,
    )
    try:
        await cmd.handler(inv)
    except Exception:
        inc_counter("fast_path.failed")
        log.error("fast_path.failed", command=cmd.name, exc_info=True)
        await responder.send(FAULT_APOLOGY)
    return True
