"""Heuristic replies for planner runs that did not finish with an answer.

Both functions are pure: the same command (and status) always yields the same
text. The replies are a guess about what the planner was attempting, not a
confirmation that any action happened.
"""

from __future__ import annotations

from Gaiabot.planner_schemas import PlannerRun, PlannerStatus

STOPPED = "Okay, I've stopped following you!"
FOLLOWING = "I'll start following you now!"
MINING = "I'll look for that block to mine!"
COMING = "Coming to you!"
INVENTORY = "Let me check my inventory for you!"
CAPABILITIES = (
    "I understand! I can mine blocks, build, follow you, check my inventory, "
    "and help with various Minecraft tasks."
)

FAULT_CAPABILITIES = "I can mine, build, follow, check inventory, and help with Minecraft tasks!"
FAULT_APOLOGY = "Sorry, I encountered an error processing that request!"

# Checked in order; the first rule with any keyword contained in the command wins
_KEYWORD_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("stop", "following"), STOPPED),
    (("follow",), FOLLOWING),
    (("mine",), MINING),
    (("come", "here"), COMING),
    (("inventory",), INVENTORY),
)


def fallback_reply(command: str, status: PlannerStatus | None = None) -> str:
    """Keyword guess for a run that ended without a final answer.

    ``status`` is accepted for routing symmetry; every non-completed status is
    answered from the command text alone.
    """
    for keywords, reply in _KEYWORD_RULES:
        if any(k in command for k in keywords):
            return reply
    return CAPABILITIES


def fault_reply(command: str) -> str:
    """Reply for a run that raised before producing any status."""
    if "what" in command and ("can" in command or "do" in command):
        return FAULT_CAPABILITIES
    return FAULT_APOLOGY


def synthesize_reply(command: str, run: PlannerRun, *, from_steps: bool = False) -> str:
    """Choose the reply text for a finished run.

    Completed runs answer with their output. With ``from_steps`` on, a run cut
    short after a successful tool call reports that tool's own result.
    """
    if run.status is PlannerStatus.COMPLETED and run.output:
        return run.output
    if run.status is PlannerStatus.FAULTED:
        return fault_reply(command)
    if from_steps:
        done = [s for s in run.steps if s.ok]
        if done:
            return done[-1].result
    return fallback_reply(command, run.status)
