import pytest

from Gaiabot.fallback import (
    CAPABILITIES,
    FAULT_APOLOGY,
    FAULT_CAPABILITIES,
    fallback_reply,
    fault_reply,
    synthesize_reply,
)
from Gaiabot.planner_schemas import PlannerRun, PlannerStatus, PlannerStep
from Gaiabot.tool_registry import ToolName


@pytest.mark.parametrize(
    "command,expected",
    [
        ("please stop", "Okay, I've stopped following you!"),
        # "following" wins over "follow" because the stop rule is checked first
        ("are you following me", "Okay, I've stopped following you!"),
        ("follow me around", "I'll start following you now!"),
        ("mine that iron", "I'll look for that block to mine!"),
        ("come over", "Coming to you!"),
        ("over here", "Coming to you!"),
        ("show inventory", "Let me check my inventory for you!"),
        ("can you help me build a house", CAPABILITIES),
    ],
)
def test_keyword_precedence(command, expected):
    assert fallback_reply(command) == expected


def test_fallback_is_pure():
    for status in PlannerStatus:
        first = fallback_reply("mine and come here", status)
        assert first == fallback_reply("mine and come here", status)
        assert first == "I'll look for that block to mine!"


@pytest.mark.parametrize(
    "command,expected",
    [
        ("what can you do", FAULT_CAPABILITIES),
        ("what do you do", FAULT_CAPABILITIES),
        ("what is that", FAULT_APOLOGY),
        ("can you do it", FAULT_APOLOGY),
    ],
)
def test_fault_reply(command, expected):
    assert fault_reply(command) == expected


def _run(status, steps=(), output=None):
    return PlannerRun(
        input="x", max_iterations=2, steps=list(steps), status=status, output=output
    )


def test_synthesize_prefers_completed_output():
    run = _run(PlannerStatus.COMPLETED, output="Done!")
    assert synthesize_reply("mine stone", run) == "Done!"


def test_synthesize_fault_uses_fault_reply():
    run = _run(PlannerStatus.FAULTED)
    assert synthesize_reply("what can you do", run) == FAULT_CAPABILITIES


def test_synthesize_reports_last_successful_step():
    steps = [
        PlannerStep(ToolName.MINE_BLOCK, "stone", "Could not find any stone blocks", False),
        PlannerStep(ToolName.FOLLOW_PLAYER, "Alex", "Now following Alex.", True),
    ]
    run = _run(PlannerStatus.MAX_ITERATIONS_EXCEEDED, steps)
    assert synthesize_reply("do a thing", run, from_steps=True) == "Now following Alex."
    assert synthesize_reply("do a thing", run) == CAPABILITIES


def test_synthesize_ignores_failed_steps():
    steps = [PlannerStep(ToolName.MINE_BLOCK, "stone", "Failed to mine stone: x", False)]
    run = _run(PlannerStatus.MAX_ITERATIONS_EXCEEDED, steps)
    reply = synthesize_reply("mine stone", run, from_steps=True)
    assert reply == "I'll look for that block to mine!"


def test_synthesize_parse_error_uses_keywords():
    run = _run(PlannerStatus.PARSE_ERROR)
    assert synthesize_reply("check inventory", run) == "Let me check my inventory for you!"
