import asyncio

import orjson
import pytest

from Gaiabot.errors import LLMServiceError
from Gaiabot.fallback import CAPABILITIES
from Gaiabot.handler import ChatHandler
from Gaiabot.llm import LLMReply, RawToolCall
from Gaiabot.metrics import get_counter
from Gaiabot.planner import AgentOrchestrator
from Gaiabot.responder import ChatResponder
from Gaiabot.world_tools import WorldToolSet


class _FakeLLM:
    def __init__(self, *script):
        self._script = list(script)
        self.inputs: list[str] = []

    async def complete(self, messages, tools=None):  # noqa: ANN001
        self.inputs.append(messages[1]["content"])
        item = self._script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


class _RaisingOrchestrator:
    async def run(self, user_input):  # noqa: ANN001
        raise RuntimeError("planner exploded")


def _tool(name, arg):
    args = orjson.dumps({"input": arg}).decode()
    return LLMReply(content=None, tool_calls=[RawToolCall(id="c", name=name, arguments=args)])


def _handler(settings, world, llm, sent, orchestrator=None):
    responder = ChatResponder(sent.append, max_chars=settings.reply_max_chars)
    orch = orchestrator or AgentOrchestrator.from_settings(settings, llm, WorldToolSet(world))
    return ChatHandler(settings, world, responder, orch)


@pytest.mark.asyncio
async def test_exhausted_planner_falls_back_to_capabilities(settings, world):
    sent: list[str] = []
    llm = _FakeLLM(_tool("mine_block", "house"), _tool("mine_block", "house"), LLMReply("unused"))
    handler = _handler(settings, world, llm, sent)

    await handler.on_chat("Alex", "can you help me build a house")

    assert sent == [CAPABILITIES[:100]]
    assert len(sent[0]) == 100
    assert len(llm.inputs) == 2
    assert get_counter("chat.reply.fallback") == 1


@pytest.mark.asyncio
async def test_transport_fault_answers_what_can_you_do(settings, world):
    sent: list[str] = []
    llm = _FakeLLM(LLMServiceError("connect timeout", status="request_error"))
    handler = _handler(settings, world, llm, sent)

    await handler.on_chat("Alex", "what can you do")

    assert sent == ["I can mine, build, follow, check inventory, and help with Minecraft tasks!"]


@pytest.mark.asyncio
async def test_orchestrator_exception_gets_fault_reply(settings, world):
    sent: list[str] = []
    handler = _handler(settings, world, None, sent, orchestrator=_RaisingOrchestrator())
    await handler.on_chat("Alex", "dig a tunnel")
    assert sent == ["Sorry, I encountered an error processing that request!"]


@pytest.mark.asyncio
async def test_completed_answer_is_sent_with_player_context(settings, world):
    sent: list[str] = []
    llm = _FakeLLM(_tool("follow_player", "Alex"), LLMReply(content="Right behind you, Alex!"))
    handler = _handler(settings, world, llm, sent)

    await handler.on_chat("Alex", "Follow me please")

    assert sent == ["Right behind you, Alex!"]
    assert llm.inputs[0] == "Player Alex says: Follow me please"
    assert world.goal is not None


@pytest.mark.asyncio
async def test_successful_step_is_reported_when_budget_runs_out(settings, world):
    settings = settings.model_copy(update={"planner_fallback_from_steps": True})
    sent: list[str] = []
    llm = _FakeLLM(_tool("look_around", ""), _tool("follow_player", "Alex"))
    handler = _handler(settings, world, llm, sent)

    await handler.on_chat("Alex", "stay close")

    assert sent == ["Now following Alex."]


@pytest.mark.asyncio
async def test_thinking_notice_precedes_reply(settings, world):
    settings = settings.model_copy(update={"bot_thinking_notice": "Let me help you with that..."})
    sent: list[str] = []
    handler = _handler(settings, world, _FakeLLM(LLMReply(content="Hi!")), sent)

    await handler.on_chat("Alex", "hello")

    assert sent == ["Let me help you with that...", "Hi!"]


@pytest.mark.asyncio
async def test_fast_path_never_reaches_planner(settings, world):
    sent: list[str] = []
    llm = _FakeLLM()
    handler = _handler(settings, world, llm, sent)

    await handler.on_chat("Alex", "!stop")

    assert sent == ["Okay, stopping all movement."]
    assert llm.inputs == []


@pytest.mark.asyncio
async def test_own_messages_are_ignored(settings, world):
    sent: list[str] = []
    handler = _handler(settings, world, _FakeLLM(), sent)
    assert handler.on_chat("Gaiabot", "!inventory") is None
    assert sent == []


@pytest.mark.asyncio
async def test_messages_before_startup_are_dropped(settings, world):
    sent: list[str] = []
    handler = ChatHandler(settings, world, ChatResponder(sent.append))
    assert not handler.ready
    assert handler.on_chat("Alex", "!inventory") is None
    assert sent == []
    assert get_counter("chat.dropped.not_ready") == 1


@pytest.mark.asyncio
async def test_concurrent_messages_run_as_independent_tasks(settings, world):
    sent: list[str] = []
    handler = _handler(settings, world, _FakeLLM(), sent)

    t1 = handler.on_chat("Alex", "!follow me")
    t2 = handler.on_chat("Alex", "!stop")
    assert t1 is not t2
    await asyncio.gather(t1, t2)

    assert sorted(sent) == ["Following you!", "Okay, stopping all movement."]


@pytest.mark.asyncio
async def test_serialized_mode_handles_in_arrival_order(settings, world):
    settings = settings.model_copy(update={"chat_serialize_messages": True})
    sent: list[str] = []
    handler = _handler(settings, world, _FakeLLM(), sent)

    handler.on_chat("Alex", "!follow me")
    handler.on_chat("Alex", "!stop")
    await handler.join()
    await handler.close()

    assert sent == ["Following you!", "Okay, stopping all movement."]
    assert world.goal is None


@pytest.mark.asyncio
async def test_budget_exhausted_after_successful_tools_uses_keyword_reply(settings, world):
    assert settings.planner_fallback_from_steps is False
    sent: list[str] = []
    llm = _FakeLLM(_tool("look_around", ""), _tool("check_inventory", ""), LLMReply("unused"))
    handler = _handler(settings, world, llm, sent)

    await handler.on_chat("Alex", "can you help me build a house")

    assert sent == [CAPABILITIES[:100]]
    assert len(llm.inputs) == 2


@pytest.mark.asyncio
async def test_serialized_worker_restarts_after_close(settings, world):
    settings = settings.model_copy(update={"chat_serialize_messages": True})
    sent: list[str] = []
    handler = _handler(settings, world, _FakeLLM(), sent)

    first = handler.on_chat("Alex", "!inv")
    await handler.join()
    await handler.close()
    assert first.done()

    second = handler.on_chat("Alex", "!stop")
    assert second is not first
    await handler.join()
    await handler.close()

    assert sent == ["I have nothing right now.", "Okay, stopping all movement."]
