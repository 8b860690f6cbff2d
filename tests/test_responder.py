import asyncio

import pytest

from Gaiabot.metrics import get_counter
from Gaiabot.responder import ChatResponder, format_reply


@pytest.mark.parametrize("limit", [1, 10, 100])
def test_format_reply_never_exceeds_limit(limit):
    text = "x" * 250
    assert len(format_reply(text, limit)) == limit


def test_format_reply_short_text_unchanged():
    assert format_reply("Coming to you!", 100) == "Coming to you!"
    assert format_reply("a" * 100, 100) == "a" * 100
    assert format_reply(format_reply("b" * 150, 100), 100) == "b" * 100


def test_format_reply_does_not_respect_word_boundaries():
    text = "I understand! I can mine blocks, build, follow you, check my inventory, and help with various Minecraft tasks."
    out = format_reply(text, 100)
    assert out == text[:100]
    assert out.endswith("various Minecr")


@pytest.mark.asyncio
async def test_sync_sink_receives_truncated_text():
    sent = []
    responder = ChatResponder(sent.append, max_chars=5)
    await responder.send("hello world")
    assert sent == ["hello"]
    assert get_counter("chat.reply.truncated") == 1


@pytest.mark.asyncio
async def test_async_sink_is_fire_and_forget():
    sent = []
    gate = asyncio.Event()

    async def sink(text):
        await gate.wait()
        sent.append(text)

    responder = ChatResponder(sink)
    await responder.send("hi")
    assert sent == []
    gate.set()
    await responder.drain()
    assert sent == ["hi"]


@pytest.mark.asyncio
async def test_sink_failures_are_logged_not_raised():
    def broken(text):
        raise ConnectionError("socket closed")

    async def broken_async(text):
        raise ConnectionError("socket closed")

    await ChatResponder(broken).send("hi")
    responder = ChatResponder(broken_async)
    await responder.send("hi")
    await responder.drain()
    assert get_counter("chat.reply.failed") == 2


@pytest.mark.asyncio
async def test_empty_text_is_not_sent():
    sent = []
    await ChatResponder(sent.append).send("")
    assert sent == []
