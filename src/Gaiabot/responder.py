"""Reply formatting and emission to the game chat."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import structlog

from Gaiabot.metrics import inc_counter

__all__ = ["ChatResponder", "format_reply"]

log = structlog.get_logger()

ChatSink = Callable[[str], Awaitable[None] | None]


def format_reply(text: str, limit: int = 100) -> str:
    """Hard-truncate to ``limit`` characters; shorter text is returned unchanged."""
    text = "" if text is None else str(text)
    if limit <= 0:
        return ""
    return text if len(text) <= limit else text[:limit]


class ChatResponder:
    """Sends truncated replies through a chat primitive, fire-and-forget.

    ``sink`` may be a plain function or a coroutine function. Failures are
    logged and counted; they never propagate into the message handler.
    """

    def __init__(self, sink: ChatSink, *, max_chars: int = 100) -> None:
        self._sink = sink
        self._max_chars = max_chars
        self._pending: set[asyncio.Task] = set()

    async def send(self, content: str) -> None:
        original = "" if content is None else str(content)
        text = format_reply(original, self._max_chars)
        if not text:
            log.info("chat.reply.skipped", reason="empty")
            return
        truncated = len(text) < len(original)
        if truncated:
            inc_counter("chat.reply.truncated")
        log.info("chat.reply.send", content_len=len(text), truncated=truncated)
        try:
            res = self._sink(text)
        except Exception as exc:
            self._on_error(exc)
            return
        if asyncio.iscoroutine(res) or isinstance(res, asyncio.Future):
            task = asyncio.ensure_future(res)
            self._pending.add(task)
            task.add_done_callback(self._on_done)
        inc_counter("chat.reply.sent")

    def _on_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._on_error(exc)

    def _on_error(self, exc: BaseException) -> None:
        inc_counter("chat.reply.failed")
        log.error("chat.reply.failed", error=str(exc), error_type=exc.__class__.__name__)

    async def drain(self) -> None:
        """Wait for in-flight emissions; used on shutdown and in tests."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
