"""Per-message chat pipeline: fast path, then planner, then fallback."""

from __future__ import annotations

import asyncio
import uuid

import structlog
from structlog.contextvars import bound_contextvars

from Gaiabot.commanding import ChatMessage, Responder
from Gaiabot.config import Settings
from Gaiabot.fallback import fault_reply, synthesize_reply
from Gaiabot.fast_path import try_fast_path
from Gaiabot.logging import log_event, log_rejection
from Gaiabot.metrics import inc_counter
from Gaiabot.planner import AgentOrchestrator
from Gaiabot.world import WorldActionExecutor

log = structlog.get_logger()


def contextual_input(message: ChatMessage) -> str:
    return f"Player {message.sender} says: {message.text}"


class ChatHandler:
    """Routes chat lines from players to the fast path or the orchestrator.

    Each accepted message runs as its own task unless
    ``settings.chat_serialize_messages`` is on, in which case a single worker
    drains a queue in arrival order. Messages that arrive before
    ``attach`` has supplied an orchestrator are dropped.
    """

    def __init__(
        self,
        settings: Settings,
        world: WorldActionExecutor,
        responder: Responder,
        orchestrator: AgentOrchestrator | None = None,
    ) -> None:
        self._settings = settings
        self._world = world
        self._responder = responder
        self._orchestrator = orchestrator
        self._tasks: set[asyncio.Task] = set()
        self._queue: asyncio.Queue[ChatMessage] | None = None
        self._worker: asyncio.Task | None = None

    @property
    def ready(self) -> bool:
        return self._orchestrator is not None

    def attach(self, orchestrator: AgentOrchestrator) -> None:
        self._orchestrator = orchestrator

    def on_chat(self, sender: str, text: str) -> asyncio.Task | None:
        """Entry point for chat events; returns the task handling the message."""
        if sender == self._world.username:
            return None
        if not self.ready:
            inc_counter("chat.dropped.not_ready")
            log_rejection("chat", "not_ready", sender=sender)
            return None

        message = ChatMessage(sender=sender, text=text)
        inc_counter("chat.received")
        if self._settings.chat_serialize_messages:
            self._ensure_worker().put_nowait(message)
            return self._worker

        task = asyncio.create_task(self.handle(message), name=f"chat:{sender}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def handle(self, message: ChatMessage) -> None:
        with bound_contextvars(sender=message.sender, message_id=uuid.uuid4().hex[:8]):
            try:
                await self._handle(message)
            except Exception:
                # Last-resort guard so a bad message never kills the event loop
                inc_counter("chat.handler.failed")
                log.error("chat.handler.failed", exc_info=True)

    async def _handle(self, message: ChatMessage) -> None:
        command = message.command
        log_event("chat", "received", text=message.text)

        if await try_fast_path(message, self._world, self._responder):
            return

        if self._settings.bot_thinking_notice:
            await self._responder.send(self._settings.bot_thinking_notice)

        orchestrator = self._orchestrator
        if orchestrator is None:
            log_rejection("chat", "not_ready")
            return
        try:
            run = await orchestrator.run(contextual_input(message))
        except Exception as exc:
            inc_counter("chat.reply.fault_fallback")
            log.error("chat.planner.raised", error=str(exc), exc_info=True)
            await self._responder.send(fault_reply(command))
            return

        reply = synthesize_reply(
            command, run, from_steps=self._settings.planner_fallback_from_steps
        )
        if not run.succeeded:
            inc_counter("chat.reply.fallback")
            log_event("fallback", "used", status=run.status.value if run.status else None)
        log_event("chat", "replied", status=run.status.value if run.status else None)
        await self._responder.send(reply)

    # --- Serialized mode ---

    def _ensure_worker(self) -> asyncio.Queue[ChatMessage]:
        """Return the message queue, starting its worker if none is running."""
        queue = self._queue
        if queue is None:
            queue = self._queue = asyncio.Queue()
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._drain(queue), name="chat:worker")
        return queue

    async def _drain(self, queue: asyncio.Queue[ChatMessage]) -> None:
        while True:
            message = await queue.get()
            try:
                await self.handle(message)
            finally:
                queue.task_done()

    async def join(self) -> None:
        """Wait until every accepted message has been handled."""
        if self._queue is not None:
            await self._queue.join()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
