"""Bot application: wires a game session to the chat pipeline and manages its lifecycle."""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable
from typing import Any, Protocol

import structlog

from Gaiabot.command_loader import load_all_commands
from Gaiabot.config import Settings
from Gaiabot.handler import ChatHandler
from Gaiabot.llm import LLMClient
from Gaiabot.logging import redact_settings
from Gaiabot.metrics import get_counters, inc_counter
from Gaiabot.planner import AgentOrchestrator, ChatCompletionService
from Gaiabot.responder import ChatResponder
from Gaiabot.world import WorldActionExecutor
from Gaiabot.world_tools import WorldToolSet

log = structlog.get_logger()


class GameSession(Protocol):
    """The transport side of a connected bot."""

    @property
    def world(self) -> WorldActionExecutor: ...

    def chat(self, text: str) -> Awaitable[None] | None: ...

    def quit(self, reason: str = "") -> Awaitable[None] | None: ...


class BotApp:
    """Event sink for one game session.

    The session (or its adapter) calls ``on_spawn`` once the bot is in the
    world, ``on_chat`` for every chat line, and ``on_error`` / ``on_end`` for
    transport problems. None of these stop the process; only ``shutdown``
    does. The console calls it when Ctrl-C interrupts the runner.
    """

    def __init__(
        self,
        settings: Settings,
        session: GameSession,
        *,
        llm: ChatCompletionService | None = None,
    ) -> None:
        self.settings = settings
        self.session = session
        self.responder = ChatResponder(session.chat, max_chars=settings.reply_max_chars)
        self.handler = ChatHandler(settings, session.world, self.responder)
        self.tools: WorldToolSet | None = None
        self._llm = llm
        self._owns_llm = llm is None
        self._stopped = asyncio.Event()

    async def on_spawn(self) -> None:
        log.info("app.startup", config=redact_settings(self.settings))
        load_all_commands()
        self.tools = WorldToolSet(self.session.world)
        if self._llm is None:
            self._llm = LLMClient(self.settings)
        self.handler.attach(AgentOrchestrator.from_settings(self.settings, self._llm, self.tools))
        log.info("bot.spawned", username=self.session.world.username)
        await self.responder.send(self.settings.bot_greeting)

    def on_chat(self, sender: str, text: str) -> asyncio.Task | None:
        return self.handler.on_chat(sender, text)

    def on_error(self, error: BaseException) -> None:
        inc_counter("bot.error")
        log.error("bot.error", error=str(error), error_type=error.__class__.__name__)

    def on_end(self, reason: str | None = None) -> None:
        inc_counter("bot.disconnected")
        log.warning("bot.disconnected", reason=reason)

    async def shutdown(self) -> None:
        if self._stopped.is_set():
            return
        log.info("app.shutdown.initiated")
        try:
            await self.handler.close()
            await self.responder.drain()
            await _maybe_await(self.session.quit("shutdown"))
            if self._owns_llm and isinstance(self._llm, LLMClient):
                await self._llm.close()
        finally:
            self._stopped.set()
            log.info("app.shutdown.completed", counters=get_counters())

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    async def wait_closed(self) -> None:
        await self._stopped.wait()


async def _maybe_await(res: Any) -> None:
    if inspect.isawaitable(res):
        await res
