"""Agent orchestrator: a bounded tool-calling loop over the chat-completion service."""

from __future__ import annotations

import asyncio
import time
from typing import Any, Protocol

import orjson
import structlog
from pydantic import ValidationError

from Gaiabot.errors import LLMServiceError, PlannerParseError
from Gaiabot.llm import LLMReply, RawToolCall
from Gaiabot.llm_utils import extract_first_json, looks_like_tool_call, scrub_system_text
from Gaiabot.metrics import inc_counter, observe_histogram
from Gaiabot.planner_prompts import PARSE_RETRY, SYSTEM_AGENT
from Gaiabot.planner_schemas import PlannerRun, PlannerStatus, PlannerStep, ToolCallRequest
from Gaiabot.tool_registry import ToolName, ToolResult
from Gaiabot.world_tools import WorldToolSet

log = structlog.get_logger()


class ChatCompletionService(Protocol):
    async def complete(
        self, messages: list[dict[str, Any]], tools: list[dict[str, Any]] | None = None
    ) -> LLMReply: ...


def _argument_from(args: Any) -> str:
    """Pick the single string argument out of a decoded arguments object."""
    if isinstance(args, str):
        return args
    if not isinstance(args, dict):
        raise PlannerParseError("tool arguments must be a JSON object")
    if "input" in args:
        return args["input"] if args["input"] is not None else ""
    # Models sometimes name the field after its meaning (blockType, username, ...)
    for value in args.values():
        if isinstance(value, str):
            return value
    return ""


def parse_tool_call(raw: RawToolCall) -> ToolCallRequest:
    """Validate a structured tool call; raises PlannerParseError."""
    tool = ToolName.parse(raw.name)
    if tool is None:
        raise PlannerParseError(f"unknown tool {raw.name!r}", raw=raw.arguments)
    text = (raw.arguments or "").strip()
    try:
        decoded = orjson.loads(text) if text else {}
    except orjson.JSONDecodeError as exc:
        raise PlannerParseError(f"arguments are not valid JSON: {exc}", raw=text) from exc
    try:
        return ToolCallRequest(tool=tool, argument=_argument_from(decoded), call_id=raw.id)
    except ValidationError as exc:
        raise PlannerParseError(f"invalid tool arguments: {exc.errors()[0]['msg']}") from exc


def parse_text_tool_call(content: str | None) -> ToolCallRequest | None:
    """Recognise a tool call written as JSON in the message body.

    Returns None when the content is an ordinary answer.
    """
    data = extract_first_json(content or "")
    if data is None or not looks_like_tool_call(data):
        return None
    args = data.get("parameters", data.get("arguments"))
    if isinstance(args, dict):
        args = orjson.dumps(args).decode("utf-8")
    elif args is None:
        args = ""
    elif not isinstance(args, str):
        raise PlannerParseError("tool parameters must be a JSON object", raw=content)
    return parse_tool_call(RawToolCall(id="call_text", name=data["name"], arguments=args))


class AgentOrchestrator:
    """Runs one PlannerRun per message.

    The service may answer with text (the run completes) or request a tool.
    Each executed tool and each unparseable reply consumes one iteration; when
    ``max_iterations`` is reached the run stops without another service call.
    """

    def __init__(
        self,
        llm: ChatCompletionService,
        tools: WorldToolSet,
        *,
        max_iterations: int = 2,
        handle_parsing_errors: bool = True,
        call_timeout: float | None = 30.0,
        system_prompt: str = SYSTEM_AGENT,
    ) -> None:
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self._llm = llm
        self._tools = tools
        self.max_iterations = max_iterations
        self.handle_parsing_errors = handle_parsing_errors
        self.call_timeout = call_timeout
        self._system_prompt = system_prompt
        self._tool_specs = tools.registry.openai_tools()

    @classmethod
    def from_settings(cls, settings, llm: ChatCompletionService, tools: WorldToolSet):
        return cls(
            llm,
            tools,
            max_iterations=settings.planner_max_iterations,
            handle_parsing_errors=settings.planner_handle_parsing_errors,
            call_timeout=settings.planner_call_timeout_seconds,
        )

    async def run(self, user_input: str) -> PlannerRun:
        run = PlannerRun(input=user_input, max_iterations=self.max_iterations)
        messages: list[dict[str, Any]] = [
            {"role": "system", "content": self._system_prompt},
            {"role": "user", "content": user_input},
        ]
        started = time.monotonic()
        log.info("planner.run.initiated", user_msg=user_input, max_iterations=self.max_iterations)
        last_was_parse_error = False
        try:
            while True:
                if run.iterations >= self.max_iterations:
                    run.status = (
                        PlannerStatus.PARSE_ERROR
                        if last_was_parse_error
                        else PlannerStatus.MAX_ITERATIONS_EXCEEDED
                    )
                    break

                reply = await self._call(messages)
                try:
                    call = self._decide(reply)
                except PlannerParseError as exc:
                    run.iterations += 1
                    run.parse_errors += 1
                    last_was_parse_error = True
                    inc_counter("planner.parse.failed")
                    log.warning(
                        "planner.parse.failed",
                        error=str(exc),
                        raw_text_preview=(reply.content or exc.raw or "")[:200],
                        iteration=run.iterations,
                    )
                    if not self.handle_parsing_errors:
                        run.status = PlannerStatus.PARSE_ERROR
                        break
                    messages.append({"role": "assistant", "content": reply.content or ""})
                    messages.append({"role": "user", "content": self._retry_prompt(exc)})
                    continue

                if call is None:
                    run.status = PlannerStatus.COMPLETED
                    run.output = scrub_system_text(reply.content or "")
                    break

                last_was_parse_error = False
                result = await self._invoke(call)
                run.steps.append(PlannerStep(call.tool, call.argument, result.text, result.ok))
                run.iterations += 1
                messages.extend(self._transcript_entries(reply, call, result))

        except asyncio.TimeoutError:
            run.status = PlannerStatus.FAULTED
            run.error = f"completion timed out after {self.call_timeout}s"
            log.error("planner.run.timeout", timeout_s=self.call_timeout)
        except LLMServiceError as exc:
            run.status = PlannerStatus.FAULTED
            run.error = str(exc)
            log.error("planner.run.faulted", error=str(exc), status=exc.status)
        except Exception as exc:
            run.status = PlannerStatus.FAULTED
            run.error = str(exc) or exc.__class__.__name__
            log.error("planner.run.faulted", error=run.error, exc_info=True)

        dur_ms = int((time.monotonic() - started) * 1000)
        observe_histogram("planner.run.ms", dur_ms)
        inc_counter(f"planner.status.{run.status.value}")
        log.info(
            "planner.run.completed",
            status=run.status.value,
            iterations=run.iterations,
            steps=[s.tool_name.value for s in run.steps],
            parse_errors=run.parse_errors,
            duration_ms=dur_ms,
        )
        return run

    async def _call(self, messages: list[dict[str, Any]]) -> LLMReply:
        coro = self._llm.complete(messages, self._tool_specs)
        if self.call_timeout is None:
            return await coro
        return await asyncio.wait_for(coro, timeout=self.call_timeout)

    def _decide(self, reply: LLMReply) -> ToolCallRequest | None:
        """Return the tool to run, or None when the reply is a final answer."""
        if reply.tool_calls:
            if len(reply.tool_calls) > 1:
                log.warning(
                    "planner.tool_calls_truncated",
                    requested=len(reply.tool_calls),
                    executed=1,
                    dropped=[tc.name for tc in reply.tool_calls[1:]],
                )
            return parse_tool_call(reply.tool_calls[0])
        call = parse_text_tool_call(reply.content)
        if call is not None:
            return call
        if not scrub_system_text(reply.content or ""):
            raise PlannerParseError("empty reply")
        return None

    async def _invoke(self, call: ToolCallRequest) -> ToolResult:
        log.info("planner.tool.selected", tool=call.tool.value, argument=call.argument)
        return await self._tools.execute(call.tool, call.argument)

    def _transcript_entries(
        self, reply: LLMReply, call: ToolCallRequest, result: ToolResult
    ) -> list[dict[str, Any]]:
        arguments = orjson.dumps({"input": call.argument}).decode("utf-8")
        return [
            {
                "role": "assistant",
                "content": reply.content if reply.tool_calls else None,
                "tool_calls": [
                    {
                        "id": call.call_id,
                        "type": "function",
                        "function": {"name": call.tool.value, "arguments": arguments},
                    }
                ],
            },
            {"role": "tool", "tool_call_id": call.call_id, "content": result.text},
        ]

    def _retry_prompt(self, exc: PlannerParseError) -> str:
        names = ", ".join(spec.name.value for spec in self._tools.registry.list_tools())
        return PARSE_RETRY.format(error=str(exc), tools=names)
