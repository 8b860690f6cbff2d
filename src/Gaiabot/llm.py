# src/Gaiabot/llm.py

import asyncio
import math
import time
from dataclasses import dataclass, field
from typing import Any, cast

import httpx
import orjson
import structlog

# Import the official OpenAI library and its specific error types
from openai import APIError as OpenAIError
from openai import AsyncOpenAI

from Gaiabot.config import Settings
from Gaiabot.errors import ConfigError, LLMServiceError
from Gaiabot.metrics import inc_counter, observe_histogram

log = structlog.get_logger()


@dataclass(frozen=True)
class RawToolCall:
    """A tool call as the service returned it; ``arguments`` is unparsed JSON text."""

    id: str
    name: str | None
    arguments: str


@dataclass(frozen=True)
class LLMReply:
    content: str | None
    tool_calls: list[RawToolCall] = field(default_factory=list)


def normalize_openai_url(url: str | None) -> str:
    base = (url or "https://api.openai.com/v1").rstrip("/")
    # Ollama-style paths are replaced by its OpenAI-compatible base
    for suffix in ("/api/chat", "/api"):
        if base.endswith(suffix):
            base = base[: -len(suffix)]
            break
    if not base.endswith("/v1"):
        base = f"{base}/v1"
    return base


def normalize_ollama_url(url: str | None) -> str:
    base = (url or "").rstrip("/")
    # Accept either base (http://host:11434) or explicit chat endpoint (/api/chat)
    if base.endswith("/api/chat"):
        return base
    if base.endswith("/api"):
        return f"{base}/chat"
    return f"{base}/api/chat"


def _to_ollama_messages(messages: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Ollama wants tool-call arguments as objects and has no tool_call_id."""
    out: list[dict[str, Any]] = []
    for m in messages:
        msg = {k: v for k, v in m.items() if k != "tool_call_id"}
        if m.get("tool_calls"):
            calls = []
            for tc in m["tool_calls"]:
                fn = tc.get("function", {})
                args = fn.get("arguments") or "{}"
                if isinstance(args, str):
                    try:
                        args = orjson.loads(args)
                    except orjson.JSONDecodeError:
                        args = {}
                calls.append({"function": {"name": fn.get("name"), "arguments": args}})
            msg["tool_calls"] = calls
            msg["content"] = m.get("content") or ""
        out.append(msg)
    return out


class LLMClient:
    """
    An asynchronous chat-completion client with tool calling.

    This client supports two providers, configured via settings:
    1. 'openai': Uses the official `openai` library to connect to any
                 OpenAI-compatible API endpoint (Gaia nodes, OpenAI, Groq, ...).
    2. 'ollama': Uses a direct `httpx` client against Ollama's /api/chat.

    Failures raise ``LLMServiceError``; callers decide how to recover.
    """

    def __init__(self, settings: Settings):
        self.provider = settings.llm_api_provider
        self.model_name = settings.llm_model_name
        self.temperature = settings.llm_temperature
        timeout = settings.llm_request_timeout_seconds

        if not settings.llm_api_url:
            raise ConfigError("LLMClient requires llm_api_url to be set in configuration.")
        # The client instance will be one of two types (set below based on provider).
        self._client: Any

        if self.provider == "ollama":
            self.api_url = normalize_ollama_url(settings.llm_api_url)
            headers = {"Content-Type": "application/json"}
            self._client = httpx.AsyncClient(timeout=timeout, headers=headers)

        elif self.provider == "openai":
            self.api_url = normalize_openai_url(settings.llm_api_url)
            api_key = settings.llm_api_key.get_secret_value() if settings.llm_api_key else None
            if not api_key:
                # Self-hosted OpenAI-compatible nodes often run without auth
                log.warning("llm.config.missing_key", url=self.api_url)
            self._client = AsyncOpenAI(
                base_url=self.api_url,
                api_key=api_key or "not-set",
                max_retries=2,
                timeout=timeout,
            )
        else:
            raise ConfigError(f"Unsupported LLM provider: {self.provider}")

        log.info(
            "llm.client.initialized",
            provider=self.provider,
            model=self.model_name,
            url=self.api_url,
        )

    async def complete(
        self, messages: list[dict[str, Any]], tools: list[dict[str, Any]] | None = None
    ) -> LLMReply:
        """Send one chat-completion request and return text and/or tool calls."""
        prompt_chars = sum(len(str(m.get("content") or "")) for m in messages)
        log.info(
            "llm.call.initiated",
            provider=self.provider,
            model=self.model_name,
            prompt_approx_chars=prompt_chars,
            tools=len(tools or []),
        )
        start = time.perf_counter()
        status = "success"
        try:
            if isinstance(self._client, httpx.AsyncClient):  # Ollama provider
                reply = await self._complete_ollama(messages, tools)
            else:  # OpenAI provider
                reply = await self._complete_openai(messages, tools)
            if not reply.content and not reply.tool_calls:
                status = "empty_content"
                log.warning("llm.response.empty", provider=self.provider)
            return reply

        except OpenAIError as e:
            status = "api_error"
            log.error(
                "llm.call.api_error", error=str(e), status_code=getattr(e, "status_code", None)
            )
            raise LLMServiceError(f"OpenAI API error: {e}", status=status) from e
        except httpx.HTTPStatusError as e:
            status = "http_error"
            log.error(
                "llm.call.http_error",
                http_status_code=e.response.status_code,
                text_preview=(e.response.text or "")[:200],
            )
            raise LLMServiceError(f"LLM HTTP {e.response.status_code}", status=status) from e
        except httpx.RequestError as e:
            status = "request_error"
            log.error("llm.call.request_error", url=str(e.request.url), error=str(e))
            raise LLMServiceError(f"LLM request failed: {e}", status=status) from e
        except asyncio.CancelledError:
            # Raised into the call when the caller's timeout expires
            status = "cancelled"
            log.warning("llm.call.cancelled", provider=self.provider)
            raise
        except LLMServiceError:
            status = "processing_error"
            raise
        except Exception as e:
            status = "processing_error"
            log.error("llm.call.processing_error", error=str(e), provider=self.provider)
            raise LLMServiceError(f"Failed to process LLM response: {e}") from e
        finally:
            dur_ms = math.trunc((time.perf_counter() - start) * 1000)
            observe_histogram("llm.call.ms", dur_ms)
            inc_counter(f"llm.call.{status}")
            log.info(
                "llm.call.completed",
                provider=self.provider,
                model=self.model_name,
                duration_ms=dur_ms,
                status=status,
            )

    async def _complete_openai(
        self, messages: list[dict[str, Any]], tools: list[dict[str, Any]] | None
    ) -> LLMReply:
        kwargs: dict[str, Any] = {
            "model": self.model_name,
            "messages": cast(Any, messages),
            "temperature": self.temperature,
        }
        if tools:
            kwargs["tools"] = tools
        oa_resp = await self._client.chat.completions.create(**kwargs)
        if not oa_resp.choices:
            raise LLMServiceError("LLM response has no choices")
        # Use attribute access per OpenAI SDK; dict-like access may fail
        msg = oa_resp.choices[0].message
        calls = [
            RawToolCall(
                id=tc.id or f"call_{i}",
                name=getattr(tc.function, "name", None),
                arguments=getattr(tc.function, "arguments", None) or "",
            )
            for i, tc in enumerate(msg.tool_calls or [])
        ]
        return LLMReply(content=msg.content, tool_calls=calls)

    async def _complete_ollama(
        self, messages: list[dict[str, Any]], tools: list[dict[str, Any]] | None
    ) -> LLMReply:
        data: dict[str, Any] = {
            "model": self.model_name,
            "messages": _to_ollama_messages(messages),
            "stream": False,
            "options": {"temperature": self.temperature},
        }
        if tools:
            data["tools"] = tools
        httpx_resp = await self._client.post(self.api_url, content=orjson.dumps(data))
        httpx_resp.raise_for_status()
        message = (httpx_resp.json() or {}).get("message") or {}
        calls: list[RawToolCall] = []
        for i, tc in enumerate(message.get("tool_calls") or []):
            fn = tc.get("function") or {}
            args = fn.get("arguments")
            # Ollama returns arguments as an object; keep the wire shape uniform
            if isinstance(args, dict | list):
                args = orjson.dumps(args).decode("utf-8")
            calls.append(RawToolCall(id=f"call_{i}", name=fn.get("name"), arguments=args or ""))
        return LLMReply(content=message.get("content"), tool_calls=calls)

    async def close(self):
        """Gracefully close the underlying HTTP client."""
        if not getattr(self, "_client", None):
            return
        try:
            # httpx.AsyncClient has aclose; AsyncOpenAI.close is a coroutine
            if isinstance(self._client, httpx.AsyncClient):
                await self._client.aclose()
            else:
                await self._client.close()
        finally:
            log.info("llm.client.closed")
