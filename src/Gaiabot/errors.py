"""Exception types shared across Gaiabot."""

from __future__ import annotations


class GaiabotError(Exception):
    """Base class for errors raised inside Gaiabot."""


class ConfigError(GaiabotError, ValueError):
    """Settings are missing or inconsistent."""


class WorldActionError(GaiabotError, RuntimeError):
    """Raised by an executor when a world primitive fails."""


class LLMServiceError(GaiabotError):
    """The chat-completion service failed or returned an unusable response."""

    def __init__(self, message: str, *, status: str = "processing_error") -> None:
        super().__init__(message)
        self.status = status


class PlannerParseError(GaiabotError):
    """A tool call from the model could not be resolved to a tool and argument."""

    def __init__(self, message: str, *, raw: str | None = None) -> None:
        super().__init__(message)
        self.raw = raw
