"""Settings loader for Gaiabot."""

from pathlib import Path
from typing import Any, Literal

import tomllib
from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


def _toml_settings_source() -> dict[str, Any]:
    """Load settings from config.toml with keys mapped to Settings fields.

    This source has LOWER priority than env/.env so those can override TOML.
    """
    cfg_path = Path("config.toml")
    if not cfg_path.exists():
        return {}
    with cfg_path.open("rb") as f:
        t = tomllib.load(f)

    bot_cfg = t.get("bot", {}) or {}
    llm_cfg = t.get("llm", {}) or {}
    planner_cfg = t.get("planner", {}) or {}
    chat_cfg = t.get("chat", {}) or {}
    log_cfg = t.get("logging", {}) or {}

    out: dict[str, Any] = {
        "env": t.get("app", {}).get("env", "dev"),
        "bot_username": bot_cfg.get("username", "Gaiabot"),
        "llm_api_provider": llm_cfg.get("api_provider", "openai"),
        "llm_api_url": llm_cfg.get("api_url"),
        "llm_model_name": llm_cfg.get("model_name", "Meta-Llama-3.1-8B-Instruct-Q5_K_M"),
        "llm_temperature": float(llm_cfg.get("temperature", 0.3)),
        "planner_max_iterations": int(planner_cfg.get("max_iterations", 2)),
        "planner_handle_parsing_errors": bool(planner_cfg.get("handle_parsing_errors", True)),
        "planner_call_timeout_seconds": float(planner_cfg.get("call_timeout_seconds", 30)),
        "planner_fallback_from_steps": bool(planner_cfg.get("fallback_from_steps", False)),
        "reply_max_chars": int(chat_cfg.get("reply_max_chars", 100)),
        "chat_serialize_messages": bool(chat_cfg.get("serialize_messages", False)),
        "logging_level": log_cfg.get("level", "INFO"),
        "logging_file_path": log_cfg.get("file_path", "logs/gaiabot.jsonl"),
        "logging_max_bytes": log_cfg.get("max_bytes", 5_000_000),
        "logging_backup_count": log_cfg.get("backup_count", 5),
    }
    # Optional strings: only override defaults when present
    if "greeting" in bot_cfg:
        out["bot_greeting"] = bot_cfg["greeting"]
    if "thinking_notice" in bot_cfg:
        out["bot_thinking_notice"] = bot_cfg["thinking_notice"]
    if llm_cfg.get("request_timeout_seconds") is not None:
        out["llm_request_timeout_seconds"] = float(llm_cfg["request_timeout_seconds"])

    # Per-handler levels: strings INFO|DEBUG|WARNING|ERROR|CRITICAL|NONE
    # Booleans map True -> overall level, False -> NONE
    overall = out["logging_level"]

    def _norm_level(v, default):
        if isinstance(v, str):
            return v.upper()
        if isinstance(v, bool):
            return default if v else "NONE"
        return default

    out["logging_console"] = _norm_level(log_cfg.get("console"), overall)
    out["logging_file"] = _norm_level(log_cfg.get("to_file", False), overall)
    return {k: v for k, v in out.items() if v is not None}


class Settings(BaseSettings):
    env: str = Field(default="dev")

    # --- Game session ---
    bot_username: str = "Gaiabot"
    bot_greeting: str = "Hello! I'm online and ready to help with Minecraft tasks!"
    # Sent before the planner runs; empty string disables it
    bot_thinking_notice: str = "Let me help you with that..."

    # --- LLM Configuration ---
    llm_api_provider: Literal["openai", "ollama"] = Field(
        default="openai", description="The type of LLM API to use ('openai' or 'ollama')."
    )
    llm_api_url: str | None = "https://trees.gaia.domains/v1"
    llm_api_key: SecretStr | None = Field(
        default=None,
        description="API key for OpenAI-compatible services.",
        validation_alias=AliasChoices("llm_api_key", "gaia_api_key"),
    )
    llm_model_name: str = "Meta-Llama-3.1-8B-Instruct-Q5_K_M"
    llm_temperature: float = Field(default=0.3, ge=0, le=2)
    llm_request_timeout_seconds: float = 60.0

    # --- Planner ---
    planner_max_iterations: int = Field(default=2, ge=1)
    planner_handle_parsing_errors: bool = True
    planner_call_timeout_seconds: float = Field(default=30.0, gt=0)
    planner_fallback_from_steps: bool = False

    # --- Chat ---
    reply_max_chars: int = Field(default=100, ge=1)
    chat_serialize_messages: bool = False

    # --- Logging ---
    logging_level: str = "INFO"
    logging_console: str = "INFO"
    logging_file: str = "NONE"
    logging_file_path: str = "logs/gaiabot.jsonl"
    logging_max_bytes: int = 5_000_000
    logging_backup_count: int = 5

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        env_file=".env",
        extra="ignore",  # Safely ignore any extra env vars
        populate_by_name=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # Precedence (highest to lowest):
        # 1) init_settings (explicit overrides in code/tests)
        # 2) dotenv (.env in cwd), developer-local overrides
        # 3) env_settings (OS env)
        # 4) TOML (repo config.toml), project defaults
        # 5) file_secret_settings
        return (
            init_settings,
            dotenv_settings,
            env_settings,
            _toml_settings_source,
            file_secret_settings,
        )


def load_settings() -> Settings:
    return Settings()
