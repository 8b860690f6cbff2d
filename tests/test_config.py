from pathlib import Path

import pytest
from pydantic import ValidationError

from Gaiabot.config import Settings, load_settings
from Gaiabot.logging import redact_settings


def test_defaults_match_the_gaia_node():
    s = load_settings()
    assert s.bot_username == "Gaiabot"
    assert s.llm_api_provider == "openai"
    assert s.llm_api_url == "https://trees.gaia.domains/v1"
    assert s.llm_model_name == "Meta-Llama-3.1-8B-Instruct-Q5_K_M"
    assert s.llm_temperature == 0.3
    assert s.planner_max_iterations == 2
    assert s.planner_handle_parsing_errors is True
    assert s.planner_fallback_from_steps is False
    assert s.reply_max_chars == 100
    assert s.chat_serialize_messages is False
    assert s.bot_greeting == "Hello! I'm online and ready to help with Minecraft tasks!"
    assert s.llm_api_key is None


def test_toml_values_are_loaded():
    Path("config.toml").write_text(
        """
[bot]
username = "Helper"
thinking_notice = ""

[llm]
api_provider = "ollama"
api_url = "http://localhost:11434"

[planner]
max_iterations = 3
handle_parsing_errors = false

[chat]
reply_max_chars = 80
serialize_messages = true

[logging]
console = false
""".strip()
    )
    s = load_settings()
    assert s.bot_username == "Helper"
    assert s.bot_thinking_notice == ""
    assert s.llm_api_provider == "ollama"
    assert s.llm_api_url == "http://localhost:11434"
    assert s.planner_max_iterations == 3
    assert s.planner_handle_parsing_errors is False
    assert s.reply_max_chars == 80
    assert s.chat_serialize_messages is True
    assert s.logging_console == "NONE"
    # Unset keys keep their defaults
    assert s.llm_model_name == "Meta-Llama-3.1-8B-Instruct-Q5_K_M"


def test_toml_without_api_url_keeps_default():
    Path("config.toml").write_text('[bot]\nusername = "Helper"\n')
    assert load_settings().llm_api_url == "https://trees.gaia.domains/v1"


def test_env_overrides_toml(monkeypatch):
    Path("config.toml").write_text("[planner]\nmax_iterations = 3\n")
    monkeypatch.setenv("PLANNER_MAX_ITERATIONS", "5")
    assert load_settings().planner_max_iterations == 5


def test_gaia_api_key_env_is_accepted_and_redacted(monkeypatch):
    monkeypatch.setenv("GAIA_API_KEY", "gaia-secret")
    s = load_settings()
    assert s.llm_api_key is not None
    assert s.llm_api_key.get_secret_value() == "gaia-secret"
    redacted = redact_settings(s)
    assert redacted["llm_api_key"] == "[REDACTED]"
    assert "gaia-secret" not in str(redacted)


def test_dotenv_is_read():
    Path(".env").write_text("LLM_API_KEY=from-dotenv\nREPLY_MAX_CHARS=50\n")
    s = load_settings()
    assert s.llm_api_key.get_secret_value() == "from-dotenv"
    assert s.reply_max_chars == 50


def test_invalid_values_rejected():
    with pytest.raises(ValidationError):
        Settings(planner_max_iterations=0)
    with pytest.raises(ValidationError):
        Settings(llm_api_provider="anthropic")


def test_unused_bot_keys_are_ignored():
    Path("config.toml").write_text('[bot]\nusername = "Helper"\nhost = "mc.example"\nport = 25566\n')
    dumped = redact_settings(load_settings())
    assert dumped["bot_username"] == "Helper"
    assert not any(key.startswith("server_") for key in dumped)
    assert set(dumped) == set(Settings.model_fields)
