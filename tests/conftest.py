# tests/conftest.py

import pytest

from Gaiabot.command_loader import load_all_commands
from Gaiabot.config import Settings
from Gaiabot.metrics import reset_counters
from Gaiabot.world import Vec3
from Gaiabot.world_inprocess import InProcessWorld


class SpyResponder:
    def __init__(self):
        self.sent: list[str] = []

    async def send(self, content: str) -> None:
        self.sent.append(content)


@pytest.fixture(scope="session", autouse=True)
def _commands_loaded():
    load_all_commands()


@pytest.fixture(autouse=True)
def _reset_metrics():
    reset_counters()
    yield
    reset_counters()


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch, tmp_path):
    # Keep a developer's config.toml / .env / API keys out of the tests
    monkeypatch.chdir(tmp_path)
    for var in ("LLM_API_KEY", "GAIA_API_KEY", "LLM_API_PROVIDER", "LLM_API_URL"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def world() -> InProcessWorld:
    w = InProcessWorld(username="Gaiabot")
    for x in range(-3, 4):
        for z in range(-3, 4):
            w.set_block(x, 63, z, "grass_block")
    w.add_player("Alex", Vec3(1.5, 64, 1.5))
    return w


@pytest.fixture
def responder() -> SpyResponder:
    return SpyResponder()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        llm_api_provider="openai",
        llm_api_url="http://test/v1",
        llm_model_name="test-model",
        bot_thinking_notice="",
    )
