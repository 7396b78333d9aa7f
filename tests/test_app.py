"""Tests for kakebo.app - config loading and the KakeboCopilot entry point"""

from unittest.mock import AsyncMock

import pytest

from conftest import TODAY, USER_ID, FakeLLMClient, InMemoryFinanceStore
from kakebo.app import KakeboCopilot, _load_config
from kakebo.models import AgentResponse
from kakebo.streaming import TurnEventType

VALID_CONFIG = """
llm:
  provider: openai
  model: gpt-4o-mini
database: postgresql://localhost/kakebo
"""


def _write(tmp_path, text):
    config_file = tmp_path / "config.yaml"
    config_file.write_text(text)
    return str(config_file)


# =========================================================================
# _load_config - env var substitution
# =========================================================================


class TestLoadConfig:

    def test_substitutes_env_vars(self, monkeypatch, tmp_path):
        monkeypatch.setenv("TEST_DB_URL", "postgresql://localhost/test")
        cfg = _load_config(_write(tmp_path, "database: ${TEST_DB_URL}\n"))
        assert cfg["database"] == "postgresql://localhost/test"

    def test_missing_env_var_raises(self, monkeypatch, tmp_path):
        monkeypatch.delenv("NONEXISTENT_VAR_12345", raising=False)
        with pytest.raises(ValueError, match="NONEXISTENT_VAR_12345"):
            _load_config(_write(tmp_path, "key: ${NONEXISTENT_VAR_12345}\n"))

    def test_inline_substitution(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOST", "myhost")
        cfg = _load_config(_write(tmp_path, "url: https://${HOST}.openai.azure.com/\n"))
        assert cfg["url"] == "https://myhost.openai.azure.com/"

    def test_empty_file(self, tmp_path):
        assert _load_config(_write(tmp_path, "")) == {}

    def test_nonexistent_file_raises(self):
        with pytest.raises(FileNotFoundError):
            _load_config("/nonexistent/path/config.yaml")


# =========================================================================
# KakeboCopilot
# =========================================================================


class TestKakeboCopilotConfig:

    def test_valid_config(self, tmp_path):
        app = KakeboCopilot(_write(tmp_path, VALID_CONFIG))
        assert app.model == "gpt-4o-mini"
        assert app.orchestrator_config.resolver_mode == "function_calling"
        assert len(app.tool_names) == 11

    def test_orchestrator_section(self, tmp_path):
        text = VALID_CONFIG + "orchestrator:\n  resolver_mode: keyword_router\n  enable_write_confirmation: false\n"
        app = KakeboCopilot(_write(tmp_path, text))
        assert app.orchestrator_config.resolver_mode == "keyword_router"
        assert app.orchestrator_config.enable_write_confirmation is False

    def test_missing_database(self, tmp_path):
        with pytest.raises(ValueError, match="database"):
            KakeboCopilot(_write(tmp_path, "llm:\n  provider: openai\n  model: gpt-4o-mini\n"))

    def test_missing_model(self, tmp_path):
        with pytest.raises(ValueError, match="llm.model"):
            KakeboCopilot(_write(tmp_path, "llm:\n  provider: openai\ndatabase: x\n"))

    def test_unknown_resolver_mode(self, tmp_path):
        with pytest.raises(ValueError, match="resolver_mode"):
            KakeboCopilot(_write(tmp_path, VALID_CONFIG + "orchestrator:\n  resolver_mode: magic\n"))

    def test_config_is_a_copy(self, tmp_path):
        app = KakeboCopilot(_write(tmp_path, VALID_CONFIG))
        app.config["database"] = "changed"
        assert app.config["database"] == "postgresql://localhost/kakebo"


class TestKakeboCopilotTurns:

    @pytest.fixture
    def app(self, tmp_path):
        store = InMemoryFinanceStore()
        store.set_budgets()
        return KakeboCopilot(
            _write(tmp_path, VALID_CONFIG),
            llm_client=FakeLLMClient(["¡Hola!", "¡Hola otra vez!"]),
            data_store=store,
        )

    @pytest.mark.asyncio
    async def test_chat(self, app):
        result = await app.chat(USER_ID, "hola", today=TODAY)
        assert isinstance(result, AgentResponse)
        assert result.message == "¡Hola!"
        assert result.metrics.model == "gpt-4o-mini"

    @pytest.mark.asyncio
    async def test_stream(self, app):
        events = [e async for e in app.stream(USER_ID, "hola", today=TODAY)]
        assert [e.type for e in events] == [TurnEventType.THINKING, TurnEventType.CHUNK, TurnEventType.DONE]

    @pytest.mark.asyncio
    async def test_initializes_once(self, app):
        await app.chat(USER_ID, "hola")
        orchestrator = app._orchestrator
        await app.chat(USER_ID, "hola")
        assert app._orchestrator is orchestrator

    @pytest.mark.asyncio
    async def test_shutdown(self, app):
        await app.chat(USER_ID, "hola")
        app._llm_client.close = AsyncMock()
        await app.shutdown()
        app._llm_client.close.assert_awaited_once()
        assert app._orchestrator is None

    @pytest.mark.asyncio
    async def test_shutdown_before_init_is_noop(self, app):
        await app.shutdown()
        assert app._orchestrator is None


class FakeDatabase:
    """Stands in for the asyncpg pool wrapper; records its lifecycle."""

    instances = []

    def __init__(self, dsn):
        self.dsn = dsn
        self.closed = False
        FakeDatabase.instances.append(self)

    async def initialize(self):
        pass

    async def close(self):
        self.closed = True


class TestOwnedDataStore:

    @pytest.fixture
    def app(self, tmp_path, monkeypatch):
        FakeDatabase.instances = []
        monkeypatch.setattr("kakebo.db.Database", FakeDatabase)
        return KakeboCopilot(_write(tmp_path, VALID_CONFIG), llm_client=FakeLLMClient())

    @pytest.mark.asyncio
    async def test_store_is_rebuilt_after_shutdown(self, app):
        await app._ensure_initialized()
        first_store = app._data_store
        await app.shutdown()

        assert FakeDatabase.instances[0].closed
        assert app._data_store is None

        await app._ensure_initialized()
        assert app._data_store is not first_store
        assert app._data_store.db is FakeDatabase.instances[1]
        assert not FakeDatabase.instances[1].closed

    @pytest.mark.asyncio
    async def test_injected_store_survives_shutdown(self, tmp_path):
        store = InMemoryFinanceStore()
        app = KakeboCopilot(_write(tmp_path, VALID_CONFIG), llm_client=FakeLLMClient(), data_store=store)
        await app.chat(USER_ID, "hola", today=TODAY)
        await app.shutdown()
        assert app._data_store is store
