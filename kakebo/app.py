"""
Kakebo Application - Single entry point for the finance copilot.

Usage:
    from kakebo import KakeboCopilot

    app = KakeboCopilot("config.yaml")

    result = await app.chat("user-1", "¿Cuánto gasté este mes en comida?")

    async for event in app.stream("user-1", "¿Cómo va mi presupuesto?"):
        print(event.to_json_line())
"""

import logging
import os
import re
from datetime import date
from typing import Any, AsyncIterator, Dict, List, Optional, Union

from .models import AgentResponse, ConfirmationRequest, Message, PendingAction
from .streaming.models import TurnEvent

logger = logging.getLogger(__name__)


def _load_config(path: str) -> dict:
    """Read YAML config file with ${VAR} environment variable substitution."""
    import yaml

    with open(path, "r", encoding="utf-8") as f:
        raw = f.read()

    # Replace ${VAR} with environment variable values
    def _replace_env(match):
        var_name = match.group(1)
        value = os.environ.get(var_name)
        if value is None:
            raise ValueError(
                f"Environment variable '{var_name}' not set "
                f"(referenced in config file '{path}')"
            )
        return value

    resolved = re.sub(r"\$\{(\w+)\}", _replace_env, raw)
    return yaml.safe_load(resolved) or {}


class KakeboCopilot:
    """
    Kakebo Copilot application entry point.

    Sync constructor reads and validates config; the LLM client, database
    pool and orchestrator are built on the first chat() or stream() call.

    Args:
        config: Path to YAML configuration file.
        llm_client: Optional pre-built LLM client (skips the litellm client).
        data_store: Optional pre-built finance store (skips the database).

    Example:
        app = KakeboCopilot("config.yaml")
        result = await app.chat("user-1", "¿Cuánto llevo gastado?")
    """

    def __init__(
        self,
        config: str,
        llm_client: Optional[Any] = None,
        data_store: Optional[Any] = None,
    ):
        self._config = _load_config(config)
        self._initialized = False

        # Validate required fields
        if "database" not in self._config:
            raise ValueError("Missing required config field: 'database'")
        llm_cfg = self._config.get("llm") or {}
        if not llm_cfg.get("provider") or not llm_cfg.get("model"):
            raise ValueError("Missing required config fields: 'llm.provider' and 'llm.model'")

        from .orchestrator.config import OrchestratorConfig
        self._orchestrator_config = OrchestratorConfig.from_dict(
            self._config.get("orchestrator") or {}
        )

        # Tool registry (frozen; no I/O)
        from .finance import build_registry
        self._registry = build_registry()

        self._llm_client = llm_client
        self._data_store = data_store
        # Collaborators built here are dropped on shutdown; injected ones are kept
        self._owns_llm_client = llm_client is None
        self._owns_data_store = data_store is None
        self._database = None
        self._orchestrator = None

    async def _ensure_initialized(self) -> None:
        """Lazy initialization - runs once on first chat()/stream() call."""
        if self._initialized:
            return

        cfg = self._config
        llm_cfg = cfg["llm"]
        provider = llm_cfg["provider"]
        model = llm_cfg["model"]

        # 1. LLM client
        if self._llm_client is None:
            from .llm.base import LLMConfig
            from .llm.litellm_client import LiteLLMClient
            llm_config = LLMConfig(
                model=model,
                api_key=llm_cfg.get("api_key"),
                base_url=llm_cfg.get("base_url"),
                timeout=int(llm_cfg.get("timeout", 60)),
            )
            self._llm_client = LiteLLMClient(config=llm_config, provider_name=provider)
        logger.info(f"LLM client: provider={provider}, model={model}")

        # 2. Database + finance store
        if self._data_store is None:
            from .db import Database
            from .finance.store import FinanceStore
            self._database = Database(dsn=cfg["database"])
            await self._database.initialize()
            self._data_store = FinanceStore(self._database)

        # 3. Orchestrator
        from .orchestrator.orchestrator import Orchestrator
        self._orchestrator = Orchestrator(
            registry=self._registry,
            llm_client=self._llm_client,
            data_store=self._data_store,
            config=self._orchestrator_config,
            model_name=model,
        )

        self._initialized = True
        logger.info(
            f"Kakebo Copilot initialized with {len(self._registry)} tools "
            f"(resolver={self._orchestrator_config.resolver_mode}, "
            f"confirmation={self._orchestrator_config.enable_write_confirmation})"
        )

    @property
    def config(self) -> dict:
        """Return a copy of the raw configuration dict."""
        return dict(self._config)

    @property
    def orchestrator_config(self):
        return self._orchestrator_config

    @property
    def model(self) -> str:
        return self._config["llm"]["model"]

    @property
    def tool_names(self) -> List[str]:
        return self._registry.names()

    async def shutdown(self) -> None:
        """Shut down the application, closing all connections."""
        if not self._initialized:
            return
        try:
            if self._database:
                await self._database.close()
            if self._llm_client is not None and hasattr(self._llm_client, "close"):
                await self._llm_client.close()
        except Exception as e:
            logger.warning(f"Error during shutdown: {e}")
        finally:
            self._initialized = False
            self._database = None
            self._orchestrator = None
            if self._owns_data_store:
                self._data_store = None
            if self._owns_llm_client:
                self._llm_client = None
            logger.info("Kakebo Copilot shut down")

    async def chat(
        self,
        user_id: str,
        message: str,
        history: Optional[List[Union[Message, Dict[str, Any]]]] = None,
        confirmed_action: Optional[Union[PendingAction, Dict[str, Any]]] = None,
        today: Optional[date] = None,
    ) -> Union[AgentResponse, ConfirmationRequest]:
        """
        Send a message and get a response.

        Args:
            user_id: Owner of the data the tools may read or write.
            message: The user message.
            history: Prior messages, oldest first.
            confirmed_action: PendingAction echoed back to confirm a write.
            today: Reference date for relative periods (defaults to today).

        Returns:
            AgentResponse, or ConfirmationRequest when a write needs approval.
        """
        await self._ensure_initialized()
        return await self._orchestrator.handle_message(
            user_id=user_id,
            message=message,
            history=history,
            confirmed_action=confirmed_action,
            today=today,
        )

    async def stream(
        self,
        user_id: str,
        message: str,
        history: Optional[List[Union[Message, Dict[str, Any]]]] = None,
        confirmed_action: Optional[Union[PendingAction, Dict[str, Any]]] = None,
        today: Optional[date] = None,
    ) -> AsyncIterator[TurnEvent]:
        """Send a message and stream the turn events."""
        await self._ensure_initialized()
        async for event in self._orchestrator.stream_message(
            user_id=user_id,
            message=message,
            history=history,
            confirmed_action=confirmed_action,
            today=today,
        ):
            yield event
