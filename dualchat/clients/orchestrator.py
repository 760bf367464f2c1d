from __future__ import annotations

import logging
import urllib.parse
from datetime import datetime, timezone
from typing import Any, Protocol

import httpx

from dualchat.clients.http import normalize_base_url, request_json
from dualchat.core.config import Settings
from dualchat.core.errors import BackendError
from dualchat.models.chat import TaskChatConfig, TaskComplexity, TaskStrategy
from dualchat.models.task import TaskHandle

_SERVICE = "orchestrator"

_COMPLEXITY_STRATEGIES = {
    TaskComplexity.SIMPLE: "chain_of_thought",
    TaskComplexity.COMPLEX: "scientific",
    TaskComplexity.EXPLORATORY: "tree_of_thoughts",
}


class OrchestrationBackend(Protocol):
    async def submit_task(
        self, query: str, context: list[str], config: TaskChatConfig
    ) -> TaskHandle:
        raise NotImplementedError

    async def get_status(self, task_id: str) -> TaskHandle:
        raise NotImplementedError

    async def cancel_task(self, task_id: str) -> bool:
        raise NotImplementedError


class RemoteModeClassifier(Protocol):
    async def detect_mode(self, query: str) -> dict[str, Any]:
        raise NotImplementedError


def select_strategy(config: TaskChatConfig) -> str:
    """Resolve the workflow strategy sent to the orchestrator.

    An explicit strategy wins; ``auto`` is resolved from the task complexity.
    """
    if config.strategy != TaskStrategy.AUTO:
        return config.strategy.value
    return _COMPLEXITY_STRATEGIES[config.complexity]


def build_task_request(query: str, context: list[str], config: TaskChatConfig) -> dict[str, object]:
    return {
        "query": query,
        "context": list(context),
        "strategy": select_strategy(config),
        "require_approval": config.require_approval,
        "max_agents": config.max_agents,
        "token_budget": config.token_budget,
        "metadata": {
            "complexity": config.complexity.value,
            "submitted_at": datetime.now(timezone.utc).isoformat(),
        },
    }


class OrchestratorClient:
    """HTTP client for the task orchestration service."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient | None = None) -> None:
        self._logger = logging.getLogger(__name__)
        self._base_url = normalize_base_url(settings.orchestrator_url)
        self._client = http_client or httpx.AsyncClient(timeout=settings.http_timeout_seconds)
        if settings.orchestrator_url and not self._base_url:
            self._logger.warning("Invalid ORCHESTRATOR_URL: %s", settings.orchestrator_url)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def submit_task(
        self, query: str, context: list[str], config: TaskChatConfig
    ) -> TaskHandle:
        payload = build_task_request(query, context, config)
        self._logger.info(
            "Submitting task (strategy=%s, complexity=%s, context_items=%d)",
            payload["strategy"],
            config.complexity.value,
            len(context),
        )
        data = await request_json(
            self._client, _SERVICE, "POST", self._url("/api/tasks"), json=payload
        )
        handle = _parse_handle(data)
        self._logger.info("Task %s submitted", handle.task_id)
        return handle

    async def get_status(self, task_id: str) -> TaskHandle:
        data = await request_json(
            self._client, _SERVICE, "GET", self._url(f"/api/tasks/{_quote(task_id)}")
        )
        return _parse_handle(data)

    async def cancel_task(self, task_id: str) -> bool:
        self._logger.info("Cancelling task %s", task_id)
        data = await request_json(
            self._client, _SERVICE, "POST", self._url(f"/api/tasks/{_quote(task_id)}/cancel")
        )
        if isinstance(data, bool):
            return data
        if isinstance(data, dict):
            for key in ("cancelled", "success"):
                if isinstance(data.get(key), bool):
                    return data[key]
        # A 2xx without an explicit verdict means the request was accepted.
        return True

    async def detect_mode(self, query: str) -> dict[str, Any]:
        data = await request_json(
            self._client, _SERVICE, "POST", self._url("/api/chat/mode"), json={"query": query}
        )
        if isinstance(data, str):
            return {"mode": data}
        if not isinstance(data, dict):
            raise BackendError(_SERVICE, "mode detection returned a non-object payload")
        return data

    def _url(self, path: str) -> str:
        if not self._base_url:
            raise BackendError(_SERVICE, "orchestrator url not configured")
        return f"{self._base_url}{path}"


def _parse_handle(data: object) -> TaskHandle:
    if not isinstance(data, dict):
        raise BackendError(_SERVICE, "task payload is not an object")
    try:
        return TaskHandle.from_payload(data)
    except ValueError as exc:
        raise BackendError(_SERVICE, str(exc)) from exc


def _quote(task_id: str) -> str:
    return urllib.parse.quote(task_id, safe="")
