from __future__ import annotations

import json
from collections.abc import AsyncIterator, Sequence
from dataclasses import replace

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from dualchat.api import chat, health, tasks
from dualchat.core.config import load_settings
from dualchat.core.dependencies import (
    get_mode_classifier,
    get_quick_chat_service,
    get_settings,
    get_task_chat_service,
)
from dualchat.core.errors import BackendError
from dualchat.models.chat import ChatMessage, QuickChatConfig, TaskChatConfig
from dualchat.models.task import TaskHandle, TaskState
from dualchat.services.mode_detection import ModeClassifier
from dualchat.services.quick_chat import QuickChatService
from dualchat.services.task_chat import TaskChatService


class FakeConversationalBackend:
    def __init__(self, fragments: list[str], error: Exception | None = None) -> None:
        self._fragments = fragments
        self._error = error
        self.configs: list[QuickChatConfig] = []

    async def stream_chat(
        self, message: str, history: Sequence[ChatMessage], config: QuickChatConfig
    ) -> AsyncIterator[str]:
        self.configs.append(config)
        if self._error is not None:
            raise self._error
        for fragment in self._fragments:
            yield fragment


class FakeOrchestrator:
    def __init__(
        self,
        statuses: list[str],
        submit_error: Exception | None = None,
    ) -> None:
        self._statuses = statuses
        self._submit_error = submit_error
        self._calls = 0
        self.configs: list[TaskChatConfig] = []

    async def submit_task(
        self, query: str, context: list[str], config: TaskChatConfig
    ) -> TaskHandle:
        if self._submit_error is not None:
            raise self._submit_error
        self.configs.append(config)
        return TaskHandle(task_id="task-1", workflow_id="wf-1", state=TaskState.PENDING, progress=0)

    async def get_status(self, task_id: str) -> TaskHandle:
        state = self._statuses[min(self._calls, len(self._statuses) - 1)]
        self._calls += 1
        progress = 100 if state == "completed" else 50
        return TaskHandle(
            task_id=task_id, workflow_id="wf-1", state=TaskState(state), progress=progress
        )

    async def cancel_task(self, task_id: str) -> bool:
        return True


def _build_client(
    conversational: FakeConversationalBackend | None = None,
    orchestrator: FakeOrchestrator | None = None,
) -> TestClient:
    settings = replace(load_settings(), task_poll_interval_ms=0)
    app = FastAPI()
    app.include_router(health.router)
    app.include_router(chat.router)
    app.include_router(tasks.router)
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_mode_classifier] = lambda: ModeClassifier()
    app.dependency_overrides[get_quick_chat_service] = lambda: QuickChatService(
        conversational or FakeConversationalBackend(["ok"])
    )
    app.dependency_overrides[get_task_chat_service] = lambda: TaskChatService(
        orchestrator or FakeOrchestrator(["completed"])
    )
    return TestClient(app)


def test_healthz() -> None:
    response = _build_client().get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_detect_mode_with_switch_suggestion() -> None:
    response = _build_client().post(
        "/chat/mode",
        json={
            "query": "Research and compare three vector databases",
            "current_mode": "quick",
            "history_length": 1,
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["mode"] == "task"
    assert body["confidence"] == 0.85
    assert body["suggest_switch"] is True


def test_detect_modes_batch() -> None:
    response = _build_client().post(
        "/chat/mode/batch", json={"queries": ["What is Rust?", "Hello there friend"]}
    )

    assert [item["mode"] for item in response.json()["detections"]] == ["quick", "quick"]


def test_quick_chat_streams_plain_text() -> None:
    backend = FakeConversationalBackend(["Par", "is"])
    client = _build_client(conversational=backend)

    response = client.post(
        "/chat/quick",
        json={"message": "Capital of France?", "config": {"provider": "gemini", "max_tokens": 64}},
    )

    assert response.status_code == 200
    assert response.text == "Paris"
    assert response.headers["content-type"].startswith("text/plain")
    assert backend.configs[0].max_tokens == 64
    assert backend.configs[0].provider.value == "google"


def test_quick_chat_backend_failure_maps_to_502() -> None:
    backend = FakeConversationalBackend([], error=RuntimeError("provider down"))

    response = _build_client(conversational=backend).post("/chat/quick", json={"message": "hi"})

    assert response.status_code == 502
    assert "provider down" in response.json()["detail"]


def test_quick_chat_invalid_config_maps_to_422() -> None:
    response = _build_client().post(
        "/chat/quick/complete", json={"message": "hi", "config": {"provider": "mistral"}}
    )

    assert response.status_code == 422
    assert "Unsupported provider" in response.json()["detail"]


def test_quick_chat_complete_returns_reply() -> None:
    response = _build_client(conversational=FakeConversationalBackend(["Hel", "lo"])).post(
        "/chat/quick/complete", json={"message": "hi", "conversation_id": "conv-1"}
    )

    assert response.json() == {"status": "ok", "reply": "Hello", "conversation_id": "conv-1"}


def test_submit_task_forwards_options() -> None:
    orchestrator = FakeOrchestrator(["pending"])

    response = _build_client(orchestrator=orchestrator).post(
        "/tasks", json={"query": "Audit the cluster", "config": {"complexity": "complex"}}
    )

    assert response.status_code == 200
    assert response.json()["task_id"] == "task-1"
    assert response.json()["state"] == "pending"
    assert orchestrator.configs[0].complexity.value == "complex"


def test_submit_task_backend_failure_maps_to_502() -> None:
    orchestrator = FakeOrchestrator(
        ["pending"], submit_error=BackendError("orchestrator", "queue full", 503)
    )

    response = _build_client(orchestrator=orchestrator).post("/tasks", json={"query": "x"})

    assert response.status_code == 502
    assert "queue full" in response.json()["detail"]


def test_cancel_task() -> None:
    response = _build_client().post("/tasks/task-1/cancel")

    assert response.json() == {"task_id": "task-1", "cancelled": True}


def test_task_events_are_server_sent_events() -> None:
    client = _build_client(orchestrator=FakeOrchestrator(["running", "completed"]))

    response = client.get("/tasks/task-1/events")

    assert response.headers["content-type"].startswith("text/event-stream")
    frames = [frame for frame in response.text.split("\n\n") if frame]
    names = [frame.splitlines()[0].removeprefix("event: ") for frame in frames]
    assert names == ["state_changed", "progress", "state_changed", "progress", "completed"]
    last = json.loads(frames[-1].splitlines()[1].removeprefix("data: "))
    assert last == {"type": "completed", "task_id": "task-1", "data": {"progress": 100}}


@pytest.mark.parametrize(
    ("statuses", "timeout_ms", "expected_status"),
    [
        (["running", "completed"], 5000, 200),
        (["running"], 0, 504),
    ],
)
def test_wait_for_task(statuses: list[str], timeout_ms: int, expected_status: int) -> None:
    client = _build_client(orchestrator=FakeOrchestrator(statuses))

    response = client.post("/tasks/task-1/wait", json={"timeout_ms": timeout_ms})

    assert response.status_code == expected_status


def test_readyz_reports_configuration() -> None:
    client = _build_client()
    settings = replace(load_settings(), orchestrator_url="", openai_api_key="o-key")
    client.app.dependency_overrides[get_settings] = lambda: settings

    response = client.get("/readyz")

    assert response.status_code == 503
    body = response.json()
    assert body["backends"]["orchestrator"] is False
    assert "openai" in body["providers"]


def test_wait_for_task_without_body_uses_configured_timeout() -> None:
    client = _build_client(orchestrator=FakeOrchestrator(["running", "completed"]))

    response = client.post("/tasks/task-1/wait")

    assert response.status_code == 200
    assert response.json()["state"] == "completed"


def test_wait_for_task_without_body_honours_task_timeout_setting() -> None:
    client = _build_client(orchestrator=FakeOrchestrator(["running"]))
    settings = replace(load_settings(), task_poll_interval_ms=0, task_timeout_ms=0)
    client.app.dependency_overrides[get_settings] = lambda: settings

    response = client.post("/tasks/task-1/wait")

    assert response.status_code == 504
    assert "timed out after 0ms" in response.json()["detail"]


def test_analyze_mode_returns_features() -> None:
    response = _build_client().post(
        "/chat/mode/analyze", json={"query": "What is Rust? Is it fast? Is it safe?"}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["word_count"] == 9
    assert body["question_marks"] == 3
    assert body["has_quick_markers"] is True
    assert body["detection"]["mode"] == "quick"
    assert body["detection"]["confidence"] == 0.9


def test_chat_defaults_reflect_settings() -> None:
    client = _build_client()
    settings = replace(
        load_settings(),
        quick_chat_defaults=QuickChatConfig(provider="gemini"),  # type: ignore[arg-type]
    )
    client.app.dependency_overrides[get_settings] = lambda: settings

    body = client.get("/chat/defaults").json()

    assert body["quick"]["provider"] == "google"
    assert body["quick"]["max_tokens"] == 2048
    assert body["task"]["strategy"] == "auto"
    assert body["classifier_thresholds"]["switch_max_history"] == 3
