from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any


class TaskState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskState.COMPLETED, TaskState.FAILED)


@dataclass(frozen=True)
class TaskHandle:
    """Client-side mirror of a remote task's identity and lifecycle state."""

    task_id: str
    workflow_id: str
    state: TaskState
    progress: int
    message: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> TaskHandle:
        """Parse an orchestration status payload.

        Both snake_case and camelCase keys are accepted, and ``status`` is read
        when ``state`` is absent. Progress is clamped to 0..100.

        Raises:
            ValueError: If the task id or state is missing or unknown.
        """
        task_id = _first_present(payload, ("task_id", "taskId", "id"))
        if not task_id:
            raise ValueError("task status payload has no task id")
        raw_state = _first_present(payload, ("state", "status"))
        if raw_state is None:
            raise ValueError(f"task status payload for {task_id} has no state")
        try:
            state = TaskState(str(raw_state).lower())
        except ValueError as exc:
            raise ValueError(f"unknown task state '{raw_state}' for {task_id}") from exc
        raw_progress = payload.get("progress")
        try:
            progress = int(raw_progress) if raw_progress is not None else 0
        except (TypeError, ValueError) as exc:
            raise ValueError(f"invalid progress '{raw_progress}' for {task_id}") from exc
        message = payload.get("message")
        return cls(
            task_id=str(task_id),
            workflow_id=str(_first_present(payload, ("workflow_id", "workflowId")) or ""),
            state=state,
            progress=max(0, min(100, progress)),
            message=None if message is None else str(message),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "task_id": self.task_id,
            "workflow_id": self.workflow_id,
            "state": self.state.value,
            "progress": self.progress,
            "message": self.message,
        }


class TaskEventType(str, Enum):
    STATE_CHANGED = "state_changed"
    PROGRESS = "progress"
    PARTIAL_RESULT = "partial_result"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class TaskEventData:
    progress: int | None = None
    message: str | None = None
    content: str | None = None
    error: str | None = None
    state: TaskState | None = None

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {}
        if self.progress is not None:
            payload["progress"] = self.progress
        if self.message is not None:
            payload["message"] = self.message
        if self.content is not None:
            payload["content"] = self.content
        if self.error is not None:
            payload["error"] = self.error
        if self.state is not None:
            payload["state"] = self.state.value
        return payload


@dataclass(frozen=True)
class TaskEvent:
    type: TaskEventType
    task_id: str
    data: TaskEventData

    @property
    def is_terminal(self) -> bool:
        return self.type in (TaskEventType.COMPLETED, TaskEventType.FAILED)

    def to_dict(self) -> dict[str, object]:
        return {"type": self.type.value, "task_id": self.task_id, "data": self.data.to_dict()}


def _first_present(payload: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = payload.get(key)
        if value not in ("", None):
            return value
    return None
