from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from dualchat.models.task import TaskHandle


class TaskOptions(BaseModel):
    """Partial task-chat config; omitted fields keep their defaults."""

    strategy: Literal["auto", "chain_of_thought", "scientific", "exploratory"] | None = None
    require_approval: bool | None = None
    max_agents: int | None = Field(default=None, gt=0)
    token_budget: int | None = Field(default=None, gt=0)
    complexity: Literal["simple", "complex", "exploratory"] | None = None


class TaskSubmitRequest(BaseModel):
    query: str
    context: list[str] = Field(default_factory=list)
    config: TaskOptions = Field(default_factory=TaskOptions)
    conversation_id: str | None = None


class TaskHandleResponse(BaseModel):
    task_id: str
    workflow_id: str
    state: Literal["pending", "running", "completed", "failed"]
    progress: int
    message: str | None = None

    @classmethod
    def from_handle(cls, handle: TaskHandle) -> TaskHandleResponse:
        return cls(**handle.to_dict())


class TaskCancelResponse(BaseModel):
    task_id: str
    cancelled: bool


class TaskWaitRequest(BaseModel):
    timeout_ms: int | None = Field(default=None, ge=0)
