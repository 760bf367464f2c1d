from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field

from dualchat.models.chat import ChatMessage


class ModeRequest(BaseModel):
    query: str
    current_mode: Literal["quick", "task"] | None = None
    history_length: int | None = Field(default=None, ge=0)
    remote: bool = False


class ModeResponse(BaseModel):
    mode: Literal["quick", "task"]
    confidence: float
    reason: str
    suggest_switch: bool | None = None


class BatchModeRequest(BaseModel):
    queries: list[str]


class BatchModeResponse(BaseModel):
    detections: list[ModeResponse]


class ChatMessageIn(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_model(self) -> ChatMessage:
        return ChatMessage(role=self.role, content=self.content, timestamp=self.timestamp)


class QuickChatOptions(BaseModel):
    """Partial quick-chat config; omitted fields keep their defaults."""

    provider: str | None = None
    model: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    stream: bool | None = None


class QuickChatRequest(BaseModel):
    message: str
    history: list[ChatMessageIn] = Field(default_factory=list)
    config: QuickChatOptions = Field(default_factory=QuickChatOptions)
    conversation_id: str | None = None


class QuickChatResponse(BaseModel):
    status: str = "ok"
    reply: str
    conversation_id: str | None = None


class ModeAnalysisRequest(BaseModel):
    query: str


class ModeAnalysisResponse(BaseModel):
    word_count: int
    sentence_count: int
    question_marks: int
    has_quick_markers: bool
    has_complex_markers: bool
    has_creation_verbs: bool
    detection: ModeResponse


class ChatDefaultsResponse(BaseModel):
    """Effective defaults after env overrides, before per-request overrides."""

    quick: dict[str, Any]
    task: dict[str, Any]
    classifier_thresholds: dict[str, Any]
