from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, TypeVar

from dualchat.clients.llm_providers.base import LLMProvider


class ChatMode(str, Enum):
    QUICK = "quick"
    TASK = "task"


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


@dataclass(frozen=True)
class ChatMessage:
    role: MessageRole
    content: str
    timestamp: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "role", MessageRole(self.role))

    @classmethod
    def create(cls, role: MessageRole | str, content: str) -> ChatMessage:
        """Build a message stamped with the current UTC time."""
        return cls(
            role=MessageRole(role),
            content=content,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )


@dataclass(frozen=True)
class ModeDetection:
    mode: ChatMode
    confidence: float
    reason: str

    def to_dict(self) -> dict[str, object]:
        return {"mode": self.mode.value, "confidence": self.confidence, "reason": self.reason}


@dataclass(frozen=True)
class QuickChatConfig:
    provider: LLMProvider = LLMProvider.OPENAI
    model: str = "gpt-4"
    temperature: float = 0.7
    max_tokens: int = 2048
    stream: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.provider, LLMProvider):
            object.__setattr__(self, "provider", LLMProvider.from_string(str(self.provider)))
        if self.temperature < 0:
            raise ValueError("temperature must be non-negative")
        if self.max_tokens <= 0:
            raise ValueError("max_tokens must be positive")

    def to_dict(self) -> dict[str, object]:
        payload = asdict(self)
        payload["provider"] = self.provider.value
        return payload


class TaskStrategy(str, Enum):
    AUTO = "auto"
    CHAIN_OF_THOUGHT = "chain_of_thought"
    SCIENTIFIC = "scientific"
    EXPLORATORY = "exploratory"


class TaskComplexity(str, Enum):
    SIMPLE = "simple"
    COMPLEX = "complex"
    EXPLORATORY = "exploratory"


@dataclass(frozen=True)
class TaskChatConfig:
    strategy: TaskStrategy = TaskStrategy.AUTO
    require_approval: bool = False
    max_agents: int = 3
    token_budget: int = 10_000
    complexity: TaskComplexity = TaskComplexity.SIMPLE

    def __post_init__(self) -> None:
        object.__setattr__(self, "strategy", TaskStrategy(self.strategy))
        object.__setattr__(self, "complexity", TaskComplexity(self.complexity))
        if self.max_agents <= 0:
            raise ValueError("max_agents must be positive")
        if self.token_budget <= 0:
            raise ValueError("token_budget must be positive")

    def to_dict(self) -> dict[str, object]:
        payload = asdict(self)
        payload["strategy"] = self.strategy.value
        payload["complexity"] = self.complexity.value
        return payload


@dataclass(frozen=True)
class ClassifierThresholds:
    """Word-count gates and confidences used by the mode classifier."""

    quick_marker_max_words: int = 30
    creation_verb_min_words: int = 50
    long_query_words: int = 100
    max_sentences: int = 3
    max_question_marks: int = 2
    short_query_words: int = 20
    quick_marker_confidence: float = 0.9
    complex_confidence: float = 0.85
    long_query_confidence: float = 0.75
    multi_question_confidence: float = 0.7
    short_query_confidence: float = 0.6
    default_confidence: float = 0.5
    switch_min_confidence: float = 0.7
    switch_max_history: int = 3

    def __post_init__(self) -> None:
        for item in fields(self):
            value = getattr(self, item.name)
            if item.name.endswith("_confidence") and not 0.0 <= value <= 1.0:
                raise ValueError(f"{item.name} must be within [0, 1], got {value}")

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


DEFAULT_QUICK_CHAT_CONFIG = QuickChatConfig()
DEFAULT_TASK_CHAT_CONFIG = TaskChatConfig()
DEFAULT_CLASSIFIER_THRESHOLDS = ClassifierThresholds()

ConfigT = TypeVar("ConfigT", QuickChatConfig, TaskChatConfig, ClassifierThresholds)


def merge_config(defaults: ConfigT, overrides: ConfigT | Mapping[str, Any] | None) -> ConfigT:
    """Shallow-merge caller overrides onto a default value object.

    A full config object replaces the defaults outright. A mapping overrides
    only the keys it names; ``None`` values are ignored. The inputs are never
    mutated.

    Raises:
        ValueError: On unknown keys or values that fail validation.
    """
    if overrides is None:
        return defaults
    if isinstance(overrides, type(defaults)):
        return overrides
    known = {field.name for field in fields(defaults)}
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise ValueError(
            f"Unknown {type(defaults).__name__} option(s): {', '.join(unknown)}"
        )
    changes = {key: value for key, value in overrides.items() if value is not None}
    try:
        return replace(defaults, **changes)
    except TypeError as exc:
        raise ValueError(f"Invalid {type(defaults).__name__} option: {exc}") from exc
