"""Provider identifiers and model settings for the quick-chat pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol, runtime_checkable

_PROVIDER_ALIASES = {"gemini": "google"}


class LLMProvider(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"

    @classmethod
    def from_string(cls, value: str) -> LLMProvider:
        """Resolve a provider name as found in chat configs and env overrides.

        Matching ignores case and surrounding whitespace; ``gemini`` resolves to
        ``google``.

        Raises:
            ValueError: If the name matches no provider.
        """
        normalized = value.lower().strip()
        normalized = _PROVIDER_ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            supported = ", ".join(p.value for p in cls)
            raise ValueError(f"Unsupported provider '{value}'. Supported: {supported}") from None

    @property
    def default_model_id(self) -> str:
        return DEFAULT_MODEL_IDS[self]


@dataclass(frozen=True)
class ModelConfig:
    """Resolved settings for one model instance.

    ``temperature`` and ``max_tokens`` come from the request's merged
    ``QuickChatConfig``; ``api_key`` comes from the environment.
    """

    provider: LLMProvider
    model_id: str
    api_key: str
    temperature: float | None = None
    max_tokens: int | None = None


@runtime_checkable
class StrandsModel(Protocol):
    """What ``strands.Agent`` needs from its ``model`` argument."""

    def stream(self, messages: list, **kwargs: object) -> object: ...


DEFAULT_MODEL_IDS: dict[LLMProvider, str] = {
    LLMProvider.OPENAI: "gpt-4",
    LLMProvider.ANTHROPIC: "claude-3-5-sonnet-20241022",
    LLMProvider.GOOGLE: "gemini-1.5-pro",
}
