from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Sequence
from typing import Any, Protocol

from strands import Agent

from dualchat.clients.llm_providers import ModelConfig, create_model, get_provider_config
from dualchat.clients.llm_providers.base import StrandsModel
from dualchat.core.config import Settings
from dualchat.models.chat import ChatMessage, MessageRole, QuickChatConfig


class ConversationalBackend(Protocol):
    def stream_chat(
        self,
        message: str,
        history: Sequence[ChatMessage],
        config: QuickChatConfig,
    ) -> AsyncIterator[str]:
        raise NotImplementedError


class StrandsConversationalBackend:
    """Conversational backend running one stateless strands Agent per request."""

    def __init__(
        self,
        settings: Settings,
        model_factory: Callable[[ModelConfig], StrandsModel] = create_model,
    ) -> None:
        self._settings = settings
        self._model_factory = model_factory

    async def stream_chat(
        self,
        message: str,
        history: Sequence[ChatMessage],
        config: QuickChatConfig,
    ) -> AsyncIterator[str]:
        model = self._model_factory(get_provider_config(self._settings, config))
        agent = Agent(
            model=model,
            messages=to_strands_messages(history),
            system_prompt=collect_system_prompt(history),
            callback_handler=None,
        )
        if not config.stream:
            result = await agent.invoke_async(message)
            text = str(result).strip()
            if text:
                yield text
            return

        async for event in agent.stream_async(message):
            text = event.get("data")
            if isinstance(text, str) and text:
                yield text


def to_strands_messages(history: Sequence[ChatMessage]) -> list[dict[str, Any]]:
    """Convert transcript messages into strands conversation messages.

    System messages are excluded; they are passed as the agent's system prompt.
    """
    return [
        {"role": item.role.value, "content": [{"text": item.content}]}
        for item in history
        if item.role != MessageRole.SYSTEM and item.content
    ]


def collect_system_prompt(history: Sequence[ChatMessage]) -> str | None:
    parts = [item.content for item in history if item.role == MessageRole.SYSTEM and item.content]
    if not parts:
        return None
    return "\n\n".join(parts)
