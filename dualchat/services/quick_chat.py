from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Mapping, Sequence
from typing import Any

from dualchat.clients.strands_agent import ConversationalBackend
from dualchat.core.errors import BackendError
from dualchat.models.chat import (
    DEFAULT_QUICK_CHAT_CONFIG,
    ChatMessage,
    QuickChatConfig,
    merge_config,
)
from dualchat.services.augmentation import RetrievalAugmenter

logger = logging.getLogger(__name__)


class QuickChatService:
    def __init__(
        self,
        backend: ConversationalBackend,
        augmenter: RetrievalAugmenter | None = None,
        defaults: QuickChatConfig = DEFAULT_QUICK_CHAT_CONFIG,
    ) -> None:
        self._backend = backend
        self._augmenter = augmenter
        self._defaults = defaults

    async def send(
        self,
        message: str,
        history: Sequence[ChatMessage] = (),
        config: QuickChatConfig | Mapping[str, Any] | None = None,
        conversation_id: str | None = None,
    ) -> AsyncIterator[str]:
        """Send one message and yield the reply as it is produced.

        The message is augmented with knowledge-base context when a
        conversation id is given. The returned generator is single-use; a
        backend failure aborts it with ``BackendError``.
        """
        resolved = merge_config(self._defaults, config)
        prompt = message
        if conversation_id and self._augmenter is not None:
            augmented = await self._augmenter.augment(conversation_id, message)
            prompt = augmented.as_quick_prompt()

        try:
            async for fragment in self._backend.stream_chat(prompt, list(history), resolved):
                yield fragment
        except BackendError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.exception("Quick chat failed (provider=%s)", resolved.provider.value)
            raise BackendError("conversation", f"Quick chat failed: {exc}") from exc

    async def send_and_collect(
        self,
        message: str,
        history: Sequence[ChatMessage] = (),
        config: QuickChatConfig | Mapping[str, Any] | None = None,
        conversation_id: str | None = None,
    ) -> str:
        """Send one message and return the complete reply."""
        reply = ""
        async for fragment in self.send(message, history, config, conversation_id):
            reply += fragment
        return reply
