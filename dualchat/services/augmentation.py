from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from dualchat.clients.knowledge import RetrievalBackend
from dualchat.models.knowledge import RetrievedChunk

logger = logging.getLogger(__name__)

QUICK_CONTEXT_HEADER = "Context from knowledge base:"
TASK_CONTEXT_HEADER = "Knowledge Base Context:"


@dataclass(frozen=True)
class AugmentedInput:
    query: str
    chunks: tuple[RetrievedChunk, ...] = field(default_factory=tuple)

    @property
    def augmented(self) -> bool:
        return bool(self.chunks)

    @property
    def context_block(self) -> str:
        return "\n\n".join(chunk.format() for chunk in self.chunks)

    def as_quick_prompt(self) -> str:
        """Prefix the retrieved context before the user query."""
        if not self.augmented:
            return self.query
        return (
            f"{QUICK_CONTEXT_HEADER}\n\n{self.context_block}\n\n---\n\nUser query: {self.query}"
        )

    def extend_task_context(self, context: Sequence[str]) -> list[str]:
        """Return a copy of ``context`` with the retrieved context appended."""
        extended = list(context)
        if self.augmented:
            extended.append(f"{TASK_CONTEXT_HEADER}\n{self.context_block}")
        return extended


class RetrievalAugmenter:
    """Best-effort knowledge-base augmentation shared by both pipelines.

    Failures while resolving sources or searching are logged and treated as
    "no augmentation available"; ``augment`` never raises.
    """

    def __init__(self, backend: RetrievalBackend, default_top_k: int = 5) -> None:
        self._backend = backend
        self._default_top_k = default_top_k

    async def augment(
        self, conversation_id: str, query: str, top_k: int | None = None
    ) -> AugmentedInput:
        limit = max(0, self._default_top_k if top_k is None else top_k)
        if limit == 0:
            return AugmentedInput(query=query)
        try:
            sources = await self._backend.get_attached_sources(conversation_id)
            if not sources:
                return AugmentedInput(query=query)
            chunks = await self._backend.search_across(
                [source.id for source in sources], query, limit
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Knowledge base augmentation failed for conversation %s: %s",
                conversation_id,
                exc,
            )
            return AugmentedInput(query=query)

        if not chunks:
            return AugmentedInput(query=query)
        logger.info(
            "Augmented query with %d chunk(s) from %d knowledge base(s)",
            len(chunks[:limit]),
            len(sources),
        )
        return AugmentedInput(query=query, chunks=tuple(chunks[:limit]))
