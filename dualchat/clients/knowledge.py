from __future__ import annotations

import logging
import urllib.parse
from typing import Protocol

import httpx

from dualchat.clients.http import normalize_base_url, request_json
from dualchat.core.config import Settings
from dualchat.core.errors import BackendError
from dualchat.models.knowledge import KnowledgeSource, RetrievedChunk

_SERVICE = "knowledge"


class RetrievalBackend(Protocol):
    async def get_attached_sources(self, conversation_id: str) -> list[KnowledgeSource]:
        raise NotImplementedError

    async def search_across(
        self, source_ids: list[str], query: str, limit: int
    ) -> list[RetrievedChunk]:
        raise NotImplementedError


class KnowledgeClient:
    """Read-only client for the knowledge-base service."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient | None = None) -> None:
        self._logger = logging.getLogger(__name__)
        self._base_url = normalize_base_url(settings.knowledge_url)
        self._client = http_client or httpx.AsyncClient(timeout=settings.http_timeout_seconds)
        if settings.knowledge_url and not self._base_url:
            self._logger.warning("Invalid KNOWLEDGE_URL: %s", settings.knowledge_url)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_attached_sources(self, conversation_id: str) -> list[KnowledgeSource]:
        path = urllib.parse.quote(conversation_id, safe="")
        payload = await request_json(
            self._client,
            _SERVICE,
            "GET",
            self._url(f"/api/conversations/{path}/knowledge-bases"),
        )
        return [
            KnowledgeSource(id=str(entry["id"]), name=str(entry.get("name") or entry["id"]))
            for entry in _extract_entries(payload, ("knowledge_bases", "knowledgeBases", "data"))
            if entry.get("id") not in ("", None)
        ]

    async def search_across(
        self, source_ids: list[str], query: str, limit: int
    ) -> list[RetrievedChunk]:
        payload = await request_json(
            self._client,
            _SERVICE,
            "POST",
            self._url("/api/knowledge/search"),
            json={"knowledge_base_ids": source_ids, "query": query, "limit": max(1, limit)},
        )
        chunks: list[RetrievedChunk] = []
        for entry in _extract_entries(payload, ("results", "data")):
            content = entry.get("content")
            if not isinstance(content, str) or not content:
                continue
            title = entry.get("documentTitle") or entry.get("document_title") or "Untitled"
            try:
                score = float(entry.get("score") or 0.0)
            except (TypeError, ValueError):
                score = 0.0
            chunks.append(RetrievedChunk(document_title=str(title), content=content, score=score))
        return chunks[:limit]

    def _url(self, path: str) -> str:
        if not self._base_url:
            raise BackendError(_SERVICE, "knowledge url not configured")
        return f"{self._base_url}{path}"


def _extract_entries(payload: object, keys: tuple[str, ...]) -> list[dict[str, object]]:
    entries: object = []
    if isinstance(payload, list):
        entries = payload
    elif isinstance(payload, dict):
        for key in keys:
            if isinstance(payload.get(key), list):
                entries = payload[key]
                break
    else:
        raise BackendError(_SERVICE, f"unexpected payload type {type(payload).__name__}")
    return [entry for entry in entries if isinstance(entry, dict)]
