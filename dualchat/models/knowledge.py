from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class KnowledgeSource:
    id: str
    name: str


@dataclass(frozen=True)
class RetrievedChunk:
    document_title: str
    content: str
    score: float

    def format(self) -> str:
        return f"{self.document_title}: {self.content}"
