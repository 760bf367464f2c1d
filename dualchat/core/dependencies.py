from __future__ import annotations

from functools import lru_cache

from dualchat.clients.knowledge import KnowledgeClient
from dualchat.clients.orchestrator import OrchestratorClient
from dualchat.clients.strands_agent import StrandsConversationalBackend
from dualchat.core.config import Settings, load_settings
from dualchat.services.augmentation import RetrievalAugmenter
from dualchat.services.mode_detection import ModeClassifier
from dualchat.services.quick_chat import QuickChatService
from dualchat.services.task_chat import TaskChatService


@lru_cache
def get_settings() -> Settings:
    return load_settings()


@lru_cache
def get_orchestrator_client() -> OrchestratorClient:
    return OrchestratorClient(get_settings())


@lru_cache
def get_knowledge_client() -> KnowledgeClient:
    return KnowledgeClient(get_settings())


@lru_cache
def get_augmenter() -> RetrievalAugmenter:
    settings = get_settings()
    return RetrievalAugmenter(get_knowledge_client(), default_top_k=settings.retrieval_top_k)


@lru_cache
def get_mode_classifier() -> ModeClassifier:
    settings = get_settings()
    remote = get_orchestrator_client() if settings.remote_mode_detection else None
    return ModeClassifier(settings.classifier_thresholds, remote=remote)


@lru_cache
def get_quick_chat_service() -> QuickChatService:
    settings = get_settings()
    return QuickChatService(
        StrandsConversationalBackend(settings),
        augmenter=get_augmenter(),
        defaults=settings.quick_chat_defaults,
    )


@lru_cache
def get_task_chat_service() -> TaskChatService:
    settings = get_settings()
    return TaskChatService(
        get_orchestrator_client(),
        augmenter=get_augmenter(),
        defaults=settings.task_chat_defaults,
    )


async def close_clients() -> None:
    # Only close clients that were actually created.
    if get_orchestrator_client.cache_info().currsize:
        await get_orchestrator_client().aclose()
        get_orchestrator_client.cache_clear()
    if get_knowledge_client.cache_info().currsize:
        await get_knowledge_client().aclose()
        get_knowledge_client.cache_clear()
