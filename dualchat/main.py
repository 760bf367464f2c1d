from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from dualchat.api import chat, health, tasks
from dualchat.core.dependencies import close_clients, get_settings
from dualchat.core.logging import configure_logging

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "Starting dual-chat-agent on port %s (orchestrator=%s, knowledge=%s)",
        settings.port,
        settings.orchestrator_url,
        settings.knowledge_url,
    )
    yield
    await close_clients()


app = FastAPI(title="dual-chat-agent", version="1.0.0", lifespan=lifespan)
app.include_router(health.router)
app.include_router(chat.router)
app.include_router(tasks.router)
