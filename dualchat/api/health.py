from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from dualchat.clients.http import normalize_base_url
from dualchat.core.config import Settings
from dualchat.core.dependencies import get_settings

router = APIRouter()


@router.get("/ping")
def ping() -> dict[str, str]:
    return {"message": "pong"}


@router.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
def readyz(
    response: Response,
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> dict[str, object]:
    """Report which backends and model providers are configured.

    Only configuration is checked; backends are not contacted.
    """
    backends = {
        "orchestrator": bool(normalize_base_url(settings.orchestrator_url)),
        "knowledge": bool(normalize_base_url(settings.knowledge_url)),
    }
    providers = [
        name for name in ("openai", "anthropic", "google") if settings.api_key_for(name)
    ]
    ready = backends["orchestrator"]
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return {
        "status": "ok" if ready else "unavailable",
        "backends": backends,
        "providers": providers,
    }


@router.get("/")
def root() -> dict[str, str]:
    return {"status": "ok", "message": "dual-chat-agent is running"}
