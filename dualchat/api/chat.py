from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from dualchat.core.config import Settings
from dualchat.core.dependencies import get_mode_classifier, get_quick_chat_service, get_settings
from dualchat.core.errors import BackendError
from dualchat.models.chat import ModeDetection
from dualchat.schemas.chat import (
    BatchModeRequest,
    BatchModeResponse,
    ChatDefaultsResponse,
    ModeAnalysisRequest,
    ModeAnalysisResponse,
    ModeRequest,
    ModeResponse,
    QuickChatRequest,
    QuickChatResponse,
)
from dualchat.services.mode_detection import ModeClassifier
from dualchat.services.quick_chat import QuickChatService

router = APIRouter(prefix="/chat")


@router.post("/mode", response_model=ModeResponse)
async def detect_mode(
    request: ModeRequest,
    classifier: ModeClassifier = Depends(get_mode_classifier),  # noqa: B008
) -> ModeResponse:
    """Classify a query as quick or task, optionally suggesting a mode switch."""
    if request.remote:
        detection = await classifier.classify_async(request.query)
    else:
        detection = classifier.classify(request.query)
    suggest_switch = None
    if request.current_mode is not None and request.history_length is not None:
        suggest_switch = classifier.should_switch(
            request.query, request.current_mode, request.history_length
        )
    return _to_mode_response(detection, suggest_switch)


@router.post("/mode/batch", response_model=BatchModeResponse)
def detect_modes(
    request: BatchModeRequest,
    classifier: ModeClassifier = Depends(get_mode_classifier),  # noqa: B008
) -> BatchModeResponse:
    detections = classifier.classify_many(request.queries)
    return BatchModeResponse(detections=[_to_mode_response(item) for item in detections])


@router.post("/mode/analyze", response_model=ModeAnalysisResponse)
def analyze_mode(
    request: ModeAnalysisRequest,
    classifier: ModeClassifier = Depends(get_mode_classifier),  # noqa: B008
) -> ModeAnalysisResponse:
    """Return the features behind a classification alongside the verdict."""
    return ModeAnalysisResponse(**classifier.analyze(request.query).to_dict())


@router.get("/defaults", response_model=ChatDefaultsResponse)
def chat_defaults(
    classifier: ModeClassifier = Depends(get_mode_classifier),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> ChatDefaultsResponse:
    return ChatDefaultsResponse(
        quick=settings.quick_chat_defaults.to_dict(),
        task=settings.task_chat_defaults.to_dict(),
        classifier_thresholds=classifier.thresholds.to_dict(),
    )


@router.post("/quick")
async def quick_chat(
    request: QuickChatRequest,
    service: QuickChatService = Depends(get_quick_chat_service),  # noqa: B008
) -> StreamingResponse:
    """Stream the reply as plain-text fragments."""
    fragments = service.send(
        request.message,
        [item.to_model() for item in request.history],
        _quick_overrides(request),
        request.conversation_id,
    )
    # Pull the first fragment before responding so early failures map to a status code.
    try:
        first = await anext(fragments, "")
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except BackendError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    async def body() -> AsyncIterator[str]:
        if first:
            yield first
        async for fragment in fragments:
            yield fragment

    return StreamingResponse(body(), media_type="text/plain; charset=utf-8")


@router.post("/quick/complete", response_model=QuickChatResponse)
async def quick_chat_complete(
    request: QuickChatRequest,
    service: QuickChatService = Depends(get_quick_chat_service),  # noqa: B008
) -> QuickChatResponse:
    try:
        reply = await service.send_and_collect(
            request.message,
            [item.to_model() for item in request.history],
            _quick_overrides(request),
            request.conversation_id,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except BackendError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return QuickChatResponse(reply=reply, conversation_id=request.conversation_id)


def _quick_overrides(request: QuickChatRequest) -> dict[str, object]:
    return request.config.model_dump(exclude_none=True)


def _to_mode_response(
    detection: ModeDetection, suggest_switch: bool | None = None
) -> ModeResponse:
    return ModeResponse(**detection.to_dict(), suggest_switch=suggest_switch)
