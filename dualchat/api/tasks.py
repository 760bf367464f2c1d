from __future__ import annotations

import json
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from dualchat.core.config import Settings
from dualchat.core.dependencies import get_settings, get_task_chat_service
from dualchat.core.errors import BackendError, TaskTimeoutError
from dualchat.schemas.task import (
    TaskCancelResponse,
    TaskHandleResponse,
    TaskSubmitRequest,
    TaskWaitRequest,
)
from dualchat.services.task_chat import TaskChatService

router = APIRouter(prefix="/tasks")


@router.post("", response_model=TaskHandleResponse)
async def submit_task(
    request: TaskSubmitRequest,
    service: TaskChatService = Depends(get_task_chat_service),  # noqa: B008
) -> TaskHandleResponse:
    try:
        handle = await service.submit(
            request.query,
            request.context,
            request.config.model_dump(exclude_none=True),
            request.conversation_id,
        )
    except BackendError as exc:
        raise HTTPException(status_code=502, detail=f"Failed to submit task: {exc}") from exc
    return TaskHandleResponse.from_handle(handle)


@router.get("/{task_id}", response_model=TaskHandleResponse)
async def get_task_status(
    task_id: str,
    service: TaskChatService = Depends(get_task_chat_service),  # noqa: B008
) -> TaskHandleResponse:
    try:
        handle = await service.get_status(task_id)
    except BackendError as exc:
        raise HTTPException(status_code=502, detail=f"Failed to get task status: {exc}") from exc
    return TaskHandleResponse.from_handle(handle)


@router.post("/{task_id}/cancel", response_model=TaskCancelResponse)
async def cancel_task(
    task_id: str,
    service: TaskChatService = Depends(get_task_chat_service),  # noqa: B008
) -> TaskCancelResponse:
    try:
        cancelled = await service.cancel(task_id)
    except BackendError as exc:
        raise HTTPException(status_code=502, detail=f"Failed to cancel task: {exc}") from exc
    return TaskCancelResponse(task_id=task_id, cancelled=cancelled)


@router.get("/{task_id}/events")
async def stream_task_events(
    task_id: str,
    poll_interval_ms: int | None = None,
    service: TaskChatService = Depends(get_task_chat_service),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> StreamingResponse:
    """Relay lifecycle events as server-sent events until the task is terminal."""
    interval = settings.task_poll_interval_ms if poll_interval_ms is None else poll_interval_ms

    async def body() -> AsyncIterator[str]:
        async for event in service.observe(task_id, max(0, interval)):
            yield f"event: {event.type.value}\ndata: {json.dumps(event.to_dict())}\n\n"

    return StreamingResponse(body(), media_type="text/event-stream")


@router.post("/{task_id}/wait", response_model=TaskHandleResponse)
async def wait_for_task(
    task_id: str,
    request: TaskWaitRequest | None = None,
    service: TaskChatService = Depends(get_task_chat_service),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> TaskHandleResponse:
    timeout_ms = settings.task_timeout_ms
    if request is not None and request.timeout_ms is not None:
        timeout_ms = request.timeout_ms
    try:
        handle = await service.wait_for_completion(
            task_id, timeout_ms, poll_interval_ms=settings.task_poll_interval_ms
        )
    except TaskTimeoutError as exc:
        raise HTTPException(status_code=504, detail=str(exc)) from exc
    except BackendError as exc:
        raise HTTPException(status_code=502, detail=f"Failed to get task status: {exc}") from exc
    return TaskHandleResponse.from_handle(handle)
