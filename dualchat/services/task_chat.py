"""Task submission and lifecycle observation.

Task progress is observed by polling the orchestrator: each ``observe`` call
keeps its own last-seen snapshot and turns status deltas into ``TaskEvent``
values, so several observers of one task never share mutable state.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Mapping, Sequence
from typing import Any

from dualchat.clients.orchestrator import OrchestrationBackend
from dualchat.core.errors import TaskTimeoutError
from dualchat.models.chat import DEFAULT_TASK_CHAT_CONFIG, TaskChatConfig, merge_config
from dualchat.models.task import (
    TaskEvent,
    TaskEventData,
    TaskEventType,
    TaskHandle,
    TaskState,
)
from dualchat.services.augmentation import RetrievalAugmenter

logger = logging.getLogger(__name__)

WAIT_POLL_INTERVAL_MS = 1000


class TaskChatService:
    def __init__(
        self,
        backend: OrchestrationBackend,
        augmenter: RetrievalAugmenter | None = None,
        defaults: TaskChatConfig = DEFAULT_TASK_CHAT_CONFIG,
    ) -> None:
        self._backend = backend
        self._augmenter = augmenter
        self._defaults = defaults

    async def submit(
        self,
        query: str,
        context: Sequence[str] = (),
        config: TaskChatConfig | Mapping[str, Any] | None = None,
        conversation_id: str | None = None,
    ) -> TaskHandle:
        """Submit a task, appending knowledge-base context to a copy of ``context``.

        Raises:
            BackendError: If the orchestrator rejects the submission.
        """
        resolved = merge_config(self._defaults, config)
        task_context = list(context)
        if conversation_id and self._augmenter is not None:
            augmented = await self._augmenter.augment(conversation_id, query)
            task_context = augmented.extend_task_context(task_context)
        return await self._backend.submit_task(query, task_context, resolved)

    async def get_status(self, task_id: str) -> TaskHandle:
        return await self._backend.get_status(task_id)

    async def cancel(self, task_id: str) -> bool:
        """Request cancellation; the next poll observes the resulting state."""
        cancelled = await self._backend.cancel_task(task_id)
        logger.info("Cancellation of task %s %s", task_id, "accepted" if cancelled else "refused")
        return cancelled

    async def observe(
        self, task_id: str, poll_interval_ms: int = 1000
    ) -> AsyncIterator[TaskEvent]:
        """Yield lifecycle events for ``task_id`` until it reaches a terminal state.

        Only deltas are emitted. A ``completed`` or ``failed`` event is always
        the last one; polling errors are folded into a terminal ``failed``
        event instead of propagating.
        """
        last_state: TaskState | None = None
        last_progress = 0
        while True:
            try:
                status = await self._backend.get_status(task_id)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Polling task %s failed: %s", task_id, exc)
                yield _event(TaskEventType.FAILED, task_id, error=f"Stream error: {exc}")
                return

            logger.debug(
                "Task %s polled: state=%s progress=%d",
                task_id,
                status.state.value,
                status.progress,
            )
            if status.state != last_state:
                yield _event(
                    TaskEventType.STATE_CHANGED,
                    task_id,
                    state=status.state,
                    message=status.message,
                )
                last_state = status.state
            if status.progress != last_progress:
                yield _event(
                    TaskEventType.PROGRESS,
                    task_id,
                    progress=status.progress,
                    message=status.message,
                )
                last_progress = status.progress

            if status.state == TaskState.COMPLETED:
                yield _event(
                    TaskEventType.COMPLETED, task_id, progress=100, message=status.message
                )
                return
            if status.state == TaskState.FAILED:
                yield _event(TaskEventType.FAILED, task_id, error=status.message or "Task failed")
                return

            await asyncio.sleep(poll_interval_ms / 1000)

    async def wait_for_completion(
        self,
        task_id: str,
        timeout_ms: int = 300_000,
        poll_interval_ms: int = WAIT_POLL_INTERVAL_MS,
    ) -> TaskHandle:
        """Poll until the task is terminal and return its final handle.

        The budget covers the status requests themselves: a request still in
        flight when ``timeout_ms`` runs out is abandoned.

        Raises:
            TaskTimeoutError: If ``timeout_ms`` elapses first. The task itself is
                left running.
            BackendError: If a status request fails.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout_ms / 1000
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            try:
                status = await asyncio.wait_for(self._backend.get_status(task_id), remaining)
            except asyncio.TimeoutError:
                logger.info("Status request for task %s outlived the wait budget", task_id)
                break
            if status.state.is_terminal:
                return status
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            await asyncio.sleep(min(poll_interval_ms / 1000, remaining))
        raise TaskTimeoutError(task_id, timeout_ms)


def _event(
    event_type: TaskEventType,
    task_id: str,
    *,
    progress: int | None = None,
    message: str | None = None,
    error: str | None = None,
    state: TaskState | None = None,
) -> TaskEvent:
    return TaskEvent(
        type=event_type,
        task_id=task_id,
        data=TaskEventData(progress=progress, message=message, error=error, state=state),
    )
