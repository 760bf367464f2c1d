"""Exception types raised by the chat pipelines.

Augmentation and classification failures never reach callers, so only backend
rejections and client-side timeouts have dedicated types.
"""

from __future__ import annotations


class DualChatError(Exception):
    """Base class for errors surfaced to pipeline callers."""


class BackendError(DualChatError):
    """An external backend rejected a call or returned an unusable response.

    Attributes:
        service: Short name of the backend (``conversation``, ``orchestrator``,
            ``knowledge``).
        detail: The backend's message, passed through unmodified.
        status_code: HTTP status when the failure came from an HTTP response.
    """

    def __init__(self, service: str, detail: str, status_code: int | None = None) -> None:
        self.service = service
        self.detail = detail
        self.status_code = status_code
        prefix = f"{service} error"
        if status_code is not None:
            prefix = f"{prefix} {status_code}"
        super().__init__(f"{prefix}: {detail}")


class TaskTimeoutError(DualChatError, TimeoutError):
    """A task did not reach a terminal state before the client-side deadline."""

    def __init__(self, task_id: str, timeout_ms: int) -> None:
        self.task_id = task_id
        self.timeout_ms = timeout_ms
        super().__init__(f"Task {task_id} timed out after {timeout_ms}ms")
