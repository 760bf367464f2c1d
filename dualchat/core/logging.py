from __future__ import annotations

import logging
import re
from collections.abc import Iterable

_PROBE_PATHS = {"/healthz", "/readyz", "/ping", "/"}
_TASK_STATUS_PATH = re.compile(r"^/tasks/[^/]+$")


class _PollingAccessFilter(logging.Filter):
    """Drop access-log lines for probes and task status polls.

    Clients observing a task hit ``GET /tasks/{id}`` once per poll interval, which
    would otherwise dominate the access log.
    """

    def __init__(self, probe_paths: Iterable[str]) -> None:
        super().__init__()
        self._probe_paths = {path.rstrip("/") or "/" for path in probe_paths}

    def filter(self, record: logging.LogRecord) -> bool:
        method, path = _extract_request(record)
        if path is None:
            return True
        if path in self._probe_paths:
            return False
        if method == "GET" and _TASK_STATUS_PATH.match(path):
            return False
        return True


def _extract_request(record: logging.LogRecord) -> tuple[str | None, str | None]:
    # uvicorn.access args: (client_addr, method, full_path, http_version, status_code)
    args = record.args
    if isinstance(args, tuple) and len(args) >= 3:
        method = str(args[1]).upper()
        path = str(args[2]).split("?", 1)[0]
        return method, path.rstrip("/") or "/"
    return None, None


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    access_logger = logging.getLogger("uvicorn.access")
    access_logger.addFilter(_PollingAccessFilter(_PROBE_PATHS))
