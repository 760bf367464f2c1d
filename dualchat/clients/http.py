from __future__ import annotations

import logging
import urllib.parse
from typing import Any

import httpx

from dualchat.core.errors import BackendError

logger = logging.getLogger(__name__)


def normalize_base_url(raw: str) -> str:
    value = raw.strip()
    if not value:
        return ""
    if "://" not in value:
        value = f"http://{value}"
    parsed = urllib.parse.urlparse(value)
    if not parsed.scheme or not parsed.netloc:
        return ""
    return value.rstrip("/")


async def request_json(
    client: httpx.AsyncClient,
    service: str,
    method: str,
    url: str,
    *,
    json: dict[str, object] | None = None,
) -> Any:
    """Send one request and decode its JSON body.

    Raises:
        BackendError: On transport failures, non-2xx responses and bodies that
            are not JSON. The backend's response text is carried as the detail.
    """
    try:
        response = await client.request(method, url, json=json)
    except httpx.HTTPError as exc:
        logger.warning("%s request failed for %s: %s", service, url, exc)
        raise BackendError(service, str(exc) or type(exc).__name__) from exc

    if response.is_error:
        body = response.text[:300]
        logger.warning("%s HTTP error %s for %s", service, response.status_code, url)
        raise BackendError(service, body or response.reason_phrase, response.status_code)

    if not response.content:
        return None
    try:
        return response.json()
    except ValueError as exc:
        logger.warning("Failed to decode %s response from %s: %s", service, url, exc)
        raise BackendError(service, f"failed to decode response: {exc}") from exc
