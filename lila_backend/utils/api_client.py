"""HTTP client utilities using httpx.

All outbound calls to the Supabase auth and REST endpoints go through
:func:`request`.  A fresh :class:`httpx.AsyncClient` is opened per call so
no connection state is shared between requests.  Transport failures and
timeouts are raised as :class:`ProviderUnavailable`; HTTP error statuses
are returned to the caller, which decides what they mean.
"""

from __future__ import annotations

from typing import Any, Mapping

import httpx
from loguru import logger

from .error_handler import ProviderUnavailable


async def request(
    method: str,
    url: str,
    *,
    headers: Mapping[str, str] | None = None,
    params: Mapping[str, Any] | None = None,
    json: Any = None,
    timeout: float = 10.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.Response:
    """Perform an asynchronous HTTP request bounded by ``timeout`` seconds."""
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            return await client.request(method, url, headers=headers, params=params, json=json)
    except httpx.TimeoutException as exc:
        logger.error("{} {} timed out after {}s", method, url, timeout)
        raise ProviderUnavailable() from exc
    except httpx.HTTPError as exc:
        logger.error("{} {} failed: {}", method, url, exc)
        raise ProviderUnavailable() from exc


def error_text(response: httpx.Response) -> str:
    """Extract a readable error message from a provider error response."""
    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(payload, dict):
        for key in ("message", "msg", "error_description", "error"):
            if payload.get(key):
                return str(payload[key])
    return str(payload)
