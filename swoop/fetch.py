"""Fetching URLs through a shared HTTP client with SSRF protection."""

from __future__ import annotations

from datetime import timedelta

import httpx

from .security import UrlValidator

DEFAULT_TIMEOUT_SECS = 30.0

_VALIDATOR = UrlValidator()
_shared_client: httpx.AsyncClient | None = None


def _seconds(value: float | timedelta) -> float:
    if isinstance(value, timedelta):
        return value.total_seconds()
    return float(value)


def new_client() -> httpx.AsyncClient:
    """Create a pooled async client with a 30 second default timeout."""
    return httpx.AsyncClient(timeout=DEFAULT_TIMEOUT_SECS, follow_redirects=True)


async def fetch_with_timeout(
    client: httpx.AsyncClient, url: str, request_timeout: float | timedelta
) -> bytes:
    """GET ``url`` with ``client`` and return the response body."""
    response = await client.get(url, timeout=_seconds(request_timeout))
    return response.content


def _client() -> httpx.AsyncClient:
    global _shared_client
    if _shared_client is None or _shared_client.is_closed:
        _shared_client = new_client()
    return _shared_client


async def fetch_url(url: str, request_timeout: float | timedelta) -> bytes:
    """Validate ``url`` and fetch its body using the shared client."""
    _VALIDATOR.validate_url(url)
    return await fetch_with_timeout(_client(), url, request_timeout)