"""Utilities for creating standardized httpx AsyncClient instances."""

from typing import Any, Protocol

import httpx

__all__ = ["HttpClientFactory", "create_http_client"]


class HttpClientFactory(Protocol):
    def __call__(self, **kwargs: Any) -> httpx.AsyncClient: ...


def create_http_client(**kwargs: Any) -> httpx.AsyncClient:
    """Create an httpx AsyncClient with the defaults used for the Argo CD API.

    Defaults:
    - follow_redirects=True
    - a 30 second timeout
    - JSON content type and accept headers

    Any keyword argument accepted by httpx.AsyncClient overrides the defaults,
    e.g. ``base_url``, ``verify`` or ``transport``.

    The returned AsyncClient must be closed (``aclose()`` or ``async with``)
    to release its connections.

    Examples:
        async with create_http_client(base_url="https://argocd.example.com") as client:
            response = await client.get("/api/v1/applications")

        # Self-signed certificates
        async with create_http_client(base_url=url, verify=False) as client:
            ...
    """
    default_kwargs: dict[str, Any] = {
        "follow_redirects": True,
        "timeout": httpx.Timeout(30.0),
        "headers": {"Content-Type": "application/json", "Accept": "application/json"},
    }
    default_kwargs.update(kwargs)
    return httpx.AsyncClient(**default_kwargs)
