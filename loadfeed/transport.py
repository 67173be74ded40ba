"""httpx transport for the executor's send callback.

The executor owns timeouts (and cancels in-flight calls on expiry), so the client is
created with httpx timeouts disabled.
"""

from __future__ import annotations

import httpx

from .models import PreparedRequest, TransportResponse

# Tuned for throughput: high connection limits, one shared client per run.
DEFAULT_MAX_CONNECTIONS = 5000
DEFAULT_MAX_KEEPALIVE = 500
DEFAULT_KEEPALIVE_EXPIRY = 30.0


def create_client(
    http2: bool = True,
    limits: httpx.Limits | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create the shared async HTTP client.

    Args:
        http2: Enable HTTP/2 (requires the h2 package)
        limits: Custom connection limits (uses high defaults if not specified)
        transport: Optional low-level transport (e.g. httpx.MockTransport in tests)

    Returns:
        Configured AsyncClient ready for use as async context manager
    """
    limits = limits or httpx.Limits(
        max_connections=DEFAULT_MAX_CONNECTIONS,
        max_keepalive_connections=DEFAULT_MAX_KEEPALIVE,
        keepalive_expiry=DEFAULT_KEEPALIVE_EXPIRY,
    )
    return httpx.AsyncClient(
        http2=http2,
        timeout=None,
        limits=limits,
        transport=transport,
    )


class HttpxTransport:
    """Send callback backed by a shared httpx.AsyncClient."""

    __slots__ = ("_client",)

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def __call__(self, request: PreparedRequest) -> TransportResponse:
        r = await self._client.request(
            request.method,
            request.url,
            headers=request.headers,
            content=request.body,
        )
        return TransportResponse(status_code=r.status_code, size_bytes=len(r.content))
