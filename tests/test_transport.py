"""Unit tests for the httpx transport adapter."""

from __future__ import annotations

import asyncio

import httpx

from loadfeed.models import PreparedRequest, TransportResponse
from loadfeed.transport import HttpxTransport, create_client


def test_create_client_returns_async_client() -> None:
    async def _run():
        async with create_client(http2=False) as client:
            assert isinstance(client, httpx.AsyncClient)
    asyncio.run(_run())


def test_transport_sends_request_and_reports_size() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, content=b"created!")

    async def _run() -> TransportResponse:
        async with create_client(http2=False, transport=httpx.MockTransport(handler)) as client:
            send = HttpxTransport(client)
            return await send(
                PreparedRequest(
                    "POST",
                    "https://api.example.com/posts",
                    {"Content-Type": "application/json"},
                    b'{"a": 1}',
                )
            )

    response = asyncio.run(_run())
    assert response == TransportResponse(status_code=201, size_bytes=8)
    assert seen[0].method == "POST"
    assert str(seen[0].url) == "https://api.example.com/posts"
    assert seen[0].headers["content-type"] == "application/json"
    assert seen[0].content == b'{"a": 1}'
