"""Tests for BodySizeLimitMiddleware.

Each test exercises the middleware directly via httpx's ASGI transport so no
real server is started. The inner app echoes the size of the body it read.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

from announcehelper.transport import BodySizeLimitMiddleware

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from starlette.types import ASGIApp, Receive, Scope, Send

LIMIT = 1024


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _echo_size_app(scope: Scope, receive: Receive, send: Send) -> None:
    """Minimal ASGI app that reads the whole body and reports its length."""
    size = 0
    more_body = True
    while more_body:
        message = await receive()
        size += len(message.get("body", b""))
        more_body = message.get("more_body", False)
    await send({"type": "http.response.start", "status": 200, "headers": []})
    await send({"type": "http.response.body", "body": str(size).encode()})


def _client(app: ASGIApp) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://localhost",
    )


async def _chunks(count: int, size: int) -> AsyncIterator[bytes]:
    for _ in range(count):
        yield b"x" * size


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


async def test_body_within_limit_passes() -> None:
    app = BodySizeLimitMiddleware(_echo_size_app, max_body_bytes=LIMIT)
    async with _client(app) as client:
        response = await client.post("/api/summarize", content=b"x" * LIMIT)
    assert response.status_code == 200
    assert response.text == str(LIMIT)


async def test_declared_length_over_limit_rejected() -> None:
    app = BodySizeLimitMiddleware(_echo_size_app, max_body_bytes=LIMIT)
    async with _client(app) as client:
        response = await client.post("/api/summarize", content=b"x" * (LIMIT + 1))
    assert response.status_code == 413
    assert response.json()["error"] == "INVALID_INPUT"


async def test_streamed_body_over_limit_rejected() -> None:
    app = BodySizeLimitMiddleware(_echo_size_app, max_body_bytes=LIMIT)
    async with _client(app) as client:
        response = await client.post("/api/summarize", content=_chunks(4, 512))
    assert response.status_code == 413


async def test_streamed_body_within_limit_passes() -> None:
    app = BodySizeLimitMiddleware(_echo_size_app, max_body_bytes=LIMIT)
    async with _client(app) as client:
        response = await client.post("/api/summarize", content=_chunks(2, 256))
    assert response.status_code == 200
    assert response.text == "512"


async def test_get_without_body_passes() -> None:
    app = BodySizeLimitMiddleware(_echo_size_app, max_body_bytes=LIMIT)
    async with _client(app) as client:
        response = await client.get("/")
    assert response.status_code == 200
