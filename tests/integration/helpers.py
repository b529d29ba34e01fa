"""Request helpers for the integration tests."""

from __future__ import annotations

import httpx

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "admin123"
ADMIN_KEY = "test-admin-key"


def session_id_from(response: httpx.Response) -> str:
    """Session id carried by the response's Set-Cookie header."""
    first = response.headers["set-cookie"].split(";", 1)[0]
    name, _, value = first.partition("=")
    assert name == "sid"
    return value


async def login(
    client: httpx.AsyncClient,
    username: str = ADMIN_USERNAME,
    password: str = ADMIN_PASSWORD,
) -> str:
    """Log in and return the session id. The client's own jar is left empty."""
    response = await client.post("/auth/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    client.cookies.clear()
    return session_id_from(response)


def cookie(session_id: str) -> dict[str, str]:
    return {"Cookie": f"sid={session_id}"}


def admin_headers(session_id: str, key: str = ADMIN_KEY) -> dict[str, str]:
    return {**cookie(session_id), "x-admin-key": key}
