"""Integration test fixtures.

Provides a fully wired AppState around a temp user store, a fake summarizer
and a real httpx client (mocked per test with respx), plus an ASGI client
talking to the Starlette app. The base URL is https because the session
cookie is Secure.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest

from announcehelper.announcements import AnnouncementService
from announcehelper.cache import SummaryCache
from announcehelper.fetcher import Fetcher
from announcehelper.ratelimit import SlidingWindowRateLimiter
from announcehelper.server import create_app
from announcehelper.sessions import SessionManager
from announcehelper.state import AppState
from announcehelper.users import UserStore
from tests.integration.helpers import ADMIN_PASSWORD, ADMIN_USERNAME

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path

    from starlette.applications import Starlette

    from announcehelper.config import Settings
    from tests.fakes import FakeSummarizer


@pytest.fixture()
async def app_state(
    settings: Settings,
    users_path: Path,
    fake_summarizer: FakeSummarizer,
) -> AsyncIterator[AppState]:
    users = UserStore(users_path, bcrypt_rounds=4)
    await users.ensure_bootstrapped(ADMIN_USERNAME, ADMIN_PASSWORD)

    async with httpx.AsyncClient() as http_client:
        cache = SummaryCache(fake_summarizer)
        yield AppState(
            settings=settings,
            users=users,
            sessions=SessionManager(),
            cache=cache,
            login_limiter=SlidingWindowRateLimiter(10, 60),
            announcements=AnnouncementService(Fetcher(http_client), cache, settings.fetcher),
            http_client=http_client,
        )


@pytest.fixture()
def app(app_state: AppState) -> Starlette:
    return create_app(state=app_state)


@pytest.fixture()
async def client(app: Starlette) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="https://testserver",
    ) as client:
        yield client
