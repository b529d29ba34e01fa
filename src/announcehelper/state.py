"""Application state container.

AppState is created once at startup (inside the Starlette lifespan) and
attached to ``app.state.services``. Route handlers reach it through
``get_state(request)``; tests build one directly and hand it to
``create_app``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx
    from starlette.requests import Request

    from announcehelper.cache import SummaryCache
    from announcehelper.config import Settings
    from announcehelper.protocols import AnnouncementSourceProtocol
    from announcehelper.ratelimit import SlidingWindowRateLimiter
    from announcehelper.sessions import SessionManager
    from announcehelper.users import UserStore


@dataclass
class AppState:
    """Holds all shared runtime state. Reached from every route handler."""

    settings: Settings
    users: UserStore
    sessions: SessionManager
    cache: SummaryCache
    login_limiter: SlidingWindowRateLimiter
    announcements: AnnouncementSourceProtocol | None = None
    http_client: httpx.AsyncClient | None = None


def get_state(request: Request) -> AppState:
    return request.app.state.services
