"""Request guards for session authentication and admin authorization.

Two independent guards, applied as endpoint decorators:

1. ``session_required``: resolves the session cookie through SessionManager
   and stores the username on ``request.state.username``.
2. ``admin_required``: compares the admin header against the configured
   secret in constant time.

Admin routes stack both, session first. Apart from the sliding expiry that
SessionManager applies on a successful validation, the guards have no side
effects.
"""

from __future__ import annotations

import functools
import secrets
from typing import TYPE_CHECKING

import structlog

from announcehelper.cookies import parse_cookie_header
from announcehelper.errors import AnnounceHelperError, ErrorCode
from announcehelper.models.sessions import SessionStatus
from announcehelper.state import get_state

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from starlette.requests import Request
    from starlette.responses import Response

    from announcehelper.config import AuthSettings
    from announcehelper.sessions import SessionManager

    Endpoint = Callable[[Request], Awaitable[Response]]

log = structlog.get_logger()

_REASONS: dict[SessionStatus, tuple[str, str]] = {
    SessionStatus.MISSING: ("NotLoggedIn", "Not logged in"),
    SessionStatus.INVALID: ("SessionInvalid", "Session is invalid"),
    SessionStatus.EXPIRED: ("SessionExpired", "Session has expired"),
}


def session_token(request: Request, cookie_name: str) -> str | None:
    return parse_cookie_header(request.headers.get("cookie")).get(cookie_name)


def authenticate(request: Request, sessions: SessionManager, cookie_name: str) -> str:
    """Return the username owning the request's session, or raise UNAUTHENTICATED."""
    check = sessions.validate(session_token(request, cookie_name))
    if check.ok and check.username is not None:
        return check.username

    reason, message = _REASONS[check.status]
    log.debug("session_rejected", reason=reason, path=request.url.path)
    raise AnnounceHelperError(code=ErrorCode.UNAUTHENTICATED, message=message, reason=reason)


def check_admin_key(request: Request, auth: AuthSettings) -> None:
    """Raise unless the request carries the configured admin key.

    An unset server-side key is a deployment error and fails closed with 500.
    """
    if not auth.admin_key:
        log.error("admin_key_not_configured", path=request.url.path)
        raise AnnounceHelperError(
            code=ErrorCode.MISCONFIGURATION,
            message="Admin key is not configured on the server",
        )

    supplied = request.headers.get(auth.admin_key_header, "")
    if not supplied or not secrets.compare_digest(
        supplied.encode("utf-8"), auth.admin_key.encode("utf-8")
    ):
        log.warning("admin_key_rejected", path=request.url.path, present=bool(supplied))
        raise AnnounceHelperError(code=ErrorCode.FORBIDDEN, message="Invalid admin key")


def session_required(endpoint: Endpoint) -> Endpoint:
    @functools.wraps(endpoint)
    async def wrapper(request: Request) -> Response:
        state = get_state(request)
        request.state.username = authenticate(
            request, state.sessions, state.settings.auth.cookie_name
        )
        return await endpoint(request)

    return wrapper


def admin_required(endpoint: Endpoint) -> Endpoint:
    @functools.wraps(endpoint)
    async def wrapper(request: Request) -> Response:
        check_admin_key(request, get_state(request).settings.auth)
        return await endpoint(request)

    return wrapper
