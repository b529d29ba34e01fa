"""Session routes: login, logout, and the current-user probe."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from starlette.responses import JSONResponse
from starlette.routing import Route

from announcehelper.auth import session_required, session_token
from announcehelper.cookies import expired_cookie, serialize_cookie
from announcehelper.errors import AnnounceHelperError, ErrorCode
from announcehelper.models.api import LoginInput
from announcehelper.ratelimit import rate_limited
from announcehelper.routes.common import parse_body
from announcehelper.state import get_state

if TYPE_CHECKING:
    from starlette.requests import Request

    from announcehelper.config import AuthSettings

log = structlog.get_logger()


def _session_cookie(auth: AuthSettings, session_id: str, max_age: int) -> str:
    return serialize_cookie(
        auth.cookie_name,
        session_id,
        max_age=max_age,
        path="/",
        http_only=True,
        secure=auth.cookie_secure,
        same_site=auth.cookie_samesite,
    )


def _cleared_cookie(auth: AuthSettings) -> str:
    return expired_cookie(
        auth.cookie_name,
        path="/",
        http_only=True,
        secure=auth.cookie_secure,
        same_site=auth.cookie_samesite,
    )


def _invalid_credentials() -> AnnounceHelperError:
    return AnnounceHelperError(
        code=ErrorCode.UNAUTHENTICATED,
        message="Invalid username or password",
        reason="InvalidCredentials",
    )


async def me(request: Request) -> JSONResponse:
    state = get_state(request)
    check = state.sessions.validate(session_token(request, state.settings.auth.cookie_name))
    if not check.ok:
        return JSONResponse({"loggedIn": False})
    return JSONResponse({"loggedIn": True, "username": check.username})


@rate_limited
async def login(request: Request) -> JSONResponse:
    state = get_state(request)
    body = await parse_body(request, LoginInput)

    if not await state.users.verify(body.username, body.password):
        log.warning("login_failed", username=body.username, client_ip=request.state.client_ip)
        raise _invalid_credentials()

    # The user may have been deleted while the password was being checked.
    session_id = await state.users.while_present(
        body.username, lambda: state.sessions.create(body.username)
    )
    if session_id is None:
        log.warning("login_user_removed", username=body.username)
        raise _invalid_credentials()

    max_age = int(state.sessions.ttl.total_seconds())
    log.info("login_succeeded", username=body.username)

    response = JSONResponse({"ok": True, "username": body.username})
    response.headers.append("set-cookie", _session_cookie(state.settings.auth, session_id, max_age))
    return response


@session_required
async def logout(request: Request) -> JSONResponse:
    state = get_state(request)
    state.sessions.revoke(session_token(request, state.settings.auth.cookie_name))
    log.info("logout", username=request.state.username)

    response = JSONResponse({"ok": True})
    response.headers.append("set-cookie", _cleared_cookie(state.settings.auth))
    return response


routes = [
    Route("/auth/me", me, methods=["GET"]),
    Route("/auth/login", login, methods=["POST"]),
    Route("/auth/logout", logout, methods=["POST"]),
]
