"""User administration routes. Every route needs a session and the admin key."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from starlette.responses import JSONResponse
from starlette.routing import Route

from announcehelper.auth import admin_required, session_required
from announcehelper.models.api import AddUserInput
from announcehelper.routes.common import parse_body
from announcehelper.state import get_state

if TYPE_CHECKING:
    from starlette.requests import Request

log = structlog.get_logger()


@session_required
@admin_required
async def list_users(request: Request) -> JSONResponse:
    users = await get_state(request).users.list_users()
    return JSONResponse([user.model_dump(mode="json") for user in users])


@session_required
@admin_required
async def add_user(request: Request) -> JSONResponse:
    body = await parse_body(request, AddUserInput)
    await get_state(request).users.add(body.username, body.password)
    log.info("admin_user_added", username=body.username, by=request.state.username)
    return JSONResponse({"ok": True})


@session_required
@admin_required
async def delete_user(request: Request) -> JSONResponse:
    state = get_state(request)
    username = request.path_params["username"]
    await state.users.remove(username)
    # A deleted user must not keep acting through sessions issued earlier.
    state.sessions.revoke_user(username)
    log.info("admin_user_deleted", username=username, by=request.state.username)
    return JSONResponse({"ok": True})


routes = [
    Route("/admin/users", list_users, methods=["GET"]),
    Route("/admin/users", add_user, methods=["POST"]),
    Route("/admin/users/{username}", delete_user, methods=["DELETE"]),
]
