from __future__ import annotations

from starlette.responses import PlainTextResponse
from starlette.routing import Route

from announcehelper.routes import admin, api, auth


async def index(request) -> PlainTextResponse:
    return PlainTextResponse("announcehelper backend is running")


routes = [
    Route("/", index, methods=["GET"]),
    *auth.routes,
    *api.routes,
    *admin.routes,
]

__all__ = ["routes"]
