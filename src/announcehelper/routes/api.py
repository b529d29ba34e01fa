"""Announcement routes: the scraped list and per-page summaries."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from starlette.responses import JSONResponse
from starlette.routing import Route

from announcehelper.auth import session_required
from announcehelper.errors import AnnounceHelperError, ErrorCode
from announcehelper.models.api import SummarizeInput
from announcehelper.models.cache import Importance
from announcehelper.routes.common import parse_body
from announcehelper.state import get_state

if TYPE_CHECKING:
    from starlette.requests import Request

log = structlog.get_logger()

MISSING_URL_SUMMARY = "❌ Missing url"


@session_required
async def announcements(request: Request) -> JSONResponse:
    state = get_state(request)
    if state.announcements is None:
        raise AnnounceHelperError(
            code=ErrorCode.MISCONFIGURATION,
            message="Announcement source is not configured",
        )

    try:
        items = await state.announcements.list_announcements()
    except AnnounceHelperError as exc:
        log.error("announcements_fetch_error", code=exc.code, error=exc.message)
        raise AnnounceHelperError(
            code=ErrorCode.UPSTREAM_FAILURE,
            message="Failed to fetch data",
        ) from exc

    return JSONResponse([item.model_dump(mode="json", by_alias=True) for item in items])


@session_required
async def summarize(request: Request) -> JSONResponse:
    state = get_state(request)
    body = await parse_body(request, SummarizeInput)

    if not body.url:
        return JSONResponse(
            {"summary": MISSING_URL_SUMMARY, "importance": Importance.LOW},
            status_code=400,
        )

    result = await state.cache.summarize(
        body.url,
        force_refresh=body.force_refresh,
        model=body.selected_model,
    )
    return JSONResponse(result.model_dump(mode="json", by_alias=True))


routes = [
    Route("/api/announcements", announcements, methods=["GET"]),
    Route("/api/summarize", summarize, methods=["POST"]),
]
