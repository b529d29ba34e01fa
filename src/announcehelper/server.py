"""HTTP server entrypoint.

Responsibilities (and nothing more):
- Configure structlog
- Create AppState inside the Starlette lifespan
- Mount routes and translate AnnounceHelperError into JSON responses
- Start uvicorn
"""

from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import asynccontextmanager, suppress
from datetime import timedelta
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from starlette.applications import Starlette
from starlette.responses import JSONResponse

from announcehelper import __version__
from announcehelper.announcements import AnnouncementService
from announcehelper.cache import SummaryCache
from announcehelper.config import Settings
from announcehelper.errors import AnnounceHelperError
from announcehelper.fetcher import Fetcher, build_http_client
from announcehelper.ratelimit import SlidingWindowRateLimiter
from announcehelper.routes import routes
from announcehelper.schedulers import run_cleanup_scheduler
from announcehelper.sessions import SessionManager
from announcehelper.state import AppState
from announcehelper.summarizer import GeminiSummarizer
from announcehelper.transport import BodySizeLimitMiddleware, run_http_server
from announcehelper.users import UserStore

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    import httpx
    from starlette.requests import Request

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(settings: Settings) -> None:
    """Configure structlog. Called once at startup before any log statements."""
    log_level = logging.getLevelNamesMapping()[settings.logging.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [
            *shared_processors,
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------


def build_state(settings: Settings, http_client: httpx.AsyncClient) -> AppState:
    """Wire every collaborator from settings around one shared HTTP client."""
    fetcher = Fetcher(http_client)
    summarizer = GeminiSummarizer(fetcher, http_client, settings.summarizer)
    cache = SummaryCache(summarizer, ttl=timedelta(hours=settings.cache.ttl_hours))

    return AppState(
        settings=settings,
        users=UserStore(
            Path(settings.users.path).expanduser(),
            bcrypt_rounds=settings.users.bcrypt_rounds,
        ),
        sessions=SessionManager(timedelta(hours=settings.auth.session_ttl_hours)),
        cache=cache,
        login_limiter=SlidingWindowRateLimiter(
            settings.rate_limit.login_max_attempts,
            settings.rate_limit.login_window_seconds,
        ),
        announcements=AnnouncementService(fetcher, cache, settings.fetcher),
        http_client=http_client,
    )


def _warn_missing_secrets(settings: Settings) -> None:
    if not settings.auth.admin_key:
        log.warning(
            "admin_key_missing",
            message="Admin routes will answer 500 until auth.admin_key is set.",
        )
    if not settings.summarizer.api_key:
        log.warning(
            "summarizer_api_key_missing",
            message="Summaries will report an error until summarizer.api_key is set.",
        )


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------


async def _handle_app_error(request: Request, exc: AnnounceHelperError) -> JSONResponse:
    log.info(
        "request_error",
        path=request.url.path,
        code=exc.code,
        message=exc.message,
        status_code=exc.status_code,
    )
    return JSONResponse(exc.to_dict(), status_code=exc.status_code, headers=exc.headers)


async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    log.error("request_unexpected_error", path=request.url.path, exc_info=exc)
    return JSONResponse(
        {"error": "INTERNAL_ERROR", "message": "Internal server error"},
        status_code=500,
    )


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


def create_app(settings: Settings | None = None, state: AppState | None = None) -> Starlette:
    """Build the Starlette application.

    With ``state`` given, the app serves that state as-is (it is attached
    immediately, so tests can drive the app without running the lifespan).
    Otherwise the lifespan builds the state from ``settings`` and owns the
    HTTP client it creates.
    """
    if settings is None:
        settings = state.settings if state is not None else Settings()

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncGenerator[None, None]:
        owned_client: httpx.AsyncClient | None = None
        if state is None:
            _setup_logging(settings)
            owned_client = build_http_client(settings.fetcher)
            app.state.services = build_state(settings, owned_client)
        app_state: AppState = app.state.services

        log.info("server_starting", version=__version__)
        await app_state.users.ensure_bootstrapped(
            settings.auth.bootstrap_username,
            settings.auth.bootstrap_password,
        )
        _warn_missing_secrets(settings)

        cleanup_task = asyncio.create_task(run_cleanup_scheduler(app_state))
        log.info(
            "server_started",
            version=__version__,
            users_path=str(app_state.users.path),
            host=settings.server.host,
            port=settings.server.port,
        )

        try:
            yield
        finally:
            cleanup_task.cancel()
            with suppress(asyncio.CancelledError):
                await cleanup_task
            if owned_client is not None:
                await owned_client.aclose()
            log.info("server_stopping")

    app = Starlette(
        routes=routes,
        lifespan=lifespan,
        exception_handlers={
            AnnounceHelperError: _handle_app_error,
            Exception: _handle_unexpected_error,
        },
    )
    if state is not None:
        app.state.services = state
    app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=settings.server.max_body_bytes)
    return app


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main() -> None:
    settings = Settings()
    _setup_logging(settings)
    run_http_server(create_app(settings), settings)


if __name__ == "__main__":
    main()
