"""Background maintenance loop for the in-memory tables."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from announcehelper.state import AppState

log = structlog.get_logger()


def run_cleanup_once(state: AppState) -> None:
    """Sweep expired summaries, expired sessions and idle rate-limit buckets."""
    state.cache.cleanup_expired()
    state.sessions.sweep_expired()
    state.login_limiter.prune()


async def run_cleanup_scheduler(state: AppState) -> None:
    """Run cleanup on the configured interval until cancelled."""
    interval_seconds = state.settings.cache.cleanup_interval_minutes * 60

    while True:
        await asyncio.sleep(interval_seconds)
        try:
            run_cleanup_once(state)
        except Exception:
            log.warning("cleanup_scheduler_error", exc_info=True)
