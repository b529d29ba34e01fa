"""In-memory summary cache with single-flight summarization.

Entries are keyed by announcement URL and expire ``ttl`` after they were
fetched: lazily on read, and proactively through ``cleanup_expired`` which
the scheduler runs on an interval. The cache lives in process memory only;
a restart starts empty.

``summarize`` is the only path that pays for an upstream call. Concurrent
callers for the same URL share one in-flight task, so a burst of requests for
an uncached page produces exactly one fetch and one model call. The task is
shielded: a caller that disconnects does not cancel the work the others are
waiting on.

Upstream failures never cross the cache boundary. They are logged and turned
into a LOW-importance result carrying the error text, and nothing is cached.
"""

from __future__ import annotations

import asyncio
import functools
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import structlog

from announcehelper.errors import AnnounceHelperError, ErrorCode
from announcehelper.models.cache import CacheEntry, Importance, SummaryResult
from announcehelper.summarizer import parse_importance

if TYPE_CHECKING:
    from collections.abc import Callable

    from announcehelper.protocols import PageSummarizerProtocol

log = structlog.get_logger()

DEFAULT_CACHE_TTL = timedelta(days=7)

PDF_PLACEHOLDER = "⚠️ ไม่สามารถสรุปไฟล์ PDF ได้"
ERROR_PREFIX = "❌ Error: "


def is_pdf_url(url: str) -> bool:
    return url.lower().endswith(".pdf")


class SummaryCache:
    """URL → CacheEntry map fronting the expensive fetch-and-summarize call."""

    def __init__(
        self,
        summarizer: PageSummarizerProtocol,
        *,
        ttl: timedelta = DEFAULT_CACHE_TTL,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._summarizer = summarizer
        self._ttl = ttl
        self._clock = clock or (lambda: datetime.now(UTC))
        self._entries: dict[str, CacheEntry] = {}
        self._inflight: dict[str, asyncio.Task[SummaryResult]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _expired(self, entry: CacheEntry, now: datetime) -> bool:
        return now - entry.fetched_at > self._ttl

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    def get(self, url: str) -> CacheEntry | None:
        """Fresh entry for ``url``, or None. Expired entries are dropped here."""
        entry = self._entries.get(url)
        if entry is None:
            return None
        if self._expired(entry, self._clock()):
            del self._entries[url]
            return None
        return entry

    def put(self, url: str, summary: str, importance: Importance) -> CacheEntry:
        entry = CacheEntry(
            url=url,
            summary=summary,
            importance=importance,
            fetched_at=self._clock(),
        )
        self._entries[url] = entry
        return entry

    def cleanup_expired(self) -> int:
        now = self._clock()
        doomed = [url for url, entry in self._entries.items() if self._expired(entry, now)]
        for url in doomed:
            del self._entries[url]
        log.info("cache_cleanup_complete", removed=len(doomed), remaining=len(self._entries))
        return len(doomed)

    def in_flight(self, url: str) -> bool:
        return url in self._inflight

    # ------------------------------------------------------------------
    # Summarize
    # ------------------------------------------------------------------

    async def summarize(
        self,
        url: str | None,
        force_refresh: bool = False,
        model: str | None = None,
    ) -> SummaryResult:
        """Cached summary for ``url``, computing it at most once per burst.

        ``force_refresh`` skips the cache lookup. If a computation for the URL
        is already running, every caller (refresh or not) waits for that one.
        """
        if not url:
            raise AnnounceHelperError(code=ErrorCode.INVALID_INPUT, message="Missing url")

        if is_pdf_url(url):
            log.info("summarize_pdf_skipped", url=url)
            return SummaryResult(summary=PDF_PLACEHOLDER, importance=Importance.LOW)

        if not force_refresh:
            entry = self.get(url)
            if entry is not None:
                log.info("summarize_cache_hit", url=url)
                return SummaryResult(
                    summary=entry.summary,
                    importance=entry.importance,
                    from_cache=True,
                )

        task = self._inflight.get(url)
        if task is None:
            task = asyncio.create_task(self._compute(url, model))
            self._inflight[url] = task
            task.add_done_callback(functools.partial(self._forget, url))
        else:
            log.info("summarize_joined_inflight", url=url)

        return await asyncio.shield(task)

    def _forget(self, url: str, task: asyncio.Task[SummaryResult]) -> None:
        if self._inflight.get(url) is task:
            del self._inflight[url]

    async def _compute(self, url: str, model: str | None) -> SummaryResult:
        try:
            raw = await self._summarizer.summarize(url, model)
            importance, summary = parse_importance(raw)
        except Exception as exc:
            message = exc.message if isinstance(exc, AnnounceHelperError) else str(exc)
            log.warning("summarize_upstream_error", url=url, error=message, exc_info=True)
            return SummaryResult(summary=ERROR_PREFIX + message, importance=Importance.LOW)

        self.put(url, summary, importance)
        log.info("summarize_complete", url=url, importance=importance)
        return SummaryResult(summary=summary, importance=importance, from_cache=False)
