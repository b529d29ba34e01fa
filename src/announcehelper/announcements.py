"""Announcement listing: fetch the announcements page, parse it, annotate it.

Implements AnnouncementSourceProtocol. Fetch failures propagate as
UPSTREAM_FAILURE and become a 500 at the route.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from announcehelper.scraper import parse_announcements

if TYPE_CHECKING:
    from announcehelper.cache import SummaryCache
    from announcehelper.config import FetcherSettings
    from announcehelper.fetcher import Fetcher
    from announcehelper.models.announcements import Announcement

log = structlog.get_logger()


class AnnouncementService:
    def __init__(self, fetcher: Fetcher, cache: SummaryCache, settings: FetcherSettings) -> None:
        self._fetcher = fetcher
        self._cache = cache
        self._settings = settings

    async def list_announcements(self) -> list[Announcement]:
        html = await self._fetcher.fetch(self._settings.announcements_url)
        announcements = parse_announcements(html, self._settings.base_url)

        for item in announcements:
            entry = self._cache.get(item.link) if item.link else None
            item.has_summary = entry is not None
            item.cached_importance = entry.importance if entry is not None else None

        log.info(
            "announcements_listed",
            count=len(announcements),
            summarized=sum(1 for item in announcements if item.has_summary),
        )
        return announcements
