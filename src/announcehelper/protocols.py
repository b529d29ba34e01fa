"""Protocol interfaces for the external collaborators.

SummaryCache and the route handlers depend on these, not on the concrete
scraper and model client. Tests substitute small in-memory fakes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from announcehelper.models.announcements import Announcement


class PageSummarizerProtocol(Protocol):
    """Fetches a page and returns the raw model response text for it.

    The response is expected to start with an ``[IMP:HIGH|MEDIUM|LOW]`` tag;
    parsing it is the caller's job. Any failure is raised.
    """

    async def summarize(self, url: str, model: str | None = None) -> str: ...


class AnnouncementSourceProtocol(Protocol):
    """Supplies the current announcements table, annotated with cache state."""

    async def list_announcements(self) -> list[Announcement]: ...
