"""HTTP page fetcher for the announcements site.

All outbound page fetches go through a single Fetcher instance sharing one
httpx.AsyncClient. The client is created by ``build_http_client`` and owned
by the lifespan, which closes it on shutdown.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx
import structlog

from announcehelper.errors import AnnounceHelperError, ErrorCode

if TYPE_CHECKING:
    from announcehelper.config import FetcherSettings

log = structlog.get_logger()

# Characters left untouched by JavaScript's encodeURI, plus "%" so that
# already-encoded URLs are not encoded twice.
_URI_SAFE = ";,/?:@&=+$-_.!~*'()#%"


def build_http_client(settings: FetcherSettings | None = None) -> httpx.AsyncClient:
    """Create the shared httpx client. Called once at startup."""
    timeout = settings.timeout_seconds if settings else 30.0
    user_agent = settings.user_agent if settings else "Mozilla/5.0"
    return httpx.AsyncClient(
        follow_redirects=True,
        timeout=httpx.Timeout(timeout),
        headers={"User-Agent": user_agent},
        limits=httpx.Limits(
            max_connections=10,
            max_keepalive_connections=5,
        ),
    )


def safe_url(url: str) -> str:
    """Percent-encode spaces and non-ASCII characters, keeping URL syntax intact."""
    return quote(url, safe=_URI_SAFE)


class Fetcher:
    """Fetches HTML pages. Every failure is an UPSTREAM_FAILURE."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def fetch(self, url: str) -> str:
        target = safe_url(url)
        try:
            response = await self._client.get(target)
        except httpx.TimeoutException as exc:
            raise AnnounceHelperError(
                code=ErrorCode.UPSTREAM_FAILURE,
                message=f"Timed out fetching {url}",
            ) from exc
        except httpx.HTTPError as exc:
            raise AnnounceHelperError(
                code=ErrorCode.UPSTREAM_FAILURE,
                message=f"Network error fetching {url}: {exc}",
            ) from exc

        if not response.is_success:
            raise AnnounceHelperError(
                code=ErrorCode.UPSTREAM_FAILURE,
                message=f"HTTP {response.status_code} fetching {url}",
            )

        log.info(
            "fetch_complete",
            url=url,
            status_code=response.status_code,
            content_length=len(response.text),
        )
        return response.text
