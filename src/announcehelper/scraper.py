"""HTML parsing for the announcements table and announcement pages.

Pure functions over HTML strings. No knowledge of AppState or I/O.
"""

from __future__ import annotations

import re

from bs4 import BeautifulSoup

from announcehelper.models.announcements import Announcement

# Page chrome stripped before extracting the readable text of an announcement.
_NOISE_SELECTORS = (
    "script, style, nav, header, footer, .sidebar, .menu, .breadcrumb, "
    ".cookie-consent, [role='navigation']"
)
_CONTENT_SELECTORS = (".entry-content", "article", "body")
_WHITESPACE_RUN = re.compile(r"\s\s+")

DEFAULT_MAX_CONTENT_CHARS = 15000


def parse_announcements(html: str, base_url: str) -> list[Announcement]:
    """Parse the rows of the announcements table.

    Rows are deduplicated by link (or by the details text when the row has no
    usable link). Rows with four or more cells carry a type column; rows with
    three cells do not and get type ``"-"``; shorter rows are skipped. The
    ``id`` is the row's position in the table, skipped rows included.
    """
    soup = BeautifulSoup(html, "html.parser")
    announcements: list[Announcement] = []
    seen: set[str] = set()

    for index, row in enumerate(soup.select("table tbody tr")):
        cells = row.find_all("td")
        if not cells:
            continue

        anchor = cells[0].find("a")
        link = anchor.get("href") if anchor is not None else None
        if isinstance(link, list):
            link = link[0] if link else None
        if link and not link.startswith("http"):
            link = base_url + link

        details = cells[0].get_text().strip()
        unique_key = link if link and link != "#" else details
        if unique_key in seen:
            continue
        seen.add(unique_key)

        if len(cells) >= 4:
            announcements.append(
                Announcement(
                    id=index,
                    details=details,
                    link=link,
                    type=cells[1].get_text().strip(),
                    announced_date=cells[2].get_text().strip(),
                    effective_date=cells[3].get_text().strip(),
                )
            )
        elif len(cells) == 3:
            announcements.append(
                Announcement(
                    id=index,
                    details=details,
                    link=link,
                    type="-",
                    announced_date=cells[1].get_text().strip(),
                    effective_date=cells[2].get_text().strip(),
                )
            )

    return announcements


def extract_page_text(html: str, max_chars: int = DEFAULT_MAX_CONTENT_CHARS) -> str:
    """Readable text of an announcement page, trimmed to ``max_chars``."""
    soup = BeautifulSoup(html, "html.parser")
    for element in soup.select(_NOISE_SELECTORS):
        element.decompose()

    text = ""
    for selector in _CONTENT_SELECTORS:
        text = "".join(element.get_text() for element in soup.select(selector))
        if text:
            break
    # A fragment without a <body> tag is its own body.
    if not text and soup.body is None:
        text = soup.get_text()

    return _WHITESPACE_RUN.sub(" ", text).strip()[:max_chars]
