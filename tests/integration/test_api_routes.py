"""Integration tests for /api/announcements and /api/summarize."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import respx

from announcehelper.cache import PDF_PLACEHOLDER
from tests.integration.helpers import cookie, login

if TYPE_CHECKING:
    from announcehelper.state import AppState
    from tests.fakes import FakeSummarizer

ANNOUNCEMENTS_URL = "https://help.mypurecloud.com/announcements/"
FEATURE_URL = "https://help.mypurecloud.com/announcements/feature-a/"

ANNOUNCEMENTS_HTML = """
<table><tbody>
  <tr>
    <td><a href="/announcements/feature-a/">Feature A</a></td>
    <td>Feature</td><td>2026-01-05</td><td>2026-02-01</td>
  </tr>
  <tr>
    <td><a href="/announcements/feature-b/">Feature B</a></td>
    <td>2026-01-06</td><td>2026-03-01</td>
  </tr>
</tbody></table>
"""


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


class TestSessionRequired:
    async def test_announcements_without_session(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/api/announcements")
        assert response.status_code == 401
        assert response.json() == {
            "error": "UNAUTHENTICATED",
            "message": "Not logged in",
            "reason": "NotLoggedIn",
        }

    async def test_summarize_with_forged_session(
        self, client: httpx.AsyncClient, fake_summarizer: FakeSummarizer
    ) -> None:
        response = await client.post(
            "/api/summarize", json={"url": FEATURE_URL}, headers=cookie("forged")
        )
        assert response.status_code == 401
        assert response.json()["reason"] == "SessionInvalid"
        assert fake_summarizer.calls == []


# ---------------------------------------------------------------------------
# /api/summarize
# ---------------------------------------------------------------------------


class TestSummarize:
    async def test_missing_url(self, client: httpx.AsyncClient) -> None:
        sid = await login(client)
        response = await client.post("/api/summarize", json={}, headers=cookie(sid))
        assert response.status_code == 400
        assert response.json() == {"summary": "❌ Missing url", "importance": "LOW"}

    async def test_summary_then_cache_hit(
        self, client: httpx.AsyncClient, fake_summarizer: FakeSummarizer
    ) -> None:
        sid = await login(client)

        first = await client.post("/api/summarize", json={"url": FEATURE_URL}, headers=cookie(sid))
        second = await client.post(
            "/api/summarize", json={"url": FEATURE_URL}, headers=cookie(sid)
        )

        assert first.status_code == 200
        assert first.json() == {
            "summary": "Subject: Test\n\nBody",
            "importance": "HIGH",
            "fromCache": False,
        }
        assert second.json()["fromCache"] is True
        assert len(fake_summarizer.calls) == 1

    async def test_force_refresh_and_selected_model(
        self, client: httpx.AsyncClient, fake_summarizer: FakeSummarizer
    ) -> None:
        sid = await login(client)
        await client.post("/api/summarize", json={"url": FEATURE_URL}, headers=cookie(sid))

        response = await client.post(
            "/api/summarize",
            json={"url": FEATURE_URL, "forceRefresh": True, "selectedModel": "gemini-2.0-flash"},
            headers=cookie(sid),
        )

        assert response.json()["fromCache"] is False
        assert fake_summarizer.calls[-1] == (FEATURE_URL, "gemini-2.0-flash")

    async def test_pdf(self, client: httpx.AsyncClient, fake_summarizer: FakeSummarizer) -> None:
        sid = await login(client)
        response = await client.post(
            "/api/summarize", json={"url": "https://x.test/notes.pdf"}, headers=cookie(sid)
        )
        assert response.status_code == 200
        assert response.json()["summary"] == PDF_PLACEHOLDER
        assert response.json()["importance"] == "LOW"
        assert fake_summarizer.calls == []

    async def test_upstream_failure_is_a_200_error_summary(
        self, client: httpx.AsyncClient, fake_summarizer: FakeSummarizer
    ) -> None:
        fake_summarizer.error = RuntimeError("model down")
        sid = await login(client)

        response = await client.post(
            "/api/summarize", json={"url": FEATURE_URL}, headers=cookie(sid)
        )

        assert response.status_code == 200
        assert response.json()["summary"] == "❌ Error: model down"
        assert response.json()["importance"] == "LOW"

    async def test_oversized_body_rejected(self, client: httpx.AsyncClient) -> None:
        sid = await login(client)
        response = await client.post(
            "/api/summarize",
            content=b"{" + b" " * (2 * 1024 * 1024) + b"}",
            headers={**cookie(sid), "Content-Type": "application/json"},
        )
        assert response.status_code == 413


# ---------------------------------------------------------------------------
# /api/announcements
# ---------------------------------------------------------------------------


class TestAnnouncements:
    async def test_list_with_cache_annotations(
        self, client: httpx.AsyncClient, app_state: AppState
    ) -> None:
        sid = await login(client)
        await client.post("/api/summarize", json={"url": FEATURE_URL}, headers=cookie(sid))

        with respx.mock:
            respx.get(ANNOUNCEMENTS_URL).mock(
                return_value=httpx.Response(200, text=ANNOUNCEMENTS_HTML)
            )
            response = await client.get("/api/announcements", headers=cookie(sid))

        assert response.status_code == 200
        items = response.json()
        assert [item["details"] for item in items] == ["Feature A", "Feature B"]
        assert items[0] == {
            "id": 0,
            "details": "Feature A",
            "link": FEATURE_URL,
            "type": "Feature",
            "announcedDate": "2026-01-05",
            "effectiveDate": "2026-02-01",
            "hasSummary": True,
            "cachedImportance": "HIGH",
        }
        assert items[1]["type"] == "-"
        assert items[1]["hasSummary"] is False
        assert items[1]["cachedImportance"] is None

    async def test_upstream_failure(self, client: httpx.AsyncClient) -> None:
        sid = await login(client)

        with respx.mock:
            respx.get(ANNOUNCEMENTS_URL).mock(return_value=httpx.Response(503))
            response = await client.get("/api/announcements", headers=cookie(sid))

        assert response.status_code == 500
        assert response.json() == {"error": "UPSTREAM_FAILURE", "message": "Failed to fetch data"}
