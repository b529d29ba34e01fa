"""Announcement summarization through the Generative Language API.

``GeminiSummarizer`` implements PageSummarizerProtocol: it fetches the
announcement page, extracts its readable text, asks the model for an impact
rating plus a Thai stakeholder email, and returns the raw model text.
``parse_importance`` splits that text into the rating tag and the body.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import httpx
import structlog

from announcehelper.errors import AnnounceHelperError, ErrorCode
from announcehelper.models.cache import Importance
from announcehelper.scraper import extract_page_text

if TYPE_CHECKING:
    from announcehelper.config import SummarizerSettings
    from announcehelper.fetcher import Fetcher

log = structlog.get_logger()

_IMPORTANCE_TAG = re.compile(r"^\[IMP:(HIGH|MEDIUM|LOW)\]", re.IGNORECASE)
_MODEL_NAME = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")

_PROMPT_TEMPLATE = """
Role: IT Support (Genesys Cloud Admin).
Task:
1) Analyze impact level for production contact center operations as one of: HIGH, MEDIUM, LOW.
2) Write a formal Thai email to internal stakeholders. Keep it clear and actionable.
3) If this is a deprecation/removal/pricing/billing/security change, impact should likely be HIGH.

Output Format EXACTLY:
[IMP:HIGH|MEDIUM|LOW]
Subject: ...

Body: (Thai formal email, bullet points allowed)

Content:
{text}
"""


def build_prompt(text: str) -> str:
    return _PROMPT_TEMPLATE.format(text=text)


def parse_importance(text: str) -> tuple[Importance, str]:
    """Split a model response into its leading importance tag and the body.

    Without a recognised tag the importance defaults to MEDIUM and the whole
    response is the body.
    """
    full_text = (text or "").strip()
    match = _IMPORTANCE_TAG.match(full_text)
    if match is None:
        return Importance.MEDIUM, full_text
    return Importance(match.group(1).upper()), full_text[match.end() :].strip()


def _response_text(payload: dict) -> str:
    """Concatenate the text parts of the first candidate."""
    candidates = payload.get("candidates") or []
    if not candidates:
        feedback = payload.get("promptFeedback") or {}
        reason = feedback.get("blockReason", "no candidates returned")
        raise ValueError(f"Model returned no content ({reason})")
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts).strip()


class GeminiSummarizer:
    """Fetch-and-summarize collaborator backed by the Gemini REST API."""

    def __init__(
        self,
        fetcher: Fetcher,
        client: httpx.AsyncClient,
        settings: SummarizerSettings,
    ) -> None:
        self._fetcher = fetcher
        self._client = client
        self._settings = settings

    async def summarize(self, url: str, model: str | None = None) -> str:
        model_name = model or self._settings.default_model
        if not _MODEL_NAME.match(model_name):
            raise AnnounceHelperError(
                code=ErrorCode.INVALID_INPUT,
                message=f"Invalid model name: {model_name!r}",
            )
        if not self._settings.api_key:
            raise AnnounceHelperError(
                code=ErrorCode.UPSTREAM_FAILURE,
                message="Model API key is not configured",
            )

        log.info("summarize_analyzing", url=url, model=model_name)
        html = await self._fetcher.fetch(url)
        text = extract_page_text(html, self._settings.max_content_chars)

        endpoint = f"{self._settings.api_base_url.rstrip('/')}/models/{model_name}:generateContent"
        try:
            response = await self._client.post(
                endpoint,
                headers={"x-goog-api-key": self._settings.api_key},
                json={"contents": [{"role": "user", "parts": [{"text": build_prompt(text)}]}]},
            )
        except httpx.HTTPError as exc:
            raise AnnounceHelperError(
                code=ErrorCode.UPSTREAM_FAILURE,
                message=f"Model request failed: {exc}",
            ) from exc

        if not response.is_success:
            raise AnnounceHelperError(
                code=ErrorCode.UPSTREAM_FAILURE,
                message=f"Model returned HTTP {response.status_code}: {_error_detail(response)}",
            )

        try:
            return _response_text(response.json())
        except (ValueError, AttributeError, TypeError) as exc:
            raise AnnounceHelperError(
                code=ErrorCode.UPSTREAM_FAILURE,
                message=f"Unexpected model response: {exc}",
            ) from exc


def _error_detail(response: httpx.Response) -> str:
    try:
        return str(response.json()["error"]["message"])
    except (ValueError, KeyError, TypeError):
        return response.reason_phrase or "unknown error"
