from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Importance(StrEnum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class CacheEntry(BaseModel):
    """Cached model summary for one announcement page. Replaced, never mutated."""

    model_config = ConfigDict(frozen=True)

    url: str
    summary: str
    importance: Importance
    fetched_at: datetime


class SummaryResult(BaseModel):
    """Response body of POST /api/summarize."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    summary: str
    importance: Importance
    from_cache: bool = False
