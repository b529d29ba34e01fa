from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from announcehelper.models.cache import Importance


class Announcement(BaseModel):
    """One row of the announcements table, annotated with its cache state."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int  # row index in the source table
    details: str
    link: str | None = None
    type: str
    announced_date: str
    effective_date: str
    has_summary: bool = False
    cached_importance: Importance | None = None
