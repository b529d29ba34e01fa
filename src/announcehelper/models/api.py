"""Request bodies accepted by the HTTP routes."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class LoginInput(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class AddUserInput(BaseModel):
    # Length rules are enforced by UserStore.add so every caller gets them.
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class SummarizeInput(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    url: str | None = None
    force_refresh: bool = False
    selected_model: str | None = None
