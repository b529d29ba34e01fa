"""Helpers shared by the route modules."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, TypeVar

from pydantic import BaseModel, ValidationError

from announcehelper.errors import AnnounceHelperError, ErrorCode

if TYPE_CHECKING:
    from starlette.requests import Request

M = TypeVar("M", bound=BaseModel)


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"]) or "body"
        parts.append(f"{field}: {error['msg']}")
    return "; ".join(parts)


async def parse_body(request: Request, model: type[M]) -> M:
    """Validate the JSON request body against ``model``.

    An empty or undecodable body is treated as ``{}`` so that missing-field
    errors are reported the same way in both cases.
    """
    raw = await request.body()
    try:
        data = json.loads(raw) if raw else {}
    except ValueError:
        data = {}
    if not isinstance(data, dict):
        data = {}

    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise AnnounceHelperError(code=ErrorCode.INVALID_INPUT, message=_describe(exc)) from exc
