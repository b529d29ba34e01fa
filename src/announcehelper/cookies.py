"""Session cookie codec.

Keeps the wire format of the session cookie (parsing the ``Cookie`` request
header, building ``Set-Cookie`` values) apart from session logic, so the
transport detail can change without touching SessionManager.
"""

from __future__ import annotations

from datetime import UTC, datetime
from email.utils import format_datetime
from typing import Literal

from starlette.requests import cookie_parser

SameSite = Literal["strict", "lax", "none"]

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def parse_cookie_header(header: str | None) -> dict[str, str]:
    """Parse a ``Cookie`` request header into a name → value map."""
    if not header:
        return {}
    return cookie_parser(header)


def serialize_cookie(
    name: str,
    value: str,
    *,
    max_age: int | None = None,
    expires: datetime | None = None,
    path: str = "/",
    http_only: bool = True,
    secure: bool = True,
    same_site: SameSite | None = "none",
) -> str:
    """Build a ``Set-Cookie`` header value from an attribute list."""
    attributes = [f"{name}={value}"]
    if max_age is not None:
        attributes.append(f"Max-Age={max_age}")
    if expires is not None:
        attributes.append(f"Expires={format_datetime(expires.astimezone(UTC), usegmt=True)}")
    if path:
        attributes.append(f"Path={path}")
    if http_only:
        attributes.append("HttpOnly")
    if secure:
        attributes.append("Secure")
    if same_site is not None:
        attributes.append(f"SameSite={same_site.capitalize()}")
    return "; ".join(attributes)


def expired_cookie(
    name: str,
    *,
    path: str = "/",
    http_only: bool = True,
    secure: bool = True,
    same_site: SameSite | None = "none",
) -> str:
    """A ``Set-Cookie`` value that makes the browser drop ``name`` immediately."""
    return serialize_cookie(
        name,
        "",
        max_age=0,
        expires=_EPOCH,
        path=path,
        http_only=http_only,
        secure=secure,
        same_site=same_site,
    )
