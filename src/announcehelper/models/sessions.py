from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class SessionStatus(StrEnum):
    VALID = "valid"
    MISSING = "missing"  # no token presented
    INVALID = "invalid"  # unknown or revoked token
    EXPIRED = "expired"


@dataclass
class Session:
    session_id: str
    username: str
    expires_at: datetime


@dataclass(frozen=True)
class SessionCheck:
    """Outcome of SessionManager.validate. ``username`` is set only when VALID."""

    status: SessionStatus
    username: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is SessionStatus.VALID
