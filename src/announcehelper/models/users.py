from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class UserRecord(BaseModel):
    """One entry of the persisted user store (users.json)."""

    username: str
    password_hash: str  # bcrypt, salt embedded
    created_at: datetime

    def summary(self) -> UserSummary:
        return UserSummary(username=self.username, created_at=self.created_at)


class UserSummary(BaseModel):
    """Public view of a user. Never carries the password hash."""

    username: str
    created_at: datetime
