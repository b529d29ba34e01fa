from __future__ import annotations

from announcehelper.models.announcements import Announcement
from announcehelper.models.api import AddUserInput, LoginInput, SummarizeInput
from announcehelper.models.cache import CacheEntry, Importance, SummaryResult
from announcehelper.models.sessions import Session, SessionCheck, SessionStatus
from announcehelper.models.users import UserRecord, UserSummary

__all__ = [
    # users
    "UserRecord",
    "UserSummary",
    # sessions
    "Session",
    "SessionCheck",
    "SessionStatus",
    # cache
    "CacheEntry",
    "Importance",
    "SummaryResult",
    # announcements
    "Announcement",
    # api
    "LoginInput",
    "AddUserInput",
    "SummarizeInput",
]
