"""In-memory session table with sliding expiration.

Sessions live only for the lifetime of the process. All operations are
synchronous dict manipulations, so they are atomic with respect to the event
loop and need no locking.
"""

from __future__ import annotations

import secrets
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import structlog

from announcehelper.models.sessions import Session, SessionCheck, SessionStatus

if TYPE_CHECKING:
    from collections.abc import Callable

log = structlog.get_logger()

DEFAULT_SESSION_TTL = timedelta(hours=12)
# 32 random bytes -> 256 bits of entropy, url-safe base64 (43 chars).
SESSION_TOKEN_BYTES = 32


class SessionManager:
    """Issues, validates, slides and revokes session tokens."""

    def __init__(
        self,
        ttl: timedelta = DEFAULT_SESSION_TTL,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._ttl = ttl
        self._clock = clock or (lambda: datetime.now(UTC))
        self._sessions: dict[str, Session] = {}

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, session_id: str) -> Session | None:
        """Raw table lookup without validation or sliding."""
        return self._sessions.get(session_id)

    def create(self, username: str) -> str:
        session_id = secrets.token_urlsafe(SESSION_TOKEN_BYTES)
        while session_id in self._sessions:
            session_id = secrets.token_urlsafe(SESSION_TOKEN_BYTES)
        self._sessions[session_id] = Session(
            session_id=session_id,
            username=username,
            expires_at=self._clock() + self._ttl,
        )
        log.info("session_created", username=username)
        return session_id

    def validate(self, session_id: str | None) -> SessionCheck:
        """Resolve a token to its user, sliding the expiry forward on success.

        An expired entry is removed as a side effect, so it reports EXPIRED
        exactly once and INVALID afterwards.
        """
        if not session_id:
            return SessionCheck(SessionStatus.MISSING)

        session = self._sessions.get(session_id)
        if session is None:
            return SessionCheck(SessionStatus.INVALID)

        now = self._clock()
        if now >= session.expires_at:
            del self._sessions[session_id]
            log.info("session_expired", username=session.username)
            return SessionCheck(SessionStatus.EXPIRED)

        session.expires_at = now + self._ttl
        return SessionCheck(SessionStatus.VALID, username=session.username)

    def revoke(self, session_id: str | None) -> None:
        """Idempotent removal."""
        if session_id and self._sessions.pop(session_id, None) is not None:
            log.info("session_revoked")

    def revoke_user(self, username: str) -> int:
        """Drop every session owned by ``username``. Returns the number removed."""
        doomed = [sid for sid, s in self._sessions.items() if s.username == username]
        for sid in doomed:
            del self._sessions[sid]
        if doomed:
            log.info("user_sessions_revoked", username=username, count=len(doomed))
        return len(doomed)

    def sweep_expired(self) -> int:
        """Remove every expired session. Called periodically to bound memory."""
        now = self._clock()
        doomed = [sid for sid, s in self._sessions.items() if now >= s.expires_at]
        for sid in doomed:
            del self._sessions[sid]
        if doomed:
            log.info("session_sweep_complete", removed=len(doomed), remaining=len(self._sessions))
        return len(doomed)
