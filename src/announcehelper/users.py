"""File-backed store of administrative users.

The whole user set lives in one JSON array on disk. Reads parse the file;
every mutation is a read-modify-write cycle that runs through a single FIFO
``WriteQueue`` and ends with an atomic ``os.replace`` of the backing file, so
two back-to-back admin mutations can never both start from the same snapshot
and a crash mid-write never leaves a truncated store behind.

bcrypt hashing and file I/O run in worker threads to keep the event loop free.
Storage problems (I/O errors, a corrupt file) surface as
``ErrorCode.STORAGE_FAILURE``; they never escape as raw exceptions.
"""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, TypeVar

import bcrypt
import structlog
from pydantic import TypeAdapter, ValidationError

from announcehelper.errors import AnnounceHelperError, ErrorCode
from announcehelper.models.users import UserRecord, UserSummary

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

log = structlog.get_logger()

T = TypeVar("T")

MIN_USERNAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 6
# bcrypt only looks at the first 72 bytes; longer inputs are rejected.
MAX_PASSWORD_BYTES = 72

_records_adapter = TypeAdapter(list[UserRecord])


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password with bcrypt and a fresh per-record salt."""
    if not password:
        raise ValueError("Password cannot be empty")
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def check_password(password: str, password_hash: str) -> bool:
    """Constant-time bcrypt comparison. Any malformed input is a mismatch."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        log.warning("password_check_error", exc_info=True)
        return False


# ---------------------------------------------------------------------------
# Single-writer queue
# ---------------------------------------------------------------------------


class WriteQueue:
    """Runs submitted coroutines strictly one at a time, in submission order.

    Backed by ``asyncio.Lock``, whose waiters are woken first-in first-out and
    which never lets a newcomer overtake a queued waiter.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._pending = 0

    @property
    def pending(self) -> int:
        """Tasks submitted and not yet finished, including the running one."""
        return self._pending

    async def run(self, task: Callable[[], Awaitable[T]]) -> T:
        self._pending += 1
        try:
            async with self._lock:
                return await task()
        finally:
            self._pending -= 1


# ---------------------------------------------------------------------------
# Backing file
# ---------------------------------------------------------------------------


def _read_records(path: Path) -> list[UserRecord]:
    if not path.exists():
        return []
    return _records_adapter.validate_json(path.read_bytes())


def _write_records(path: Path, records: list[UserRecord]) -> None:
    """Write to a sibling temp file, fsync, then atomically rename over ``path``."""
    payload = json.dumps(_records_adapter.dump_python(records, mode="json"), indent=2)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(payload)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class UserStore:
    """Durable username/password records behind a single-writer discipline."""

    def __init__(
        self,
        path: Path,
        *,
        bcrypt_rounds: int = 12,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._path = path
        self._rounds = bcrypt_rounds
        self._clock = clock or (lambda: datetime.now(UTC))
        self._queue = WriteQueue()

    @property
    def path(self) -> Path:
        return self._path

    async def _load(self) -> list[UserRecord]:
        try:
            return await asyncio.to_thread(_read_records, self._path)
        except (OSError, ValidationError, ValueError) as exc:
            log.error("user_store_read_error", path=str(self._path), exc_info=True)
            raise AnnounceHelperError(
                code=ErrorCode.STORAGE_FAILURE,
                message="User store could not be read",
            ) from exc

    async def _save(self, records: list[UserRecord]) -> None:
        try:
            await asyncio.to_thread(_write_records, self._path, records)
        except OSError as exc:
            log.error("user_store_write_error", path=str(self._path), exc_info=True)
            raise AnnounceHelperError(
                code=ErrorCode.STORAGE_FAILURE,
                message="User store could not be written",
            ) from exc

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    async def ensure_bootstrapped(self, username: str, password: str) -> bool:
        """Create the store with one default user if no store exists yet.

        Returns True if the store was created by this call.
        """

        async def _bootstrap() -> bool:
            if self._path.exists():
                return False
            password_hash = await asyncio.to_thread(hash_password, password, self._rounds)
            record = UserRecord(
                username=username,
                password_hash=password_hash,
                created_at=self._clock(),
            )
            await self._save([record])
            log.warning(
                "user_store_bootstrapped",
                path=str(self._path),
                username=username,
                message="Default administrator created; change its password immediately.",
            )
            return True

        return await self._queue.run(_bootstrap)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def list_users(self) -> list[UserSummary]:
        return [record.summary() for record in await self._load()]

    async def while_present(self, username: str, action: Callable[[], T]) -> T | None:
        """Run ``action`` only if ``username`` is still in the store.

        Runs through the write queue, so it cannot interleave with ``remove``:
        either the removal landed first and ``action`` is skipped (None is
        returned), or ``action`` runs first and the removal comes after it.
        """

        async def _guarded() -> T | None:
            records = await self._load()
            if not any(r.username == username for r in records):
                return None
            return action()

        return await self._queue.run(_guarded)

    async def verify(self, username: str, password: str) -> bool:
        """Check credentials. Unknown usernames fail closed."""
        records = await self._load()
        record = next((r for r in records if r.username == username), None)
        if record is None:
            return False
        return await asyncio.to_thread(check_password, password, record.password_hash)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def add(self, username: str, password: str) -> UserSummary:
        """Add a user. Raises INVALID_INPUT or CONFLICT."""
        _validate_new_user(username, password)

        async def _add() -> UserSummary:
            records = await self._load()
            if any(r.username == username for r in records):
                raise AnnounceHelperError(
                    code=ErrorCode.CONFLICT,
                    message=f"User already exists: {username}",
                )
            password_hash = await asyncio.to_thread(hash_password, password, self._rounds)
            record = UserRecord(
                username=username,
                password_hash=password_hash,
                created_at=self._clock(),
            )
            await self._save([*records, record])
            log.info("user_added", username=username, user_count=len(records) + 1)
            return record.summary()

        return await self._queue.run(_add)

    async def remove(self, username: str) -> None:
        """Delete a user record. Raises NOT_FOUND."""

        async def _remove() -> None:
            records = await self._load()
            remaining = [r for r in records if r.username != username]
            if len(remaining) == len(records):
                raise AnnounceHelperError(
                    code=ErrorCode.NOT_FOUND,
                    message=f"User not found: {username}",
                )
            await self._save(remaining)
            log.info("user_removed", username=username, user_count=len(remaining))

        await self._queue.run(_remove)


def _validate_new_user(username: str, password: str) -> None:
    if len(username) < MIN_USERNAME_LENGTH:
        raise AnnounceHelperError(
            code=ErrorCode.INVALID_INPUT,
            message=f"username must be at least {MIN_USERNAME_LENGTH} characters",
        )
    # Usernames are path segments in /admin/users/{username}.
    if "/" in username:
        raise AnnounceHelperError(
            code=ErrorCode.INVALID_INPUT,
            message="username must not contain '/'",
        )
    if len(password) < MIN_PASSWORD_LENGTH:
        raise AnnounceHelperError(
            code=ErrorCode.INVALID_INPUT,
            message=f"password must be at least {MIN_PASSWORD_LENGTH} characters",
        )
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise AnnounceHelperError(
            code=ErrorCode.INVALID_INPUT,
            message=f"password must be at most {MAX_PASSWORD_BYTES} bytes",
        )
