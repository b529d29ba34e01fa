from __future__ import annotations

from enum import StrEnum
from http import HTTPStatus


class ErrorCode(StrEnum):
    INVALID_INPUT = "INVALID_INPUT"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    RATE_LIMITED = "RATE_LIMITED"
    UPSTREAM_FAILURE = "UPSTREAM_FAILURE"
    MISCONFIGURATION = "MISCONFIGURATION"
    STORAGE_FAILURE = "STORAGE_FAILURE"


_STATUS_BY_CODE: dict[ErrorCode, HTTPStatus] = {
    ErrorCode.INVALID_INPUT: HTTPStatus.BAD_REQUEST,
    ErrorCode.UNAUTHENTICATED: HTTPStatus.UNAUTHORIZED,
    ErrorCode.FORBIDDEN: HTTPStatus.FORBIDDEN,
    ErrorCode.NOT_FOUND: HTTPStatus.NOT_FOUND,
    ErrorCode.CONFLICT: HTTPStatus.CONFLICT,
    ErrorCode.RATE_LIMITED: HTTPStatus.TOO_MANY_REQUESTS,
    ErrorCode.UPSTREAM_FAILURE: HTTPStatus.INTERNAL_SERVER_ERROR,
    ErrorCode.MISCONFIGURATION: HTTPStatus.INTERNAL_SERVER_ERROR,
    ErrorCode.STORAGE_FAILURE: HTTPStatus.INTERNAL_SERVER_ERROR,
}


class AnnounceHelperError(Exception):
    """Raised by components and route handlers for all expected failure conditions.

    Caught by the exception handler in server.py and serialised into a JSON
    error response whose status is derived from ``code``. Business logic
    should let it propagate rather than catching it.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        *,
        reason: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.reason = reason
        self.headers = headers or {}

    @property
    def status_code(self) -> int:
        return int(_STATUS_BY_CODE[self.code])

    def to_dict(self) -> dict:
        payload: dict = {"error": self.code, "message": self.message}
        if self.reason is not None:
            payload["reason"] = self.reason
        return payload
