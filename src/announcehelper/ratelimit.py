"""In-memory sliding-window rate limiter for the login endpoint.

Each client address keeps a log of accepted attempt timestamps. An attempt is
accepted while fewer than ``limit`` attempts fall inside the trailing window;
otherwise it is rejected with 429 and a ``Retry-After`` telling the client
when the oldest attempt leaves the window. Rejected attempts are not logged,
so a client is never locked out for longer than one window.

Single-process only (no shared state across workers).
"""

from __future__ import annotations

import functools
import math
import time
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from announcehelper.errors import AnnounceHelperError, ErrorCode
from announcehelper.state import get_state

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from starlette.requests import Request
    from starlette.responses import Response

log = structlog.get_logger()


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_seconds: float  # until the oldest logged attempt leaves the window

    def headers(self) -> dict[str, str]:
        """Standard ``RateLimit-*`` headers, plus ``Retry-After`` when rejected."""
        reset = max(0, math.ceil(self.reset_seconds))
        headers = {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(reset),
        }
        if not self.allowed:
            headers["Retry-After"] = str(max(1, reset))
        return headers


class SlidingWindowRateLimiter:
    def __init__(
        self,
        limit: int = 10,
        window_seconds: float = 60.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._limit = max(1, int(limit))
        self._window = max(0.1, float(window_seconds))
        self._clock = clock
        self._buckets: dict[str, deque[float]] = {}

    def _drop_old(self, bucket: deque[float], now: float) -> None:
        while bucket and now - bucket[0] >= self._window:
            bucket.popleft()

    def hit(self, key: str) -> RateLimitDecision:
        """Record an attempt for ``key`` if it is within the limit."""
        now = self._clock()
        bucket = self._buckets.setdefault(key, deque())
        self._drop_old(bucket, now)

        if len(bucket) >= self._limit:
            return RateLimitDecision(
                allowed=False,
                limit=self._limit,
                remaining=0,
                reset_seconds=self._window - (now - bucket[0]),
            )

        bucket.append(now)
        return RateLimitDecision(
            allowed=True,
            limit=self._limit,
            remaining=self._limit - len(bucket),
            reset_seconds=self._window - (now - bucket[0]),
        )

    def prune(self) -> int:
        """Drop buckets with no attempts left in the window."""
        now = self._clock()
        idle = []
        for key, bucket in self._buckets.items():
            self._drop_old(bucket, now)
            if not bucket:
                idle.append(key)
        for key in idle:
            del self._buckets[key]
        return len(idle)

    def reset(self) -> None:
        self._buckets.clear()


def get_client_ip(request: Request, *, trust_forwarded_for: bool = False) -> str:
    """Client address used as the rate-limit key.

    The peer address by default. With ``trust_forwarded_for`` the first
    X-Forwarded-For hop wins; any client can forge that header, so it is only
    safe when a trusted proxy sets it.
    """
    forwarded_for = request.headers.get("x-forwarded-for") if trust_forwarded_for else None
    if forwarded_for:
        first_ip = forwarded_for.split(",")[0].strip()
        if first_ip:
            return first_ip

    if request.client and request.client.host:
        return request.client.host

    return "unknown"


def rate_limited(
    endpoint: Callable[[Request], Awaitable[Response]],
) -> Callable[[Request], Awaitable[Response]]:
    """Guard an endpoint with the login limiter and attach RateLimit headers."""

    @functools.wraps(endpoint)
    async def wrapper(request: Request) -> Response:
        state = get_state(request)
        client_ip = get_client_ip(
            request, trust_forwarded_for=state.settings.rate_limit.trust_forwarded_for
        )
        request.state.client_ip = client_ip
        decision = state.login_limiter.hit(client_ip)
        if not decision.allowed:
            log.warning("login_rate_limited", client_ip=client_ip, path=request.url.path)
            raise AnnounceHelperError(
                code=ErrorCode.RATE_LIMITED,
                message="Too many login attempts, try again later",
                headers=decision.headers(),
            )

        try:
            response = await endpoint(request)
        except AnnounceHelperError as exc:
            exc.headers = {**decision.headers(), **exc.headers}
            raise
        response.headers.update(decision.headers())
        return response

    return wrapper
