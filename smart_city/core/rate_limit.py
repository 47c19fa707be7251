"""Per-IP sliding-window rate limiting (in-memory, single process)."""

import logging
import math
from collections import defaultdict, deque
from collections.abc import Callable
from threading import Lock
from time import monotonic

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

from smart_city.core.errors import ErrorCodes, error_body

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Allow at most `limit` hits per key within the trailing `window_seconds`.

    Keys with no hit inside the window are swept at most once per window, so
    memory tracks the clients seen recently rather than every client ever seen.
    """

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = monotonic,
    ) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: defaultdict[str, deque[float]] = defaultdict(deque)
        self._lock = Lock()
        self._last_sweep = clock()

    def tracked_keys(self) -> int:
        """Number of client keys currently held in memory."""
        with self._lock:
            return len(self._hits)

    def hit(self, key: str) -> float | None:
        """
        Record a hit for key. Returns None when allowed, otherwise the number of
        seconds until the oldest hit leaves the window.
        """
        now = self._clock()
        with self._lock:
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(now)
            q = self._hits[key]
            while q and now - q[0] >= self.window_seconds:
                q.popleft()
            if len(q) >= self.limit:
                return max(self.window_seconds - (now - q[0]), 0.0)
            q.append(now)
            return None

    def _sweep(self, now: float) -> None:
        # Caller holds the lock. A key whose newest hit has left the window is empty.
        stale = [k for k, q in self._hits.items() if not q or now - q[-1] >= self.window_seconds]
        for k in stale:
            del self._hits[k]
        self._last_sweep = now
        if stale:
            logger.debug("Rate limiter swept idle keys", extra={"keys_removed": len(stale)})

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
            self._last_sweep = self._clock()


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Apply the general limiter to every request and the stricter limiter to
    paths under `strict_prefix` (the auth routes). Both are keyed by client IP.
    """

    def __init__(
        self,
        app: ASGIApp,
        general: RateLimiter,
        strict: RateLimiter | None = None,
        strict_prefix: str | None = None,
    ) -> None:
        super().__init__(app)
        self.general = general
        self.strict = strict
        self.strict_prefix = strict_prefix

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        client_ip = request.client.host if request.client else "unknown"
        limiters: list[tuple[RateLimiter, str]] = [
            (self.general, "Too many requests from this IP, please try again later")
        ]
        if (
            self.strict is not None
            and self.strict_prefix
            and request.url.path.startswith(self.strict_prefix)
        ):
            limiters.append(
                (self.strict, "Too many authentication attempts, please try again later")
            )
        for limiter, message in limiters:
            retry_after = limiter.hit(client_ip)
            if retry_after is not None:
                seconds = max(int(math.ceil(retry_after)), 1)
                logger.warning(
                    "Rate limit exceeded",
                    extra={"client_ip": client_ip, "path": request.url.path},
                )
                return JSONResponse(
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    content=error_body(
                        message, ErrorCodes.RATE_LIMIT_EXCEEDED, retryAfter=seconds
                    ),
                    headers={"Retry-After": str(seconds)},
                )
        return await call_next(request)
