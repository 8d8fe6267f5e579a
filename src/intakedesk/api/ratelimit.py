from __future__ import annotations

import logging
import threading
import time
from collections import deque
from collections.abc import Callable

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

logger = logging.getLogger(__name__)


class SlidingWindowLimiter:
    """Per-client request counter over a rolling time window."""

    def __init__(self, max_requests: int, window_sec: float, clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window_sec = window_sec
        self.clock = clock
        self._hits: dict[str, deque[float]] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    @property
    def tracked_clients(self) -> int:
        return len(self._hits)

    def hit(self, key: str) -> bool:
        now = self.clock()
        cutoff = now - self.window_sec
        with self._lock:
            if now - self._last_sweep >= self.window_sec:
                self._sweep(cutoff)
                self._last_sweep = now
            hits = self._hits.setdefault(key, deque())
            while hits and hits[0] <= cutoff:
                hits.popleft()
            if len(hits) >= self.max_requests:
                return False
            hits.append(now)
            return True

    def _sweep(self, cutoff: float) -> None:
        stale = [key for key, hits in self._hits.items() if not hits or hits[-1] <= cutoff]
        for key in stale:
            del self._hits[key]

    def retry_after(self, key: str) -> int:
        with self._lock:
            hits = self._hits.get(key)
            if not hits:
                return 0
            return max(int(hits[0] + self.window_sec - self.clock()) + 1, 1)


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app,
        *,
        limiter: SlidingWindowLimiter,
        prefix: str = "/api",
        exempt: frozenset[str] = frozenset({"/api/health"}),
    ):
        super().__init__(app)
        self.limiter = limiter
        self.prefix = prefix
        self.exempt = exempt

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if not path.startswith(self.prefix) or path in self.exempt:
            return await call_next(request)

        client = request.client.host if request.client else "unknown"
        if not self.limiter.hit(client):
            logger.warning("Rate limit exceeded for client=%s path=%s", client, path)
            return JSONResponse(
                {"success": False, "message": "Too many requests, please try again later."},
                status_code=429,
                headers={"Retry-After": str(self.limiter.retry_after(client))},
            )
        return await call_next(request)
