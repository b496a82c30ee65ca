"""
LinkMe Backend - Rate Limiting Middleware
===========================================

What:  Per-client sliding window limiter in front of every API route.
How:   A deque of request timestamps per client IP; entries older than the
       window are dropped on each request, and a full window answers 429
       with Retry-After.
Who:   Outermost middleware, so rejected requests never open a DB session.

Clients are keyed by the socket peer address; X-Forwarded-For and X-Real-IP
are not consulted. State lives in process memory; each uvicorn worker
enforces its own limit.
"""

import logging
import time
from collections import defaultdict, deque
from typing import Deque, Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from linkme.config import settings

logger = logging.getLogger(__name__)

# Sweep idle clients every N recorded requests
CLEANUP_EVERY = 1000


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Sliding window limiter.

    max_requests / window_seconds default to settings.rate_limit_requests /
    settings.rate_limit_window. Health and documentation paths are never
    limited.
    """

    EXCLUDED_PATHS = frozenset({"/health", "/docs", "/openapi.json", "/redoc"})

    def __init__(
        self,
        app,
        max_requests: Optional[int] = None,
        window_seconds: Optional[int] = None,
    ):
        super().__init__(app)
        self.max_requests = max_requests or settings.rate_limit_requests
        self.window_seconds = window_seconds or settings.rate_limit_window
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)
        self._recorded = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        # Socket peer only
        client = request.client.host if request.client else "unknown"
        now = time.monotonic()
        window_start = now - self.window_seconds

        hits = self._hits[client]
        while hits and hits[0] <= window_start:
            hits.popleft()

        if len(hits) >= self.max_requests:
            retry_after = int(hits[0] + self.window_seconds - now) + 1
            logger.warning(
                "Rate limit exceeded for %s: %d requests in %ds window",
                client, len(hits), self.window_seconds,
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": f"Too many requests. Please wait {retry_after} seconds before retrying.",
                    "details": {"retry_after": retry_after},
                },
                headers={"Retry-After": str(retry_after)},
            )

        hits.append(now)
        self._recorded += 1
        if self._recorded % CLEANUP_EVERY == 0:
            self._forget_idle_clients(window_start)

        return await call_next(request)

    def _forget_idle_clients(self, window_start: float) -> None:
        idle = [ip for ip, hits in self._hits.items() if not hits or hits[-1] <= window_start]
        for ip in idle:
            del self._hits[ip]
        if idle:
            logger.debug("Dropped rate limit state for %d idle clients", len(idle))
