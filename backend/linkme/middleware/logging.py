"""
LinkMe Backend - Access Log Middleware
========================================

What:  One log line per request on the "linkme.access" logger.
How:   Measures wall time around the downstream app and picks the level from
       the status code (5xx ERROR, 4xx WARNING, otherwise INFO).

Privacy:
    Logged: method, path, status, duration, request id, client IP.
    Not logged: query strings, bodies, Authorization headers, user agents.
    /health is not logged at all (load balancer polling).
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from linkme.middleware.request_id import request_id_var
from linkme.services.enrichment import get_client_ip

logger = logging.getLogger("linkme.access")

QUIET_PATHS = frozenset({"/health"})


def level_for_status(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - started) * 1000

        rid = request_id_var.get("")
        client_ip = get_client_ip(request) or "unknown"
        status = response.status_code

        logger.log(
            level_for_status(status),
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
