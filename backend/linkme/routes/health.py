"""
LinkMe Backend - Health Check Route
=====================================

What:  GET /health for Docker health checks and load balancer probes.

Status levels:
    - healthy:   database reachable, geolocation database loaded (200)
    - degraded:  database reachable, geolocation disabled; views are still
                 recorded, just without country/city (200)
    - unhealthy: database unreachable (503)
"""

import logging
import time

from fastapi import APIRouter, Depends, Response
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from linkme import __version__
from linkme.database import get_db_session
from linkme.dependencies import get_geo_locator
from linkme.schemas.common import HealthResponse
from linkme.services.enrichment import GeoLocator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(
    response: Response,
    db: AsyncSession = Depends(get_db_session),
    geo_locator: GeoLocator = Depends(get_geo_locator),
) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    geo_status = "loaded" if geo_locator.enabled else "disabled"
    if geo_status == "disabled" and overall == "healthy":
        overall = "degraded"

    if overall == "unhealthy":
        response.status_code = 503

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        geoip=geo_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
