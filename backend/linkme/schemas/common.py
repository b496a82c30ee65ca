"""
LinkMe Backend - Shared Response Schemas
==========================================

What:  Error envelope, health payload and the plain message response.
Who:   Global exception handlers (main.py), the health route and delete
       endpoints.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standardized error body for every non-2xx response.

    Example:
        {
            "error": "not_found",
            "message": "Profile not found or you don't have permission",
            "request_id": "550e8400-e29b-41d4-a716-446655440000"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    """Returned by GET /health for monitoring and load balancer checks."""
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    geoip: str = Field(description="Geolocation database: loaded, disabled")
    uptime_seconds: float = Field(description="Seconds since service started")
