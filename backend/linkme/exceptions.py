"""
LinkMe Backend - Custom Exception Hierarchy
=============================================

What:  Application-specific exceptions for each error scenario.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with the matching HTTP status.
Who:   Raised by services and dependencies; caught by global handlers.

Exception Hierarchy:
    LinkMeError (base)
    ├── ValidationError      → 400 Bad Request (client can fix)
    ├── AuthenticationError  → 401 Unauthorized
    ├── NotFoundError        → 404 Not Found (also used for "not yours")
    ├── ConflictError        → 409 Conflict
    └── DatabaseError        → 500 Internal Server Error

Not found vs. forbidden:
    Owner-only resources never answer 403. A profile that exists but belongs
    to someone else raises exactly the same NotFoundError as a profile that
    does not exist, so callers cannot discover other accounts' profiles.
"""

from typing import Any, Dict, Optional


class LinkMeError(Exception):
    """
    Base exception for all LinkMe application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged; only some handlers return it)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(LinkMeError):
    """
    Raised when client input fails a business rule.

    When:    Unsupported social link URL scheme, empty bulk payload, etc.
    HTTP:    400 Bad Request

    Schema-level problems (wrong JSON types) are still reported by FastAPI
    as 422; analytics query parameters are coerced instead of rejected.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationError(LinkMeError):
    """
    Raised when the bearer token is missing, expired or malformed.

    HTTP:    401 Unauthorized (with WWW-Authenticate: Bearer)
    """

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(LinkMeError):
    """
    Raised when a requested resource does not exist or is not visible to the caller.

    When:    Unknown slug, inactive profile on a public route, or a profile
             id that is not owned by the authenticated account.
    HTTP:    404 Not Found

    The message never varies between "missing" and "not yours".
    """

    def __init__(
        self,
        resource: str = "resource",
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["resource"] = resource
        super().__init__(
            message=message or f"The requested {resource} was not found",
            context=ctx,
        )
        self.resource = resource


class ConflictError(LinkMeError):
    """
    Raised when a write would violate a uniqueness rule.

    When:    Updating an account email to one already in use.
    HTTP:    409 Conflict
    """

    def __init__(
        self,
        message: str = "The resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(LinkMeError):
    """
    Raised when database operations fail unexpectedly.

    When:    Connection lost mid-query, constraint violation, deadlock, etc.
    HTTP:    500 Internal Server Error

    The response carries a generic message; the underlying driver message is
    kept in context["original_error"] and returned under `details` so that
    operators can diagnose failures from the client side as well.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
