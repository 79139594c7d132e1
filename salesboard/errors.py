"""Error taxonomy shared by the HTTP and WebSocket transports."""

from fastapi import Request, status
from fastapi.responses import JSONResponse


class DashboardError(Exception):
    """Base exception for request-terminal dashboard errors."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, error_type: str = "dashboard_error"):
        self.message = message
        self.error_type = error_type
        super().__init__(message)


class Unauthenticated(DashboardError):
    """Missing, invalid, or expired identity token."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, "unauthenticated")


class Forbidden(DashboardError):
    """Valid identity, but the role or team ownership does not allow the action."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message, "forbidden")


class NotFound(DashboardError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, entity: str, identifier: object):
        super().__init__(f"{entity} '{identifier}' not found", "not_found")
        self.entity = entity
        self.identifier = identifier


class ValidationError(DashboardError):
    """Malformed delta, agent, or notification payload."""

    status_code = 422

    def __init__(self, message: str):
        super().__init__(message, "validation_error")


class Conflict(DashboardError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str):
        super().__init__(message, "conflict")


class RateLimited(DashboardError):
    """Per-caller request ceiling exceeded on the one-shot transport."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, limit: int, window: float):
        super().__init__(
            f"Rate limit exceeded: {limit} requests per {window:g}s",
            "rate_limited",
        )
        self.limit = limit
        self.window = window


async def dashboard_error_handler(request: Request, exc: DashboardError) -> JSONResponse:
    """Render a DashboardError as a structured failure response."""
    headers = None
    if isinstance(exc, RateLimited):
        headers = {"Retry-After": str(max(1, int(exc.window)))}
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error_type, "detail": exc.message},
        headers=headers,
    )
