"""
Custom exceptions and error handlers
"""

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse


class ApiError(HTTPException):
    """HTTP error whose body is ``{"error": ..., "details": ..., "note": ...}``"""

    def __init__(
        self,
        status_code: int,
        error: str,
        details: str | None = None,
        note: str | None = None,
        headers: dict[str, str] | None = None,
    ):
        body = {"error": error}
        if details is not None:
            body["details"] = details
        if note is not None:
            body["note"] = note
        super().__init__(status_code=status_code, detail=body, headers=headers)


class ValidationError(ApiError):
    """Validation error exception"""

    def __init__(self, error: str = "Validation error"):
        super().__init__(status.HTTP_400_BAD_REQUEST, error)


class UpstreamUnavailableError(ApiError):
    """Every upstream endpoint failed"""

    def __init__(self, error: str, details: str | None = None, note: str | None = None):
        super().__init__(status.HTTP_502_BAD_GATEWAY, error, details=details, note=note)


class RateLimitExceededError(ApiError):
    """Too many requests from one client"""

    def __init__(self, retry_after: float, headers: dict[str, str] | None = None):
        super().__init__(
            status.HTTP_429_TOO_MANY_REQUESTS,
            "Too many requests, please try again later.",
            headers=headers,
        )
        self.retry_after = retry_after


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code, content=exc.detail, headers=exc.headers
    )
