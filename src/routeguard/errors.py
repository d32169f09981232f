"""
routeguard.errors

Error taxonomy shared by the auth providers and the dispatcher.

Responsibilities:
- Map caller-facing failures to HTTP statuses (403/400/404/500).
- Keep startup failures (`InitializationError`) separate from request failures.
"""

from __future__ import annotations

from starlette.exceptions import HTTPException
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_500_INTERNAL_SERVER_ERROR,
)


class InitializationError(Exception):
    """
    A provider could not complete its remote discovery at startup.
    """


class RouteguardHTTPError(HTTPException):
    status_code_default: int = HTTP_500_INTERNAL_SERVER_ERROR
    detail_default: str = "Internal Server Error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(
            status_code=self.status_code_default,
            detail=detail or self.detail_default,
        )


class AuthenticationError(RouteguardHTTPError):
    status_code_default = HTTP_403_FORBIDDEN
    detail_default = "Forbidden"


class BadRequest(RouteguardHTTPError):
    status_code_default = HTTP_400_BAD_REQUEST
    detail_default = "Bad Request"


class NotFound(RouteguardHTTPError):
    status_code_default = HTTP_404_NOT_FOUND
    detail_default = "Not Found"


class InternalError(RouteguardHTTPError):
    pass


# --- Module Notes -----------------------------------------------------------
# These subclass starlette's HTTPException so FastAPI's default exception handler
# renders them as `{"detail": ...}` without extra wiring.
