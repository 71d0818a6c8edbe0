# drive_auth/core/exceptions.py
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse, Response

logger = logging.getLogger(__name__)


class DriveAuthError(Exception):
    """Base class for errors raised while serving a request."""


class AuthenticationError(DriveAuthError):
    """No session, or the session does not carry a user id."""


class CsrfError(DriveAuthError):
    """Double-submit token missing or mismatched."""


class AuthorizationError(DriveAuthError):
    """No usable access token could be obtained for the user."""


class ConsentCancelled(AuthorizationError):
    """The user closed the consent popup without granting access."""


class UpstreamError(DriveAuthError):
    """The downstream Drive API call failed."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code


async def authentication_error_handler(request: Request, exc: AuthenticationError) -> Response:
    logger.info(f"Rejected unauthenticated request to {request.url.path}")
    return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"error": "Unauthorized"})


async def csrf_error_handler(request: Request, exc: CsrfError) -> Response:
    logger.warning(f"CSRF check failed for {request.url.path}: {exc}")
    return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"error": "Invalid CSRF token"})


async def authorization_error_handler(request: Request, exc: AuthorizationError) -> Response:
    logger.warning(f"Authorization required for {request.url.path}: {exc}")
    return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"error": "Authorization required"})


async def upstream_error_handler(request: Request, exc: UpstreamError) -> Response:
    logger.error(f"Upstream call failed for {request.url.path}: {exc} (status {exc.status_code})")
    return Response(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


async def unhandled_error_handler(request: Request, exc: Exception) -> Response:
    logger.error(f"Unhandled error for {request.url.path}: {exc}", exc_info=exc)
    return Response(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AuthenticationError, authentication_error_handler)
    app.add_exception_handler(CsrfError, csrf_error_handler)
    app.add_exception_handler(AuthorizationError, authorization_error_handler)
    app.add_exception_handler(UpstreamError, upstream_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
