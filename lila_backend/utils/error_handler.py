"""Error handling utilities and custom exceptions.

Every failure a component can raise derives from :class:`LilaError` and
carries the HTTP status and the public message it maps to.  The handlers
registered in :func:`lila_backend.main.create_app` render them as
``{"error": ...}`` bodies; internal details stay in the logs.
"""

from __future__ import annotations

from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException


class LilaError(Exception):
    """Base class for failures that map onto an API error response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_content(self) -> dict[str, Any]:
        return {"error": self.message}


class Unauthenticated(LilaError):
    """No bearer credential was supplied."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "No token provided"


class InvalidCredential(LilaError):
    """The auth provider rejected or could not resolve the credential."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid or expired token"


class NotFound(LilaError):
    """The chat does not exist, or must not be revealed to the caller."""

    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Chat not found"


class Forbidden(LilaError):
    """The chat exists but belongs to another user."""

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Unauthorized"


class ValidationFailed(LilaError):
    """A required input was missing or empty."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class MalformedHistory(LilaError):
    """A conversation turn could not be parsed."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Malformed conversation history"


class ProviderUnavailable(LilaError):
    """An external provider could not be reached or answered with an error."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"


class GenerationFailed(LilaError):
    """The language model call failed.

    ``details`` carries the provider's own error text and is the only
    internal detail that is returned to clients.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Failed to generate response"

    def __init__(self, details: str, message: str | None = None) -> None:
        super().__init__(message)
        self.details = details

    def to_content(self) -> dict[str, Any]:
        return {"error": self.message, "details": self.details}


async def lila_error_handler(request: Request, exc: LilaError) -> JSONResponse:
    """Convert a LilaError into its JSON error response."""
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("{} on {} {}: {}", type(exc).__name__, request.method, request.url.path, exc)
    else:
        logger.info("{} on {} {}: {}", type(exc).__name__, request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content=exc.to_content())


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies as 400 with the API's error shape."""
    logger.info("Request validation failed on {}: {}", request.url.path, exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request body"},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework HTTP errors (unknown route, bad method) as ``{error}``."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected failures and hide their details from the client."""
    logger.opt(exception=exc).error("Unhandled exception on {} {}", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )
