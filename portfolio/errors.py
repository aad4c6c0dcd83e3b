"""
Error taxonomy shared by the stores and the HTTP layer.

Stores raise these exceptions; the app factory registers handlers that turn
them into the ``{"success": false, "error": ..., "type": ...}`` envelope.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class PortfolioError(Exception):
    """Base class for every error the API reports to clients."""

    status_code = 500
    code = "InternalError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"success": False, "error": self.message, "type": self.code}


class ValidationError(PortfolioError):
    status_code = 400
    code = "ValidationError"


class InvalidIndexError(ValidationError):
    """A screen reorder referenced an index outside the screens list."""

    def __init__(self, message: str = "Invalid index"):
        super().__init__(message)


class NotFoundError(PortfolioError):
    status_code = 404
    code = "NotFound"


class ScreenIndexError(NotFoundError):
    """A screen update/delete referenced an index that does not exist."""

    code = "IndexOutOfRange"

    def __init__(self, index: int):
        super().__init__("Screen not found")
        self.index = index


class ConflictError(PortfolioError):
    status_code = 409
    code = "Conflict"


class UnauthorizedError(PortfolioError):
    status_code = 401
    code = "Unauthorized"

    def __init__(self, message: str, reason: str):
        super().__init__(message)
        self.reason = reason

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["reason"] = self.reason
        return result


class StorageError(PortfolioError):
    """Blob storage failed to read or write an object."""

    code = "StorageError"

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


# =============================================================================
# Exception handlers
# =============================================================================


async def portfolio_error_handler(
    request: Request, exc: PortfolioError
) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def _describe_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(
            str(item) for item in error.get("loc", ()) if item not in ("body", "query", "path")
        )
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "Invalid request"


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": _describe_validation_errors(exc),
            "type": ValidationError.code,
        },
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    if exc.status_code == 404:
        message = f"Route {request.method} {request.url.path} not found"
        code = NotFoundError.code
    else:
        message = str(exc.detail)
        code = "HTTPError"
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": message, "type": code},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal server error",
            "type": "InternalError",
        },
    )
