# dyntable/exceptions.py

"""
Error taxonomy for the dynamic-table API and the FastAPI handlers that render
it. Every error response body is JSON with at least an ``error`` string.
"""

import logging
import traceback
from typing import Sequence

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from dyntable.cors import cors_headers

logger = logging.getLogger(__name__)

INVALID_TABLE_NAME_MESSAGE = (
    "Invalid table name. Only alphanumeric characters and underscores allowed."
)


class TableAccessError(Exception):
    """Base class for errors that map onto a client-visible status code."""

    status_code: int = 400
    default_message: str = "Bad Request"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidTableName(TableAccessError):
    default_message = INVALID_TABLE_NAME_MESSAGE


class MissingId(TableAccessError):
    default_message = "No ID provided"


class InvalidPayload(TableAccessError):
    default_message = "Invalid JSON data"


class UnsupportedMediaType(TableAccessError):
    status_code = 415
    default_message = "Content-Type must be application/json"


class EmptyFieldSet(TableAccessError):
    default_message = "At least one field (x_01 to x_20) is required"


class NotFound(TableAccessError):
    status_code = 404
    default_message = "Not Found"


class MethodNotAllowed(TableAccessError):
    status_code = 405
    default_message = "Method not allowed"


class DatastoreFault(TableAccessError):
    """Wraps an error raised by the underlying datastore driver."""

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class DatastoreUnavailable(DatastoreFault):
    status_code = 500

    def __init__(self, message: str = "Database not available"):
        super().__init__(message)


# Exception Handlers
async def table_access_exception_handler(
    request: Request, exc: TableAccessError
) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
    else:
        logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    if exc.status_code == 405:
        message = f"Method {request.method} not allowed"
    elif isinstance(exc.detail, str):
        message = exc.detail
    else:
        message = str(exc.detail)

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": message},
        headers=getattr(exc, "headers", None),
    )


def make_unhandled_exception_handler(expose_trace: bool, allow_origins: Sequence[str]):
    """Build the catch-all 500 handler.

    Args:
        expose_trace: When true the formatted traceback is attached as
            ``stack``. Only meant for development deployments.
        allow_origins: Origins used for the CORS headers; this response is
            built outside ``CORSMiddleware``.
    """

    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        content = {"error": f"Server error: {exc}"}
        if expose_trace:
            content["stack"] = "".join(
                traceback.format_exception(type(exc), exc, exc.__traceback__)
            )
        return JSONResponse(
            status_code=500,
            content=content,
            headers=cors_headers(request, allow_origins),
        )

    return unhandled_exception_handler
