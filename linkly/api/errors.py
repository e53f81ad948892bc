"""Mapping of link lifecycle errors to HTTP responses."""

import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from linkly.core.exceptions import (
    AliasConflictError,
    AllocationExhaustedError,
    InvalidAliasError,
    InvalidUrlError,
    LinkError,
    LinkExpiredError,
    LinkInactiveError,
    LinkNotFoundError,
    StorageError,
)

logger = structlog.get_logger()

STATUS_CODES: dict[type[LinkError], int] = {
    InvalidUrlError: status.HTTP_400_BAD_REQUEST,
    InvalidAliasError: status.HTTP_400_BAD_REQUEST,
    AliasConflictError: status.HTTP_409_CONFLICT,
    LinkNotFoundError: status.HTTP_404_NOT_FOUND,
    # Deactivated links look the same as missing ones to visitors
    LinkInactiveError: status.HTTP_404_NOT_FOUND,
    LinkExpiredError: status.HTTP_410_GONE,
    AllocationExhaustedError: status.HTTP_503_SERVICE_UNAVAILABLE,
    StorageError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_code_for(exc: LinkError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_CODES:
            return STATUS_CODES[cls]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def link_error_handler(request: Request, exc: LinkError) -> JSONResponse:
    status_code = status_code_for(exc)
    log = logger.warning if status_code >= 500 else logger.info
    log(
        "Link operation failed",
        error=exc.error,
        short_id=exc.short_id,
        status_code=status_code,
        detail=exc.message,
    )
    # Storage failures are not explained to clients
    detail = "Service temporarily unavailable" if isinstance(exc, StorageError) else exc.message
    return JSONResponse(
        status_code=status_code,
        content={"detail": detail, "error": exc.error},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LinkError, link_error_handler)
