"""Maps service errors onto HTTP responses.

Every response body is ``{"detail": ..., "code": ...}``; ``code`` tells the
failures apart where statuses coincide.
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from prompt_shelf.core.exceptions import (
    AlreadyHasAccess,
    AuthenticationFailed,
    CannotModifyOwner,
    DuplicateName,
    DuplicatePendingInvite,
    EmailAlreadyRegistered,
    EmailMismatch,
    InsufficientPermission,
    InvalidLibraryPassword,
    InvalidOrExpiredInvite,
    LibraryLocked,
    NoExistingAccess,
    NotFoundOrDenied,
    ShelfError,
    StoreError,
    ValidationFailed,
)

logger = structlog.get_logger()

STATUS_BY_ERROR: dict[type[ShelfError], int] = {
    NotFoundOrDenied: 404,
    InsufficientPermission: 403,
    InvalidOrExpiredInvite: 410,
    EmailMismatch: 403,
    AlreadyHasAccess: 409,
    DuplicatePendingInvite: 409,
    CannotModifyOwner: 400,
    NoExistingAccess: 404,
    LibraryLocked: 423,
    InvalidLibraryPassword: 401,
    AuthenticationFailed: 401,
    EmailAlreadyRegistered: 409,
    DuplicateName: 409,
    ValidationFailed: 400,
}


def status_for(exc: ShelfError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[cls]
    return 400


async def shelf_error_handler(request: Request, exc: ShelfError) -> JSONResponse:
    status = status_for(exc)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationFailed) else None
    logger.info(
        "request.rejected",
        path=request.url.path,
        status=status,
        code=exc.code,
    )
    return JSONResponse(
        status_code=status,
        content={"detail": exc.message, "code": exc.code},
        headers=headers,
    )


async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    logger.error("request.store_failed", path=request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=503,
        content={"detail": "Service temporarily unavailable", "code": StoreError.code},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(ShelfError, shelf_error_handler)
