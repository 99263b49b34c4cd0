"""Translate domain errors into structured JSON responses.

Every error body is ``{"error": kind, "message": ..., **details}`` so clients
can branch on ``error`` without parsing the message.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.integrations.fastapi import register_exception_handlers

from logistics.shared.errors import (
    AlreadyMemberError,
    AuthenticationRequiredError,
    CarrierBookingError,
    ConcurrencyConflictError,
    InsufficientFundsError,
    InvalidInputError,
    InvalidTransitionError,
    LedgerIntegrityError,
    LogisticsError,
    NotFoundError,
    PermissionDeniedError,
)

logger = structlog.get_logger(__name__)

_STATUS_CODES = {
    InvalidInputError: 400,
    AuthenticationRequiredError: 401,
    InsufficientFundsError: 402,
    PermissionDeniedError: 403,
    NotFoundError: 404,
    InvalidTransitionError: 409,
    AlreadyMemberError: 409,
    ConcurrencyConflictError: 409,
    LedgerIntegrityError: 500,
    CarrierBookingError: 502,
}


def status_code_for(exc: LogisticsError) -> int:
    for error_cls in type(exc).__mro__:
        if error_cls in _STATUS_CODES:
            return _STATUS_CODES[error_cls]
    return 400


async def _logistics_error(_request: Request, exc: LogisticsError) -> JSONResponse:
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error("Request failed", error=exc.kind, message=exc.message)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


async def _validation_error(_request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": "validation_error", "message": "Invalid input", "fields": exc.messages},
    )


async def _request_validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    fields: dict[str, list[str]] = {}
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        fields.setdefault(location or "body", []).append(err.get("msg", "Invalid value"))
    return JSONResponse(
        status_code=400,
        content={"error": "validation_error", "message": "Invalid request", "fields": fields},
    )


async def _object_not_found(_request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": "not_found", "message": str(exc)})


def register_error_handlers(app: FastAPI) -> None:
    """Install Protean's handlers, then override them with the structured ones."""
    register_exception_handlers(app)
    app.add_exception_handler(LogisticsError, _logistics_error)
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(ObjectNotFoundError, _object_not_found)
