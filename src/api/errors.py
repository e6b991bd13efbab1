"""API error handling and response helpers."""

import logging
from typing import Any, Dict

from fastapi import FastAPI, Request, status
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.services.errors import (
    DuesError,
    DuesYearExistsError,
    DuesYearNotFoundError,
    DuplicateTransactionError,
    InconsistentLedgerError,
    InvalidAmountError,
    InvalidMonthError,
    InvalidScheduleError,
    LedgerEntryError,
    PersistenceError,
    TransactionNotFoundError,
)

logger = logging.getLogger(__name__)

# HTTP status per domain error; anything unlisted maps to 400
HTTP_STATUS_BY_ERROR: dict[type[DuesError], int] = {
    InvalidAmountError: status.HTTP_400_BAD_REQUEST,
    InvalidScheduleError: status.HTTP_400_BAD_REQUEST,
    InvalidMonthError: status.HTTP_400_BAD_REQUEST,
    InconsistentLedgerError: status.HTTP_409_CONFLICT,
    LedgerEntryError: status.HTTP_409_CONFLICT,
    DuesYearNotFoundError: status.HTTP_404_NOT_FOUND,
    TransactionNotFoundError: status.HTTP_404_NOT_FOUND,
    DuesYearExistsError: status.HTTP_409_CONFLICT,
    DuplicateTransactionError: status.HTTP_409_CONFLICT,
    PersistenceError: status.HTTP_503_SERVICE_UNAVAILABLE,
}

# Request fields whose validation failures are reported as domain errors
FIELD_ERRORS: dict[str, type[DuesError]] = {
    "payment_amount": InvalidAmountError,
    "opening_credit": InvalidAmountError,
    "new_balance": InvalidAmountError,
    "scheduled_amount": InvalidScheduleError,
    "explicit_start_month": InvalidMonthError,
}


def http_status_for(error: DuesError) -> int:
    """HTTP status code for a domain error."""
    for error_type in type(error).__mro__:
        if error_type in HTTP_STATUS_BY_ERROR:
            return HTTP_STATUS_BY_ERROR[error_type]
    return status.HTTP_400_BAD_REQUEST


def error_response(error: DuesError) -> Dict[str, Any]:
    """Create a standardized error response."""
    body: Dict[str, Any] = {
        "error": {
            "code": error.code,
            "message": error.message,
        }
    }
    if isinstance(error, InconsistentLedgerError):
        body["error"]["months"] = error.months
    return body


async def dues_error_handler(request: Request, exc: DuesError) -> JSONResponse:
    """Render a DuesError as a JSON error response."""
    status_code = http_status_for(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=status_code, content=error_response(exc))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed amounts and months with the domain error body.

    Other validation failures keep FastAPI's default 422 response.
    """
    for error in exc.errors():
        loc = error.get("loc") or ()
        error_type = FIELD_ERRORS.get(loc[-1]) if loc else None
        if error_type is not None:
            return await dues_error_handler(request, error_type(f"{loc[-1]}: {error['msg']}"))
    return await request_validation_exception_handler(request, exc)


def register_error_handlers(app: FastAPI) -> None:
    """Install the domain and request validation error handlers on an application."""
    app.add_exception_handler(DuesError, dues_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)


__all__ = [
    "HTTP_STATUS_BY_ERROR",
    "http_status_for",
    "error_response",
    "FIELD_ERRORS",
    "dues_error_handler",
    "request_validation_handler",
    "register_error_handlers",
]
