"""
Custom exception classes and FastAPI exception handlers.

The service layer raises domain-specific errors (InvalidDateRangeError,
TransactionNotFoundError, ...) without importing HTTP concepts. The handlers
registered here translate them into the API's JSON envelope:

    {"success": false, "message": "...", "error": "ERROR_CODE", "statusCode": 400}

Each exception class carries its own status code and error code, so adding a
new error type only means adding a subclass.

Exception hierarchy:
    LedgerAPIError (base)
    ├── InvalidIdFormatError           — identifier is not a UUID
    ├── TransactionValidationError     — caller input rejected
    │   ├── InvalidAmountError
    │   ├── InvalidDescriptionError
    │   ├── InvalidDateFormatError
    │   ├── InvalidRecurrenceDataError
    │   │   └── InvalidRecurrenceTypeError
    │   └── InvalidDateRangeError
    ├── TransactionNotFoundError       — absent OR owned by someone else
    ├── CategoryNotFoundError
    ├── InvalidTokenError              — missing/expired/tampered JWT
    ├── EncryptionFailedError
    ├── DecryptionFailedError
    └── StorageError                   — persistence layer failure
"""

import uuid

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

log = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class LedgerAPIError(Exception):
    """Base exception for all Ledger API domain errors."""

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Input errors (400)
# ---------------------------------------------------------------------------

class InvalidIdFormatError(LedgerAPIError):
    """Raised when a supplied identifier is not well-formed."""

    status_code = 400
    error_code = "INVALID_ID_FORMAT"

    def __init__(self, field: str = "id"):
        self.field = field
        super().__init__(f"Invalid {field} format")


class TransactionValidationError(LedgerAPIError):
    """Base class for rejected transaction payloads. Never retried."""

    status_code = 400
    error_code = "INVALID_DATA"


class InvalidAmountError(TransactionValidationError):
    error_code = "INVALID_AMOUNT"

    def __init__(self, detail: str = "Amount must be a number"):
        super().__init__(detail)


class InvalidDescriptionError(TransactionValidationError):
    error_code = "INVALID_DESCRIPTION"

    def __init__(self, detail: str = "Description is required"):
        super().__init__(detail)


class InvalidDateFormatError(TransactionValidationError):
    error_code = "INVALID_DATE_FORMAT"

    def __init__(self, detail: str = "Date must be in format YYYY-MM-DDTHH:mm:ss.sssZ"):
        super().__init__(detail)


class InvalidRecurrenceDataError(TransactionValidationError):
    error_code = "INVALID_RECURRENCE_DATA"

    def __init__(self, detail: str = "Recurrence type and end date are required"):
        super().__init__(detail)


class InvalidRecurrenceTypeError(InvalidRecurrenceDataError):
    """Raised for a periodicity other than weekly, monthly or yearly."""

    def __init__(self, recurrence_type: object):
        self.recurrence_type = recurrence_type
        super().__init__(f"Unsupported recurrence type: {recurrence_type!r}")


class InvalidDateRangeError(TransactionValidationError):
    error_code = "INVALID_DATE_RANGE"

    def __init__(self, detail: str = "End date must be after start date"):
        super().__init__(detail)


# ---------------------------------------------------------------------------
# Lookup / auth errors
# ---------------------------------------------------------------------------

class TransactionNotFoundError(LedgerAPIError):
    """
    Raised when a transaction does not exist or is not owned by the caller.

    Both cases share one error so the API never reveals that another user's
    record exists.
    """

    status_code = 404
    error_code = "TRANSACTION_NOT_FOUND"

    def __init__(self, transaction_id: uuid.UUID):
        self.transaction_id = transaction_id
        super().__init__("Transaction not found")


class CategoryNotFoundError(LedgerAPIError):
    """Raised when a category reference does not resolve for the owner."""

    status_code = 404
    error_code = "CATEGORY_NOT_FOUND"

    def __init__(self, category_id: uuid.UUID):
        self.category_id = category_id
        super().__init__("Category not found")


class InvalidTokenError(LedgerAPIError):
    status_code = 401
    error_code = "INVALID_TOKEN"

    def __init__(self, detail: str = "Invalid or expired token"):
        super().__init__(detail)


# ---------------------------------------------------------------------------
# Internal errors (500)
# ---------------------------------------------------------------------------

class EncryptionFailedError(LedgerAPIError):
    """Fatal to the write that triggered it."""

    status_code = 500
    error_code = "ENCRYPTION_ERROR"

    def __init__(self, detail: str = "Encryption failed"):
        super().__init__(detail)


class DecryptionFailedError(LedgerAPIError):
    status_code = 500
    error_code = "DECRYPTION_ERROR"

    def __init__(self, detail: str = "Decryption failed"):
        super().__init__(detail)


class StorageError(LedgerAPIError):
    status_code = 500
    error_code = "DATABASE_ERROR"

    def __init__(self, detail: str = "Internal server error"):
        super().__init__(detail)


# ---------------------------------------------------------------------------
# Envelope helpers
# ---------------------------------------------------------------------------

# Request-body field (wire name) -> error code reported when FastAPI's own
# schema validation rejects it
_FIELD_ERROR_CODES = {
    "amount": InvalidAmountError.error_code,
    "description": InvalidDescriptionError.error_code,
    "date": InvalidDateFormatError.error_code,
    "recurrenceEndDate": InvalidDateFormatError.error_code,
    "recurrenceType": InvalidRecurrenceDataError.error_code,
    "isRecurrent": InvalidRecurrenceDataError.error_code,
    "categoryId": InvalidIdFormatError.error_code,
}


def error_envelope(status_code: int, error_code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "message": message,
            "error": error_code,
            "statusCode": status_code,
        },
    )


def error_code_for_request_error(errors: list[dict]) -> tuple[str, str]:
    """
    Pick the (error_code, message) reported for a rejected request body.

    Only the first error is reported. Its location tuple looks like
    ("body", "amount") or, for union types, ("body", "amount", "int"); the
    first element naming a known body field wins.
    """
    if not errors:
        return TransactionValidationError.error_code, "Invalid request data"

    first = errors[0]
    fields = [part for part in first.get("loc", ()) if isinstance(part, str)]
    field = next(
        (part for part in fields if part in _FIELD_ERROR_CODES),
        fields[-1] if fields else "",
    )
    code = _FIELD_ERROR_CODES.get(field, TransactionValidationError.error_code)
    message = f"{field}: {first.get('msg', 'invalid value')}" if field else first.get("msg", "Invalid request data")
    return code, message


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register custom exception handlers with the FastAPI application.

    Every handler produces the same envelope shape. This is called once
    during app startup in main.py.
    """

    @app.exception_handler(LedgerAPIError)
    async def ledger_error_handler(request: Request, exc: LedgerAPIError) -> JSONResponse:
        if exc.status_code >= 500:
            log.error(
                "request_failed",
                path=request.url.path,
                error_code=exc.error_code,
                detail=exc.detail,
            )
            return error_envelope(exc.status_code, exc.error_code, "Internal server error")
        return error_envelope(exc.status_code, exc.error_code, exc.detail)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        code, message = error_code_for_request_error(list(exc.errors()))
        return error_envelope(400, code, message)

    @app.exception_handler(SQLAlchemyError)
    async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        # Driver messages can contain SQL and bound values: log, never return
        log.error(
            "storage_error",
            path=request.url.path,
            method=request.method,
            error_type=type(exc).__name__,
            exc_info=exc,
        )
        return error_envelope(500, StorageError.error_code, "Internal server error")
