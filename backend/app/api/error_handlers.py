"""Error Handlers — global exception handlers for the token API.

Invariants:
    - TokenError → structured JSON with error code, message, severity at its http_status
    - RequestValidationError → 400 with field-level details; address fields report
      INVALID_ADDRESS, the amount field MALFORMED_AMOUNT
    - Exception (catch-all) → never leaks internal details

Design Decisions:
    - Three-layer handler: domain (TokenError), validation (Pydantic), catch-all (Exception)
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from app.core.errors import ErrorCode, ErrorSeverity, TokenError

logger = logging.getLogger(__name__)

_ADDRESS_FIELDS = {"address", "from", "sender", "to", "spender"}
_AMOUNT_FIELDS = {"amount"}


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_token_error_handler(app)
    _register_validation_error_handler(app)
    _register_generic_error_handler(app)


def _register_token_error_handler(app: FastAPI) -> None:
    """Register token domain/ledger error handler."""

    @app.exception_handler(TokenError)
    async def token_error_handler(request: Request, exc: TokenError):
        """Handle all classified token errors."""
        logger.error(
            f"TokenError: {exc.message}",
            extra={"error_code": exc.code.value, "path": request.url.path},
        )
        return JSONResponse(
            status_code=exc.http_status, content=exc.to_response(),
        )


def _register_validation_error_handler(app: FastAPI) -> None:
    """Register Pydantic validation error handler."""

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError,
    ):
        """Handle Pydantic validation errors."""
        logger.warning(
            f"Validation error on {request.url.path}: {exc.errors()}",
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_build_validation_error_response(exc),
        )


def _register_generic_error_handler(app: FastAPI) -> None:
    """Register catch-all error handler."""

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all — never leaks internal details."""
        logger.error(
            f"Unhandled exception on {request.url.path}: {exc}",
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "errorCode": "INTERNAL_ERROR",
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                    "category": "internal",
                    "severity": ErrorSeverity.CRITICAL.value,
                },
            },
        )


def _validation_error_code(errors: list[dict]) -> str:
    """Most specific code for a set of validation errors."""
    fields = {str(e["loc"][-1]) for e in errors if e.get("loc")}
    if fields & _ADDRESS_FIELDS:
        return ErrorCode.INVALID_ADDRESS.value
    if fields & _AMOUNT_FIELDS:
        return ErrorCode.MALFORMED_AMOUNT.value
    return "VALIDATION_ERROR"


def _build_validation_error_response(exc: RequestValidationError) -> dict:
    """Build structured validation error response."""
    errors = exc.errors()
    code = _validation_error_code(errors)
    return {
        "errorCode": code,
        "error": {
            "code": code,
            "message": "Invalid request data",
            "category": "validation",
            "severity": ErrorSeverity.ERROR.value,
            "details": [
                {
                    "field": ".".join(str(loc) for loc in e["loc"]),
                    "message": e["msg"],
                    "type": e["type"],
                }
                for e in errors
            ],
        },
    }
