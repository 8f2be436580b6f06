"""
Ledger error taxonomy and the global exception handlers that turn it into
JSON responses without leaking stack traces to clients.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)


# ── Domain errors ───────────────────────────────────────────────────
class DomainError(Exception):
    """Base exception for ledger rule violations."""

    status_code = 400


class ValidationError(DomainError):
    """Missing or invalid input."""

    status_code = 400


class DuplicateRecordError(ValidationError):
    """A fact already exists for this employee and date."""

    status_code = 409


class NotFoundError(DomainError):
    """Unknown fact or employee id."""

    status_code = 404


class LockedRecordError(DomainError):
    """Mutation attempted on a fact inside a closed period."""

    status_code = 423


class ConcurrencyConflictError(DomainError):
    """The fact changed (or was locked) since it was read."""

    status_code = 409


class AuditWriteError(DomainError):
    """The audit trail for an update could not be written."""

    status_code = 500

    def __init__(self, message: str, fields: list[str]):
        super().__init__(message)
        self.fields = fields


class BackendUnavailableError(DomainError):
    """The store is reachable but erroring."""

    status_code = 503


# ── Handlers ────────────────────────────────────────────────────────
async def _domain_error_handler(_request: Request, exc: DomainError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s: %s", type(exc).__name__, exc)
    content: dict = {"detail": str(exc), "success": False, "error": type(exc).__name__}
    if isinstance(exc, AuditWriteError):
        content["fields"] = exc.fields
    return JSONResponse(status_code=exc.status_code, content=content)


async def _http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "success": False},
        headers=exc.headers,
    )


async def _integrity_error_handler(_request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Database integrity error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=409,
        content={"detail": "Database constraint violation", "success": False},
    )


async def _sqlalchemy_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal database error", "success": False},
    )


async def _generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "success": False},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(DomainError, _domain_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)
