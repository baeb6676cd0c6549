"""
Domain errors and the global exception handlers that turn them into JSON.

Services raise the ``DomainError`` subclasses below; routers let them
propagate. Every error body has the shape ``{"success": false, "detail": ...,
"error": <code>}`` and never carries a stack trace.
"""

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)


class DomainError(Exception):
    status_code = 400
    code = "domain_error"

    def __init__(self, detail: str = ""):
        super().__init__(detail)
        self.detail = detail or self.__class__.__name__


class ValidationError(DomainError):
    status_code = 400
    code = "validation_error"


class InvalidRating(ValidationError):
    code = "invalid_rating"


class NotFound(DomainError):
    status_code = 404
    code = "not_found"


class Forbidden(DomainError):
    status_code = 403
    code = "forbidden"


class Conflict(DomainError):
    status_code = 409
    code = "conflict"


class AlreadyExists(Conflict):
    code = "already_exists"


class AlreadyAssigned(Conflict):
    code = "already_assigned"


class AlreadySubmitted(Conflict):
    code = "already_submitted"


class InvalidState(DomainError):
    status_code = 400
    code = "invalid_state"


class TaskNotCompleted(InvalidState):
    code = "task_not_completed"


class NoCandidates(DomainError):
    status_code = 422
    code = "no_candidates"


class NoActiveTeams(DomainError):
    status_code = 422
    code = "no_active_teams"


class Upstream(DomainError):
    status_code = 502
    code = "upstream_error"


async def _domain_error_handler(_request: Request, exc: DomainError) -> JSONResponse:
    logger.info("%s: %s", exc.code, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "detail": exc.detail, "error": exc.code},
    )


async def _http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "detail": exc.detail, "error": "http_error"},
        headers=getattr(exc, "headers", None),
    )


async def _request_validation_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": list(err.get("loc", [])), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content={"success": False, "detail": errors, "error": "validation_error"},
    )


async def _integrity_error_handler(_request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Database integrity error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=409,
        content={"success": False, "detail": "Database constraint violation", "error": "conflict"},
    )


async def _sqlalchemy_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"success": False, "detail": "Internal database error", "error": "upstream_error"},
    )


async def _generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"success": False, "detail": "Internal server error", "error": "internal_error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(DomainError, _domain_error_handler)
    app.add_exception_handler(HTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(IntegrityError, _integrity_error_handler)
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)
    app.add_exception_handler(Exception, _generic_exception_handler)
