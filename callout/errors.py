"""Typed errors and their HTTP rendering."""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from callout.database import LeaseTimeout, UniqueViolation

logger = logging.getLogger(__name__)


class CalloutError(Exception):
    status_code = 500
    category = "internal"
    default_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(CalloutError):
    status_code = 401
    category = "unauthorized"
    default_message = "Authentication required"


class Forbidden(CalloutError):
    status_code = 403
    category = "forbidden"
    default_message = "Insufficient permissions"


class NotFound(CalloutError):
    status_code = 404
    category = "not_found"
    default_message = "Not found"


class BadRequest(CalloutError):
    status_code = 400
    category = "bad_request"
    default_message = "Bad request"


class Conflict(CalloutError):
    status_code = 409
    category = "conflict"
    default_message = "Conflict"


# leading loc segment FastAPI adds for request parts
REQUEST_LOCATIONS = frozenset({"body", "query", "path", "header", "cookie"})


def invalid_fields_message(errors: Iterable[Mapping[str, Any]]) -> str:
    """Name the offending fields of a pydantic error list, never their input."""
    fields: list[str] = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ())]
        if len(loc) > 1 and loc[0] in REQUEST_LOCATIONS:
            loc = loc[1:]
        name = ".".join(loc) or "request"
        if name not in fields:
            fields.append(name)
    return f"Invalid value for: {', '.join(fields)}"


def _error_response(status_code: int, category: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": message, "category": category},
    )


async def callout_error_handler(request: Request, exc: CalloutError) -> JSONResponse:
    return _error_response(exc.status_code, exc.category, exc.message)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    message = invalid_fields_message(exc.errors())
    logger.info(f"Rejected request to {request.url.path}: {message}")
    return _error_response(BadRequest.status_code, BadRequest.category, message)


async def unique_violation_handler(
    request: Request, exc: UniqueViolation
) -> JSONResponse:
    logger.warning(f"Unique constraint violation on {request.url.path}: {exc.key}")
    return _error_response(
        Conflict.status_code,
        Conflict.category,
        "A record with that value already exists",
    )


async def lease_timeout_handler(request: Request, exc: LeaseTimeout) -> JSONResponse:
    logger.warning(
        f"Lease timeout on {request.url.path} after {exc.timeout}s: {exc.key}"
    )
    return _error_response(
        Conflict.status_code,
        Conflict.category,
        "Resource is busy, retry the request",
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CalloutError, callout_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(UniqueViolation, unique_violation_handler)
    app.add_exception_handler(LeaseTimeout, lease_timeout_handler)
