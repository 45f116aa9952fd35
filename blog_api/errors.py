"""
JSON:API error documents.

Every failure leaves the API as ``{"errors": [...]}`` where each entry has
``status`` (a string, as JSON:API requires), ``source`` (``pointer`` into the
request document or the offending query ``parameter``), ``title`` and
``detail``.

Exception hierarchy (raised by dependencies and routers, rendered by the
handlers registered in ``register_exception_handlers``)::

    BlogAPIError
    ├── AuthenticationError  → 401  (login code missing or rejected)
    ├── AuthorizationError   → 403  (no user, or user does not own the resource)
    ├── NotFoundError        → 404
    └── InvalidParameterError → 400 (unsupported query parameter value)

Validation failures are *not* exceptions: services return a
``SaveResult`` carrying ``FieldError`` values, and routers render those with
``validation_error_response``.
"""
import logging
from http import HTTPStatus
from typing import Iterable

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from blog_api.serializers import JSONAPIResponse
from blog_api.validation import FieldError

logger = logging.getLogger(__name__)

INVALID_REQUEST_TITLE = "Invalid request"


class BlogAPIError(Exception):
    """Base class for errors that map onto a fixed JSON:API error entry."""

    status_code = 500
    title = "Internal Server Error"
    pointer = "/data"
    parameter: str | None = None
    detail = "An unexpected error occurred."

    def __init__(self, detail: str | None = None, pointer: str | None = None) -> None:
        if detail is not None:
            self.detail = detail
        if pointer is not None:
            self.pointer = pointer
        super().__init__(self.detail)

    def to_error(self) -> dict:
        return error_object(
            self.status_code,
            self.title,
            self.detail,
            pointer=self.pointer,
            parameter=self.parameter,
        )


class AuthenticationError(BlogAPIError):
    status_code = 401
    title = "Invalid Authentication Code"
    pointer = "/code"
    detail = "Valid code must be provided in order to be exchanged for token."


class AuthorizationError(BlogAPIError):
    status_code = 403
    title = "Forbidden"
    pointer = "/headers/authorization"
    detail = "User is not authorized to perform this action."


class NotFoundError(BlogAPIError):
    status_code = 404
    title = "Not Found"
    pointer = "/data/id"

    def __init__(self, resource: str = "Resource", pointer: str | None = None) -> None:
        super().__init__(f"{resource} not found", pointer=pointer)


class InvalidParameterError(BlogAPIError):
    status_code = 400
    title = "Invalid Query Parameter"

    def __init__(self, parameter: str, detail: str) -> None:
        self.parameter = parameter
        super().__init__(detail)


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

def error_object(
    status: int,
    title: str,
    detail: str,
    pointer: str | None = None,
    parameter: str | None = None,
) -> dict:
    source = {"parameter": parameter} if parameter is not None else {"pointer": pointer or "/data"}
    return {
        "status": str(status),
        "source": source,
        "title": title,
        "detail": detail,
    }


def attribute_pointer(field: str) -> str:
    return f"/data/attributes/{field}"


def validation_errors(errors: Iterable[FieldError]) -> list[dict]:
    """One 422 entry per invalid field, pointing into ``/data/attributes``."""
    return [
        error_object(422, INVALID_REQUEST_TITLE, err.message, pointer=attribute_pointer(err.field))
        for err in errors
    ]


def errors_document(errors: list[dict]) -> dict:
    return {"errors": errors}


def validation_error_response(errors: Iterable[FieldError]) -> JSONAPIResponse:
    return JSONAPIResponse(errors_document(validation_errors(errors)), status_code=422)


def _status_title(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


def _request_validation_entry(err: dict) -> dict:
    """
    Translate one pydantic error into a JSON:API entry.

    Body locations become JSON pointers (``("body", "data", "attributes",
    "title")`` → ``/data/attributes/title``); query, path and header
    locations become ``source.parameter``.
    """
    loc = [str(part) for part in err.get("loc", ())]
    message = err.get("msg", "is invalid")
    if loc and loc[0] == "body":
        pointer = "/" + "/".join(loc[1:]) if len(loc) > 1 else "/data"
        return error_object(422, INVALID_REQUEST_TITLE, message, pointer=pointer)
    parameter = loc[-1] if loc else None
    return error_object(422, INVALID_REQUEST_TITLE, message, parameter=parameter)


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

async def blog_api_error_handler(request: Request, exc: BlogAPIError) -> JSONAPIResponse:
    logger.info(
        "%s %s rejected with %d: %s",
        request.method,
        request.url.path,
        exc.status_code,
        exc.detail,
    )
    return JSONAPIResponse(errors_document([exc.to_error()]), status_code=exc.status_code)


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONAPIResponse:
    errors = [_request_validation_entry(err) for err in exc.errors()]
    return JSONAPIResponse(errors_document(errors), status_code=422)


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONAPIResponse:
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    error = error_object(
        exc.status_code,
        _status_title(exc.status_code),
        detail,
        pointer=request.url.path,
    )
    return JSONAPIResponse(
        errors_document([error]),
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Render every error the API can produce as a JSON:API document."""
    app.add_exception_handler(BlogAPIError, blog_api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
