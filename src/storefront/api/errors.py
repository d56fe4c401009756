"""Mapping of domain and framework exceptions to JSON error responses.

Every error body has a ``message``. Handlers also leave the message on
``request.state`` for the audit middleware.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError, ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from storefront.errors import (
    AuthError,
    ConflictError,
    ForbiddenError,
    InvalidRequestError,
    NotFoundError,
    SignatureError,
    StorefrontError,
)
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

ERROR_STATUS_CODES = {
    InvalidRequestError: 400,
    AuthError: 401,
    SignatureError: 401,
    ForbiddenError: 403,
    NotFoundError: 404,
    ConflictError: 409,
}


def _respond(request: Request, status_code: int, body: dict) -> JSONResponse:
    request.state.error_message = body.get("message")
    return JSONResponse(status_code=status_code, content=body)


def _first_message(messages) -> str:
    if isinstance(messages, dict):
        for field, errors in messages.items():
            if isinstance(errors, (list, tuple)) and errors:
                return str(errors[0])
            if errors:
                return f"{field}: {errors}"
    return "Invalid request"


async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
    status_code = next((code for cls, code in ERROR_STATUS_CODES.items() if isinstance(exc, cls)), 400)
    return _respond(request, status_code, exc.to_dict())


async def domain_validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    messages = getattr(exc, "messages", {}) or {}
    return _respond(request, 400, {"message": _first_message(messages), "errors": messages})


async def object_not_found_handler(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return _respond(request, 404, {"message": "Not found"})


async def version_conflict_handler(request: Request, exc: ExpectedVersionError) -> JSONResponse:
    logger.warning("version_conflict", path=request.url.path)
    return _respond(request, 409, {"message": "Record was modified concurrently, please retry"})


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": [str(part) for part in error.get("loc", ())], "msg": str(error.get("msg", ""))}
        for error in exc.errors()
    ]
    message = "Invalid request"
    if errors:
        field = errors[0]["loc"][-1] if errors[0]["loc"] else "body"
        message = f"{field}: {errors[0]['msg']}"
    return _respond(request, 400, {"message": message, "errors": errors})


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _respond(request, exc.status_code, {"message": str(exc.detail)})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_error", path=request.url.path, method=request.method, exc_info=exc)
    return _respond(request, 500, {"message": "Server error"})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StorefrontError, storefront_error_handler)
    app.add_exception_handler(ValidationError, domain_validation_error_handler)
    app.add_exception_handler(ObjectNotFoundError, object_not_found_handler)
    app.add_exception_handler(ExpectedVersionError, version_conflict_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
