import traceback
import uuid

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.cors import add_cors_headers_to_response
from .core.errors import ProgramError
from .core.logging import get_logger

USER_FRIENDLY_MESSAGES = {
    "internal_error": "We're experiencing technical difficulties. Please try again in a moment.",
    "validation_error": "Please check your input and try again.",
    "transaction_failure": "Failed to create program. Please try again.",
}

RETRYABLE_CODES = {"internal_error", "transaction_failure"}


def error_payload(code: str, message: str, details=None, request: Request | None = None, error_id: str | None = None):
    """Build the ``{"error": {...}}`` body shared by every error response."""
    user_message = USER_FRIENDLY_MESSAGES.get(code, message)
    out = {
        "error": {
            "code": code,
            "message": user_message,
            "technical_message": message if user_message != message else None,
            "details": details,
            "retryable": code in RETRYABLE_CODES,
        }
    }
    rid = getattr(getattr(request, "state", None), "request_id", None)
    if rid:
        out["error"]["request_id"] = rid
    if error_id:
        out["error"]["error_id"] = error_id
    return out


def install_exception_handlers(app):
    log = get_logger("referral_api.exceptions")

    @app.exception_handler(ProgramError)
    async def program_error_handler(request: Request, exc: ProgramError):
        log.info(
            "event=program_error method=%s path=%s code=%s status=%s",
            request.method, request.url.path, exc.code, exc.status_code,
        )
        response = JSONResponse(
            error_payload(exc.code, exc.message, exc.details, request),
            status_code=exc.status_code,
        )
        return add_cors_headers_to_response(response, request)

    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):
        log.warning("HTTPException %s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.detail)
        response = JSONResponse(
            error_payload("http_error", exc.detail, {"status_code": exc.status_code}, request),
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )
        return add_cors_headers_to_response(response, request)

    @app.exception_handler(RequestValidationError)
    @app.exception_handler(ValidationError)
    async def validation_exc_handler(request: Request, exc):
        errors = exc.errors()
        log.info("ValidationError %s %s errors=%s", request.method, request.url.path, len(errors))
        response = JSONResponse(
            error_payload("validation_error", "Validation failed", jsonable_errors(errors), request),
            status_code=422,
        )
        return add_cors_headers_to_response(response, request)

    @app.exception_handler(Exception)
    async def unhandled_exc_handler(request: Request, exc: Exception):
        err_id = str(uuid.uuid4())
        tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        log.error("Unhandled exception [%s] %s %s\nTraceback:\n%s", err_id, request.method, request.url.path, tb)
        response = JSONResponse(
            error_payload("internal_error", "Something went wrong", None, request, error_id=err_id),
            status_code=500,
        )
        return add_cors_headers_to_response(response, request)


def jsonable_errors(errors):
    """Drop exception objects pydantic keeps in ``ctx`` so the list serialises."""
    cleaned = []
    for err in errors:
        item = {k: v for k, v in err.items() if k not in ("ctx", "url")}
        if "input" in item and isinstance(item["input"], bytes):
            item["input"] = None
        cleaned.append(item)
    return cleaned
