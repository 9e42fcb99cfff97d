"""
Exception Handlers
Map taxonomy errors, validation failures and unexpected exceptions to
``{"success": false, "message": ...}`` responses
"""

import traceback
from typing import List, Dict, Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from auth_gateway.utils.errors import AuthError
from auth_gateway.utils.log_context import ApiContext

INTERNAL_ERROR_MESSAGE = "Internal server error"


def _error_body(message: str, **extra) -> Dict[str, Any]:
    body = {"success": False, "message": message}
    body.update(extra)
    return body


def _field_name(loc) -> str:
    # loc is ("body", "email") for body fields; a bare ("body",) means no usable body
    parts = [str(part) for part in loc if part != "body"]
    return ".".join(parts) if parts else "body"


def format_validation_message(errors: List[Dict[str, Any]]) -> str:
    """
    Build a single client message from pydantic errors

    Missing fields are reported together; otherwise the first field error wins.
    """
    missing = [_field_name(e.get("loc", ())) for e in errors if e.get("type") == "missing"]
    if missing:
        return f"Missing required fields: {', '.join(missing)}"
    if not errors:
        return "Invalid request"
    first = errors[0]
    message = str(first.get("msg", "Invalid request"))
    if message.startswith("Value error, "):
        return message[len("Value error, "):]
    field = _field_name(first.get("loc", ()))
    if field == "body":
        return "Request body must be a JSON object"
    return f"{field}: {message}"


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the gateway's exception handlers"""

    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError):
        settings = request.app.state.settings
        extra = {"code": exc.code} if settings.expose_error_codes else {}
        return JSONResponse(status_code=exc.http_status, content=_error_body(exc.public_message, **extra))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        events = request.app.state.event_logger
        errors = exc.errors()
        for error in errors:
            events.validation_error(
                _field_name(error.get("loc", ())),
                str(error.get("msg", "")),
                context=ApiContext(method=request.method, url=request.url.path, extra={"type": error.get("type")})
            )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_error_body(format_validation_message(errors))
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(str(exc.detail)),
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        settings = request.app.state.settings
        events = request.app.state.event_logger
        events.request_error(
            request.method,
            request.url.path,
            exc,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            ApiContext(
                ip=request.client.host if request.client else None,
                user_agent=request.headers.get("user-agent")
            )
        )

        if settings.is_production:
            body = _error_body(INTERNAL_ERROR_MESSAGE)
        else:
            body = _error_body(
                str(exc) or INTERNAL_ERROR_MESSAGE,
                stack="".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
            )
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)
