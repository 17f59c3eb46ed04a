import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ApiError(HTTPException):
    """Base for the named error variants returned by handlers."""

    status_code = 500
    default_message = "Server error"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(status_code=self.status_code, detail=message or self.default_message)
        self.errors = errors


class Unauthorized(ApiError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(ApiError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(ApiError):
    status_code = 404
    default_message = "Not found"


class ValidationError(ApiError):
    status_code = 400
    default_message = "Validation failed"


class Conflict(ApiError):
    status_code = 409
    default_message = "Conflict"


class ServiceUnavailable(ApiError):
    status_code = 503
    default_message = "Service unavailable"


class ServerError(ApiError):
    status_code = 500
    default_message = "Server error"


def _field_name(loc) -> str:
    # drop the leading "body"/"query"/"path" marker
    parts = [str(p) for p in loc[1:]] if len(loc) > 1 else [str(p) for p in loc]
    return ".".join(parts)


def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    body: Dict[str, Any] = {"message": exc.detail}
    errors = getattr(exc, "errors", None)
    if errors:
        body["errors"] = errors
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [{"field": _field_name(e.get("loc", ())), "message": e.get("msg", "")} for e in exc.errors()]
    return JSONResponse(status_code=400, content={"message": "Validation failed", "errors": errors})


def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Server error"})


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
