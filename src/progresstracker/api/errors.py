"""Exception handlers that render every failure as ``{success: false, message}``."""

import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from progresstracker.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)


def _field_name(loc: tuple) -> str:
    parts = [str(p) for p in loc]
    if parts and parts[0] in ("body", "query", "path", "header"):
        parts = parts[1:]
    return ".".join(parts) or "request"


def register_exception_handlers(app: FastAPI, debug: bool = False) -> None:
    """Install the JSON error handlers on an app.

    Args:
        app: Application to configure
        debug: Include error text and stack traces in 500 responses
    """

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404 and exc.detail == "Not Found":
            content = {
                "success": False,
                "message": "Resource not found",
                "path": request.url.path,
            }
        else:
            content = ErrorResponse(message=str(exc.detail)).model_dump(exclude_none=True)
        return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError):
        errors = [
            {"field": _field_name(err.get("loc", ())), "message": err.get("msg", "Invalid value")}
            for err in exc.errors()
        ]
        response = ErrorResponse(message="Validation error", errors=errors)
        return JSONResponse(status_code=400, content=response.model_dump())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled error on {request.method} {request.url.path}: {exc!r}",
            exc_info=exc,
        )
        content: dict = {"success": False, "message": "Internal server error"}
        if debug:
            content["error"] = str(exc)
            content["stack"] = traceback.format_exception(exc)
        return JSONResponse(status_code=500, content=content)
