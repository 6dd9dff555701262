"""Translate marketplace exceptions into HTTP responses.

Protean's own handlers map ``ValidationError`` to 400, ``ObjectNotFoundError``
to 404 and invalid state transitions to 400. Stock and availability
conflicts carry a structured ``detail`` on top of their messages.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from marketplace.errors import InsufficientStockError, InvalidStateError, ProductUnavailableError

logger = structlog.get_logger(__name__)


def _conflict(request: Request, exc: InsufficientStockError | ProductUnavailableError | InvalidStateError):
    logger.info("Request rejected", path=request.url.path, error=exc.__class__.__name__)
    return JSONResponse(status_code=400, content={"error": exc.messages, "detail": exc.detail()})


def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages: dict[str, list[str]] = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"] if part != "body") or "body"
        messages.setdefault(field, []).append(error["msg"])
    return JSONResponse(status_code=400, content={"error": messages})


def _unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", method=request.method, path=request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def install_error_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    for error in (InsufficientStockError, ProductUnavailableError, InvalidStateError):
        app.add_exception_handler(error, _conflict)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(Exception, _unexpected)
