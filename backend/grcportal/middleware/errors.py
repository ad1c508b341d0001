"""
Error translation: every failure leaves the API as

    {"status_code", "message", "errors"?, "timestamp", "path"}

Routers keep raising HTTPException; request validation failures become
400 with field-level errors; unique-constraint races that slip past the
explicit duplicate checks become 409.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from grcportal.models.base import utcnow
from grcportal.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)


def error_body(status_code: int, message: str, path: str, errors: list[dict[str, Any]] | None = None) -> dict:
    body = ErrorResponse(
        status_code=status_code,
        message=message,
        errors=errors or None,
        timestamp=utcnow(),
        path=path,
    )
    return body.model_dump(mode="json", exclude_none=True)


def _field_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    out = []
    for err in exc.errors():
        # Drop the "body"/"query"/"path" prefix from the location
        loc = [str(part) for part in err.get("loc", ())[1:]]
        out.append({"field": ".".join(loc) or None, "message": err.get("msg"), "type": err.get("type")})
    return out


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("HTTP %d on %s: %s", exc.status_code, request.url.path, exc.detail)
    else:
        logger.warning("HTTP %d on %s: %s", exc.status_code, request.url.path, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(error_body(exc.status_code, str(exc.detail), request.url.path)),
        headers=getattr(exc, "headers", None),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = _field_errors(exc)
    logger.warning("Validation failed on %s: %s", request.url.path, errors)
    return JSONResponse(
        status_code=400,
        content=jsonable_encoder(error_body(400, "Validation failed", request.url.path, errors)),
    )


async def _integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning("Integrity error on %s: %s", request.url.path, exc.orig)
    return JSONResponse(
        status_code=409,
        content=error_body(409, "Conflict with existing data", request.url.path),
    )


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=error_body(500, "Internal server error", request.url.path),
    )


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(IntegrityError, _integrity_error_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
