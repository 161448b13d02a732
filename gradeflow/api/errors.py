"""Map the gradeflow error taxonomy onto JSON responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from gradeflow.core.config import SETTINGS
from gradeflow.core.errors import ConflictError, GradeflowError, ValidationError

logger = logging.getLogger(__name__)


def _field_error(err: dict) -> str:
    location = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
    return f"{location}: {err.get('msg', 'invalid')}" if location else err.get("msg", "")


async def _gradeflow_error(request: Request, exc: GradeflowError) -> JSONResponse:
    body: dict = {"detail": exc.message}
    if isinstance(exc, ValidationError):
        body["errors"] = exc.errors
    elif isinstance(exc, ConflictError):
        body["existing"] = jsonable_encoder(exc.existing)
    return JSONResponse(status_code=exc.status_code, content=body)


async def _request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [_field_error(e) for e in exc.errors()]
    logger.info("Rejected request body on %s: %s", request.url.path, errors)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Validation failed", "errors": errors},
    )


async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    detail = "Internal server error"
    if not SETTINGS.is_prod:
        detail = f"{detail}: {exc}"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": detail},
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GradeflowError, _gradeflow_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _request_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unexpected_error)
