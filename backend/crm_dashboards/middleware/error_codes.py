"""Error codes for standardized API error responses.

Maps HTTP status codes and service exceptions to semantic error codes for
consistent client-side handling. Every error body has the shape
``{"detail": <message>, "code": <ErrorCode>}``; clients show ``detail`` as is.
"""

import logging
from enum import Enum

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from crm_dashboards.services.exceptions import (
    DashboardServiceError,
    InvalidWidgetConfigError,
    NotFoundError,
)

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Client errors (4xx)
    BAD_REQUEST = "BAD_REQUEST"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_WIDGET_CONFIG = "INVALID_WIDGET_CONFIG"

    # Server errors (5xx)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


# HTTP status code to ErrorCode mapping
STATUS_TO_ERROR_CODE: dict[int, ErrorCode] = {
    400: ErrorCode.BAD_REQUEST,
    404: ErrorCode.NOT_FOUND,
    409: ErrorCode.CONFLICT,
    422: ErrorCode.VALIDATION_ERROR,
    500: ErrorCode.INTERNAL_ERROR,
    503: ErrorCode.SERVICE_UNAVAILABLE,
}


def get_error_code(status_code: int) -> ErrorCode:
    """Get ErrorCode from HTTP status code."""
    return STATUS_TO_ERROR_CODE.get(status_code, ErrorCode.INTERNAL_ERROR)


def _error_response(status_code: int, detail, code: ErrorCode) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail, "code": code.value})


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return _error_response(404, str(exc), ErrorCode.NOT_FOUND)


async def invalid_config_handler(request: Request, exc: InvalidWidgetConfigError) -> JSONResponse:
    return _error_response(422, str(exc), ErrorCode.INVALID_WIDGET_CONFIG)


async def service_error_handler(request: Request, exc: DashboardServiceError) -> JSONResponse:
    logger.error(f"Unhandled service error on {request.url.path}: {exc}")
    return _error_response(400, str(exc), ErrorCode.BAD_REQUEST)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error_response(exc.status_code, exc.detail, get_error_code(exc.status_code))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error_response(422, jsonable_encoder(exc.errors()), ErrorCode.VALIDATION_ERROR)


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the error envelope handlers to ``app``."""
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(InvalidWidgetConfigError, invalid_config_handler)
    app.add_exception_handler(DashboardServiceError, service_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
