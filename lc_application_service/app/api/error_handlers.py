"""Translates service exceptions into HTTP responses with the error envelope."""
import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from lc_application_service.app.api.responses import failure
from lc_application_service.app.service.exceptions import (
    AuthenticationError,
    AuthorizationError,
    BaseLcServiceError,
    ConcurrencyConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Most specific first; the first match wins.
STATUS_CODES = (
    (ValidationError, 400),
    (InvalidTransitionError, 400),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (ConcurrencyConflictError, 409),
)

GENERIC_ERROR = "Server Error"


def status_code_for(exc: BaseLcServiceError) -> int:
    for exc_type, status_code in STATUS_CODES:
        if isinstance(exc, exc_type):
            return status_code
    return 500


async def service_error_handler(request: Request, exc: BaseLcServiceError) -> JSONResponse:
    status_code = status_code_for(exc)
    if status_code == 500:
        logger.error(f"Unhandled service error on {request.method} {request.url.path}: {exc}", exc_info=exc)
        return JSONResponse(status_code=500, content=failure(GENERIC_ERROR))

    logger.warning(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc}")
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return JSONResponse(status_code=status_code, content=failure(str(exc)), headers=headers)


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning(f"Request validation failed on {request.method} {request.url.path}: {exc.errors()}")
    errors = [
        {"field": ".".join(str(part) for part in error["loc"] if part != "body"), "message": error["msg"]}
        for error in exc.errors()
    ]
    return JSONResponse(status_code=400, content=jsonable_encoder(failure(errors)))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unexpected error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content=failure(GENERIC_ERROR))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BaseLcServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
