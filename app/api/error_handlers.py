"""
Exception handlers mapping application errors to the response envelope
"""

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError

from app.core.errors import AppError
from app.utils.responses import app_error_response, error_response

logger = logging.getLogger(__name__)

async def handle_app_error(request: Request, exc: AppError):
    """Serialize an application error"""
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message} {exc.details}")
    return app_error_response(exc)

async def handle_validation_error(request: Request, exc: RequestValidationError):
    """Map request validation failures to the VALIDATION_ERROR envelope"""
    return error_response(
        message="Some required fields are missing or invalid",
        error_code="VALIDATION_ERROR",
        details={"errors": jsonable_encoder(exc.errors())},
        status_code=422
    )

async def handle_unexpected_error(request: Request, exc: Exception):
    """Never leak raw backend errors to clients"""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return error_response(
        message="Something went wrong. Please try again.",
        error_code="INTERNAL_ERROR",
        status_code=500
    )

def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, handle_app_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
