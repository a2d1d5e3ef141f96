"""
Response envelope helpers
"""

from typing import Any, Optional

from fastapi import HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.core.errors import AppError
from app.schemas.common import ErrorResponse, StandardResponse

def _envelope(body: BaseModel, status_code: int) -> JSONResponse:
    return JSONResponse(content=body.model_dump(mode="json"), status_code=status_code)

def success_response(message: str, data: Any = None, status_code: int = 200) -> JSONResponse:
    return _envelope(StandardResponse(success=True, message=message, data=data), status_code)

def error_response(
    message: str,
    error_code: Optional[str] = None,
    details: Any = None,
    status_code: int = 400
) -> JSONResponse:
    return _envelope(ErrorResponse(message=message, error_code=error_code, details=details), status_code)

def app_error_response(exc: AppError) -> JSONResponse:
    """Render an application error; empty details are sent as null"""
    return error_response(exc.message, exc.code, exc.details or None, exc.status_code)

def unauthorized_error(message: str = "Sign in to continue"):
    """Abort with 401 and a bearer challenge"""
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=message,
        headers={"WWW-Authenticate": "Bearer"}
    )
