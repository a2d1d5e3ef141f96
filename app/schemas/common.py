"""
Response envelope schemas
"""

from typing import Any, Optional
from pydantic import BaseModel

class StandardResponse(BaseModel):
    """Envelope of every successful JSON response"""
    success: bool = True
    message: str
    data: Optional[Any] = None

class ErrorResponse(BaseModel):
    """Envelope of every failed request; error_code is the AppError code"""
    success: bool = False
    message: str
    error_code: Optional[str] = None
    details: Optional[Any] = None
