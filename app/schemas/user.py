"""
User-related Pydantic schemas
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field

class User(BaseModel):
    """User profile"""
    id: str
    email: str
    name: str
    avatar: Optional[str] = None
    created_at: datetime

class UserCreate(BaseModel):
    """Schema for registering a profile (local auth mode)"""
    email: EmailStr
    name: str = Field(min_length=1, max_length=255)
    avatar: Optional[str] = None

class UserUpdate(BaseModel):
    """Schema for updating the caller's own profile"""
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    avatar: Optional[str] = None

class PushTokenUpdate(BaseModel):
    """Schema for registering a device push address"""
    token: str = Field(min_length=1, max_length=512)
