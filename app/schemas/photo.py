"""
Photo-related Pydantic schemas
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from .user import User

class Photo(BaseModel):
    """Uploaded event photo"""
    id: str
    event_id: str
    uploaded_by: str
    uploader: Optional[User] = None
    url: str
    thumbnail: Optional[str] = None
    caption: Optional[str] = None
    storage_path: str
    thumbnail_path: Optional[str] = None
    uploaded_at: datetime
