"""
Notification-related Pydantic schemas
"""

from datetime import datetime
from typing import Any, Dict, Literal, Optional
from pydantic import BaseModel, Field

NotificationType = Literal["course_ready", "event_update", "photo_uploaded"]

class Notification(BaseModel):
    """Append-only notification record"""
    id: str
    event_id: str
    type: NotificationType
    title: str
    message: str
    data: Optional[Dict[str, Any]] = None
    sent_at: datetime

class NotificationCreate(BaseModel):
    """Organizer-authored event update"""
    title: str = Field(min_length=1, max_length=255)
    message: str = Field(min_length=1)
