"""
Pydantic schemas package
"""

from .common import *
from .user import *
from .event import *
from .photo import *
from .notification import *

__all__ = [
    "StandardResponse",
    "ErrorResponse",
    "User",
    "UserCreate",
    "UserUpdate",
    "PushTokenUpdate",
    "Event",
    "EventCreate",
    "MenuCourse",
    "MenuCourseCreate",
    "JoinRequest",
    "JoinResult",
    "StatusUpdate",
    "Invitation",
    "PasswordRegenerated",
    "Photo",
    "Notification",
    "NotificationCreate",
]
