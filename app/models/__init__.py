"""
Database models package
"""

from .user import User
from .event import Event
from .menu_course import MenuCourse
from .participant import EventParticipant
from .photo import Photo
from .notification import Notification
from .push_token import PushToken

__all__ = [
    "User",
    "Event",
    "MenuCourse",
    "EventParticipant",
    "Photo",
    "Notification",
    "PushToken",
]
