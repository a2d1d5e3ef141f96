"""
Event-related Pydantic schemas
"""

from datetime import datetime
from typing import Literal, Optional, List
from pydantic import BaseModel, Field

from .user import User

EventStatus = Literal["upcoming", "active", "ended", "cancelled"]
CourseType = Literal["appetizer", "first", "main", "dessert", "cake"]
EventType = Literal[
    "wedding", "birthday", "celebration", "anniversary",
    "graduation", "corporate", "party", "other",
]

class MenuCourse(BaseModel):
    """One course of an event menu"""
    id: str
    type: CourseType
    name: str
    description: Optional[str] = None
    is_served: bool = False

class Event(BaseModel):
    """Event with organizer, menu and participant ids joined in"""
    id: str
    title: str
    description: Optional[str] = None
    date: datetime
    location: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    event_type: EventType = "other"
    organizer_id: str
    organizer: Optional[User] = None
    menu: List[MenuCourse] = []
    participants: List[str] = []
    access_password: str
    qr_code: str
    is_live: bool = False
    status: EventStatus = "upcoming"
    created_at: datetime
    expires_at: datetime

class JoinResult(BaseModel):
    """Outcome of a join attempt"""
    event: Event
    already_member: bool

class MenuCourseCreate(BaseModel):
    """Course entry supplied by the organizer"""
    type: CourseType = "main"
    name: str = ""
    description: Optional[str] = None

class EventCreate(BaseModel):
    """Schema for creating an event"""
    title: str
    description: Optional[str] = None
    date: datetime
    location: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    event_type: EventType = "other"
    menu: List[MenuCourseCreate] = []

class JoinRequest(BaseModel):
    """Join by scanned token, or by event id plus password"""
    token: Optional[str] = None
    event_id: Optional[str] = None
    password: Optional[str] = None

class StatusUpdate(BaseModel):
    """Requested status change"""
    status: EventStatus

class Invitation(BaseModel):
    """Shareable invitation for an event"""
    event_id: str
    password: str
    token: str
    link: str

class PasswordRegenerated(BaseModel):
    """New join secret after regeneration"""
    password: str
    token: str
