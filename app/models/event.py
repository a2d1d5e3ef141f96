"""
Event model
"""

from datetime import datetime
from sqlalchemy import Column, String, Text, Float, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.core.db import Base

class Event(Base):
    __tablename__ = "events"

    id = Column(String(36), primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    date = Column(DateTime, nullable=False)
    location = Column(String(255), nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    event_type = Column(String(32), nullable=False, default="other")
    organizer_id = Column(String(128), ForeignKey("users.id"), nullable=False, index=True)
    access_password = Column(String(32), nullable=False)
    qr_code = Column(String(512), nullable=False)
    is_live = Column(Boolean, default=False, nullable=False)
    status = Column(String(16), default="upcoming", nullable=False)  # upcoming, active, ended, cancelled
    created_at = Column(DateTime, default=datetime.utcnow)
    expires_at = Column(DateTime, nullable=False)

    # Relationships
    organizer = relationship("User")
    menu = relationship("MenuCourse", back_populates="event", cascade="all, delete-orphan",
                        order_by="MenuCourse.position")
    participants = relationship("EventParticipant", back_populates="event", cascade="all, delete-orphan",
                                order_by="EventParticipant.joined_at")
    photos = relationship("Photo", back_populates="event", cascade="all, delete-orphan")
    notifications = relationship("Notification", back_populates="event", cascade="all, delete-orphan")
