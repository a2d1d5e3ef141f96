"""
Event participant (membership) model
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from app.core.db import Base

class EventParticipant(Base):
    __tablename__ = "event_participants"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(String(36), ForeignKey("events.id"), nullable=False, index=True)
    user_id = Column(String(128), ForeignKey("users.id"), nullable=False, index=True)
    role = Column(String(16), nullable=False, default="guest")  # organizer, guest
    joined_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    event = relationship("Event", back_populates="participants")
    user = relationship("User")

    # A user joins an event at most once; duplicate inserts fail here
    __table_args__ = (UniqueConstraint("event_id", "user_id", name="uq_event_participant"),)
