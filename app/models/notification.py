"""
Notification log model
"""

from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime, JSON, ForeignKey
from sqlalchemy.orm import relationship

from app.core.db import Base

class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, index=True)
    event_id = Column(String(36), ForeignKey("events.id"), nullable=False, index=True)
    type = Column(String(32), nullable=False)  # course_ready, event_update, photo_uploaded
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, nullable=True)
    sent_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    event = relationship("Event", back_populates="notifications")
