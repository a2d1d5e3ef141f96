"""
Event photo model
"""

from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.core.db import Base

class Photo(Base):
    __tablename__ = "photos"

    id = Column(String(36), primary_key=True, index=True)
    event_id = Column(String(36), ForeignKey("events.id"), nullable=False, index=True)
    uploaded_by = Column(String(128), ForeignKey("users.id"), nullable=False)
    url = Column(String(1024), nullable=False)
    thumbnail = Column(String(1024), nullable=True)
    caption = Column(String(500), nullable=True)
    storage_path = Column(String(512), nullable=False)
    thumbnail_path = Column(String(512), nullable=True)
    uploaded_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    event = relationship("Event", back_populates="photos")
    uploader = relationship("User")
