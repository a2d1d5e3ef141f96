"""
Registered push address per user
"""

from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey

from app.core.db import Base

class PushToken(Base):
    __tablename__ = "push_tokens"

    user_id = Column(String(128), ForeignKey("users.id"), primary_key=True)
    token = Column(String(512), nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
