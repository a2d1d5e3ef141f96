"""
User profile model
"""

from datetime import datetime
from sqlalchemy import Column, String, DateTime

from app.core.db import Base

class User(Base):
    __tablename__ = "users"

    # Firebase uids are up to 128 characters
    id = Column(String(128), primary_key=True, index=True)
    email = Column(String(255), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    avatar = Column(String(1024), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
