"""
Menu course model
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey
from sqlalchemy.orm import relationship

from app.core.db import Base

class MenuCourse(Base):
    __tablename__ = "menu_courses"

    id = Column(String(36), primary_key=True, index=True)
    event_id = Column(String(36), ForeignKey("events.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    type = Column(String(16), nullable=False)  # appetizer, first, main, dessert, cake
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    is_served = Column(Boolean, default=False, nullable=False)

    # Relationships
    event = relationship("Event", back_populates="menu")
