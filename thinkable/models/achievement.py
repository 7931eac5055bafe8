"""Achievement model definitions."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from thinkable.database import Base


class Achievement(Base):
    """A badge that can be earned once a metric reaches a value."""
    __tablename__ = "achievements"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True)
    description = Column(String)
    icon = Column(String)
    category = Column(String)
    rarity = Column(String, default='COMMON')
    points = Column(Integer, default=0)
    requirement_type = Column(String)
    requirement_value = Column(Integer)
    is_active = Column(Boolean, default=True)
    is_hidden = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)


class UserAchievement(Base):
    """An achievement earned by a user."""
    __tablename__ = "user_achievements"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    achievement_id = Column(Integer, ForeignKey("achievements.id"))
    progress_value = Column(Integer, default=0)
    earned_at = Column(DateTime, default=datetime.utcnow)
    is_new = Column(Boolean, default=True)

    achievement = relationship("Achievement")
