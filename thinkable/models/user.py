"""User model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String
from thinkable.database import Base

ROLES = ('STUDENT', 'TUTOR', 'ADMIN', 'TEACHER')


class User(Base):
    """Represents an application user."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    name = Column(String)
    hashed_password = Column(String)
    role = Column(String, default='STUDENT')  # STUDENT/TUTOR/ADMIN/TEACHER
    recommended_preset = Column(String)
    age_range = Column(String)
    created_at = Column(DateTime, default=datetime.utcnow)
