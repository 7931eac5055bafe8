"""Study session and support tool usage records."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from thinkable.database import Base


class StudySession(Base):
    """A finished study or break countdown."""
    __tablename__ = "study_sessions"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    mode = Column(String)  # study/break
    duration_minutes = Column(Integer)
    completed = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class ToolUsage(Base):
    """One use of a focus support tool."""
    __tablename__ = "tool_usage"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    tool_name = Column(String, index=True)
    context = Column(String)
    duration_minutes = Column(Integer)
    energy_level = Column(Integer)
    preset = Column(String)
    time_of_day = Column(String)
    created_at = Column(DateTime, default=datetime.utcnow)
