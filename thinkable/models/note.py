"""Note model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Text, UniqueConstraint
from thinkable.database import Base


class Note(Base):
    """Free text a student keeps against one content item."""
    __tablename__ = "notes"
    __table_args__ = (UniqueConstraint('student_id', 'content_id', name='uq_note_student_content'),)

    id = Column(Integer, primary_key=True)
    student_id = Column(Integer, ForeignKey("users.id"), index=True)
    content_id = Column(Integer, ForeignKey("learning_content.id"))
    body = Column(Text, default='')
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
