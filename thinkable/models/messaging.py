"""Content messaging model definitions."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from thinkable.database import Base


class Conversation(Base):
    """A thread between a student and the tutor who owns a content item."""
    __tablename__ = "conversations"
    __table_args__ = (
        UniqueConstraint('content_id', 'student_id', 'tutor_id', name='uq_conversation_participants'),
    )

    id = Column(Integer, primary_key=True)
    content_id = Column(Integer, ForeignKey("learning_content.id"), index=True)
    student_id = Column(Integer, ForeignKey("users.id"), index=True)
    tutor_id = Column(Integer, ForeignKey("users.id"), index=True)
    subject = Column(String)
    student_unread_count = Column(Integer, default=0)
    tutor_unread_count = Column(Integer, default=0)
    is_archived = Column(Boolean, default=False)
    last_message_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow)


class Message(Base):
    """A single message in a conversation."""
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True)
    conversation_id = Column(Integer, ForeignKey("conversations.id"), index=True)
    sender_id = Column(Integer, ForeignKey("users.id"))
    sender_type = Column(String)  # STUDENT/TUTOR
    body = Column(Text)
    is_read = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
