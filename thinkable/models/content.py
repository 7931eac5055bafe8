"""Learning content model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from thinkable.database import Base

CONTENT_TYPES = ('PDF', 'DOCUMENT', 'TEXT', 'IMAGE', 'VIDEO', 'AUDIO', 'H5P', 'OTHER')
INTERACTION_TYPES = ('viewed', 'completed', 'quiz_completed', 'bookmarked')


class LearningContent(Base):
    """Represents a piece of uploaded learning material."""
    __tablename__ = "learning_content"

    id = Column(Integer, primary_key=True, index=True)
    tutor_id = Column(Integer, ForeignKey("users.id"), index=True)
    title = Column(String, nullable=False)
    description = Column(Text)
    subject_area = Column(String, index=True)
    difficulty_level = Column(String)
    content_type = Column(String, default='OTHER')
    original_filename = Column(String)
    stored_path = Column(String)
    mime_type = Column(String)
    file_size = Column(Integer, default=0)
    extracted_text = Column(Text)
    accessibility_tags = Column(String, default='')  # comma separated
    view_count = Column(Integer, default=0)
    rating_count = Column(Integer, default=0)
    rating_total = Column(Integer, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)

    @property
    def tag_list(self) -> list[str]:
        return [tag for tag in (self.accessibility_tags or '').split(',') if tag]

    @property
    def average_rating(self) -> float:
        if not self.rating_count:
            return 0.0
        return round(self.rating_total / self.rating_count, 2)


class ContentInteraction(Base):
    """Records a student's interaction with content."""
    __tablename__ = "content_interactions"

    id = Column(Integer, primary_key=True)
    student_id = Column(Integer, ForeignKey("users.id"), index=True)
    content_id = Column(Integer, ForeignKey("learning_content.id"), index=True)
    interaction_type = Column(String)
    usefulness_rating = Column(Integer)
    created_at = Column(DateTime, default=datetime.utcnow)


class ContentBookmark(Base):
    """A student's favorite content item."""
    __tablename__ = "content_bookmarks"
    __table_args__ = (UniqueConstraint('student_id', 'content_id', name='uq_bookmark_student_content'),)

    id = Column(Integer, primary_key=True)
    student_id = Column(Integer, ForeignKey("users.id"), index=True)
    content_id = Column(Integer, ForeignKey("learning_content.id"))
    created_at = Column(DateTime, default=datetime.utcnow)
