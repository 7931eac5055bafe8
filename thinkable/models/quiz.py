"""Quiz model definitions."""

from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from thinkable.database import Base


class Quiz(Base):
    """A quiz attached to a piece of content."""
    __tablename__ = "quizzes"

    id = Column(Integer, primary_key=True)
    content_id = Column(Integer, ForeignKey("learning_content.id"), index=True)
    title = Column(String)
    created_at = Column(DateTime, default=datetime.utcnow)

    questions = relationship(
        "QuizQuestion",
        order_by="QuizQuestion.position",
        cascade="all, delete-orphan",
    )


class QuizQuestion(Base):
    """A multiple choice question."""
    __tablename__ = "quiz_questions"

    id = Column(Integer, primary_key=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id"), index=True)
    position = Column(Integer, default=0)
    text = Column(Text)
    options = Column(JSON, default=list)
    correct_option = Column(Integer)


class QuizAttempt(Base):
    """A student's submitted quiz."""
    __tablename__ = "quiz_attempts"

    id = Column(Integer, primary_key=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id"), index=True)
    student_id = Column(Integer, ForeignKey("users.id"), index=True)
    score = Column(Integer)
    correct_answers = Column(Integer)
    total_questions = Column(Integer)
    submitted_at = Column(DateTime, default=datetime.utcnow)
