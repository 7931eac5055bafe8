"""Assessment model definitions."""

from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from thinkable.database import Base


class AssessmentQuestion(Base):
    """A screening question in one support category."""
    __tablename__ = "assessment_questions"

    id = Column(Integer, primary_key=True)
    category = Column(String, index=True)
    text = Column(Text)
    question_type = Column(String, default='LIKERT')  # LIKERT/BINARY
    min_age = Column(Integer, default=5)
    max_age = Column(Integer, default=99)


class UserAssessment(Base):
    """Responses and computed scores for one assessment run."""
    __tablename__ = "user_assessments"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    responses = Column(JSON, default=dict)
    attention_score = Column(Integer, default=0)
    reading_difficulty_score = Column(Integer, default=0)
    social_communication_score = Column(Integer, default=0)
    sensory_processing_score = Column(Integer, default=0)
    motor_skills_score = Column(Integer, default=0)
    recommended_preset = Column(String)
    completed = Column(Boolean, default=False)
    assessment_date = Column(DateTime, default=datetime.utcnow)


class FontTestResult(Base):
    """How readable a font felt to a user."""
    __tablename__ = "font_test_results"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    font_name = Column(String)
    readability_rating = Column(Integer)
    difficulty_reported = Column(String)  # easy/medium/hard
    symptoms = Column(JSON, default=dict)
    test_date = Column(DateTime, default=datetime.utcnow)
