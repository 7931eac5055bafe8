from dataclasses import asdict
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from thinkable.adaptive.presets import apply_ui_preset
from thinkable.auth.dependencies import get_current_user
from thinkable.database import get_db
from thinkable.models.assessment import AssessmentQuestion, FontTestResult, UserAssessment
from thinkable.models.user import User
from thinkable.routes.common import database_unavailable, ensure_database_ready
from thinkable.services import assessment_service, preference_service

router = APIRouter(tags=['assessment'])

FONT_DIFFICULTIES = ('easy', 'medium', 'hard')
PROFILE_VIEWER_ROLES = ('ADMIN', 'TEACHER')
SECONDS_PER_QUESTION = 30


class QuestionResponse(BaseModel):
    id: int
    category: str
    text: str
    question_type: str
    min_age: int
    max_age: int

    class Config:
        from_attributes = True


class FontResponse(BaseModel):
    font_name: str
    rating: int
    difficulty: str
    symptoms: dict[str, bool] = {}

    @field_validator('font_name')
    @classmethod
    def validate_font_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Font name is required.')
        return normalized

    @field_validator('rating')
    @classmethod
    def validate_rating(cls, value: int) -> int:
        if not 1 <= value <= 5:
            raise ValueError('Rating must be between 1 and 5.')
        return value

    @field_validator('difficulty')
    @classmethod
    def validate_difficulty(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in FONT_DIFFICULTIES:
            raise ValueError('Difficulty must be easy, medium or hard.')
        return normalized


class FontTestRequest(BaseModel):
    font_responses: list[FontResponse]

    @field_validator('font_responses')
    @classmethod
    def validate_font_responses(cls, value: list[FontResponse]) -> list[FontResponse]:
        if not value:
            raise ValueError('At least one font response is required.')
        return value


class AssessmentSubmitRequest(BaseModel):
    responses: dict[str, Any]

    @field_validator('responses')
    @classmethod
    def validate_responses(cls, value: dict[str, Any]) -> dict[str, Any]:
        if not value:
            raise ValueError('Responses are required.')
        return value


class AssessmentResponse(BaseModel):
    id: int
    user_id: int
    attention_score: int
    reading_difficulty_score: int
    social_communication_score: int
    sensory_processing_score: int
    motor_skills_score: int
    recommended_preset: str | None = None
    completed: bool
    assessment_date: datetime | None = None

    class Config:
        from_attributes = True


def _questions_for_user(db: Session, user: User) -> list[AssessmentQuestion]:
    age = assessment_service.parse_age_from_range(user.age_range)
    return assessment_service.questions_for_age(db, age)


def _get_or_create_assessment(db: Session, user_id: int) -> UserAssessment:
    latest = db.query(UserAssessment).filter(
        UserAssessment.user_id == user_id,
    ).order_by(UserAssessment.assessment_date.desc(), UserAssessment.id.desc()).first()
    if latest is not None and not latest.completed:
        return latest

    assessment = UserAssessment(user_id=user_id, responses={}, completed=False)
    db.add(assessment)
    db.flush()
    return assessment


@router.get('/questions', response_model=list[QuestionResponse])
def get_questions(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return _questions_for_user(db, current_user)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('/start')
def start_assessment(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        questions = _questions_for_user(db, current_user)
        assessment = _get_or_create_assessment(db, current_user.id)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return {
        'assessment_id': assessment.id,
        'questions': [QuestionResponse.model_validate(question) for question in questions],
        'total_questions': len(questions),
        'estimated_time_minutes': len(questions) * SECONDS_PER_QUESTION / 60,
    }


@router.post('/font-test')
def submit_font_test(
    data: FontTestRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        results = []
        for response in data.font_responses:
            result = FontTestResult(
                user_id=current_user.id,
                font_name=response.font_name,
                readability_rating=response.rating,
                difficulty_reported=response.difficulty,
                symptoms=dict(response.symptoms),
            )
            db.add(result)
            results.append(result)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    analysis = assessment_service.analyze_font_results(results)
    return {
        'fonts_tested': len(results),
        'analysis': analysis['analysis'],
        'dyslexia_indicators': analysis['dyslexia_indicators'],
        'recommended_fonts': analysis['recommended_fonts'],
    }


@router.post('/submit')
def submit_assessment(
    data: AssessmentSubmitRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        questions = {question.id: question for question in db.query(AssessmentQuestion).all()}
        category_scores = assessment_service.calculate_category_scores(data.responses, questions)

        assessment = _get_or_create_assessment(db, current_user.id)
        assessment.responses = dict(data.responses)
        assessment.assessment_date = datetime.utcnow()
        assessment_service.apply_scores(assessment, category_scores)
        current_user.recommended_preset = assessment.recommended_preset

        preferences = preference_service.get_preferences(db, current_user.id)
        if preferences is None or not preferences.manual_override:
            preference_service.save_preset(
                db,
                current_user,
                assessment.recommended_preset,
                manual_override=False,
                features=preference_service.features_from_assessment(assessment),
                source=preference_service.SOURCE_ASSESSMENT,
            )

        font_results = db.query(FontTestResult).filter(
            FontTestResult.user_id == current_user.id,
        ).order_by(FontTestResult.test_date.desc(), FontTestResult.id.desc()).all()

        db.commit()
        db.refresh(assessment)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    traits = assessment_service.significant_traits(
        assessment.attention_score,
        assessment.reading_difficulty_score,
        assessment.social_communication_score,
        assessment.sensory_processing_score,
    )
    return {
        'assessment': AssessmentResponse.model_validate(assessment),
        'traits': traits,
        'recommendations': assessment_service.accessibility_recommendations(traits),
        'ui_settings': asdict(apply_ui_preset(assessment.recommended_preset)),
        'custom_settings': assessment_service.customize_from_font_test(assessment.recommended_preset, font_results),
    }


@router.get('/profile/{user_id}')
def get_profile(
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if user_id != current_user.id and (current_user.role or '').upper() not in PROFILE_VIEWER_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='You can only view your own learning profile.',
        )

    ensure_database_ready()

    try:
        assessment = preference_service.latest_completed_assessment(db, user_id)
        preferences = preference_service.get_preferences(db, user_id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    timer_settings = asdict(preference_service.timer_settings_for(preferences))
    if assessment is None:
        return {
            'has_assessment': False,
            'assessment_completed': False,
            'timer_settings': timer_settings,
        }

    return {
        'has_assessment': True,
        'assessment_completed': bool(assessment.completed),
        'assessment': AssessmentResponse.model_validate(assessment),
        'recommended_preset': assessment.recommended_preset,
        'traits': assessment_service.trait_summary(assessment),
        'timer_settings': timer_settings,
    }
