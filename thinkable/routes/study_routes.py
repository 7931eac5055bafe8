import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from thinkable.adaptive.timer import display_name
from thinkable.auth.dependencies import get_current_user
from thinkable.database import get_db
from thinkable.models.activity import StudySession
from thinkable.models.user import User
from thinkable.routes.common import database_unavailable, ensure_database_ready
from thinkable.services import achievement_service, preference_service

router = APIRouter(tags=['study'])
logger = logging.getLogger(__name__)

SESSION_MODES = ('study', 'break')
MAX_SESSION_MINUTES = 240


class StudySessionRequest(BaseModel):
    mode: str = 'study'
    duration_minutes: int
    completed: bool = True

    @field_validator('mode')
    @classmethod
    def validate_mode(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in SESSION_MODES:
            raise ValueError("Mode must be 'study' or 'break'.")
        return normalized

    @field_validator('duration_minutes')
    @classmethod
    def validate_duration(cls, value: int) -> int:
        if not 0 < value <= MAX_SESSION_MINUTES:
            raise ValueError(f'Duration must be between 1 and {MAX_SESSION_MINUTES} minutes.')
        return value


@router.get('/timer-settings')
def get_timer_settings(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        preferences = preference_service.get_preferences(db, current_user.id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    settings = preference_service.timer_settings_for(preferences)
    return {**asdict(settings), 'display_name': display_name(settings)}


@router.post('/study-sessions', status_code=status.HTTP_201_CREATED)
def record_study_session(
    data: StudySessionRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        session = StudySession(
            user_id=current_user.id,
            mode=data.mode,
            duration_minutes=data.duration_minutes,
            completed=data.completed,
        )
        db.add(session)
        db.flush()
        awarded = achievement_service.refresh_achievements(db, current_user.id)
        db.commit()
        db.refresh(session)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    logger.info('Recorded %s session of %d minutes for user %s', data.mode, data.duration_minutes, current_user.id)
    return {
        'session_id': session.id,
        'mode': session.mode,
        'duration_minutes': session.duration_minutes,
        'completed': session.completed,
        'new_achievements': [user_achievement.achievement.name for user_achievement in awarded],
    }
