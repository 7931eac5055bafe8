from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from thinkable.auth.dependencies import get_current_user
from thinkable.database import get_db
from thinkable.models.achievement import UserAchievement
from thinkable.models.user import User
from thinkable.routes.common import database_unavailable, ensure_database_ready
from thinkable.services import achievement_service

router = APIRouter(tags=['achievements'])


class AchievementResponse(BaseModel):
    id: int
    name: str
    description: str | None = None
    icon: str | None = None
    category: str | None = None
    rarity: str | None = None
    points: int = 0
    requirement_type: str | None = None
    requirement_value: int | None = None

    class Config:
        from_attributes = True


class UserAchievementResponse(BaseModel):
    id: int
    progress_value: int = 0
    earned_at: datetime | None = None
    is_new: bool = True
    achievement: AchievementResponse

    class Config:
        from_attributes = True


class MarkViewedRequest(BaseModel):
    user_achievement_ids: list[int]


def _earned(db: Session, user_id: int, only_new: bool = False) -> list[UserAchievement]:
    query = db.query(UserAchievement).filter(UserAchievement.user_id == user_id)
    if only_new:
        query = query.filter(UserAchievement.is_new.is_(True))
    return query.order_by(UserAchievement.earned_at.desc(), UserAchievement.id.desc()).all()


@router.get('', response_model=list[UserAchievementResponse])
def list_achievements(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return _earned(db, current_user.id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/new', response_model=list[UserAchievementResponse])
def list_new_achievements(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return _earned(db, current_user.id, only_new=True)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('/viewed')
def mark_viewed(
    data: MarkViewedRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        updated = db.query(UserAchievement).filter(
            UserAchievement.user_id == current_user.id,
            UserAchievement.id.in_(data.user_achievement_ids),
            UserAchievement.is_new.is_(True),
        ).update({UserAchievement.is_new: False}, synchronize_session=False)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return {'updated': updated}


@router.post('/check', response_model=list[UserAchievementResponse])
def check_achievements(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        awarded = achievement_service.refresh_achievements(db, current_user.id)
        db.commit()
        for user_achievement in awarded:
            db.refresh(user_achievement)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return awarded


@router.get('/progress')
def achievement_progress(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        metrics = achievement_service.get_user_metrics(db, current_user.id)
        progress = achievement_service.achievement_progress(db, current_user.id, metrics)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    for entry in progress:
        entry['achievement'] = AchievementResponse.model_validate(entry['achievement'])
    return {'metrics': metrics, 'progress': progress}


@router.get('/stats')
def achievement_stats(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        stats = achievement_service.achievement_stats(db, current_user.id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    stats['recent_achievements'] = [
        UserAchievementResponse.model_validate(user_achievement) for user_achievement in stats['recent_achievements']
    ]
    return stats
