from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from thinkable.adaptive.presets import normalize_preset_name
from thinkable.auth.dependencies import get_current_user
from thinkable.database import get_db
from thinkable.models.preferences import PresetUsageLog
from thinkable.models.user import User
from thinkable.routes.common import database_unavailable, ensure_database_ready
from thinkable.services import preference_service

router = APIRouter(tags=['user-preferences'])


def _validate_preset(value: str) -> str:
    key = normalize_preset_name(value)
    if key is None:
        raise ValueError('Unknown preset.')
    return key


class SavePreferencesRequest(BaseModel):
    preset: str
    manual_override: bool = True
    features: dict[str, bool] | None = None

    @field_validator('preset')
    @classmethod
    def validate_preset(cls, value: str) -> str:
        return _validate_preset(value)


class PresetUsageRequest(BaseModel):
    preset: str
    source: str = 'client'

    @field_validator('preset')
    @classmethod
    def validate_preset(cls, value: str) -> str:
        return _validate_preset(value)

    @field_validator('source')
    @classmethod
    def validate_source(cls, value: str) -> str:
        normalized = value.strip().lower()
        return normalized or 'client'


class PresetUsageResponse(BaseModel):
    id: int
    preset: str
    source: str
    created_at: datetime

    class Config:
        from_attributes = True


@router.get('')
def get_user_preferences(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return preference_service.resolve_preferences(db, current_user)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('')
def save_user_preferences(
    data: SavePreferencesRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        preference_service.save_preset(
            db,
            current_user,
            data.preset,
            manual_override=data.manual_override,
            features=data.features,
            source=preference_service.SOURCE_MANUAL if data.manual_override else preference_service.SOURCE_AUTO,
        )
        db.commit()
        return preference_service.resolve_preferences(db, current_user)
    except ValueError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.get('/history', response_model=list[PresetUsageResponse])
def get_preset_history(
    limit: int = Query(default=50, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return db.query(PresetUsageLog).filter(
            PresetUsageLog.user_id == current_user.id,
        ).order_by(PresetUsageLog.created_at.desc(), PresetUsageLog.id.desc()).limit(limit).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('/log-preset-usage', status_code=status.HTTP_201_CREATED)
def log_preset_usage(
    data: PresetUsageRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        entry = preference_service.log_preset_usage(db, current_user.id, data.preset, data.source)
        db.commit()
        db.refresh(entry)
        return {'id': entry.id, 'preset': entry.preset, 'source': entry.source}
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.delete('/reset')
def reset_user_preferences(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        preference_service.reset_preferences(db, current_user)
        db.commit()
        return preference_service.resolve_preferences(db, current_user)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.post('/features/{feature}/toggle')
def toggle_feature(
    feature: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        features = preference_service.toggle_feature(db, current_user, feature)
        db.commit()
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return {'feature': feature, 'enabled': features[feature], 'features': features}
