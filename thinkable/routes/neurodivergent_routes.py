import logging
from collections import Counter
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from thinkable.adaptive import support
from thinkable.auth.dependencies import get_current_user
from thinkable.database import get_db
from thinkable.models.activity import ToolUsage
from thinkable.models.preferences import UserPreferences
from thinkable.models.user import User
from thinkable.routes.common import database_unavailable, ensure_database_ready
from thinkable.services import achievement_service, preference_service

router = APIRouter(tags=['neurodivergent'])
logger = logging.getLogger(__name__)

MAX_INTERVAL_MINUTES = 240
TOP_TOOLS = 3


class SupportSettingsRequest(BaseModel):
    break_interval: int | None = None
    hyperfocus_limit: int | None = None
    enable_break_reminders: bool | None = None
    enable_hyperfocus_shield: bool | None = None
    panel_state: str | None = None
    panel_position: str | None = None

    @field_validator('break_interval', 'hyperfocus_limit')
    @classmethod
    def validate_minutes(cls, value: int | None) -> int | None:
        if value is not None and not 1 <= value <= MAX_INTERVAL_MINUTES:
            raise ValueError(f'Intervals must be between 1 and {MAX_INTERVAL_MINUTES} minutes.')
        return value

    @field_validator('panel_state')
    @classmethod
    def validate_panel_state(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip().lower()
        if normalized not in support.PANEL_STATES:
            raise ValueError(f"Panel state must be one of: {', '.join(support.PANEL_STATES)}.")
        return normalized

    @field_validator('panel_position')
    @classmethod
    def validate_panel_position(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip().lower()
        if normalized not in support.PANEL_POSITIONS:
            raise ValueError(f"Panel position must be one of: {', '.join(support.PANEL_POSITIONS)}.")
        return normalized


class ToolUsageRequest(BaseModel):
    action: str
    tool_name: str | None = None
    duration_minutes: int | None = None
    energy_level: int | None = None
    preset: str | None = None

    @field_validator('action')
    @classmethod
    def validate_action(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not normalized:
            raise ValueError('Action is required.')
        return normalized

    @field_validator('energy_level')
    @classmethod
    def validate_energy_level(cls, value: int | None) -> int | None:
        if value is not None and not 1 <= value <= 10:
            raise ValueError('Energy level must be between 1 and 10.')
        return value

    @field_validator('duration_minutes')
    @classmethod
    def validate_duration(cls, value: int | None) -> int | None:
        if value is not None and value < 0:
            raise ValueError('Duration cannot be negative.')
        return value


class FocusCheckRequest(BaseModel):
    session_started_at: datetime
    checked_at: datetime | None = None


def settings_response(preferences: UserPreferences | None) -> dict:
    if preferences is None:
        return {
            'break_interval': support.DEFAULT_BREAK_INTERVAL,
            'hyperfocus_limit': support.DEFAULT_HYPERFOCUS_LIMIT,
            'enable_break_reminders': True,
            'enable_hyperfocus_shield': True,
            'panel_state': 'expanded',
            'panel_position': 'bottom-right',
        }
    return {
        'break_interval': preferences.break_interval or support.DEFAULT_BREAK_INTERVAL,
        'hyperfocus_limit': preferences.hyperfocus_limit or support.DEFAULT_HYPERFOCUS_LIMIT,
        'enable_break_reminders': bool(preferences.enable_break_reminders),
        'enable_hyperfocus_shield': bool(preferences.enable_hyperfocus_shield),
        'panel_state': preferences.panel_state or 'expanded',
        'panel_position': preferences.panel_position or 'bottom-right',
    }


def summarize_usage(usages: list[ToolUsage]) -> dict:
    if not usages:
        return {
            'total_uses': 0,
            'most_used_tools': [],
            'preferred_time_of_day': None,
            'average_energy_level': None,
        }

    tool_counts = Counter(usage.tool_name for usage in usages)
    time_counts = Counter(usage.time_of_day for usage in usages if usage.time_of_day)
    energy_levels = [usage.energy_level for usage in usages if usage.energy_level is not None]

    return {
        'total_uses': len(usages),
        'most_used_tools': [
            {'tool_name': tool_name, 'count': count} for tool_name, count in tool_counts.most_common(TOP_TOOLS)
        ],
        'preferred_time_of_day': time_counts.most_common(1)[0][0] if time_counts else None,
        'average_energy_level': round(sum(energy_levels) / len(energy_levels), 1) if energy_levels else None,
    }


@router.get('/settings')
def get_settings(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return settings_response(preference_service.get_preferences(db, current_user.id))
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.put('/settings')
def update_settings(
    data: SupportSettingsRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        preferences = preference_service.get_or_create_preferences(db, current_user.id)
        for field_name, value in data.model_dump(exclude_none=True).items():
            setattr(preferences, field_name, value)
        db.commit()
        db.refresh(preferences)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return settings_response(preferences)


@router.get('/breathing')
def get_breathing_exercise():
    return {
        'total_seconds': support.BREATHING_TOTAL_SECONDS,
        'cycle': [
            {'phase': phase.name, 'seconds': phase.seconds, 'instruction': phase.instruction}
            for phase in support.BREATHING_CYCLE
        ],
        'schedule': support.breathing_schedule(),
    }


@router.get('/fidget-tools')
def list_fidget_tools():
    return list(support.FIDGET_TOOLS)


@router.post('/usage', status_code=status.HTTP_201_CREATED)
def record_usage(
    data: ToolUsageRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    now = datetime.now()
    tool_name = data.tool_name.strip() if data.tool_name and data.tool_name.strip() else support.tool_name_for_action(data.action)
    try:
        usage = ToolUsage(
            user_id=current_user.id,
            tool_name=tool_name,
            context=data.action,
            duration_minutes=data.duration_minutes,
            energy_level=data.energy_level,
            preset=data.preset,
            time_of_day=support.time_of_day(now.hour),
        )
        db.add(usage)
        db.flush()
        awarded = achievement_service.refresh_achievements(db, current_user.id)
        db.commit()
        db.refresh(usage)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    logger.info('User %s used %s (%s)', current_user.id, tool_name, data.action)
    return {
        'usage_id': usage.id,
        'tool_name': tool_name,
        'time_of_day': usage.time_of_day,
        'new_achievements': [user_achievement.achievement.name for user_achievement in awarded],
    }


@router.get('/usage-insights')
def usage_insights(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        usages = db.query(ToolUsage).filter(ToolUsage.user_id == current_user.id).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return summarize_usage(usages)


@router.post('/focus-check')
def focus_check(
    data: FocusCheckRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    checked_at = data.checked_at or datetime.now(data.session_started_at.tzinfo)
    if checked_at < data.session_started_at:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Session start must not be in the future.',
        )

    ensure_database_ready()

    try:
        settings = settings_response(preference_service.get_preferences(db, current_user.id))
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    elapsed_minutes = (checked_at - data.session_started_at).total_seconds() / 60
    result = support.focus_status(elapsed_minutes, settings['break_interval'], settings['hyperfocus_limit'])
    if not settings['enable_break_reminders']:
        result['break_due'] = False
    if not settings['enable_hyperfocus_shield']:
        result['hyperfocus_warning'] = False
    return result
