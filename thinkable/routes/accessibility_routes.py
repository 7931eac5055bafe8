from dataclasses import asdict
from datetime import datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from thinkable.adaptive.presets import support_profile
from thinkable.adaptive.speech import chunk_offsets, chunk_text, optimize_settings_for_preset
from thinkable.adaptive.support import time_of_day
from thinkable.adaptive.text_transforms import calculate_reading_time, count_words, transform_text
from thinkable.auth.dependencies import get_current_user
from thinkable.core.config import TTS_MAX_CHUNK_LENGTH
from thinkable.database import get_db
from thinkable.models.activity import ToolUsage
from thinkable.models.user import User
from thinkable.routes.common import database_unavailable, ensure_database_ready
from thinkable.services import achievement_service, preference_service

router = APIRouter(tags=['accessibility'])

TTS_TOOL_NAME = 'text-to-speech'
MAX_TEXT_LENGTH = 100_000


class ChunkRequest(BaseModel):
    text: str
    preset: str | None = None
    max_length: int | None = None

    @field_validator('text')
    @classmethod
    def validate_text(cls, value: str) -> str:
        if len(value) > MAX_TEXT_LENGTH:
            raise ValueError(f'Text must be {MAX_TEXT_LENGTH} characters or fewer.')
        return value

    @field_validator('max_length')
    @classmethod
    def validate_max_length(cls, value: int | None) -> int | None:
        if value is not None and value < 2:
            raise ValueError('Chunk length must be at least 2 characters.')
        return value


class TTSSettingsRequest(BaseModel):
    rate: float | None = None
    volume: float | None = None
    pitch: float | None = None
    voice: str | None = None
    word_highlighting: bool | None = None
    pause_on_punctuation: bool | None = None

    @field_validator('rate', 'pitch')
    @classmethod
    def validate_speed(cls, value: float | None) -> float | None:
        if value is not None and not 0.1 <= value <= 10:
            raise ValueError('Rate and pitch must be between 0.1 and 10.')
        return value

    @field_validator('volume')
    @classmethod
    def validate_volume(cls, value: float | None) -> float | None:
        if value is not None and not 0 <= value <= 1:
            raise ValueError('Volume must be between 0 and 1.')
        return value


class TTSUsageRequest(BaseModel):
    characters: int = 0
    preset: str | None = None
    hour: int | None = None

    @field_validator('hour')
    @classmethod
    def validate_hour(cls, value: int | None) -> int | None:
        if value is not None and not 0 <= value <= 23:
            raise ValueError('Hour must be between 0 and 23.')
        return value


class TransformRequest(BaseModel):
    text: str
    preset: str | None = None

    @field_validator('text')
    @classmethod
    def validate_text(cls, value: str) -> str:
        if len(value) > MAX_TEXT_LENGTH:
            raise ValueError(f'Text must be {MAX_TEXT_LENGTH} characters or fewer.')
        return value


@router.post('/tts/chunks')
def prepare_speech(
    data: ChunkRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        preferences = preference_service.get_preferences(db, current_user.id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    settings = preference_service.tts_settings_for(preferences)
    preset = data.preset or (preferences.current_preset if preferences is not None else None)
    if preset:
        settings = optimize_settings_for_preset(settings, preset)

    chunks = chunk_text(data.text, data.max_length or TTS_MAX_CHUNK_LENGTH)
    return {
        'chunks': chunks,
        'offsets': chunk_offsets(chunks),
        'total_length': sum(len(chunk) for chunk in chunks),
        'settings': asdict(settings),
        'preset': support_profile(preset),
    }


@router.get('/tts/settings')
def get_tts_settings(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        preferences = preference_service.get_preferences(db, current_user.id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return asdict(preference_service.tts_settings_for(preferences))


@router.put('/tts/settings')
def update_tts_settings(
    data: TTSSettingsRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    columns = {
        'rate': 'tts_rate',
        'volume': 'tts_volume',
        'pitch': 'tts_pitch',
        'voice': 'tts_voice_name',
        'word_highlighting': 'tts_word_highlighting',
        'pause_on_punctuation': 'tts_pause_on_punctuation',
    }
    try:
        preferences = preference_service.get_or_create_preferences(db, current_user.id)
        for field_name, value in data.model_dump(exclude_none=True).items():
            setattr(preferences, columns[field_name], value)
        db.commit()
        db.refresh(preferences)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return asdict(preference_service.tts_settings_for(preferences))


@router.post('/tts-usage', status_code=status.HTTP_201_CREATED)
def record_tts_usage(
    data: TTSUsageRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    hour = data.hour if data.hour is not None else datetime.now().hour
    try:
        usage = ToolUsage(
            user_id=current_user.id,
            tool_name=TTS_TOOL_NAME,
            context=f'{data.characters} characters',
            preset=data.preset,
            time_of_day=time_of_day(hour),
        )
        db.add(usage)
        db.flush()
        awarded = achievement_service.refresh_achievements(db, current_user.id)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return {
        'tool_name': TTS_TOOL_NAME,
        'time_of_day': usage.time_of_day,
        'new_achievements': [user_achievement.achievement.name for user_achievement in awarded],
    }


@router.post('/transform')
def transform(data: TransformRequest):
    processed = transform_text(data.text, data.preset)
    return {
        'text': processed,
        'preset': support_profile(data.preset),
        'word_count': count_words(processed),
        'reading_time': calculate_reading_time(processed),
    }
