"""Per-user adaptive UI and support preferences."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String
from thinkable.database import Base


class UserPreferences(Base):
    """Server-side copy of what the client caches between visits."""
    __tablename__ = "user_preferences"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, index=True)
    current_preset = Column(String, default='STANDARD_ADAPTIVE')
    manual_override = Column(Boolean, default=False)

    high_contrast = Column(Boolean, default=False)
    dyslexia_friendly = Column(Boolean, default=False)
    adhd_friendly = Column(Boolean, default=False)
    autism_friendly = Column(Boolean, default=False)
    sensory_friendly = Column(Boolean, default=False)

    break_interval = Column(Integer)
    hyperfocus_limit = Column(Integer, default=90)
    enable_break_reminders = Column(Boolean, default=True)
    enable_hyperfocus_shield = Column(Boolean, default=True)
    panel_state = Column(String, default='expanded')
    panel_position = Column(String, default='bottom-right')

    tts_rate = Column(Float, default=1.0)
    tts_volume = Column(Float, default=1.0)
    tts_pitch = Column(Float, default=1.0)
    tts_voice_name = Column(String)
    tts_word_highlighting = Column(Boolean, default=True)
    tts_pause_on_punctuation = Column(Boolean, default=False)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class PresetUsageLog(Base):
    """History of preset changes."""
    __tablename__ = "preset_usage_log"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    preset = Column(String)
    source = Column(String)
    created_at = Column(DateTime, default=datetime.utcnow)
