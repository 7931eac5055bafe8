"""Stored per-user preferences and how the effective preset is chosen."""

import logging
from dataclasses import asdict

from sqlalchemy.orm import Session

from thinkable.adaptive.presets import (
    ACCESSIBILITY_FEATURES,
    DEFAULT_PRESET,
    apply_ui_preset,
    feature_body_classes,
    features_for_preset,
    merge_features,
    normalize_preset_name,
)
from thinkable.adaptive.speech import TTSSettings
from thinkable.adaptive.support import DEFAULT_HYPERFOCUS_LIMIT
from thinkable.adaptive.timer import TimerSettings, derive_timer_settings
from thinkable.models.assessment import UserAssessment
from thinkable.models.preferences import PresetUsageLog, UserPreferences
from thinkable.models.user import User
from thinkable.services.assessment_service import significant_traits

logger = logging.getLogger(__name__)

FEATURE_COLUMNS = {
    'highContrast': 'high_contrast',
    'dyslexiaFriendly': 'dyslexia_friendly',
    'adhdFriendly': 'adhd_friendly',
    'autismFriendly': 'autism_friendly',
    'sensoryFriendly': 'sensory_friendly',
}

SOURCE_MANUAL = 'manual'
SOURCE_ASSESSMENT = 'assessment'
SOURCE_AUTO = 'auto'
SOURCE_DEFAULT = 'default'


def get_preferences(db: Session, user_id: int) -> UserPreferences | None:
    return db.query(UserPreferences).filter(UserPreferences.user_id == user_id).first()


def get_or_create_preferences(db: Session, user_id: int) -> UserPreferences:
    preferences = get_preferences(db, user_id)
    if preferences is None:
        preferences = UserPreferences(
            user_id=user_id,
            current_preset=DEFAULT_PRESET,
            manual_override=False,
            hyperfocus_limit=DEFAULT_HYPERFOCUS_LIMIT,
            enable_break_reminders=True,
            enable_hyperfocus_shield=True,
            panel_state='expanded',
            panel_position='bottom-right',
            tts_rate=1.0,
            tts_volume=1.0,
            tts_pitch=1.0,
            tts_word_highlighting=True,
            tts_pause_on_punctuation=False,
        )
        for column in FEATURE_COLUMNS.values():
            setattr(preferences, column, False)
        db.add(preferences)
        db.flush()
    return preferences


def features_from_row(preferences: UserPreferences | None) -> dict[str, bool]:
    if preferences is None:
        return {feature: False for feature in ACCESSIBILITY_FEATURES}
    return {feature: bool(getattr(preferences, column)) for feature, column in FEATURE_COLUMNS.items()}


def write_features(preferences: UserPreferences, features: dict[str, bool]) -> None:
    merged = merge_features(features_from_row(preferences), features)
    for feature, column in FEATURE_COLUMNS.items():
        setattr(preferences, column, merged[feature])


def latest_completed_assessment(db: Session, user_id: int) -> UserAssessment | None:
    return (
        db.query(UserAssessment)
        .filter(UserAssessment.user_id == user_id, UserAssessment.completed.is_(True))
        .order_by(UserAssessment.assessment_date.desc(), UserAssessment.id.desc())
        .first()
    )


def features_from_assessment(assessment: UserAssessment) -> dict[str, bool]:
    traits = significant_traits(
        assessment.attention_score,
        assessment.reading_difficulty_score,
        assessment.social_communication_score,
        assessment.sensory_processing_score,
    )
    features = {feature: False for feature in ACCESSIBILITY_FEATURES}
    features.update(features_for_preset(assessment.recommended_preset or DEFAULT_PRESET))
    if traits['attention']:
        features['adhdFriendly'] = True
    if traits['reading']:
        features['dyslexiaFriendly'] = True
    if traits['social']:
        features['autismFriendly'] = True
    if traits['sensory']:
        features['sensoryFriendly'] = True
    return features


def resolve_preferences(db: Session, user: User) -> dict:
    """Effective preset and accommodations for ``user``.

    A manual override wins, then the latest completed assessment, then any
    automatically applied row, then the defaults.
    """
    preferences = get_preferences(db, user.id)

    if preferences is not None and preferences.manual_override:
        preset, features, source = preferences.current_preset, features_from_row(preferences), SOURCE_MANUAL
    else:
        assessment = latest_completed_assessment(db, user.id)
        if assessment is not None and assessment.recommended_preset:
            # The row holds the assessment flags plus any later toggles.
            features = features_from_row(preferences) if preferences is not None else features_from_assessment(assessment)
            preset, source = assessment.recommended_preset, SOURCE_ASSESSMENT
        elif preferences is not None:
            preset, features, source = preferences.current_preset, features_from_row(preferences), SOURCE_AUTO
        else:
            preset, features, source = DEFAULT_PRESET, features_from_row(None), SOURCE_DEFAULT

    application = apply_ui_preset(preset)
    return {
        'preset': application.preset,
        'source': source,
        'manual_override': source == SOURCE_MANUAL,
        'features': features,
        'feature_classes': feature_body_classes(features),
        'application': asdict(application),
    }


def log_preset_usage(db: Session, user_id: int, preset: str, source: str) -> PresetUsageLog:
    entry = PresetUsageLog(user_id=user_id, preset=preset, source=source)
    db.add(entry)
    return entry


def save_preset(
    db: Session,
    user: User,
    preset: str,
    manual_override: bool,
    features: dict[str, bool] | None = None,
    source: str = SOURCE_MANUAL,
) -> UserPreferences:
    """Persist ``preset`` for ``user`` and switch on the accommodations it implies.

    Raises ValueError for an unknown preset or feature name. The caller commits.
    """
    key = normalize_preset_name(preset)
    if key is None:
        raise ValueError(f'Unknown preset: {preset}')

    preferences = get_or_create_preferences(db, user.id)
    preferences.current_preset = key
    preferences.manual_override = manual_override
    write_features(preferences, {**features_for_preset(key), **(features or {})})
    log_preset_usage(db, user.id, key, source)
    logger.info('User %s preset set to %s (%s)', user.id, key, source)
    return preferences


def reset_preferences(db: Session, user: User) -> UserPreferences:
    preferences = get_or_create_preferences(db, user.id)
    preferences.current_preset = DEFAULT_PRESET
    preferences.manual_override = False
    for column in FEATURE_COLUMNS.values():
        setattr(preferences, column, False)
    log_preset_usage(db, user.id, DEFAULT_PRESET, 'reset')
    return preferences


def toggle_feature(db: Session, user: User, feature: str) -> dict[str, bool]:
    if feature not in FEATURE_COLUMNS:
        raise ValueError(f'Unknown accessibility feature: {feature}')
    preferences = get_or_create_preferences(db, user.id)
    column = FEATURE_COLUMNS[feature]
    setattr(preferences, column, not bool(getattr(preferences, column)))
    return features_from_row(preferences)


def timer_settings_for(preferences: UserPreferences | None) -> TimerSettings:
    if preferences is None:
        return derive_timer_settings()
    return derive_timer_settings(
        break_interval=preferences.break_interval,
        adhd_friendly=bool(preferences.adhd_friendly),
        autism_friendly=bool(preferences.autism_friendly),
        sensory_friendly=bool(preferences.sensory_friendly),
    )


def tts_settings_for(preferences: UserPreferences | None) -> TTSSettings:
    if preferences is None:
        return TTSSettings()
    return TTSSettings(
        rate=preferences.tts_rate if preferences.tts_rate is not None else 1.0,
        volume=preferences.tts_volume if preferences.tts_volume is not None else 1.0,
        pitch=preferences.tts_pitch if preferences.tts_pitch is not None else 1.0,
        voice=preferences.tts_voice_name,
        word_highlighting=bool(preferences.tts_word_highlighting),
        pause_on_punctuation=bool(preferences.tts_pause_on_punctuation),
    )
