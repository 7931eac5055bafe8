"""Adaptive UI presets.

Each preset is a bundle of CSS custom properties plus typography settings.
Applying a preset does not touch a document here; it produces the variable
bag, color scheme and body classes the client writes to the page.
"""

import logging
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

DEFAULT_PRESET = 'STANDARD_ADAPTIVE'

ADAPTIVE_BODY_CLASSES = (
    'standard-adaptive',
    'dyslexia-adaptive',
    'adhd-adaptive',
    'autism-adaptive',
    'sensory-adaptive',
    'focus-adaptive',
)

ACCESSIBILITY_FEATURES = (
    'highContrast',
    'dyslexiaFriendly',
    'adhdFriendly',
    'autismFriendly',
    'sensoryFriendly',
)

FEATURE_BODY_CLASSES = {
    'highContrast': 'high-contrast',
    'dyslexiaFriendly': 'dyslexia-friendly',
    'adhdFriendly': 'adhd-friendly',
    'autismFriendly': 'autism-friendly',
    'sensoryFriendly': 'sensory-friendly',
}


@dataclass(frozen=True)
class UIPreset:
    name: str
    description: str
    css_variables: dict[str, str]
    font_family: str
    font_size: str
    line_height: str
    letter_spacing: str
    animation_duration: str
    focus_indicator_width: str
    color_scheme: str


@dataclass
class PresetApplication:
    """What the client must do to put a preset on screen."""

    preset: str
    name: str
    description: str
    css_variables: dict[str, str]
    color_scheme: str
    body_classes_added: list[str]
    body_classes_removed: list[str] = field(default_factory=lambda: list(ADAPTIVE_BODY_CLASSES))
    fallback_used: bool = False


PRESETS: dict[str, UIPreset] = {
    'STANDARD_ADAPTIVE': UIPreset(
        name='Standard Adaptive',
        description='Balanced accommodations for general learning support',
        css_variables={
            '--primary-color': '#2c5aa0',
            '--secondary-color': '#28a745',
            '--background-color': '#ffffff',
            '--text-color': '#2c3e50',
            '--border-color': '#e2e8f0',
            '--focus-color': '#007bff',
            '--success-color': '#28a745',
            '--warning-color': '#ffc107',
            '--error-color': '#dc3545',
            '--card-shadow': '0 4px 15px rgba(0, 0, 0, 0.1)',
            '--border-radius': '8px',
            '--spacing-unit': '1rem',
        },
        font_family='Arial, sans-serif',
        font_size='16px',
        line_height='1.6',
        letter_spacing='0',
        animation_duration='0.3s',
        focus_indicator_width='2px',
        color_scheme='light',
    ),
    'FOCUS_ENHANCED': UIPreset(
        name='Focus Enhanced',
        description='Reduced visual clutter with enhanced focus indicators for ADHD support',
        css_variables={
            '--primary-color': '#4a90e2',
            '--secondary-color': '#5cb85c',
            '--background-color': '#f8f9fa',
            '--text-color': '#2c3e50',
            '--border-color': '#d1ecf1',
            '--focus-color': '#007bff',
            '--success-color': '#5cb85c',
            '--warning-color': '#f0ad4e',
            '--error-color': '#d9534f',
            '--card-shadow': '0 2px 8px rgba(0, 0, 0, 0.08)',
            '--border-radius': '12px',
            '--spacing-unit': '1.25rem',
        },
        font_family='Segoe UI, Tahoma, Geneva, sans-serif',
        font_size='18px',
        line_height='1.8',
        letter_spacing='0.5px',
        animation_duration='0.2s',
        focus_indicator_width='4px',
        color_scheme='light',
    ),
    'FOCUS_CALM': UIPreset(
        name='Focus Calm',
        description='Minimal distractions with calming colors for attention and sensory support',
        css_variables={
            '--primary-color': '#6c757d',
            '--secondary-color': '#20c997',
            '--background-color': '#f1f3f4',
            '--text-color': '#495057',
            '--border-color': '#ced4da',
            '--focus-color': '#20c997',
            '--success-color': '#20c997',
            '--warning-color': '#fd7e14',
            '--error-color': '#e74c3c',
            '--card-shadow': '0 1px 4px rgba(0, 0, 0, 0.05)',
            '--border-radius': '16px',
            '--spacing-unit': '1.5rem',
        },
        font_family='Inter, system-ui, sans-serif',
        font_size='17px',
        line_height='2.0',
        letter_spacing='0.3px',
        animation_duration='0.5s',
        focus_indicator_width='3px',
        color_scheme='light',
    ),
    'READING_SUPPORT': UIPreset(
        name='Reading Support',
        description='Dyslexia-friendly fonts with high contrast and enhanced readability',
        css_variables={
            '--primary-color': '#2c5aa0',
            '--secondary-color': '#17a2b8',
            '--background-color': '#fffdf5',
            '--text-color': '#000000',
            '--border-color': '#c4c4c4',
            '--focus-color': '#ff6b35',
            '--success-color': '#2d8a47',
            '--warning-color': '#e67e22',
            '--error-color': '#c0392b',
            '--card-shadow': '0 4px 16px rgba(0, 0, 0, 0.15)',
            '--border-radius': '8px',
            '--spacing-unit': '2rem',
        },
        font_family='OpenDyslexic, Comic Neue, Verdana, Arial, sans-serif',
        font_size='22px',
        line_height='2.4',
        letter_spacing='1.2px',
        animation_duration='0.05s',
        focus_indicator_width='4px',
        color_scheme='high-contrast',
    ),
    'SOCIAL_SIMPLE': UIPreset(
        name='Social Simple',
        description='Clear social cues and simplified interface for autism support',
        css_variables={
            '--primary-color': '#5d4e75',
            '--secondary-color': '#7b68ee',
            '--background-color': '#ffffff',
            '--text-color': '#2c3e50',
            '--border-color': '#e9ecef',
            '--focus-color': '#7b68ee',
            '--success-color': '#32cd32',
            '--warning-color': '#ffa500',
            '--error-color': '#ff6347',
            '--card-shadow': '0 6px 20px rgba(0, 0, 0, 0.08)',
            '--border-radius': '4px',
            '--spacing-unit': '2rem',
        },
        font_family='Roboto, Arial, sans-serif',
        font_size='19px',
        line_height='1.9',
        letter_spacing='0.2px',
        animation_duration='0.4s',
        focus_indicator_width='2px',
        color_scheme='light',
    ),
    'SENSORY_CALM': UIPreset(
        name='Sensory Calm',
        description='Soft colors and reduced animations for sensory processing support',
        css_variables={
            '--primary-color': '#8e9aaf',
            '--secondary-color': '#a8dadc',
            '--background-color': '#f8f8f8',
            '--text-color': '#457b9d',
            '--border-color': '#dde5e9',
            '--focus-color': '#f1faee',
            '--success-color': '#a8dadc',
            '--warning-color': '#f4a261',
            '--error-color': '#e76f51',
            '--card-shadow': '0 2px 6px rgba(0, 0, 0, 0.04)',
            '--border-radius': '20px',
            '--spacing-unit': '1.25rem',
        },
        font_family='Source Sans Pro, system-ui, sans-serif',
        font_size='16px',
        line_height='1.7',
        letter_spacing='0.1px',
        animation_duration='0.8s',
        focus_indicator_width='2px',
        color_scheme='light',
    ),
}

# Assessment and legacy names for the keys above.
PRESET_ALIASES = {
    'standard': 'STANDARD_ADAPTIVE',
    'standard_adaptive': 'STANDARD_ADAPTIVE',
    'dyslexia': 'READING_SUPPORT',
    'reading_support': 'READING_SUPPORT',
    'adhd': 'FOCUS_ENHANCED',
    'focus_enhanced': 'FOCUS_ENHANCED',
    'focus_calm': 'FOCUS_CALM',
    'dyslexia-adhd': 'FOCUS_CALM',
    'autism': 'SOCIAL_SIMPLE',
    'social_simple': 'SOCIAL_SIMPLE',
    'sensory': 'SENSORY_CALM',
    'sensory_calm': 'SENSORY_CALM',
}

PRESET_BODY_CLASSES = {
    'STANDARD_ADAPTIVE': ['standard-adaptive'],
    'READING_SUPPORT': ['dyslexia-adaptive'],
    'FOCUS_ENHANCED': ['adhd-adaptive', 'focus-adaptive'],
    'FOCUS_CALM': ['adhd-adaptive', 'focus-adaptive'],
    'SOCIAL_SIMPLE': ['autism-adaptive'],
    'SENSORY_CALM': ['sensory-adaptive'],
}

PRESET_FEATURES = {
    'READING_SUPPORT': {'dyslexiaFriendly': True, 'highContrast': True},
    'FOCUS_ENHANCED': {'adhdFriendly': True},
    'FOCUS_CALM': {'adhdFriendly': True},
    'SOCIAL_SIMPLE': {'autismFriendly': True},
    'SENSORY_CALM': {'sensoryFriendly': True},
}


def normalize_preset_name(value: str | None) -> str | None:
    """Return the preset key for ``value`` or None when it is not a known preset."""
    if not value:
        return None
    candidate = value.strip()
    if candidate in PRESETS:
        return candidate
    if candidate.upper() in PRESETS:
        return candidate.upper()
    return PRESET_ALIASES.get(candidate.lower())


def build_css_variables(preset: UIPreset) -> dict[str, str]:
    variables = dict(preset.css_variables)
    variables.update({
        '--font-family': preset.font_family,
        '--font-size-base': preset.font_size,
        '--line-height-base': preset.line_height,
        '--letter-spacing-base': preset.letter_spacing,
        '--animation-duration': preset.animation_duration,
        '--focus-indicator-width': preset.focus_indicator_width,
    })
    return variables


def apply_ui_preset(name: str | None) -> PresetApplication:
    key = normalize_preset_name(name)
    fallback_used = key is None
    if fallback_used:
        logger.warning("UI preset '%s' not found. Using %s.", name, DEFAULT_PRESET)
        key = DEFAULT_PRESET

    preset = PRESETS[key]
    return PresetApplication(
        preset=key,
        name=preset.name,
        description=preset.description,
        css_variables=build_css_variables(preset),
        color_scheme=preset.color_scheme,
        body_classes_added=list(PRESET_BODY_CLASSES.get(key, [])),
        fallback_used=fallback_used,
    )


def features_for_preset(name: str) -> dict[str, bool]:
    """Accommodations a preset switches on when it is applied."""
    key = normalize_preset_name(name)
    return dict(PRESET_FEATURES.get(key, {})) if key else {}


def merge_features(current: dict[str, bool], updates: dict[str, bool]) -> dict[str, bool]:
    merged = {feature: bool(current.get(feature, False)) for feature in ACCESSIBILITY_FEATURES}
    for feature, enabled in updates.items():
        if feature not in FEATURE_BODY_CLASSES:
            raise ValueError(f'Unknown accessibility feature: {feature}')
        merged[feature] = bool(enabled)
    return merged


def feature_body_classes(features: dict[str, bool]) -> list[str]:
    return [
        FEATURE_BODY_CLASSES[feature]
        for feature in ACCESSIBILITY_FEATURES
        if features.get(feature)
    ]


# Support profile names used by the speech and text transform tuning.
SUPPORT_PROFILES = {
    'FOCUS_ENHANCED': 'ADHD_SUPPORT',
    'FOCUS_CALM': 'ADHD_SUPPORT',
    'SOCIAL_SIMPLE': 'AUTISM_SUPPORT',
    'SENSORY_CALM': 'SENSORY_CALM',
    'READING_SUPPORT': 'READING_SUPPORT',
}
SUPPORT_PROFILE_NAMES = ('DYSLEXIA_SUPPORT', 'ADHD_SUPPORT', 'AUTISM_SUPPORT', 'SENSORY_CALM', 'READING_SUPPORT')


def support_profile(name: str | None) -> str | None:
    """Map a preset (or an already resolved profile name) to a support profile."""
    if not name:
        return None
    candidate = name.strip().upper()
    if candidate in SUPPORT_PROFILE_NAMES:
        return candidate
    key = normalize_preset_name(name)
    return SUPPORT_PROFILES.get(key) if key else None
