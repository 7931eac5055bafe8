"""Scoring for the learning profile assessment and the font readability test."""

import logging
from decimal import Decimal

from sqlalchemy.orm import Session

from thinkable.adaptive.presets import DEFAULT_PRESET, PRESETS
from thinkable.models.assessment import AssessmentQuestion, FontTestResult, UserAssessment

logger = logging.getLogger(__name__)

ATTENTION_THRESHOLD = 18
READING_THRESHOLD = 15
SOCIAL_THRESHOLD = 16
SENSORY_THRESHOLD = 14

CATEGORIES = (
    'AttentionSupport',
    'ReadingSupport',
    'SocialCommunication',
    'SensoryProcessing',
    'MotorSkills',
    'EmotionalRegulation',
)

CATEGORY_SCORE_FIELDS = {
    'AttentionSupport': 'attention_score',
    'ReadingSupport': 'reading_difficulty_score',
    'SocialCommunication': 'social_communication_score',
    'SensoryProcessing': 'sensory_processing_score',
    'MotorSkills': 'motor_skills_score',
}

TRAIT_PRESETS = {
    'attention': 'FOCUS_ENHANCED',
    'reading': 'READING_SUPPORT',
    'social': 'SOCIAL_SIMPLE',
    'sensory': 'SENSORY_CALM',
}

AGE_RANGES = {'5-8': 7, '9-12': 11, '13-16': 15, '17+': 18}
DEFAULT_AGE = 16

LIKERT_SCORES = {
    'never': 1, 'not at all': 1, 'very easy': 1,
    'rarely': 2, 'slightly': 2, 'easy': 2,
    'sometimes': 3, 'moderate': 3, 'neutral': 3,
    'often': 4, 'difficult': 4, 'uncomfortable': 4,
    'always': 5, 'very difficult': 5, 'very uncomfortable': 5,
}
LIKERT_DEFAULT = 3

SERIF_FONTS = ('Times New Roman', 'Georgia', 'Times', 'serif')
DYSLEXIA_FRIENDLY_FONTS = ('Comic Neue', 'OpenDyslexic', 'Lexie Readable', 'Dyslexie')
FONT_CSS = {
    'Comic Neue': 'Comic Neue, cursive',
    'OpenDyslexic': 'OpenDyslexic, monospace',
    'Times New Roman': 'Times New Roman, serif',
    'Arial': 'Arial, sans-serif',
    'Verdana': 'Verdana, sans-serif',
}
CREAM_BACKGROUND = '#fffef7'

DEFAULT_QUESTIONS = (
    ('AttentionSupport', 'I have difficulty sitting still during lessons or activities', 5),
    ('AttentionSupport', 'I have trouble paying attention to details in schoolwork', 5),
    ('AttentionSupport', 'I get easily distracted by sounds, sights, or thoughts', 5),
    ('AttentionSupport', 'I have difficulty following instructions with multiple steps', 5),
    ('AttentionSupport', 'I have trouble organizing my tasks and materials', 8),
    ('ReadingSupport', 'I have difficulty sounding out unfamiliar words', 5),
    ('ReadingSupport', 'I sometimes read words backwards or mix up similar letters', 5),
    ('ReadingSupport', 'I lose my place when reading and skip lines', 5),
    ('ReadingSupport', 'Words appear to move, blur, or swim on the page', 5),
    ('ReadingSupport', 'I forget what I just read by the end of a paragraph', 6),
    ('SocialCommunication', 'I have difficulty starting conversations with peers', 5),
    ('SocialCommunication', "I find it hard to understand when someone is joking or being sarcastic", 8),
    ('SocialCommunication', 'I have difficulty understanding facial expressions and body language', 5),
    ('SocialCommunication', 'I get very upset when my daily routine is changed unexpectedly', 5),
    ('SocialCommunication', 'I prefer things to be done the same way every time', 5),
    ('SensoryProcessing', "I am bothered by everyday sounds that don't seem to bother others", 5),
    ('SensoryProcessing', 'Bright lights or fluorescent lighting bothers me', 5),
    ('SensoryProcessing', 'I am sensitive to visual clutter and busy patterns', 5),
    ('SensoryProcessing', 'I become overwhelmed in busy or crowded environments', 5),
    ('SensoryProcessing', 'I have difficulty filtering out background noise to focus on important sounds', 5),
    ('MotorSkills', 'I have difficulty with handwriting and my writing is messy', 5),
    ('MotorSkills', 'I have trouble with sports or physical activities that require coordination', 5),
    ('MotorSkills', 'I have difficulty learning new physical skills or movements', 5),
    ('EmotionalRegulation', 'I have difficulty calming down when I am upset', 5),
    ('EmotionalRegulation', 'I worry excessively about school performance or social situations', 8),
    ('EmotionalRegulation', 'I get frustrated easily when tasks are difficult', 5),
)


def seed_assessment_questions(db: Session) -> int:
    """Insert the default question bank when the table is empty. Returns rows added."""
    if db.query(AssessmentQuestion).first() is not None:
        return 0

    for category, text, min_age in DEFAULT_QUESTIONS:
        db.add(AssessmentQuestion(
            category=category,
            text=text,
            question_type='LIKERT',
            min_age=min_age,
            max_age=18,
        ))
    db.commit()
    logger.info('Seeded %d assessment questions', len(DEFAULT_QUESTIONS))
    return len(DEFAULT_QUESTIONS)


def parse_age_from_range(age_range: str | None) -> int:
    if not age_range:
        return DEFAULT_AGE
    return AGE_RANGES.get(age_range.strip(), DEFAULT_AGE)


def questions_for_age(db: Session, age: int) -> list[AssessmentQuestion]:
    questions = (
        db.query(AssessmentQuestion)
        .filter(AssessmentQuestion.min_age <= age, AssessmentQuestion.max_age >= age)
        .all()
    )
    order = {category: index for index, category in enumerate(CATEGORIES)}
    return sorted(questions, key=lambda question: (order.get(question.category, len(order)), question.id))


def convert_response_to_score(value, question_type: str | None) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float, Decimal)):
        return int(value)
    if isinstance(value, str):
        kind = (question_type or '').upper()
        if kind == 'BINARY':
            return 1 if value.strip().lower() == 'yes' else 0
        if kind == 'LIKERT':
            return LIKERT_SCORES.get(value.strip().lower(), LIKERT_DEFAULT)
    return 0


def calculate_category_scores(responses: dict, questions: dict[int, AssessmentQuestion]) -> dict[str, int]:
    """Sum response scores per question category.

    ``responses`` maps question ids (int or numeric strings) to answers. Unknown
    or malformed ids are skipped.
    """
    totals: dict[str, int] = {}
    for raw_id, value in responses.items():
        try:
            question_id = int(raw_id)
        except (TypeError, ValueError):
            logger.warning('Invalid question ID format: %s', raw_id)
            continue

        question = questions.get(question_id)
        if question is None:
            continue
        score = convert_response_to_score(value, question.question_type)
        totals[question.category] = totals.get(question.category, 0) + score
    return totals


def significant_traits(
    attention: int = 0,
    reading: int = 0,
    social: int = 0,
    sensory: int = 0,
) -> dict[str, bool]:
    return {
        'attention': (attention or 0) >= ATTENTION_THRESHOLD,
        'reading': (reading or 0) >= READING_THRESHOLD,
        'social': (social or 0) >= SOCIAL_THRESHOLD,
        'sensory': (sensory or 0) >= SENSORY_THRESHOLD,
    }


def determine_preset(
    attention: int = 0,
    reading: int = 0,
    social: int = 0,
    sensory: int = 0,
) -> str:
    traits = significant_traits(attention, reading, social, sensory)
    active = [trait for trait, present in traits.items() if present]

    if not active:
        return DEFAULT_PRESET
    if len(active) == 1:
        return TRAIT_PRESETS[active[0]]
    if traits['reading'] and traits['attention']:
        return 'READING_SUPPORT'
    if traits['attention'] and traits['sensory']:
        return 'FOCUS_CALM'

    scores = {'attention': attention, 'reading': reading, 'social': social, 'sensory': sensory}
    # Ties resolve in the dict's insertion order.
    highest = max(scores, key=lambda trait: scores[trait] or 0)
    return TRAIT_PRESETS[highest]


def score_level(score: int | None, threshold: int) -> str:
    if score is None:
        return 'unknown'
    if score >= threshold:
        return 'high'
    if score >= threshold * 0.7:
        return 'moderate'
    return 'low'


def trait_summary(assessment: UserAssessment) -> dict:
    return {
        'attention': {
            'score': assessment.attention_score,
            'level': score_level(assessment.attention_score, ATTENTION_THRESHOLD),
        },
        'reading': {
            'score': assessment.reading_difficulty_score,
            'level': score_level(assessment.reading_difficulty_score, READING_THRESHOLD),
        },
        'social': {
            'score': assessment.social_communication_score,
            'level': score_level(assessment.social_communication_score, SOCIAL_THRESHOLD),
        },
        'sensory': {
            'score': assessment.sensory_processing_score,
            'level': score_level(assessment.sensory_processing_score, SENSORY_THRESHOLD),
        },
    }


def accessibility_recommendations(traits: dict[str, bool]) -> dict[str, list[str]]:
    recommendations = {}
    if traits.get('attention'):
        recommendations['attention'] = [
            'Use shorter study sessions (15-20 minutes)',
            'Take frequent breaks',
            'Use visual progress indicators',
        ]
    if traits.get('reading'):
        recommendations['reading'] = [
            'Use dyslexia-friendly fonts',
            'Increase line spacing',
            'Use text-to-speech features',
        ]
    if traits.get('social'):
        recommendations['social'] = [
            'Provide clear, explicit instructions',
            'Use predictable layouts and routines',
        ]
    if traits.get('sensory'):
        recommendations['sensory'] = [
            'Reduce visual clutter',
            'Minimize animations and movement',
        ]
    return recommendations


def apply_scores(assessment: UserAssessment, category_scores: dict[str, int]) -> UserAssessment:
    for category, field_name in CATEGORY_SCORE_FIELDS.items():
        setattr(assessment, field_name, category_scores.get(category, 0))

    assessment.recommended_preset = determine_preset(
        assessment.attention_score,
        assessment.reading_difficulty_score,
        assessment.social_communication_score,
        assessment.sensory_processing_score,
    )
    assessment.completed = True
    logger.info(
        'Assessment for user %s scored %s, recommending %s',
        assessment.user_id,
        category_scores,
        assessment.recommended_preset,
    )
    return assessment


def is_serif_font(font_name: str | None) -> bool:
    return font_name in SERIF_FONTS


def is_dyslexia_friendly_font(font_name: str | None) -> bool:
    return font_name in DYSLEXIA_FRIENDLY_FONTS


def font_css(font_name: str) -> str:
    return FONT_CSS.get(font_name, f'{font_name}, sans-serif')


def _has_symptom(result: FontTestResult, symptom: str) -> bool:
    return bool((result.symptoms or {}).get(symptom))


def analyze_font_results(results: list[FontTestResult]) -> dict:
    serif_difficulty = any(
        is_serif_font(result.font_name) and result.difficulty_reported == 'hard' for result in results
    )
    dyslexia_font_preference = any(
        is_dyslexia_friendly_font(result.font_name) and result.difficulty_reported == 'easy' for result in results
    )
    has_movement_symptoms = any(_has_symptom(result, 'lettersMove') for result in results)
    has_eye_strain = any(_has_symptom(result, 'eyeStrain') for result in results)
    likely_dyslexia = (serif_difficulty and dyslexia_font_preference) or (has_movement_symptoms and has_eye_strain)

    if likely_dyslexia:
        recommended_fonts = ['Comic Neue', 'OpenDyslexic', 'Lexie Readable']
    else:
        recommended_fonts = []
        for result in results:
            if result.difficulty_reported == 'easy' and result.font_name not in recommended_fonts:
                recommended_fonts.append(result.font_name)
        if not recommended_fonts:
            recommended_fonts = ['Arial', 'Verdana']

    if likely_dyslexia:
        analysis = (
            'Assessment suggests potential reading support benefits. '
            'Dyslexia-friendly fonts and increased spacing may improve reading comfort. '
        )
    else:
        analysis = (
            'Good font flexibility observed. '
            'Standard fonts work well with possible customization options. '
        )
    analysis += 'Recommended fonts: ' + ', '.join(recommended_fonts)

    return {
        'dyslexia_indicators': {
            'serifDifficulty': serif_difficulty,
            'dyslexiaFontPreference': dyslexia_font_preference,
            'hasMovementSymptoms': has_movement_symptoms,
            'hasEyeStrain': has_eye_strain,
            'likelyDyslexia': likely_dyslexia,
        },
        'recommended_fonts': recommended_fonts,
        'analysis': analysis,
    }


def customize_from_font_test(preset_key: str, results: list[FontTestResult]) -> dict[str, str]:
    """CSS overrides for the first font the user found easy to read."""
    preferred = next((result for result in results if result.difficulty_reported == 'easy'), None)
    if preferred is None:
        return {}

    overrides = {'--font-family': font_css(preferred.font_name)}
    if is_dyslexia_friendly_font(preferred.font_name):
        preset = PRESETS.get(preset_key, PRESETS[DEFAULT_PRESET])
        overrides['--line-height-base'] = str(Decimal(preset.line_height) + Decimal('0.2'))
        overrides['--background-color'] = CREAM_BACKGROUND
    return overrides
