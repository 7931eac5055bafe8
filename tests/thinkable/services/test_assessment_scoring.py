import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from thinkable.database import Base  # noqa: E402
from thinkable.models.assessment import AssessmentQuestion, FontTestResult, UserAssessment  # noqa: E402
from thinkable.services.assessment_service import (  # noqa: E402
    CREAM_BACKGROUND,
    DEFAULT_QUESTIONS,
    analyze_font_results,
    apply_scores,
    calculate_category_scores,
    convert_response_to_score,
    customize_from_font_test,
    determine_preset,
    parse_age_from_range,
    questions_for_age,
    score_level,
    seed_assessment_questions,
    significant_traits,
)


@pytest.fixture
def assessment_db():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine, tables=[AssessmentQuestion.__table__])

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine, tables=[AssessmentQuestion.__table__])


@pytest.mark.parametrize(
    ('value', 'question_type', 'expected'),
    [
        (4, 'LIKERT', 4),
        (2.7, 'LIKERT', 2),
        (True, 'BINARY', 1),
        ('yes', 'BINARY', 1),
        ('No', 'BINARY', 0),
        ('Often', 'LIKERT', 4),
        ('very uncomfortable', 'LIKERT', 5),
        ('whatever', 'LIKERT', 3),
        ('often', 'OPEN', 0),
        (None, 'LIKERT', 0),
    ],
)
def test_convert_response_to_score(value, question_type: str, expected: int) -> None:
    assert convert_response_to_score(value, question_type) == expected


@pytest.mark.parametrize(
    ('scores', 'preset'),
    [
        ((0, 0, 0, 0), 'STANDARD_ADAPTIVE'),
        ((17, 14, 15, 13), 'STANDARD_ADAPTIVE'),
        ((18, 0, 0, 0), 'FOCUS_ENHANCED'),
        ((0, 15, 0, 0), 'READING_SUPPORT'),
        ((0, 0, 16, 0), 'SOCIAL_SIMPLE'),
        ((0, 0, 0, 14), 'SENSORY_CALM'),
        ((20, 20, 0, 0), 'READING_SUPPORT'),
        ((20, 20, 0, 20), 'READING_SUPPORT'),
        ((20, 0, 0, 20), 'FOCUS_CALM'),
        ((0, 15, 25, 0), 'SOCIAL_SIMPLE'),
        ((0, 20, 20, 0), 'READING_SUPPORT'),
        ((0, 0, 16, 16), 'SOCIAL_SIMPLE'),
    ],
)
def test_determine_preset(scores: tuple[int, int, int, int], preset: str) -> None:
    assert determine_preset(*scores) == preset


def test_significant_traits_use_thresholds() -> None:
    assert significant_traits(18, 14, 16, 13) == {
        'attention': True,
        'reading': False,
        'social': True,
        'sensory': False,
    }


def test_score_level() -> None:
    assert score_level(None, 18) == 'unknown'
    assert score_level(18, 18) == 'high'
    assert score_level(13, 18) == 'moderate'
    assert score_level(12, 18) == 'low'


def test_parse_age_from_range() -> None:
    assert parse_age_from_range('5-8') == 7
    assert parse_age_from_range('17+') == 18
    assert parse_age_from_range(None) == 16
    assert parse_age_from_range('adult') == 16


def test_calculate_category_scores_skips_unknown_and_malformed_ids() -> None:
    questions = {
        1: AssessmentQuestion(id=1, category='AttentionSupport', question_type='LIKERT'),
        2: AssessmentQuestion(id=2, category='AttentionSupport', question_type='LIKERT'),
        3: AssessmentQuestion(id=3, category='ReadingSupport', question_type='BINARY'),
    }

    totals = calculate_category_scores({'1': 5, 2: 'often', '3': 'yes', '99': 5, 'abc': 5}, questions)

    assert totals == {'AttentionSupport': 9, 'ReadingSupport': 1}


def test_apply_scores_sets_scores_preset_and_completion() -> None:
    assessment = UserAssessment(user_id=1)

    apply_scores(assessment, {'AttentionSupport': 19, 'SensoryProcessing': 15, 'MotorSkills': 4})

    assert assessment.attention_score == 19
    assert assessment.reading_difficulty_score == 0
    assert assessment.sensory_processing_score == 15
    assert assessment.motor_skills_score == 4
    assert assessment.recommended_preset == 'FOCUS_CALM'
    assert assessment.completed is True


def test_seed_assessment_questions_only_runs_once(assessment_db) -> None:
    assert seed_assessment_questions(assessment_db) == len(DEFAULT_QUESTIONS)
    assert seed_assessment_questions(assessment_db) == 0
    assert assessment_db.query(AssessmentQuestion).count() == len(DEFAULT_QUESTIONS)


def test_questions_for_age_filters_by_minimum_age_and_orders_by_category(assessment_db) -> None:
    seed_assessment_questions(assessment_db)

    young = questions_for_age(assessment_db, 5)
    older = questions_for_age(assessment_db, 15)

    assert len(older) == len(DEFAULT_QUESTIONS)
    assert len(young) == len([question for question in DEFAULT_QUESTIONS if question[2] <= 5])
    assert young[0].category == 'AttentionSupport'
    assert young[-1].category == 'EmotionalRegulation'
    assert questions_for_age(assessment_db, 30) == []


def _font(name: str, difficulty: str, **symptoms) -> FontTestResult:
    return FontTestResult(font_name=name, difficulty_reported=difficulty, readability_rating=3, symptoms=symptoms)


def test_analyze_font_results_flags_likely_dyslexia() -> None:
    analysis = analyze_font_results([
        _font('Times New Roman', 'hard'),
        _font('OpenDyslexic', 'easy'),
    ])

    assert analysis['dyslexia_indicators']['serifDifficulty'] is True
    assert analysis['dyslexia_indicators']['dyslexiaFontPreference'] is True
    assert analysis['dyslexia_indicators']['likelyDyslexia'] is True
    assert analysis['recommended_fonts'] == ['Comic Neue', 'OpenDyslexic', 'Lexie Readable']


def test_analyze_font_results_uses_symptoms() -> None:
    analysis = analyze_font_results([_font('Arial', 'medium', lettersMove=True, eyeStrain=True)])

    assert analysis['dyslexia_indicators']['likelyDyslexia'] is True


def test_analyze_font_results_recommends_easy_fonts_otherwise() -> None:
    analysis = analyze_font_results([_font('Verdana', 'easy'), _font('Georgia', 'medium')])

    assert analysis['dyslexia_indicators']['likelyDyslexia'] is False
    assert analysis['recommended_fonts'] == ['Verdana']
    assert analysis['analysis'].endswith('Recommended fonts: Verdana')


def test_analyze_font_results_defaults_to_sans_serif() -> None:
    assert analyze_font_results([])['recommended_fonts'] == ['Arial', 'Verdana']


def test_customize_from_font_test_adds_spacing_for_dyslexia_font() -> None:
    overrides = customize_from_font_test('STANDARD_ADAPTIVE', [_font('Georgia', 'hard'), _font('OpenDyslexic', 'easy')])

    assert overrides == {
        '--font-family': 'OpenDyslexic, monospace',
        '--line-height-base': '1.8',
        '--background-color': CREAM_BACKGROUND,
    }


def test_customize_from_font_test_without_easy_font() -> None:
    assert customize_from_font_test('STANDARD_ADAPTIVE', [_font('Georgia', 'hard')]) == {}
    assert customize_from_font_test('STANDARD_ADAPTIVE', [_font('Verdana', 'easy')]) == {
        '--font-family': 'Verdana, sans-serif',
    }
