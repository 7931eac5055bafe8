import pytest

from thinkable.adaptive.text_transforms import (
    ExtractedContent,
    calculate_reading_time,
    count_words,
    create_structured_text,
    create_summary,
    optimize_for_adhd,
    optimize_for_autism,
    optimize_for_dyslexia,
    optimize_for_reading,
    optimize_for_sensory,
    process_for_accessibility,
    transform_text,
)


def _content(text: str = 'Body text.', **overrides) -> ExtractedContent:
    values = {
        'title': 'Fractions',
        'text': text,
        'content_type': 'pdf',
        'file_name': 'fractions.pdf',
        'extraction_method': 'pdf',
        'confidence': 0.95,
        'word_count': count_words(text),
        'reading_time': calculate_reading_time(text),
    }
    values.update(overrides)
    return ExtractedContent(**values)


def test_count_words_and_reading_time() -> None:
    assert count_words('  one two\nthree ') == 3
    assert count_words('   ') == 0
    assert calculate_reading_time('') == 0
    assert calculate_reading_time('word ' * 200) == 1
    assert calculate_reading_time('word ' * 401) == 3


def test_dyslexia_transform_widens_sentence_gaps_and_bolds_keywords() -> None:
    assert optimize_for_dyslexia('This is important. Read it.') == 'This is **important**.  Read it.'


def test_adhd_transform_marks_sections_and_action_words() -> None:
    assert optimize_for_adhd('First read.\n\nThen answer.') == '**First** read.\n\n---\n\n**Then** answer.'


def test_adhd_transform_turns_numbered_items_into_bullets() -> None:
    assert optimize_for_adhd('1. Read the page\n2) Answer') == '• Read the page\n• Answer'


def test_autism_transform_adds_headings_and_highlights_short_statements() -> None:
    result = optimize_for_autism('Rules:\nBe kind.\n\n\n\nShare toys')

    assert result == '## Rules\n**Be kind.**\n\n\nShare toys'


def test_sensory_transform_calms_punctuation_and_capitals() -> None:
    assert optimize_for_sensory('STOP!!! Are you sure?? Yes. Okay') == 'Stop! Are you sure? Yes.\n\nOkay'


def test_reading_transform_bolds_labels() -> None:
    assert optimize_for_reading('Note: read this. Then stop.') == '**Note:** read this.  Then stop.'


@pytest.mark.parametrize('preset', ['STANDARD_ADAPTIVE', 'unknown', None])
def test_transform_text_leaves_text_alone_without_support_profile(preset) -> None:
    assert transform_text('KEEP THIS!!', preset) == 'KEEP THIS!!'


def test_transform_text_dispatches_on_preset() -> None:
    assert transform_text('LOUD!!', 'SENSORY_CALM') == 'Loud!'
    assert transform_text('Remember this', 'DYSLEXIA_SUPPORT') == '**Remember** this'


def test_process_for_accessibility_returns_updated_copy() -> None:
    original = _content('STOP NOW. Please')

    processed = process_for_accessibility(original, 'SENSORY_CALM')

    assert processed.text == 'Stop Now.\n\nPlease'
    assert processed.word_count == 3
    assert processed.reading_time == 1
    assert original.text == 'STOP NOW. Please'


def test_create_summary_keeps_whole_sentences() -> None:
    text = 'One two three. ' * 40

    assert create_summary('Short enough.', 50) == 'Short enough.'
    assert create_summary(text, 50) == 'One two three. One two three. One two three. ...'


def test_create_structured_text_builds_sections() -> None:
    content = _content('Body text.', image_descriptions=['A pie chart'])

    structured = create_structured_text(content, 'Parts of a whole', 'Math', 'beginner')

    assert structured.startswith('# Fractions\n')
    assert '**Subject:** Math' in structured
    assert '**Difficulty:** beginner' in structured
    assert '**Reading Time:** 1 minutes' in structured
    assert '## Description\nParts of a whole' in structured
    assert '## Content\nBody text.' in structured
    assert structured.endswith('**Image 1:** A pie chart')


def test_extracted_content_to_dict_uses_client_field_names() -> None:
    payload = _content().to_dict()

    assert payload['metadata']['extractionMethod'] == 'pdf'
    assert payload['metadata']['wordCount'] == 2
    assert payload['accessibility']['imageDescriptions'] == []
