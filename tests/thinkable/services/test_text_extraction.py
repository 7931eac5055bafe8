import os

import fitz
import pytest

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from thinkable.models.content import LearningContent  # noqa: E402
from thinkable.services.extraction import ExtractionError, extract_content  # noqa: E402


def _content(**overrides) -> LearningContent:
    values = {'id': 7, 'title': 'Cells', 'content_type': 'TEXT', 'original_filename': 'cells.txt'}
    values.update(overrides)
    return LearningContent(**values)


def test_extract_plain_text_file(tmp_path) -> None:
    path = tmp_path / 'cells.txt'
    path.write_text('Cells are small.\n\nThey divide.', encoding='utf-8')

    extracted = extract_content(_content(stored_path=str(path), mime_type='text/plain'))

    assert extracted.text == 'Cells are small.\n\nThey divide.'
    assert extracted.extraction_method == 'text'
    assert extracted.confidence == 1.0
    assert extracted.word_count == 5
    assert extracted.reading_time == 1
    assert extracted.has_structure is True


def test_extract_pdf_text(tmp_path) -> None:
    path = tmp_path / 'cells.pdf'
    document = fitz.open()
    page = document.new_page()
    page.insert_text((72, 72), 'Mitochondria make energy')
    document.save(str(path))
    document.close()

    extracted = extract_content(_content(stored_path=str(path), content_type='PDF', original_filename='cells.pdf'))

    assert 'Mitochondria make energy' in extracted.text
    assert extracted.extraction_method == 'pdf'
    assert extracted.confidence == 0.95
    assert extracted.has_formats is True


def test_unreadable_pdf_raises_extraction_error(tmp_path) -> None:
    path = tmp_path / 'broken.pdf'
    path.write_bytes(b'not really a pdf')

    with pytest.raises(ExtractionError):
        extract_content(_content(stored_path=str(path), content_type='PDF'))


def test_missing_stored_file_raises_extraction_error(tmp_path) -> None:
    with pytest.raises(ExtractionError):
        extract_content(_content(stored_path=str(tmp_path / 'gone.txt')))


def test_images_get_low_confidence_fallback(tmp_path) -> None:
    path = tmp_path / 'diagram.png'
    path.write_bytes(b'\x89PNG')

    extracted = extract_content(_content(stored_path=str(path), content_type='IMAGE', mime_type='image/png'))

    assert extracted.extraction_method == 'fallback'
    assert extracted.confidence == 0.1
    assert extracted.has_images is True
    assert 'IMAGE file' in extracted.text


def test_previously_extracted_text_is_reused() -> None:
    extracted = extract_content(_content(stored_path=None, extracted_text='Saved earlier.'))

    assert extracted.extraction_method == 'stored'
    assert extracted.text == 'Saved earlier.'


def test_extracted_text_is_truncated(tmp_path) -> None:
    path = tmp_path / 'long.txt'
    path.write_text('a' * 500, encoding='utf-8')

    extracted = extract_content(_content(stored_path=str(path)), max_length=100)

    assert len(extracted.text) == 100
