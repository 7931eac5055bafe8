"""Pull readable text out of uploaded content files."""

import logging
from pathlib import Path

import fitz  # PyMuPDF

from thinkable.adaptive.text_transforms import ExtractedContent, calculate_reading_time, count_words
from thinkable.core import config
from thinkable.models.content import LearningContent

logger = logging.getLogger(__name__)

TEXT_EXTENSIONS = {'.txt', '.md', '.markdown', '.csv', '.html', '.htm', '.json'}
PDF_CONFIDENCE = 0.95
TEXT_CONFIDENCE = 1.0
FALLBACK_CONFIDENCE = 0.1


class ExtractionError(Exception):
    """Raised when a stored file cannot be read."""


def extract_pdf_text(path: Path) -> tuple[str, int]:
    """Return the text of every page and the page count."""
    text_parts = []
    with fitz.open(path) as doc:
        for page in doc:
            text_parts.append(page.get_text())
        page_count = doc.page_count
    return '\n\n'.join(text_parts), page_count


def extract_plain_text(path: Path) -> str:
    return path.read_bytes().decode('utf-8', errors='replace')


def fallback_text(content_type: str) -> str:
    return (
        f'This {content_type} file contains content that requires text extraction. '
        'Automatic extraction is not available for this file type.'
    )


def _is_pdf(content: LearningContent, path: Path | None) -> bool:
    if (content.content_type or '').upper() == 'PDF':
        return True
    if content.mime_type == 'application/pdf':
        return True
    return path is not None and path.suffix.lower() == '.pdf'


def _is_text(content: LearningContent, path: Path | None) -> bool:
    if (content.mime_type or '').startswith('text/'):
        return True
    return path is not None and path.suffix.lower() in TEXT_EXTENSIONS


def extract_content(content: LearningContent, max_length: int = config.MAX_EXTRACTED_TEXT_LENGTH) -> ExtractedContent:
    """Extract text for ``content`` and describe how it was obtained.

    PDFs go through PyMuPDF and text files are decoded as UTF-8. Images, audio,
    video and anything unreadable get a short placeholder with low confidence.
    """
    content_type = (content.content_type or 'OTHER').upper()
    path = Path(content.stored_path) if content.stored_path else None
    if path is not None and not path.is_file():
        raise ExtractionError(f'Stored file for content {content.id} is missing')

    has_structure = False
    if path is not None and _is_pdf(content, path):
        try:
            text, page_count = extract_pdf_text(path)
        except (RuntimeError, ValueError) as exc:
            raise ExtractionError(f'Could not read PDF for content {content.id}') from exc
        method, confidence = 'pdf', PDF_CONFIDENCE
        has_structure = page_count > 1
    elif path is not None and _is_text(content, path):
        text = extract_plain_text(path)
        method, confidence = 'text', TEXT_CONFIDENCE
    elif path is None and content.extracted_text:
        text = content.extracted_text
        method, confidence = 'stored', TEXT_CONFIDENCE
    else:
        logger.warning('No extractor for content %s (%s); using fallback text', content.id, content_type)
        text = fallback_text(content_type)
        method, confidence = 'fallback', FALLBACK_CONFIDENCE

    if len(text) > max_length:
        text = text[:max_length]

    if not has_structure:
        has_structure = '\n\n' in text

    return ExtractedContent(
        title=content.title or 'Content',
        text=text,
        content_type=content_type,
        file_name=content.original_filename or 'unknown',
        extraction_method=method,
        confidence=confidence,
        word_count=count_words(text),
        reading_time=calculate_reading_time(text),
        has_images=content_type == 'IMAGE',
        has_structure=has_structure,
        has_formats=method == 'pdf',
    )
