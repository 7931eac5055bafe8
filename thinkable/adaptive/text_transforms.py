"""Regex rewrites that make extracted text easier to read for each support profile."""

import math
import re
from dataclasses import dataclass, field, replace

from thinkable.adaptive.presets import support_profile

WORDS_PER_MINUTE = 200
DEFAULT_SUMMARY_LENGTH = 300


@dataclass
class ExtractedContent:
    title: str
    text: str
    content_type: str
    file_name: str
    extraction_method: str
    confidence: float
    word_count: int = 0
    reading_time: int = 0
    has_images: bool = False
    has_structure: bool = False
    has_formats: bool = False
    image_descriptions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'title': self.title,
            'text': self.text,
            'metadata': {
                'contentType': self.content_type,
                'fileName': self.file_name,
                'extractionMethod': self.extraction_method,
                'confidence': self.confidence,
                'wordCount': self.word_count,
                'readingTime': self.reading_time,
            },
            'accessibility': {
                'hasImages': self.has_images,
                'hasStructure': self.has_structure,
                'hasFormats': self.has_formats,
                'imageDescriptions': list(self.image_descriptions),
            },
        }


def count_words(text: str) -> int:
    return len(text.split())


def calculate_reading_time(text: str) -> int:
    return math.ceil(count_words(text) / WORDS_PER_MINUTE)


def optimize_for_dyslexia(text: str) -> str:
    text = text.replace('. ', '.  ')
    text = re.sub(r'(.{200,}?[.!?])\s', r'\1\n\n', text)
    return re.sub(r'\b(important|note|warning|remember|key|main)\b', r'**\1**', text, flags=re.IGNORECASE)


def optimize_for_adhd(text: str) -> str:
    text = text.replace('\n\n', '\n\n---\n\n')
    text = re.sub(r'^(\d+[.)])\s', '• ', text, flags=re.MULTILINE)
    return re.sub(r'\b(do|action|step|next|then|first|finally)\b', r'**\1**', text, flags=re.IGNORECASE)


def optimize_for_autism(text: str) -> str:
    text = re.sub(r'\n{3,}', '\n\n', text)
    text = re.sub(r'^([A-Z][^.!?\n]*):$', r'## \1', text, flags=re.MULTILINE)
    return re.sub(r'^(.{0,50}[.!?])[ \t]*$', r'**\1**\n', text, flags=re.MULTILINE)


def optimize_for_sensory(text: str) -> str:
    text = re.sub(r'!{2,}', '!', text)
    text = re.sub(r'\?{2,}', '?', text)
    text = text.replace('. ', '.\n\n')
    return re.sub(r'[A-Z]{3,}', lambda match: match.group(0)[0] + match.group(0)[1:].lower(), text)


def optimize_for_reading(text: str) -> str:
    text = re.sub(r'([.!?])\s', r'\1  ', text)
    text = text.replace('\n', '\n\n')
    return re.sub(r'^(\w+):\s', r'**\1:** ', text, flags=re.MULTILINE)


TRANSFORMS = {
    'DYSLEXIA_SUPPORT': optimize_for_dyslexia,
    'ADHD_SUPPORT': optimize_for_adhd,
    'AUTISM_SUPPORT': optimize_for_autism,
    'SENSORY_CALM': optimize_for_sensory,
    'READING_SUPPORT': optimize_for_reading,
}


def transform_text(text: str, preset: str | None) -> str:
    transform = TRANSFORMS.get(support_profile(preset))
    return transform(text) if transform else text


def process_for_accessibility(content: ExtractedContent, preset: str | None) -> ExtractedContent:
    """Return a copy of ``content`` rewritten for ``preset`` with word stats recomputed.

    Unknown presets leave the text untouched; the stats are refreshed either way.
    """
    processed = transform_text(content.text, preset)
    return replace(
        content,
        text=processed,
        word_count=count_words(processed),
        reading_time=calculate_reading_time(processed),
        image_descriptions=list(content.image_descriptions),
    )


def create_summary(text: str, max_length: int = DEFAULT_SUMMARY_LENGTH) -> str:
    if len(text) <= max_length:
        return text

    summary = ''
    for sentence in re.split(r'[.!?]+', text):
        if not sentence.strip():
            continue
        if len(summary + sentence) > max_length:
            break
        summary += sentence.strip() + '. '

    return summary + ('...' if len(text) > len(summary) else '')


def create_structured_text(
    content: ExtractedContent,
    description: str | None = None,
    subject_area: str | None = None,
    difficulty_level: str | None = None,
) -> str:
    sections: list[str] = []

    if content.title:
        sections.append(f'# {content.title}\n')

    if subject_area or difficulty_level:
        sections.append('## Information')
        if subject_area:
            sections.append(f'**Subject:** {subject_area}')
        if difficulty_level:
            sections.append(f'**Difficulty:** {difficulty_level}')
        if content.reading_time:
            sections.append(f'**Reading Time:** {content.reading_time} minutes')
        sections.append('')

    if description:
        sections.append('## Description')
        sections.append(description)
        sections.append('')

    if content.text:
        sections.append('## Content')
        sections.append(content.text)

    if content.image_descriptions:
        sections.append('\n## Image Descriptions')
        for index, image_description in enumerate(content.image_descriptions, start=1):
            sections.append(f'**Image {index}:** {image_description}')

    return '\n'.join(sections)
