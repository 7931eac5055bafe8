import logging
import uuid
from datetime import datetime
from pathlib import Path

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from pydantic import BaseModel, field_validator
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from thinkable.adaptive.text_transforms import create_summary, process_for_accessibility
from thinkable.auth.dependencies import get_current_user, require_roles
from thinkable.core import config
from thinkable.database import get_db
from thinkable.models.content import (
    CONTENT_TYPES,
    INTERACTION_TYPES,
    ContentBookmark,
    ContentInteraction,
    LearningContent,
)
from thinkable.models.messaging import Conversation, Message
from thinkable.models.note import Note
from thinkable.models.quiz import Quiz, QuizAttempt, QuizQuestion
from thinkable.models.user import User
from thinkable.routes.common import database_unavailable, ensure_database_ready
from thinkable.services import achievement_service
from thinkable.services.extraction import ExtractionError, extract_content

logger = logging.getLogger(__name__)

tutor_router = APIRouter(tags=['tutor-content'])
student_router = APIRouter(tags=['student-content'])
content_router = APIRouter(tags=['content'])

TUTOR_ROLES = ('TUTOR', 'ADMIN', 'TEACHER')
PASSING_SCORE = 70
MAX_QUIZ_OPTIONS = 8
MAX_TITLE_LENGTH = 200

EXTENSION_CONTENT_TYPES = {
    '.pdf': 'PDF',
    '.doc': 'DOCUMENT',
    '.docx': 'DOCUMENT',
    '.odt': 'DOCUMENT',
    '.ppt': 'DOCUMENT',
    '.pptx': 'DOCUMENT',
    '.txt': 'TEXT',
    '.md': 'TEXT',
    '.csv': 'TEXT',
    '.png': 'IMAGE',
    '.jpg': 'IMAGE',
    '.jpeg': 'IMAGE',
    '.gif': 'IMAGE',
    '.mp4': 'VIDEO',
    '.mov': 'VIDEO',
    '.webm': 'VIDEO',
    '.mp3': 'AUDIO',
    '.wav': 'AUDIO',
    '.h5p': 'H5P',
}


class ContentResponse(BaseModel):
    id: int
    tutor_id: int
    title: str
    description: str | None = None
    subject_area: str | None = None
    difficulty_level: str | None = None
    content_type: str
    original_filename: str | None = None
    mime_type: str | None = None
    file_size: int = 0
    accessibility_tags: list[str] = []
    view_count: int = 0
    rating_count: int = 0
    average_rating: float = 0.0
    created_at: datetime | None = None


class QuizQuestionRequest(BaseModel):
    text: str
    options: list[str]
    correct_option: int

    @field_validator('text')
    @classmethod
    def validate_text(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Question text is required.')
        return normalized

    @field_validator('options')
    @classmethod
    def validate_options(cls, value: list[str]) -> list[str]:
        options = [option.strip() for option in value if option.strip()]
        if not 2 <= len(options) <= MAX_QUIZ_OPTIONS:
            raise ValueError(f'Questions need between 2 and {MAX_QUIZ_OPTIONS} options.')
        return options


class CreateQuizRequest(BaseModel):
    title: str
    questions: list[QuizQuestionRequest]

    @field_validator('title')
    @classmethod
    def validate_title(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Quiz title is required.')
        return normalized[:MAX_TITLE_LENGTH]

    @field_validator('questions')
    @classmethod
    def validate_questions(cls, value: list[QuizQuestionRequest]) -> list[QuizQuestionRequest]:
        if not value:
            raise ValueError('A quiz needs at least one question.')
        for question in value:
            if not 0 <= question.correct_option < len(question.options):
                raise ValueError('Correct option must point at one of the options.')
        return value


class RateContentRequest(BaseModel):
    rating: int

    @field_validator('rating')
    @classmethod
    def validate_rating(cls, value: int) -> int:
        if not 1 <= value <= 5:
            raise ValueError('Rating must be between 1 and 5.')
        return value


class InteractionRequest(BaseModel):
    interaction_type: str
    usefulness_rating: int | None = None

    @field_validator('interaction_type')
    @classmethod
    def validate_interaction_type(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in INTERACTION_TYPES:
            raise ValueError(f"Interaction type must be one of: {', '.join(INTERACTION_TYPES)}.")
        return normalized

    @field_validator('usefulness_rating')
    @classmethod
    def validate_usefulness_rating(cls, value: int | None) -> int | None:
        if value is not None and not 1 <= value <= 5:
            raise ValueError('Usefulness rating must be between 1 and 5.')
        return value


class QuizSubmitRequest(BaseModel):
    answers: dict[int, int]


class ExtractTextRequest(BaseModel):
    apply_preset: str | None = None
    max_length: int = config.MAX_EXTRACTED_TEXT_LENGTH
    summary_length: int = 300

    @field_validator('max_length')
    @classmethod
    def validate_max_length(cls, value: int) -> int:
        if value < 1:
            raise ValueError('max_length must be positive.')
        return value


def content_response(content: LearningContent) -> ContentResponse:
    return ContentResponse(
        id=content.id,
        tutor_id=content.tutor_id,
        title=content.title,
        description=content.description,
        subject_area=content.subject_area,
        difficulty_level=content.difficulty_level,
        content_type=content.content_type or 'OTHER',
        original_filename=content.original_filename,
        mime_type=content.mime_type,
        file_size=content.file_size or 0,
        accessibility_tags=content.tag_list,
        view_count=content.view_count or 0,
        rating_count=content.rating_count or 0,
        average_rating=content.average_rating,
        created_at=content.created_at,
    )


def infer_content_type(filename: str | None, mime_type: str | None) -> str:
    suffix = Path(filename or '').suffix.lower()
    if suffix in EXTENSION_CONTENT_TYPES:
        return EXTENSION_CONTENT_TYPES[suffix]
    mime_type = mime_type or ''
    if mime_type == 'application/pdf':
        return 'PDF'
    for prefix, content_type in (('text/', 'TEXT'), ('image/', 'IMAGE'), ('video/', 'VIDEO'), ('audio/', 'AUDIO')):
        if mime_type.startswith(prefix):
            return content_type
    return 'OTHER'


def normalize_tags(raw_tags: str | None) -> str:
    tags = []
    for tag in (raw_tags or '').split(','):
        normalized = tag.strip().lower()
        if normalized and normalized not in tags:
            tags.append(normalized)
    return ','.join(tags)


def get_content_or_404(db: Session, content_id: int) -> LearningContent:
    content = db.query(LearningContent).filter(LearningContent.id == content_id).first()
    if content is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Content not found.')
    return content


def get_owned_content_or_404(db: Session, content_id: int, user: User) -> LearningContent:
    content = get_content_or_404(db, content_id)
    if content.tutor_id != user.id and (user.role or '').upper() != 'ADMIN':
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Content not found.')
    return content


def score_quiz(questions: list[QuizQuestion], answers: dict[int, int]) -> tuple[int, int, int]:
    """Return (score percent, correct answers, total questions)."""
    total = len(questions)
    correct = sum(1 for question in questions if answers.get(question.id) == question.correct_option)
    score = round(correct * 100 / total) if total else 0
    return score, correct, total


@tutor_router.post('/content', response_model=ContentResponse, status_code=status.HTTP_201_CREATED)
def upload_content(
    file: UploadFile = File(...),
    title: str = Form(...),
    description: str | None = Form(default=None),
    subject_area: str | None = Form(default=None),
    difficulty_level: str | None = Form(default=None),
    content_type: str | None = Form(default=None),
    accessibility_tags: str | None = Form(default=None),
    current_user: User = Depends(require_roles(*TUTOR_ROLES)),
    db: Session = Depends(get_db),
):
    normalized_title = title.strip()
    if not normalized_title:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Title is required.')

    resolved_type = (content_type or '').strip().upper() or infer_content_type(file.filename, file.content_type)
    if resolved_type not in CONTENT_TYPES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Unsupported content type.')

    payload = file.file.read(config.MAX_UPLOAD_BYTES + 1)
    if not payload:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Uploaded file is empty.')
    if len(payload) > config.MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail='Uploaded file is too large.',
        )

    ensure_database_ready()

    upload_dir = Path(config.UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)
    stored_path = upload_dir / f'{uuid.uuid4().hex}{Path(file.filename or "").suffix.lower()}'
    stored_path.write_bytes(payload)

    try:
        content = LearningContent(
            tutor_id=current_user.id,
            title=normalized_title[:MAX_TITLE_LENGTH],
            description=description.strip() if description else None,
            subject_area=subject_area.strip() if subject_area else None,
            difficulty_level=difficulty_level.strip() if difficulty_level else None,
            content_type=resolved_type,
            original_filename=file.filename,
            stored_path=str(stored_path),
            mime_type=file.content_type,
            file_size=len(payload),
            accessibility_tags=normalize_tags(accessibility_tags),
            view_count=0,
            rating_count=0,
            rating_total=0,
        )
        db.add(content)
        db.commit()
        db.refresh(content)
    except SQLAlchemyError as exc:
        db.rollback()
        stored_path.unlink(missing_ok=True)
        raise database_unavailable() from exc

    logger.info('Tutor %s uploaded content %s (%s)', current_user.id, content.id, resolved_type)
    return content_response(content)


@tutor_router.get('/content', response_model=list[ContentResponse])
def list_my_content(
    current_user: User = Depends(require_roles(*TUTOR_ROLES)),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        contents = db.query(LearningContent).filter(
            LearningContent.tutor_id == current_user.id,
        ).order_by(LearningContent.created_at.desc(), LearningContent.id.desc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return [content_response(content) for content in contents]


@tutor_router.delete('/content/{content_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_content(
    content_id: int,
    current_user: User = Depends(require_roles(*TUTOR_ROLES)),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        content = get_owned_content_or_404(db, content_id, current_user)
        stored_path = content.stored_path

        for quiz in db.query(Quiz).filter(Quiz.content_id == content_id).all():
            db.query(QuizAttempt).filter(QuizAttempt.quiz_id == quiz.id).delete(synchronize_session=False)
            db.delete(quiz)
        conversation_ids = [
            row[0] for row in db.query(Conversation.id).filter(Conversation.content_id == content_id).all()
        ]
        if conversation_ids:
            db.query(Message).filter(Message.conversation_id.in_(conversation_ids)).delete(synchronize_session=False)
            db.query(Conversation).filter(Conversation.id.in_(conversation_ids)).delete(synchronize_session=False)
        for model in (ContentBookmark, ContentInteraction, Note):
            db.query(model).filter(model.content_id == content_id).delete(synchronize_session=False)

        db.delete(content)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    if stored_path:
        Path(stored_path).unlink(missing_ok=True)


@tutor_router.post('/content/{content_id}/quiz', status_code=status.HTTP_201_CREATED)
def create_quiz(
    content_id: int,
    data: CreateQuizRequest,
    current_user: User = Depends(require_roles(*TUTOR_ROLES)),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        get_owned_content_or_404(db, content_id, current_user)
        quiz = Quiz(content_id=content_id, title=data.title)
        quiz.questions = [
            QuizQuestion(
                position=position,
                text=question.text,
                options=list(question.options),
                correct_option=question.correct_option,
            )
            for position, question in enumerate(data.questions)
        ]
        db.add(quiz)
        db.commit()
        db.refresh(quiz)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return {'id': quiz.id, 'content_id': content_id, 'title': quiz.title, 'question_count': len(quiz.questions)}


@student_router.get('/search', response_model=list[ContentResponse])
def search_content(
    query: str | None = Query(default=None),
    subject: str | None = Query(default=None),
    content_type: str | None = Query(default=None),
    accessibility_tag: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    del current_user
    ensure_database_ready()

    try:
        search = db.query(LearningContent)
        if query and query.strip():
            pattern = f'%{query.strip()}%'
            search = search.filter(or_(
                LearningContent.title.ilike(pattern),
                LearningContent.description.ilike(pattern),
            ))
        if subject and subject.strip():
            search = search.filter(LearningContent.subject_area.ilike(subject.strip()))
        if content_type and content_type.strip():
            search = search.filter(LearningContent.content_type == content_type.strip().upper())

        contents = search.order_by(LearningContent.created_at.desc(), LearningContent.id.desc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    if accessibility_tag and accessibility_tag.strip():
        wanted = accessibility_tag.strip().lower()
        contents = [content for content in contents if wanted in content.tag_list]

    return [content_response(content) for content in contents[:limit]]


@student_router.get('/favorites', response_model=list[ContentResponse])
def list_favorites(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        contents = db.query(LearningContent).join(
            ContentBookmark, ContentBookmark.content_id == LearningContent.id,
        ).filter(
            ContentBookmark.student_id == current_user.id,
        ).order_by(ContentBookmark.created_at.desc(), ContentBookmark.id.desc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return [content_response(content) for content in contents]


@student_router.get('/{content_id}')
def get_content(
    content_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        content = get_content_or_404(db, content_id)
        content.view_count = (content.view_count or 0) + 1
        db.add(ContentInteraction(student_id=current_user.id, content_id=content_id, interaction_type='viewed'))
        bookmarked = db.query(ContentBookmark).filter(
            ContentBookmark.student_id == current_user.id,
            ContentBookmark.content_id == content_id,
        ).first() is not None
        db.commit()
        db.refresh(content)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return {'content': content_response(content), 'is_bookmarked': bookmarked}


@student_router.post('/{content_id}/rate')
def rate_content(
    content_id: int,
    data: RateContentRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        content = get_content_or_404(db, content_id)
        content.rating_count = (content.rating_count or 0) + 1
        content.rating_total = (content.rating_total or 0) + data.rating
        db.add(ContentInteraction(
            student_id=current_user.id,
            content_id=content_id,
            interaction_type='viewed',
            usefulness_rating=data.rating,
        ))
        db.commit()
        db.refresh(content)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return {'content_id': content_id, 'average_rating': content.average_rating, 'rating_count': content.rating_count}


@student_router.post('/{content_id}/bookmark/toggle')
def toggle_bookmark(
    content_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        get_content_or_404(db, content_id)
        bookmark = db.query(ContentBookmark).filter(
            ContentBookmark.student_id == current_user.id,
            ContentBookmark.content_id == content_id,
        ).first()

        if bookmark is None:
            db.add(ContentBookmark(student_id=current_user.id, content_id=content_id))
            db.add(ContentInteraction(student_id=current_user.id, content_id=content_id, interaction_type='bookmarked'))
            bookmarked = True
        else:
            db.delete(bookmark)
            bookmarked = False
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return {'content_id': content_id, 'is_bookmarked': bookmarked}


@student_router.post('/{content_id}/interact', status_code=status.HTTP_201_CREATED)
def record_interaction(
    content_id: int,
    data: InteractionRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        get_content_or_404(db, content_id)
        db.add(ContentInteraction(
            student_id=current_user.id,
            content_id=content_id,
            interaction_type=data.interaction_type,
            usefulness_rating=data.usefulness_rating,
        ))
        db.flush()
        awarded = achievement_service.refresh_achievements(db, current_user.id)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return {
        'content_id': content_id,
        'interaction_type': data.interaction_type,
        'new_achievements': [user_achievement.achievement.name for user_achievement in awarded],
    }


@student_router.get('/{content_id}/quiz')
def get_quiz(
    content_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    del current_user
    ensure_database_ready()

    try:
        get_content_or_404(db, content_id)
        quiz = db.query(Quiz).filter(Quiz.content_id == content_id).order_by(Quiz.id.desc()).first()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    if quiz is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='This content has no quiz.')

    return {
        'id': quiz.id,
        'title': quiz.title,
        'questions': [
            {'id': question.id, 'text': question.text, 'options': list(question.options or [])}
            for question in quiz.questions
        ],
    }


@student_router.post('/{content_id}/quiz/submit')
def submit_quiz(
    content_id: int,
    data: QuizSubmitRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        get_content_or_404(db, content_id)
        quiz = db.query(Quiz).filter(Quiz.content_id == content_id).order_by(Quiz.id.desc()).first()
        if quiz is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='This content has no quiz.')

        score, correct, total = score_quiz(list(quiz.questions), data.answers)
        attempt = QuizAttempt(
            quiz_id=quiz.id,
            student_id=current_user.id,
            score=score,
            correct_answers=correct,
            total_questions=total,
        )
        db.add(attempt)
        db.add(ContentInteraction(student_id=current_user.id, content_id=content_id, interaction_type='quiz_completed'))
        db.flush()
        awarded = achievement_service.refresh_achievements(db, current_user.id)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return {
        'quiz_id': quiz.id,
        'score': score,
        'correct_answers': correct,
        'total_questions': total,
        'passed': score >= PASSING_SCORE,
        'new_achievements': [user_achievement.achievement.name for user_achievement in awarded],
    }


@content_router.post('/{content_id}/extract-text')
def extract_text(
    content_id: int,
    data: ExtractTextRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    del current_user
    ensure_database_ready()

    try:
        content = get_content_or_404(db, content_id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    try:
        extracted = extract_content(content, max_length=data.max_length)
    except ExtractionError as exc:
        logger.warning('Text extraction failed for content %s: %s', content_id, exc)
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

    if extracted.extraction_method in ('pdf', 'text'):
        try:
            content.extracted_text = extracted.text
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise database_unavailable() from exc

    if data.apply_preset:
        extracted = process_for_accessibility(extracted, data.apply_preset)

    response = extracted.to_dict()
    response['summary'] = create_summary(extracted.text, data.summary_length)
    response['applied_preset'] = data.apply_preset
    return response
