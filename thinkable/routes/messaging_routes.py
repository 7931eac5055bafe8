from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from thinkable.auth.dependencies import get_current_user
from thinkable.database import get_db
from thinkable.models.content import LearningContent
from thinkable.models.messaging import Conversation, Message
from thinkable.models.user import User
from thinkable.routes.common import database_unavailable, ensure_database_ready

router = APIRouter(tags=['messaging'])

MAX_MESSAGE_LENGTH = 4000
MAX_SUBJECT_LENGTH = 200


class StartConversationRequest(BaseModel):
    content_id: int
    subject: str | None = None

    @field_validator('subject')
    @classmethod
    def validate_subject(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        return normalized[:MAX_SUBJECT_LENGTH] or None


class SendMessageRequest(BaseModel):
    body: str

    @field_validator('body')
    @classmethod
    def validate_body(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Message cannot be empty.')
        if len(normalized) > MAX_MESSAGE_LENGTH:
            raise ValueError(f'Messages must be {MAX_MESSAGE_LENGTH} characters or fewer.')
        return normalized


class ConversationResponse(BaseModel):
    id: int
    content_id: int
    student_id: int
    tutor_id: int
    subject: str | None = None
    student_unread_count: int = 0
    tutor_unread_count: int = 0
    is_archived: bool = False
    last_message_at: datetime | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class MessageResponse(BaseModel):
    id: int
    conversation_id: int
    sender_id: int
    sender_type: str
    body: str
    is_read: bool
    created_at: datetime | None = None

    class Config:
        from_attributes = True


def participant_side(conversation: Conversation, user: User) -> str:
    if conversation.student_id == user.id:
        return 'STUDENT'
    if conversation.tutor_id == user.id:
        return 'TUTOR'
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail='You are not a participant in this conversation.',
    )


def _get_conversation_or_404(db: Session, conversation_id: int) -> Conversation:
    conversation = db.query(Conversation).filter(Conversation.id == conversation_id).first()
    if conversation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Conversation not found.')
    return conversation


@router.post('/conversations', response_model=ConversationResponse)
def start_conversation(
    data: StartConversationRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        content = db.query(LearningContent).filter(LearningContent.id == data.content_id).first()
        if content is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Content not found.')
        if content.tutor_id == current_user.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='You cannot start a conversation about your own content.',
            )

        conversation = db.query(Conversation).filter(
            Conversation.content_id == content.id,
            Conversation.student_id == current_user.id,
            Conversation.tutor_id == content.tutor_id,
        ).first()
        if conversation is None:
            conversation = Conversation(
                content_id=content.id,
                student_id=current_user.id,
                tutor_id=content.tutor_id,
                subject=data.subject or f'Question about {content.title}',
                student_unread_count=0,
                tutor_unread_count=0,
                is_archived=False,
            )
            db.add(conversation)
            db.commit()
            db.refresh(conversation)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return conversation


@router.get('/conversations', response_model=list[ConversationResponse])
def list_conversations(
    include_archived: bool = Query(default=False),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        query = db.query(Conversation).filter(or_(
            Conversation.student_id == current_user.id,
            Conversation.tutor_id == current_user.id,
        ))
        if not include_archived:
            query = query.filter(Conversation.is_archived.is_(False))
        conversations = query.all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return sorted(
        conversations,
        key=lambda conversation: conversation.last_message_at or conversation.created_at or datetime.min,
        reverse=True,
    )


@router.get('/conversations/{conversation_id}/messages', response_model=list[MessageResponse])
def list_messages(
    conversation_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        conversation = _get_conversation_or_404(db, conversation_id)
        participant_side(conversation, current_user)
        return db.query(Message).filter(
            Message.conversation_id == conversation_id,
        ).order_by(Message.created_at.asc(), Message.id.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post(
    '/conversations/{conversation_id}/messages',
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
def send_message(
    conversation_id: int,
    data: SendMessageRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        conversation = _get_conversation_or_404(db, conversation_id)
        side = participant_side(conversation, current_user)

        now = datetime.utcnow()
        message = Message(
            conversation_id=conversation.id,
            sender_id=current_user.id,
            sender_type=side,
            body=data.body,
            is_read=False,
            created_at=now,
        )
        db.add(message)

        if side == 'STUDENT':
            conversation.tutor_unread_count = (conversation.tutor_unread_count or 0) + 1
        else:
            conversation.student_unread_count = (conversation.student_unread_count or 0) + 1
        conversation.last_message_at = now
        conversation.is_archived = False

        db.commit()
        db.refresh(message)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return message


@router.post('/conversations/{conversation_id}/read', response_model=ConversationResponse)
def mark_conversation_read(
    conversation_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        conversation = _get_conversation_or_404(db, conversation_id)
        side = participant_side(conversation, current_user)

        db.query(Message).filter(
            Message.conversation_id == conversation.id,
            Message.sender_type != side,
            Message.is_read.is_(False),
        ).update({Message.is_read: True}, synchronize_session=False)

        if side == 'STUDENT':
            conversation.student_unread_count = 0
        else:
            conversation.tutor_unread_count = 0

        db.commit()
        db.refresh(conversation)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return conversation


@router.post('/conversations/{conversation_id}/archive', response_model=ConversationResponse)
def archive_conversation(
    conversation_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        conversation = _get_conversation_or_404(db, conversation_id)
        participant_side(conversation, current_user)
        conversation.is_archived = True
        db.commit()
        db.refresh(conversation)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return conversation


@router.get('/unread-count')
def unread_count(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        as_student = db.query(func.sum(Conversation.student_unread_count)).filter(
            Conversation.student_id == current_user.id,
        ).scalar() or 0
        as_tutor = db.query(func.sum(Conversation.tutor_unread_count)).filter(
            Conversation.tutor_id == current_user.id,
        ).scalar() or 0
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return {'unread_count': as_student + as_tutor, 'as_student': as_student, 'as_tutor': as_tutor}
