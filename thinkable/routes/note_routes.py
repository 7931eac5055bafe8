from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from thinkable.auth.dependencies import get_current_user
from thinkable.database import get_db
from thinkable.models.content import LearningContent
from thinkable.models.note import Note
from thinkable.models.user import User
from thinkable.routes.common import database_unavailable, ensure_database_ready

router = APIRouter(tags=['notes'])

MAX_NOTE_LENGTH = 20000


class SaveNoteRequest(BaseModel):
    body: str

    @field_validator('body')
    @classmethod
    def validate_body(cls, value: str) -> str:
        if len(value) > MAX_NOTE_LENGTH:
            raise ValueError(f'Notes must be {MAX_NOTE_LENGTH} characters or fewer.')
        return value


class NoteResponse(BaseModel):
    content_id: int
    body: str
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


def _find_note(db: Session, student_id: int, content_id: int) -> Note | None:
    return db.query(Note).filter(Note.student_id == student_id, Note.content_id == content_id).first()


@router.get('', response_model=list[NoteResponse])
def list_notes(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return db.query(Note).filter(
            Note.student_id == current_user.id,
        ).order_by(Note.updated_at.desc(), Note.id.desc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/{content_id}', response_model=NoteResponse)
def get_note(
    content_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        note = _find_note(db, current_user.id, content_id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    if note is None:
        return NoteResponse(content_id=content_id, body='')
    return note


@router.put('/{content_id}', response_model=NoteResponse)
def save_note(
    content_id: int,
    data: SaveNoteRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        if db.query(LearningContent.id).filter(LearningContent.id == content_id).first() is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Content not found.')

        note = _find_note(db, current_user.id, content_id)
        if note is None:
            note = Note(student_id=current_user.id, content_id=content_id)
            db.add(note)
        note.body = data.body
        note.updated_at = datetime.utcnow()
        db.commit()
        db.refresh(note)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return note


@router.delete('/{content_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_note(
    content_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        note = _find_note(db, current_user.id, content_id)
        if note is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Note not found.')
        db.delete(note)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
