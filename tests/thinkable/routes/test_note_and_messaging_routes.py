import os

import pytest
from fastapi import HTTPException
from pydantic import ValidationError
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from thinkable.database import Base  # noqa: E402
from thinkable.models.content import LearningContent  # noqa: E402
from thinkable.models.messaging import Conversation, Message  # noqa: E402
from thinkable.models.note import Note  # noqa: E402
from thinkable.models.user import User  # noqa: E402
from thinkable.routes.messaging_routes import (  # noqa: E402
    SendMessageRequest,
    StartConversationRequest,
    participant_side,
    send_message,
    start_conversation,
)
from thinkable.routes.note_routes import SaveNoteRequest, delete_note, get_note, save_note  # noqa: E402

TABLES = [
    User.__table__,
    LearningContent.__table__,
    Note.__table__,
    Conversation.__table__,
    Message.__table__,
]


@pytest.fixture
def notes_db():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine, tables=TABLES)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine, tables=list(reversed(TABLES)))


@pytest.fixture
def people(notes_db):
    tutor = User(email='tutor@example.edu', name='Tutor', role='TUTOR')
    student = User(email='student@example.edu', name='Student', role='STUDENT')
    notes_db.add_all([tutor, student])
    notes_db.commit()

    content = LearningContent(tutor_id=tutor.id, title='Photosynthesis', content_type='TEXT')
    notes_db.add(content)
    notes_db.commit()
    notes_db.refresh(content)
    return tutor, student, content


@pytest.fixture(autouse=True)
def database_ready(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr('thinkable.routes.note_routes.ensure_database_ready', lambda: None)
    monkeypatch.setattr('thinkable.routes.messaging_routes.ensure_database_ready', lambda: None)


def test_save_note_request_rejects_oversized_body() -> None:
    with pytest.raises(ValidationError):
        SaveNoteRequest(body='x' * 20001)


def test_get_note_returns_empty_body_when_missing(notes_db, people) -> None:
    _, student, content = people

    note = get_note(content_id=content.id, current_user=student, db=notes_db)

    assert note.body == ''
    assert note.content_id == content.id


def test_save_note_overwrites_previous_body(notes_db, people) -> None:
    _, student, content = people

    save_note(content_id=content.id, data=SaveNoteRequest(body='Light in'), current_user=student, db=notes_db)
    save_note(content_id=content.id, data=SaveNoteRequest(body='Light in, sugar out'), current_user=student, db=notes_db)

    notes = notes_db.query(Note).filter(Note.student_id == student.id).all()
    assert [note.body for note in notes] == ['Light in, sugar out']


def test_save_note_returns_not_found_for_missing_content(notes_db, people) -> None:
    _, student, _ = people

    with pytest.raises(HTTPException) as exception_info:
        save_note(content_id=999, data=SaveNoteRequest(body='x'), current_user=student, db=notes_db)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Content not found.'


def test_delete_note_returns_not_found_when_missing(notes_db, people) -> None:
    _, student, content = people

    with pytest.raises(HTTPException) as exception_info:
        delete_note(content_id=content.id, current_user=student, db=notes_db)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Note not found.'


def test_participant_side_identifies_each_member(people) -> None:
    tutor, student, content = people
    conversation = Conversation(content_id=content.id, student_id=student.id, tutor_id=tutor.id)

    assert participant_side(conversation, student) == 'STUDENT'
    assert participant_side(conversation, tutor) == 'TUTOR'

    with pytest.raises(HTTPException) as exception_info:
        participant_side(conversation, User(id=999, email='x@example.edu'))

    assert exception_info.value.status_code == 403


def test_start_conversation_rejects_own_content(notes_db, people) -> None:
    tutor, _, content = people

    with pytest.raises(HTTPException) as exception_info:
        start_conversation(data=StartConversationRequest(content_id=content.id), current_user=tutor, db=notes_db)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'You cannot start a conversation about your own content.'


def test_send_message_bumps_the_other_side_unread_count(notes_db, people) -> None:
    tutor, student, content = people
    conversation = start_conversation(
        data=StartConversationRequest(content_id=content.id, subject='  Chlorophyll?  '),
        current_user=student,
        db=notes_db,
    )
    assert conversation.subject == 'Chlorophyll?'

    message = send_message(
        conversation_id=conversation.id,
        data=SendMessageRequest(body='Why is it green?'),
        current_user=student,
        db=notes_db,
    )

    notes_db.refresh(conversation)
    assert message.sender_type == 'STUDENT'
    assert conversation.tutor_unread_count == 1
    assert conversation.student_unread_count == 0
    assert conversation.last_message_at == message.created_at
