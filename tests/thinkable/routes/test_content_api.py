import pytest
from sqlalchemy.exc import OperationalError


@pytest.fixture
def tutor(register):
    return register('tutor@example.edu', role='TUTOR')


@pytest.fixture
def student(register):
    return register('student@example.edu')


@pytest.fixture
def uploaded(client, tutor):
    _, headers = tutor
    response = client.post(
        '/api/tutor/content',
        data={'title': ' Cells ', 'subject_area': 'Biology', 'accessibility_tags': 'Dyslexia, audio'},
        files={'file': ('cells.txt', b'Cells are small. They divide.', 'text/plain')},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def _create_quiz(client, content_id: int, headers: dict) -> dict:
    response = client.post(
        f'/api/tutor/content/{content_id}/quiz',
        json={
            'title': 'Cell basics',
            'questions': [
                {'text': 'Are cells small?', 'options': ['Yes', 'No'], 'correct_option': 0},
                {'text': 'What do cells do?', 'options': ['Sing', 'Divide', 'Fly'], 'correct_option': 1},
            ],
        },
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_upload_infers_type_and_normalizes_tags(uploaded, client, tutor) -> None:
    assert uploaded['title'] == 'Cells'
    assert uploaded['content_type'] == 'TEXT'
    assert uploaded['accessibility_tags'] == ['dyslexia', 'audio']
    assert uploaded['file_size'] == len(b'Cells are small. They divide.')

    _, headers = tutor
    mine = client.get('/api/tutor/content', headers=headers).json()
    assert [content['id'] for content in mine] == [uploaded['id']]


def test_upload_leaves_no_file_when_database_is_down(client, tutor, tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    _, headers = tutor

    def broken_schema_check() -> None:
        raise OperationalError('SELECT 1', {}, Exception('connection refused'))

    monkeypatch.setattr('thinkable.routes.common.ensure_user_schema', broken_schema_check)

    response = client.post(
        '/api/tutor/content',
        data={'title': 'Cells'},
        files={'file': ('cells.txt', b'Cells are small.', 'text/plain')},
        headers=headers,
    )

    assert response.status_code == 503
    upload_dir = tmp_path / 'uploads'
    assert not upload_dir.exists() or list(upload_dir.iterdir()) == []


def test_students_cannot_upload(client, student) -> None:
    _, headers = student

    response = client.post(
        '/api/tutor/content',
        data={'title': 'Nope'},
        files={'file': ('x.txt', b'x', 'text/plain')},
        headers=headers,
    )

    assert response.status_code == 403


def test_empty_upload_is_rejected(client, tutor) -> None:
    _, headers = tutor

    response = client.post(
        '/api/tutor/content',
        data={'title': 'Empty'},
        files={'file': ('empty.txt', b'', 'text/plain')},
        headers=headers,
    )

    assert response.status_code == 400


def test_search_filters(client, uploaded, student) -> None:
    _, headers = student

    assert len(client.get('/api/student/content/search', params={'query': 'cell'}, headers=headers).json()) == 1
    assert len(client.get('/api/student/content/search', params={'subject': 'biology'}, headers=headers).json()) == 1
    assert len(client.get(
        '/api/student/content/search', params={'accessibility_tag': 'AUDIO'}, headers=headers,
    ).json()) == 1
    assert client.get('/api/student/content/search', params={'accessibility_tag': 'adhd'}, headers=headers).json() == []
    assert client.get('/api/student/content/search', params={'content_type': 'video'}, headers=headers).json() == []


def test_view_rate_and_bookmark(client, uploaded, student) -> None:
    _, headers = student
    content_id = uploaded['id']

    viewed = client.get(f'/api/student/content/{content_id}', headers=headers).json()
    assert viewed['content']['view_count'] == 1
    assert viewed['is_bookmarked'] is False

    rated = client.post(f'/api/student/content/{content_id}/rate', json={'rating': 4}, headers=headers).json()
    assert rated == {'content_id': content_id, 'average_rating': 4.0, 'rating_count': 1}
    assert client.post(f'/api/student/content/{content_id}/rate', json={'rating': 6}, headers=headers).status_code == 422

    toggled = client.post(f'/api/student/content/{content_id}/bookmark/toggle', headers=headers).json()
    assert toggled['is_bookmarked'] is True
    favorites = client.get('/api/student/content/favorites', headers=headers).json()
    assert [content['id'] for content in favorites] == [content_id]

    toggled = client.post(f'/api/student/content/{content_id}/bookmark/toggle', headers=headers).json()
    assert toggled['is_bookmarked'] is False
    assert client.get('/api/student/content/favorites', headers=headers).json() == []


def test_missing_content_returns_404(client, student) -> None:
    _, headers = student

    response = client.get('/api/student/content/999', headers=headers)

    assert response.status_code == 404
    assert response.json()['detail'] == 'Content not found.'


def test_quiz_hides_answers_and_scores_submission(client, seeded, uploaded, tutor, student) -> None:
    _, tutor_headers = tutor
    _, headers = student
    content_id = uploaded['id']
    _create_quiz(client, content_id, tutor_headers)

    quiz = client.get(f'/api/student/content/{content_id}/quiz', headers=headers).json()
    assert [question['options'] for question in quiz['questions']] == [['Yes', 'No'], ['Sing', 'Divide', 'Fly']]
    assert all('correct_option' not in question for question in quiz['questions'])

    first, second = (question['id'] for question in quiz['questions'])
    half = client.post(
        f'/api/student/content/{content_id}/quiz/submit',
        json={'answers': {str(first): 0, str(second): 2}},
        headers=headers,
    ).json()
    assert (half['score'], half['correct_answers'], half['passed']) == (50, 1, False)
    assert 'Quiz Starter' in half['new_achievements']

    perfect = client.post(
        f'/api/student/content/{content_id}/quiz/submit',
        json={'answers': {str(first): 0, str(second): 1}},
        headers=headers,
    ).json()
    assert perfect['score'] == 100
    assert perfect['passed'] is True
    assert {'Smart Cookie', 'Brilliant Mind', 'Perfect Score'} <= set(perfect['new_achievements'])
    assert 'Quiz Starter' not in perfect['new_achievements']


def test_quiz_missing_returns_404(client, uploaded, student) -> None:
    _, headers = student

    response = client.get(f"/api/student/content/{uploaded['id']}/quiz", headers=headers)

    assert response.status_code == 404


def test_tutors_can_only_quiz_their_own_content(client, uploaded, register) -> None:
    _, other_headers = register('other-tutor@example.edu', role='TUTOR')

    response = client.post(
        f"/api/tutor/content/{uploaded['id']}/quiz",
        json={'title': 'Q', 'questions': [{'text': 'Q?', 'options': ['a', 'b'], 'correct_option': 0}]},
        headers=other_headers,
    )

    assert response.status_code == 404


def test_completing_a_lesson_awards_first_steps(client, seeded, uploaded, student) -> None:
    _, headers = student

    response = client.post(
        f"/api/student/content/{uploaded['id']}/interact",
        json={'interaction_type': 'completed', 'usefulness_rating': 5},
        headers=headers,
    )

    assert response.status_code == 201
    assert 'First Steps' in response.json()['new_achievements']
    assert client.post(
        f"/api/student/content/{uploaded['id']}/interact",
        json={'interaction_type': 'skimmed'},
        headers=headers,
    ).status_code == 422


def test_extract_text_from_uploaded_file(client, uploaded, student) -> None:
    _, headers = student

    response = client.post(
        f"/api/content/{uploaded['id']}/extract-text",
        json={'apply_preset': 'SENSORY_CALM', 'summary_length': 10},
        headers=headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body['text'] == 'Cells are small.\n\nThey divide.'
    assert body['metadata']['extractionMethod'] == 'text'
    assert body['metadata']['confidence'] == 1.0
    assert body['applied_preset'] == 'SENSORY_CALM'
    assert body['summary'].endswith('...')


def test_notes_round_trip(client, uploaded, student) -> None:
    _, headers = student
    content_id = uploaded['id']

    assert client.get(f'/api/student/notes/{content_id}', headers=headers).json()['body'] == ''

    saved = client.put(f'/api/student/notes/{content_id}', json={'body': 'Cells divide.'}, headers=headers)
    assert saved.status_code == 200
    client.put(f'/api/student/notes/{content_id}', json={'body': 'Cells divide by mitosis.'}, headers=headers)

    notes = client.get('/api/student/notes', headers=headers).json()
    assert [(note['content_id'], note['body']) for note in notes] == [(content_id, 'Cells divide by mitosis.')]

    assert client.delete(f'/api/student/notes/{content_id}', headers=headers).status_code == 204
    assert client.delete(f'/api/student/notes/{content_id}', headers=headers).status_code == 404
    assert client.put('/api/student/notes/999', json={'body': 'x'}, headers=headers).status_code == 404


def test_delete_content_removes_dependents(client, uploaded, tutor, student) -> None:
    _, tutor_headers = tutor
    _, headers = student
    content_id = uploaded['id']
    _create_quiz(client, content_id, tutor_headers)
    client.post(f'/api/student/content/{content_id}/bookmark/toggle', headers=headers)
    client.put(f'/api/student/notes/{content_id}', json={'body': 'note'}, headers=headers)
    client.post('/api/messaging/conversations', json={'content_id': content_id}, headers=headers)

    deleted = client.delete(f'/api/tutor/content/{content_id}', headers=tutor_headers)

    assert deleted.status_code == 204
    assert client.get(f'/api/student/content/{content_id}', headers=headers).status_code == 404
    assert client.get('/api/student/content/favorites', headers=headers).json() == []
    assert client.get('/api/student/notes', headers=headers).json() == []
    assert client.get('/api/messaging/conversations', headers=headers).json() == []
