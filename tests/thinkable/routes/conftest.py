import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from thinkable.core import config  # noqa: E402
from thinkable.database import Base, get_db  # noqa: E402
from thinkable.main import app  # noqa: E402
from thinkable.services.achievement_service import seed_default_achievements  # noqa: E402
from thinkable.services.assessment_service import seed_assessment_questions  # noqa: E402


@pytest.fixture
def api_session_factory(monkeypatch: pytest.MonkeyPatch):
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    monkeypatch.setattr('thinkable.routes.common.ensure_user_schema', lambda: None)

    try:
        yield testing_session_local
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def seeded(api_session_factory):
    db = api_session_factory()
    try:
        seed_assessment_questions(db)
        seed_default_achievements(db)
    finally:
        db.close()


@pytest.fixture
def client(api_session_factory, monkeypatch: pytest.MonkeyPatch, tmp_path):
    monkeypatch.setattr(config, 'UPLOAD_DIR', str(tmp_path / 'uploads'))

    def override_get_db():
        db = api_session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def register(client: TestClient):
    """Register an account and return (user, auth headers)."""

    def _register(email: str, role: str = 'STUDENT', age_range: str | None = None):
        payload = {'email': email, 'password': 'correct-horse', 'role': role, 'name': email.split('@')[0]}
        if age_range:
            payload['age_range'] = age_range
        response = client.post('/api/auth/register', json=payload)
        assert response.status_code == 201, response.text
        body = response.json()
        return body['user'], {'Authorization': f"Bearer {body['access_token']}"}

    return _register
