import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from thinkable.core import config
from thinkable.database import Base, SessionLocal, engine, ensure_user_schema
from thinkable.models import achievement, activity, assessment, content, messaging, note, preferences, quiz, user  # noqa: F401
from thinkable.routes import (
    accessibility_routes,
    achievement_routes,
    assessment_routes,
    auth_routes,
    content_routes,
    messaging_routes,
    neurodivergent_routes,
    note_routes,
    preference_routes,
    preset_routes,
    study_routes,
)
from thinkable.services.achievement_service import seed_default_achievements
from thinkable.services.assessment_service import seed_assessment_questions

logging.basicConfig(level=config.LOG_LEVEL)
config.validate_runtime_config()

app = FastAPI(title='Thinkable API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


def seed_default_data() -> None:
    db = SessionLocal()
    try:
        seed_assessment_questions(db)
        seed_default_achievements(db)
    except SQLAlchemyError:
        db.rollback()
        raise
    finally:
        db.close()


@app.on_event('startup')
def initialize_database() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        ensure_user_schema()
        if config.SEED_DEFAULT_DATA:
            seed_default_data()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': 'Thinkable API Running'}


app.include_router(auth_routes.router, prefix='/api/auth')
app.include_router(preset_routes.router, prefix='/api/presets')
app.include_router(preference_routes.router, prefix='/api/user-preferences')
app.include_router(assessment_routes.router, prefix='/api/assessment')
app.include_router(content_routes.tutor_router, prefix='/api/tutor')
app.include_router(content_routes.student_router, prefix='/api/student/content')
app.include_router(content_routes.content_router, prefix='/api/content')
app.include_router(note_routes.router, prefix='/api/student/notes')
app.include_router(study_routes.router, prefix='/api/student')
app.include_router(messaging_routes.router, prefix='/api/messaging')
app.include_router(achievement_routes.router, prefix='/api/achievements')
app.include_router(neurodivergent_routes.router, prefix='/api/neurodivergent')
app.include_router(accessibility_routes.router, prefix='/api/accessibility')
