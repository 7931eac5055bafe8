from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from thinkable.core import config


DATABASE_URL = config.DATABASE_URL

_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=_connect_args)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_user_schema_checked = False


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_user_schema() -> None:
    global _user_schema_checked

    if _user_schema_checked:
        return

    with _schema_lock:
        if _user_schema_checked:
            return

        inspector = inspect(engine)

        if 'users' not in inspector.get_table_names():
            _user_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('users')}
        migration_steps = [
            ('name', 'ALTER TABLE users ADD COLUMN name VARCHAR'),
            ('recommended_preset', 'ALTER TABLE users ADD COLUMN recommended_preset VARCHAR'),
            ('age_range', 'ALTER TABLE users ADD COLUMN age_range VARCHAR'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_users_role ON users(role)')
            )

        _user_schema_checked = True
