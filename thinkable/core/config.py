import os
from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./thinkable.db")

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

CORS_ALLOW_ORIGINS = _get_list(
    os.getenv("CORS_ALLOW_ORIGINS"),
    ["http://localhost:3000"],
)

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "./uploads")
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(50 * 1024 * 1024)))
MAX_EXTRACTED_TEXT_LENGTH = int(os.getenv("MAX_EXTRACTED_TEXT_LENGTH", "50000"))

TTS_MAX_CHUNK_LENGTH = int(os.getenv("TTS_MAX_CHUNK_LENGTH", "200"))

SEED_DEFAULT_DATA = _get_bool(os.getenv("SEED_DEFAULT_DATA"), default=True)


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
